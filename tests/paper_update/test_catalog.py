"""Tests for catalog parsing and version-line selection."""

from __future__ import annotations

import httpx
import pytest

from PaperUpdate.catalog import (
    Catalog,
    CatalogEntry,
    fetch_catalog,
    major_line,
    select_version,
    split_version,
    versions_share_prefix,
)
from PaperUpdate.errors import ExtractionFailure, NetworkFailure

CATALOG_URL = "https://papermc.io/js/downloads.js"


def _catalog(*rows):
    return Catalog(
        entries=tuple(
            CatalogEntry(key=f"k{index}", endpoint_name=endpoint, api_version=version)
            for index, (endpoint, version) in enumerate(rows)
        )
    )


def test_from_mapping_keeps_order_and_skips_incomplete_entries():
    catalog = Catalog.from_mapping(
        {
            "paper-1.18": {"api_endpoint": "paper", "api_version": "1.18.1"},
            "broken": {"api_endpoint": "paper"},
            "notes": "not an object",
            "waterfall": {"api_endpoint": "waterfall", "api_version": "1.18"},
        }
    )

    assert [entry.key for entry in catalog] == ["paper-1.18", "waterfall"]
    assert len(catalog) == 2


def test_first_entry_sharing_the_major_line_wins():
    catalog = _catalog(("paper", "1.17.0"), ("paper", "1.18.3"), ("paper", "1.18.9"))

    assert select_version(catalog, "paper", 2, "1.18.1") == "1.18.3"


def test_first_run_selects_first_entry_for_endpoint():
    catalog = _catalog(("waterfall", "1.18"), ("paper", "1.19"), ("paper", "1.18.1"))

    assert select_version(catalog, "paper", 2, None) == "1.19"


def test_no_matching_entry_returns_none():
    catalog = _catalog(("paper", "1.19"), ("waterfall", "1.18"))

    assert select_version(catalog, "paper", 2, "1.18.1") is None
    assert select_version(Catalog(entries=()), "paper", 2, None) is None


def test_prefix_length_controls_how_far_versions_may_drift():
    catalog = _catalog(("paper", "1.19"), ("paper", "1.18.1"))

    assert select_version(catalog, "paper", 1, "1.18.1") == "1.19"
    assert select_version(catalog, "paper", 3, "1.18.1") == "1.18.1"


def test_short_versions_match_when_both_lack_a_component():
    catalog = _catalog(("paper", "1.19"), ("paper", "1.18.1"), ("paper", "1.18"))

    assert select_version(catalog, "paper", 3, "1.18") == "1.18"


@pytest.mark.parametrize(
    ("candidate", "reference", "length", "expected"),
    [
        ("1.18.3", "1.18.1", 2, True),
        ("1.17.0", "1.18.1", 2, False),
        ("1.18", "1.18.1", 3, False),
        ("1.18.1", "1.18", 3, False),
        ("1.18", "1.18", 3, True),
        ("1", "1.18", 2, False),
        ("1.x", "1.18", 2, False),
        ("2.0", None, 2, True),
    ],
)
def test_versions_share_prefix(candidate, reference, length, expected):
    assert versions_share_prefix(candidate, reference, length) is expected


def test_split_version_marks_non_numeric_components():
    assert split_version("1.18.pre2") == [1, 18, None]


def test_major_line():
    assert major_line("1.18.2") == "1.18"
    assert major_line("1.19") == "1.19"


def test_fetch_catalog_extracts_entries(paper_server, mock_client):
    catalog = fetch_catalog(mock_client, CATALOG_URL)

    assert [(entry.endpoint_name, entry.api_version) for entry in catalog] == [
        ("paper", "1.19"),
        ("paper", "1.18.1"),
        ("waterfall", "1.18"),
    ]
    assert paper_server.paths() == ["/js/downloads.js"]


def test_fetch_catalog_http_error_raises_network_failure(paper_server, mock_client):
    paper_server.status_overrides["/js/"] = 503

    with pytest.raises(NetworkFailure) as excinfo:
        fetch_catalog(mock_client, CATALOG_URL)

    assert excinfo.value.status_code == 503
    assert excinfo.value.url == CATALOG_URL


def test_fetch_catalog_transport_error_raises_network_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(NetworkFailure, match="failed"):
            fetch_catalog(client, CATALOG_URL)


def test_fetch_catalog_without_object_raises_extraction_failure(paper_server, mock_client):
    paper_server.script = "console.log('maintenance');"

    with pytest.raises(ExtractionFailure):
        fetch_catalog(mock_client, CATALOG_URL)
