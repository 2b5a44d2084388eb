"""Tests for build list parsing, retrieval, and the newer-build filter."""

from __future__ import annotations

import logging

import httpx
import pytest

from PaperUpdate.builds import BuildRecord, fetch_builds, filter_builds, is_skipped_build
from PaperUpdate.errors import NetworkFailure

BUILDS_URL = "https://papermc.io/ci/job/Paper-1.18/api/json"


def _records(*payloads):
    return [BuildRecord.model_validate(payload) for payload in payloads]


def test_change_set_items_become_commits(build_factory):
    record = BuildRecord.model_validate(build_factory(105, "First\n", "Second\n"))

    assert record.number == 105
    assert record.timestamp_millis == 1640995200000
    assert [commit.comment for commit in record.commits] == ["First\n", "Second\n"]
    assert record.commits[0].commit_id.startswith("1050abc")


def test_build_without_change_set_has_no_commits():
    record = BuildRecord.model_validate({"number": 7})

    assert record.commits == ()
    assert record.timestamp_millis == 0


def test_filter_keeps_newer_unskipped_builds_in_upstream_order(build_factory):
    builds = _records(
        build_factory(105, "Fix"),
        build_factory(104, "[CI-SKIP] docs"),
        build_factory(103, "Older fix"),
        build_factory(102, "Installed"),
        build_factory(101, "Ancient"),
    )

    retained = filter_builds(builds, 102)

    assert [build.number for build in retained] == [105, 103]


def test_first_run_keeps_every_unskipped_build(build_factory):
    builds = _records(build_factory(3, "c"), build_factory(2, "[CI-SKIP] b"), build_factory(1, "a"))

    assert [build.number for build in filter_builds(builds, None)] == [3, 1]


def test_skip_marker_in_any_commit_excludes_the_build(build_factory):
    (build,) = _records(build_factory(9, "Real change", "Follow-up [CI-SKIP]"))

    assert is_skipped_build(build)
    assert filter_builds([build], None) == []


def test_skip_marker_is_case_sensitive(build_factory):
    (build,) = _records(build_factory(9, "[ci-skip] lower case"))

    assert not is_skipped_build(build)
    assert is_skipped_build(build, "[ci-skip]")


def test_nothing_newer_returns_empty_list(build_factory):
    builds = _records(build_factory(105, "Fix"), build_factory(104, "Older"))

    assert filter_builds(builds, 105) == []


def test_fetch_builds_parses_payload(paper_server, mock_client):
    builds = fetch_builds(mock_client, BUILDS_URL)

    assert [build.number for build in builds] == [105, 104, 103, 102]
    assert paper_server.paths() == ["/ci/job/Paper-1.18/api/json"]


def test_fetch_builds_warns_when_list_is_not_newest_first(
    paper_server, mock_client, build_factory, caplog
):
    paper_server.builds = [build_factory(3, "c"), build_factory(5, "e"), build_factory(4, "d")]
    caplog.set_level(logging.WARNING, logger="PaperUpdate.builds")

    builds = fetch_builds(mock_client, BUILDS_URL)

    assert [build.number for build in builds] == [3, 5, 4]
    assert any("not ordered newest-first" in record.message for record in caplog.records)


def test_fetch_builds_http_error(paper_server, mock_client):
    paper_server.status_overrides["/ci/"] = 404

    with pytest.raises(NetworkFailure) as excinfo:
        fetch_builds(mock_client, BUILDS_URL)

    assert excinfo.value.status_code == 404


@pytest.mark.parametrize("body", ["<html>oops</html>", '{"builds": "nope"}', '{"builds": [{"timestamp": 1}]}'])
def test_fetch_builds_malformed_payload(body):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=body)

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(NetworkFailure, match="malformed"):
            fetch_builds(client, BUILDS_URL)
