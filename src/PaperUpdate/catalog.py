"""Version catalog model and the version-line selection policy.

The catalog maps arbitrary keys to entries describing an API endpoint and the
Minecraft version it serves. Selection walks the entries in the order the
catalog lists them and returns the first one whose version shares the
required number of leading components with the locally recorded version, so
an installation never jumps to a different major line on its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterator, List, Mapping, Optional, Tuple

import httpx

from .errors import NetworkFailure
from .extract import extract_object

__all__ = [
    "CatalogEntry",
    "Catalog",
    "split_version",
    "versions_share_prefix",
    "select_version",
    "major_line",
    "fetch_catalog",
]

LOGGER = logging.getLogger("PaperUpdate.catalog")


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    """Single catalog row.

    Attributes:
        key: Key under which the entry appeared in the catalog object.
        endpoint_name: API endpoint the entry belongs to (``api_endpoint``).
        api_version: Minecraft version served by the endpoint (``api_version``).
    """

    key: str
    endpoint_name: str
    api_version: str


@dataclass(frozen=True, slots=True)
class Catalog:
    """Immutable, ordered collection of :class:`CatalogEntry` values."""

    entries: Tuple[CatalogEntry, ...]

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Catalog":
        """Build a catalog from the extracted object, keeping source order.

        Values that are not objects, or that lack ``api_endpoint`` or
        ``api_version``, are skipped.
        """

        entries: List[CatalogEntry] = []
        for key, value in data.items():
            if not isinstance(value, Mapping):
                continue
            endpoint = value.get("api_endpoint")
            version = value.get("api_version")
            if endpoint is None or version is None:
                LOGGER.debug(
                    "skipping catalog entry without endpoint or version",
                    extra={"stage": "catalog", "key": key},
                )
                continue
            entries.append(
                CatalogEntry(key=str(key), endpoint_name=str(endpoint), api_version=str(version))
            )
        return cls(entries=tuple(entries))


def split_version(version: str) -> List[Optional[int]]:
    """Split a dotted version into integer components (``None`` when not numeric)."""

    components: List[Optional[int]] = []
    for part in version.split("."):
        try:
            components.append(int(part))
        except ValueError:
            components.append(None)
    return components


def versions_share_prefix(candidate: str, reference: Optional[str], length: int) -> bool:
    """Return whether the first ``length`` components of both versions are equal.

    A ``None`` reference matches every candidate. A position absent from both
    versions counts as equal; one absent from only one side, or a
    non-numeric component, never matches.

    Examples:
        >>> versions_share_prefix("1.18.3", "1.18.1", 2)
        True
        >>> versions_share_prefix("1.17.0", "1.18.1", 2)
        False
        >>> versions_share_prefix("1.18", "1.18", 3)
        True
    """

    if reference is None:
        return True
    left = split_version(candidate)
    right = split_version(reference)
    for index in range(length):
        left_missing = index >= len(left)
        right_missing = index >= len(right)
        if left_missing and right_missing:
            continue
        if left_missing or right_missing:
            return False
        if left[index] is None or left[index] != right[index]:
            return False
    return True


def select_version(
    catalog: Catalog,
    endpoint_name: str,
    required_prefix_length: int,
    persisted_api_version: Optional[str],
) -> Optional[str]:
    """Return the API version of the first matching entry, or ``None``.

    Args:
        catalog: Catalog in source order; the first match wins.
        endpoint_name: Required ``api_endpoint`` value.
        required_prefix_length: Number of leading components that must match.
        persisted_api_version: Locally recorded version, ``None`` on first run.
    """

    for entry in catalog:
        if entry.endpoint_name != endpoint_name:
            continue
        if versions_share_prefix(entry.api_version, persisted_api_version, required_prefix_length):
            LOGGER.debug(
                "selected catalog entry",
                extra={"stage": "catalog", "key": entry.key, "api_version": entry.api_version},
            )
            return entry.api_version
    return None


def major_line(version: str) -> str:
    """Return the first two components of ``version`` (``"1.18.2"`` -> ``"1.18"``)."""

    return ".".join(version.split(".")[:2])


def fetch_catalog(client: httpx.Client, url: str) -> Catalog:
    """Download the catalog script and extract the catalog from it.

    Raises:
        NetworkFailure: If the request fails.
        ExtractionFailure: If the script does not embed a usable object.
    """

    try:
        response = client.get(url)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise NetworkFailure(
            f"Catalog request to {url} returned HTTP {exc.response.status_code}",
            url=url,
            status_code=exc.response.status_code,
        ) from exc
    except httpx.HTTPError as exc:
        raise NetworkFailure(f"Catalog request to {url} failed: {exc}", url=url) from exc

    data = extract_object(response.text)
    catalog = Catalog.from_mapping(data)
    LOGGER.debug("fetched catalog", extra={"stage": "catalog", "url": url, "entries": len(catalog)})
    return catalog
