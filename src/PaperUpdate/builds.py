# === NAVMAP v1 ===
# {
#   "module": "PaperUpdate.builds",
#   "purpose": "Build list models, retrieval, and the newer-build filter",
#   "sections": [
#     {"id": "models", "name": "Build Models", "anchor": "MOD", "kind": "api"},
#     {"id": "filter", "name": "Build Filter", "anchor": "FLT", "kind": "api"},
#     {"id": "fetch", "name": "Build List Retrieval", "anchor": "NET", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Build list models, retrieval, and the newer-build filter.

The CI server answers with ``{"builds": [...]}`` where each build carries its
number, a millisecond timestamp, and a ``changeSet`` of commits. The list is
taken to be newest-first exactly as delivered; it is never re-sorted, but an
out-of-order list is reported so a misbehaving upstream is visible.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence, Tuple

import httpx
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import NetworkFailure

__all__ = [
    "CommitRecord",
    "BuildRecord",
    "BuildList",
    "DEFAULT_SKIP_MARKER",
    "is_newer_build",
    "is_skipped_build",
    "filter_builds",
    "fetch_builds",
]

LOGGER = logging.getLogger("PaperUpdate.builds")

DEFAULT_SKIP_MARKER = "[CI-SKIP]"


class CommitRecord(BaseModel):
    """Commit included in a CI build."""

    commit_id: str = Field(alias="commitId")
    comment: str = ""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class BuildRecord(BaseModel):
    """CI build with its change set flattened into ``commits``.

    Attributes:
        number: Build number assigned by the CI server.
        timestamp_millis: Build start time in milliseconds since the epoch.
        commits: Commits in the order the CI server lists them.
    """

    number: int
    timestamp_millis: int = Field(default=0, alias="timestamp")
    commits: Tuple[CommitRecord, ...] = ()

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _flatten_change_set(cls, data: Any) -> Any:
        if isinstance(data, dict) and "changeSet" in data:
            data = dict(data)
            change_set = data.pop("changeSet") or {}
            data.setdefault("commits", change_set.get("items") or ())
        return data


class BuildList(BaseModel):
    builds: List[BuildRecord] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


def is_newer_build(build: BuildRecord, persisted_build_number: Optional[int]) -> bool:
    """Return whether ``build`` is strictly newer than the persisted build."""

    return persisted_build_number is None or build.number > persisted_build_number


def is_skipped_build(build: BuildRecord, marker: str = DEFAULT_SKIP_MARKER) -> bool:
    """Return whether any commit comment of ``build`` carries ``marker``."""

    return any(marker in commit.comment for commit in build.commits)


def filter_builds(
    builds: Sequence[BuildRecord],
    persisted_build_number: Optional[int],
    *,
    skip_marker: str = DEFAULT_SKIP_MARKER,
) -> List[BuildRecord]:
    """Return the builds newer than ``persisted_build_number`` that are not skipped.

    Args:
        builds: Builds in upstream order (newest first).
        persisted_build_number: Locally recorded build, ``None`` on first run.
        skip_marker: Case-sensitive marker that excludes a build when present
            anywhere in any of its commit comments.

    Returns:
        Retained builds, preserving the input order.
    """

    return [
        build
        for build in builds
        if is_newer_build(build, persisted_build_number)
        and not is_skipped_build(build, skip_marker)
    ]


def _warn_if_unordered(builds: Sequence[BuildRecord], url: str) -> None:
    for newer, older in zip(builds, builds[1:]):
        if newer.number <= older.number:
            LOGGER.warning(
                "build list is not ordered newest-first; using upstream order",
                extra={"stage": "builds", "url": url, "at_build": newer.number},
            )
            return


def fetch_builds(client: httpx.Client, url: str) -> List[BuildRecord]:
    """Download and validate the CI build list.

    Raises:
        NetworkFailure: If the request fails or the payload is not a build list.
    """

    try:
        response = client.get(url)
        response.raise_for_status()
        payload = BuildList.model_validate(response.json())
    except httpx.HTTPStatusError as exc:
        raise NetworkFailure(
            f"Build list request to {url} returned HTTP {exc.response.status_code}",
            url=url,
            status_code=exc.response.status_code,
        ) from exc
    except httpx.HTTPError as exc:
        raise NetworkFailure(f"Build list request to {url} failed: {exc}", url=url) from exc
    except (ValueError, PydanticValidationError) as exc:
        raise NetworkFailure(f"Build list from {url} is malformed: {exc}", url=url) from exc

    _warn_if_unordered(payload.builds, url)
    LOGGER.debug(
        "fetched build list",
        extra={"stage": "builds", "url": url, "builds": len(payload.builds)},
    )
    return payload.builds
