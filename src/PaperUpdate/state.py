"""Read the locally persisted server version.

The server writes ``version_history.json`` with a ``currentVersion`` string
such as ``"git-Paper-123 (MC: 1.18.1)"``. The API version and the build
number are recovered independently, so a string carrying only one of them
still yields a partial state. A missing or unreadable file behaves like a
first run.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

__all__ = ["PersistedState", "parse_version_string", "load_state"]

LOGGER = logging.getLogger("PaperUpdate.state")

_API_VERSION_PATTERN = re.compile(r"(?<=MC: )\d+\.\d+(\.\d+)?")
_BUILD_NUMBER_PATTERN = re.compile(r"(?<=git-Paper-)\d+")


@dataclass(frozen=True, slots=True)
class PersistedState:
    api_version: Optional[str] = None
    build_number: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return self.api_version is None and self.build_number is None


def parse_version_string(version_info: str) -> PersistedState:
    """Extract the API version and build number from a version string.

    Examples:
        >>> parse_version_string("git-Paper-123 (MC: 1.18.1)")
        PersistedState(api_version='1.18.1', build_number=123)
    """

    api_match = _API_VERSION_PATTERN.search(version_info)
    build_match = _BUILD_NUMBER_PATTERN.search(version_info)
    return PersistedState(
        api_version=api_match.group(0) if api_match else None,
        build_number=int(build_match.group(0)) if build_match else None,
    )


def load_state(path: Path) -> PersistedState:
    """Load :class:`PersistedState` from ``path``, degrading to an empty state.

    Args:
        path: Location of ``version_history.json``.

    Returns:
        Parsed state, or an empty state when the file is absent or malformed.
    """

    try:
        document = json.loads(path.read_text(encoding="utf-8"))
        version_info = document["currentVersion"]
        if not isinstance(version_info, str):
            raise TypeError("currentVersion is not a string")
    except (OSError, ValueError, KeyError, TypeError) as exc:
        LOGGER.info("Couldn't read version history file.")
        LOGGER.debug(
            "version history unreadable",
            extra={"stage": "state", "path": str(path), "error": str(exc)},
        )
        return PersistedState()

    state = parse_version_string(version_info)
    LOGGER.debug(
        "loaded persisted state",
        extra={
            "stage": "state",
            "path": str(path),
            "api_version": state.api_version,
            "build_number": state.build_number,
        },
    )
    return state
