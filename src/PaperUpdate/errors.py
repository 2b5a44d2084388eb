"""Exception hierarchy shared across catalog discovery, download, and install.

The updater spans catalog scraping, HTTP retrieval, and filesystem renames.
This module groups the failure modes into a small hierarchy so the CLI can
report every fatal category uniformly while callers that need finer handling
(for example, telling an operator interrupt apart from a failed rename) can
still catch the specialised subclasses.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "PaperUpdateError",
    "ConfigError",
    "ExtractionFailure",
    "NetworkFailure",
    "InstallError",
    "DownloadCancelled",
]


class PaperUpdateError(RuntimeError):
    """Base exception for catalog, download, or install failures."""


class ConfigError(PaperUpdateError):
    """Raised when settings files or environment overrides are invalid."""


class ExtractionFailure(PaperUpdateError):
    """Raised when the catalog script does not contain a usable object literal."""


class NetworkFailure(PaperUpdateError):
    """Raised when any HTTP request fails or returns an error status."""

    def __init__(
        self,
        message: str,
        *,
        url: str,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class InstallError(PaperUpdateError):
    """Raised when an install step fails; ``report`` holds the partial outcome."""

    def __init__(self, message: str, *, report: Optional[object] = None) -> None:
        super().__init__(message)
        self.report = report


class DownloadCancelled(PaperUpdateError):
    """Raised by :meth:`DownloadSession.wait` after an operator interrupt."""


# === NAVMAP v1 ===
# {
#   "module": "PaperUpdate.errors",
#   "purpose": "Define the exception hierarchy used across catalog, download, and install",
#   "sections": [
#     {"id": "base", "name": "Base Exceptions", "anchor": "BAS", "kind": "api"},
#     {"id": "stages", "name": "Stage Failures", "anchor": "STG", "kind": "api"}
#   ]
# }
# === /NAVMAP ===
