# === NAVMAP v1 ===
# {
#   "module": "PaperUpdate",
#   "purpose": "Package initialization for PaperUpdate",
#   "sections": [
#     {
#       "id": "getattr",
#       "name": "__getattr__",
#       "anchor": "function-getattr",
#       "kind": "function"
#     },
#     {
#       "id": "dir",
#       "name": "__dir__",
#       "anchor": "function-dir",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Public API for the Paper server jar updater.

This facade exposes the pieces callers compose: catalog extraction and
version selection, the build filter, the streaming download session, and
the install pipeline, together with the :class:`Updater` that runs them in
sequence. Attributes are imported lazily so ``PaperUpdate.cli --version``
stays fast.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any, Dict, Tuple

__version__ = "1.2.0"

_EXPORT_MAP: Dict[str, Tuple[str, str]] = {
    "extract_object": ("PaperUpdate.extract", "extract_object"),
    "Catalog": ("PaperUpdate.catalog", "Catalog"),
    "CatalogEntry": ("PaperUpdate.catalog", "CatalogEntry"),
    "select_version": ("PaperUpdate.catalog", "select_version"),
    "BuildRecord": ("PaperUpdate.builds", "BuildRecord"),
    "CommitRecord": ("PaperUpdate.builds", "CommitRecord"),
    "filter_builds": ("PaperUpdate.builds", "filter_builds"),
    "DownloadSession": ("PaperUpdate.download", "DownloadSession"),
    "DownloadTarget": ("PaperUpdate.download", "DownloadTarget"),
    "ArtifactLayout": ("PaperUpdate.install", "ArtifactLayout"),
    "InstallPipeline": ("PaperUpdate.install", "InstallPipeline"),
    "PersistedState": ("PaperUpdate.state", "PersistedState"),
    "load_state": ("PaperUpdate.state", "load_state"),
    "UpdaterSettings": ("PaperUpdate.settings", "UpdaterSettings"),
    "load_settings": ("PaperUpdate.settings", "load_settings"),
    "Updater": ("PaperUpdate.updater", "Updater"),
    "UpdateRequest": ("PaperUpdate.updater", "UpdateRequest"),
    "UpdateStatus": ("PaperUpdate.updater", "UpdateStatus"),
    "PaperUpdateError": ("PaperUpdate.errors", "PaperUpdateError"),
}

__all__ = ["__version__", *_EXPORT_MAP]


def __getattr__(name: str) -> Any:
    """Lazily import API exports on first access."""

    spec = _EXPORT_MAP.get(name)
    if spec is not None:
        module = import_module(spec[0])
        value = getattr(module, spec[1])
        globals()[name] = value
        return value
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


def __dir__() -> list[str]:
    """Expose lazily-populated attributes in ``dir()`` results."""

    return sorted(set(globals()) | set(__all__))
