# === NAVMAP v1 ===
# {
#   "module": "PaperUpdate.updater",
#   "purpose": "Orchestrate catalog lookup, build selection, download, and install for one run",
#   "sections": [
#     {"id": "models", "name": "Request & Result Models", "anchor": "MOD", "kind": "api"},
#     {"id": "reporter", "name": "UpdateReporter", "anchor": "REP", "kind": "api"},
#     {"id": "updater", "name": "Updater", "anchor": "UPD", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Orchestrate one update run.

Stages run strictly in sequence, each consuming the previous stage's output:

1. read the persisted state (unless ignored),
2. fetch the catalog script and select the version line,
3. fetch the build list for that line and keep the newer, non-skipped builds,
4. unless dry-run, stream the chosen build to a temporary file,
5. install it through :class:`~PaperUpdate.install.InstallPipeline`.

"No new version" and operator cancellation are ordinary results; every other
failure surfaces as a :class:`~PaperUpdate.errors.PaperUpdateError`.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import httpx

from .builds import BuildRecord, fetch_builds, filter_builds
from .catalog import fetch_catalog, major_line, select_version
from .download import (
    DownloadResult,
    DownloadSession,
    DownloadTarget,
    cancel_on_interrupt,
    head_content_length,
)
from .errors import DownloadCancelled
from .formatters import format_build_summary, format_download_banner
from .install import ArtifactLayout, InstallPipeline, InstallReport
from .net import get_http_client
from .settings import UpdaterSettings
from .state import PersistedState, load_state

__all__ = [
    "MSG_NO_NEW_VERSION",
    "UpdateStatus",
    "UpdateRequest",
    "UpdatePlan",
    "UpdateResult",
    "UpdateReporter",
    "Updater",
]

LOGGER = logging.getLogger("PaperUpdate.updater")

MSG_NO_NEW_VERSION = "No matching new version available."


class UpdateStatus(str, enum.Enum):
    """Terminal outcome of a run.

    ``NO_MATCHING_VERSION`` means no catalog entry shares the installed
    version line; ``NO_NEW_BUILD`` means the line exists but offers nothing
    newer than the installed build.
    """

    INSTALLED = "installed"
    DRY_RUN = "dry-run"
    NO_MATCHING_VERSION = "no-matching-version"
    NO_NEW_BUILD = "no-new-build"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class UpdateRequest:
    """Operator choices for one run.

    Attributes:
        directory: Directory holding the jars and the version history file.
        replace: Also install the new jar under the canonical name.
        keep: Preserve superseded jars with an ``.old.`` infix.
        dry_run: Only list the available builds.
        build: Force this build number instead of the newest retained one.
        ignore_state: Treat the run as a first run.
        verbose: Expand the newest build's commits in the summary.
    """

    directory: Path = field(default_factory=Path.cwd)
    replace: bool = False
    keep: bool = False
    dry_run: bool = False
    build: Optional[int] = None
    ignore_state: bool = False
    verbose: bool = False


@dataclass(frozen=True, slots=True)
class UpdatePlan:
    version: str
    major: str
    builds: List[BuildRecord]
    build_number: int


@dataclass(slots=True)
class UpdateResult:
    status: UpdateStatus
    plan: Optional[UpdatePlan] = None
    download: Optional[DownloadResult] = None
    install: Optional[InstallReport] = None
    installed_path: Optional[Path] = None


class UpdateReporter:
    """Receives user-facing output; the base implementation discards it."""

    def summary(self, text: str) -> None:
        """Called with the rendered list of available builds."""

    def message(self, text: str) -> None:
        """Called with one-line status messages."""

    def download_started(self, target: DownloadTarget, banner: str) -> None:
        """Called once before the first byte is requested."""

    def progress(self, bytes_written: int, expected_size: Optional[int]) -> None:
        """Called after every chunk written to the temporary file."""

    def download_finished(self, result: DownloadResult) -> None:
        """Called exactly once when the body has been fully written."""


class Updater:
    """Run the update flow against the configured endpoints.

    Args:
        settings: Validated settings for the run.
        client: HTTP client; the shared client from :mod:`PaperUpdate.net`
            is used when omitted.
        reporter: Receiver for user-facing output.
    """

    def __init__(
        self,
        settings: UpdaterSettings,
        *,
        client: Optional[httpx.Client] = None,
        reporter: Optional[UpdateReporter] = None,
    ) -> None:
        self.settings = settings
        self.client = client or get_http_client(settings.http)
        self.reporter = reporter or UpdateReporter()

    def read_state(self, request: UpdateRequest) -> PersistedState:
        if request.ignore_state:
            LOGGER.debug("ignoring version history file", extra={"stage": "state"})
            return PersistedState()
        return load_state(request.directory / self.settings.state_file)

    def plan(
        self, request: UpdateRequest, state: PersistedState
    ) -> Union[UpdatePlan, UpdateStatus]:
        """Select the version line and newer builds.

        Returns:
            The plan, or the status explaining why there is nothing to install.
        """

        catalog = fetch_catalog(self.client, self.settings.catalog_url)
        version = select_version(
            catalog,
            self.settings.endpoint_name,
            self.settings.version_prefix_length,
            state.api_version,
        )
        if version is None:
            LOGGER.debug(
                "no catalog entry matches persisted version",
                extra={"stage": "catalog", "api_version": state.api_version},
            )
            return UpdateStatus.NO_MATCHING_VERSION

        major = major_line(version)
        builds = fetch_builds(self.client, self.settings.build_list_url_for(major))
        newer = filter_builds(builds, state.build_number, skip_marker=self.settings.skip_marker)
        if not newer:
            LOGGER.debug(
                "no newer builds",
                extra={"stage": "builds", "major": major, "build_number": state.build_number},
            )
            return UpdateStatus.NO_NEW_BUILD

        build_number = request.build if request.build is not None else newer[0].number
        return UpdatePlan(version=version, major=major, builds=newer, build_number=build_number)

    def prepare_download(self, request: UpdateRequest, plan: UpdatePlan) -> DownloadSession:
        """Look up the artifact size and return an unstarted session for it."""

        url = self.settings.download_url_for(plan.version, plan.build_number)
        banner = format_download_banner(plan.version, plan.build_number)
        expected_size = head_content_length(self.client, url, self.settings.http)
        target = DownloadTarget.for_build(
            request.directory, self.settings.artifact_name, plan.build_number, expected_size
        )
        self.reporter.download_started(target, banner)
        return DownloadSession(
            self.client,
            url,
            target,
            config=self.settings.http,
            on_progress=self.reporter.progress,
            on_complete=self.reporter.download_finished,
        )

    def install(self, request: UpdateRequest, plan: UpdatePlan) -> InstallReport:
        layout = ArtifactLayout(request.directory, self.settings.artifact_name, plan.build_number)
        return InstallPipeline(layout, replace=request.replace, keep=request.keep).run()

    def run(self, request: UpdateRequest) -> UpdateResult:
        """Execute the full flow for ``request``.

        SIGINT is routed to the download session from the first byte until
        the install finishes. Once the body is complete the session ignores
        interrupts, so the rename chain always runs to the end.
        """

        state = self.read_state(request)
        plan = self.plan(request, state)
        if isinstance(plan, UpdateStatus):
            self.reporter.message(MSG_NO_NEW_VERSION)
            return UpdateResult(status=plan)

        self.reporter.summary(format_build_summary(plan.version, plan.builds, verbose=request.verbose))
        if request.dry_run:
            return UpdateResult(status=UpdateStatus.DRY_RUN, plan=plan)

        session = self.prepare_download(request, plan)
        with cancel_on_interrupt(session):
            try:
                download = session.start().wait()
            except DownloadCancelled:
                LOGGER.debug("download cancelled", extra={"stage": "download"})
                self.reporter.message("Download cancelled.")
                return UpdateResult(status=UpdateStatus.CANCELLED, plan=plan)
            report = self.install(request, plan)

        layout = ArtifactLayout(request.directory, self.settings.artifact_name, plan.build_number)
        installed = layout.canonical if request.replace else layout.numbered
        LOGGER.debug(
            "install complete",
            extra={"stage": "install", "path": str(installed), "build": plan.build_number},
        )
        return UpdateResult(
            status=UpdateStatus.INSTALLED,
            plan=plan,
            download=download,
            install=report,
            installed_path=installed,
        )
