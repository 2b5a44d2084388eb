# === NAVMAP v1 ===
# {
#   "module": "PaperUpdate.cli",
#   "purpose": "Typer command line entry point for the Paper jar updater",
#   "sections": [
#     {"id": "exit-codes", "name": "Exit Codes", "anchor": "EXIT", "kind": "constants"},
#     {"id": "console-reporter", "name": "ConsoleReporter", "anchor": "REP", "kind": "class"},
#     {"id": "main", "name": "main", "anchor": "function-main", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Typer command line entry point for the Paper jar updater.

Example:
    $ paper-update -d            # list newer builds only
    $ paper-update -r -k         # install and replace paper.jar, keeping old jars
    $ paper-update --build 412   # install a specific build
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TaskID,
    TextColumn,
    TransferSpeedColumn,
)

from . import __version__
from .download import DownloadResult, DownloadTarget
from .errors import PaperUpdateError
from .logging_config import setup_logging
from .settings import load_settings
from .updater import Updater, UpdateReporter, UpdateRequest, UpdateStatus

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_NO_NEW_VERSION = 2

_EXIT_CODES = {
    UpdateStatus.INSTALLED: EXIT_OK,
    UpdateStatus.DRY_RUN: EXIT_OK,
    UpdateStatus.CANCELLED: EXIT_OK,
    UpdateStatus.NO_MATCHING_VERSION: EXIT_OK,
    UpdateStatus.NO_NEW_BUILD: EXIT_NO_NEW_VERSION,
}

# Global console for output
_console = Console(highlight=False, soft_wrap=True)


class ConsoleReporter(UpdateReporter):
    """Print the summary and drive a Rich progress bar for the download."""

    def __init__(self, console: Console) -> None:
        self.console = console
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None

    def summary(self, text: str) -> None:
        self.console.print(text, markup=False, end="")

    def message(self, text: str) -> None:
        self.console.print(text, markup=False)

    def download_started(self, target: DownloadTarget, banner: str) -> None:
        self.console.print(banner, markup=False)
        self._progress = Progress(
            TextColumn("{task.description}"),
            BarColumn(),
            TextColumn("{task.percentage:>3.0f}%"),
            DownloadColumn(),
            TransferSpeedColumn(),
            console=self.console,
            transient=False,
        )
        self._progress.start()
        self._task = self._progress.add_task(target.final_name, total=target.expected_size)

    def progress(self, bytes_written: int, expected_size: Optional[int]) -> None:
        if self._progress is not None and self._task is not None:
            self._progress.update(self._task, completed=bytes_written)

    def download_finished(self, result: DownloadResult) -> None:
        self.close()
        self.console.print("Download complete.")

    def close(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
            self._task = None


app = typer.Typer(
    name="paper-update",
    help="Check for, list, and install newer Paper server builds.",
    add_completion=False,
)


@app.command()
def main(
    replace: bool = typer.Option(
        False,
        "--replace",
        "-r",
        help="Rename downloaded jar file, replacing any existing unless -k",
    ),
    keep: bool = typer.Option(
        False,
        "--keep",
        "-k",
        help="Keep most recent existing jar file with `.old.' infix",
    ),
    dry: bool = typer.Option(
        False,
        "--dry",
        "-d",
        help="Only list updates without downloading",
    ),
    build: Optional[int] = typer.Option(
        None,
        "--build",
        min=1,
        help="Specify a build number to download",
    ),
    ignore_state: bool = typer.Option(
        False,
        "-R",
        help="Ignore state file",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
    directory: Path = typer.Option(
        Path("."),
        "--directory",
        "-C",
        file_okay=False,
        help="Directory holding the server jars and version_history.json",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        envvar="PAPERUPDATE_CONFIG",
        help="Path to a YAML settings file",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
    ),
) -> None:
    """Check the Paper build catalog and install the newest matching build."""

    if version:
        typer.echo(f"paper-update {__version__}")
        raise typer.Exit(EXIT_OK)

    try:
        settings = load_settings(config)
    except PaperUpdateError as exc:
        _console.print(f"Error: {exc}", style="red", markup=False)
        raise typer.Exit(EXIT_FAILURE)

    logger = setup_logging(settings.logging, verbose=verbose)
    request = UpdateRequest(
        directory=directory.resolve(),
        replace=replace,
        keep=keep,
        dry_run=dry,
        build=build,
        ignore_state=ignore_state,
        verbose=verbose,
    )
    reporter = ConsoleReporter(_console)
    try:
        result = Updater(settings, reporter=reporter).run(request)
    except PaperUpdateError as exc:
        reporter.close()
        logger.debug("update failed", exc_info=True, extra={"stage": "cli"})
        _console.print(f"Error: {exc}", style="red", markup=False)
        raise typer.Exit(EXIT_FAILURE)
    finally:
        reporter.close()

    if result.installed_path is not None:
        _console.print(f"Installed {result.installed_path.name}.", markup=False)
    raise typer.Exit(_EXIT_CODES[result.status])


__all__ = [
    "app",
    "main",
    "ConsoleReporter",
    "EXIT_OK",
    "EXIT_FAILURE",
    "EXIT_NO_NEW_VERSION",
]
