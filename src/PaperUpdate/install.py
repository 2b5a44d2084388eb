# === NAVMAP v1 ===
# {
#   "module": "PaperUpdate.install",
#   "purpose": "Install a downloaded artifact through an ordered plan of renames and deletes",
#   "sections": [
#     {"id": "layout", "name": "Artifact Layout", "anchor": "LAY", "kind": "api"},
#     {"id": "plan", "name": "Install Plan", "anchor": "PLN", "kind": "api"},
#     {"id": "pipeline", "name": "InstallPipeline", "anchor": "PIP", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Install a downloaded artifact through an ordered plan of renames and deletes.

The plan is data: :func:`plan_install` turns the ``replace`` and ``keep``
flags into a list of :class:`InstallStep` values and :class:`InstallPipeline`
executes them in order. Every step is either *mandatory* (its source must
exist) or *optional* (a missing source is a no-op). Any other failure stops
the pipeline; later steps are recorded as skipped and nothing is rolled back,
so the files on disk can be inspected and recovered by hand.

The step order guarantees a complete artifact is always on disk: the previous
canonical jar is only moved aside (never deleted) before the new one takes its
name, and the moved-aside copy is only removed after that rename succeeded.
"""

from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .errors import InstallError

__all__ = [
    "ArtifactLayout",
    "StepAction",
    "StepOutcome",
    "InstallStep",
    "StepResult",
    "InstallReport",
    "plan_install",
    "InstallPipeline",
]

LOGGER = logging.getLogger("PaperUpdate.install")


@dataclass(frozen=True, slots=True)
class ArtifactLayout:
    """File names used by one install.

    Examples:
        >>> layout = ArtifactLayout(Path("."), "paper", 123)
        >>> layout.numbered.name, layout.canonical.name, layout.old_numbered.name
        ('paper-123.jar', 'paper.jar', 'paper-123.old.jar')
    """

    directory: Path
    artifact_name: str
    build_number: int

    @property
    def numbered(self) -> Path:
        return self.directory / f"{self.artifact_name}-{self.build_number}.jar"

    @property
    def new(self) -> Path:
        return self.directory / f"{self.artifact_name}-{self.build_number}.jar.temp"

    @property
    def old_numbered(self) -> Path:
        return self.directory / f"{self.artifact_name}-{self.build_number}.old.jar"

    @property
    def canonical(self) -> Path:
        return self.directory / f"{self.artifact_name}.jar"

    @property
    def sidecar(self) -> Path:
        return self.directory / f"{self.artifact_name}.temp.jar"

    @property
    def old_canonical(self) -> Path:
        return self.directory / f"{self.artifact_name}.old.jar"


class StepAction(str, enum.Enum):
    RENAME = "rename"
    DELETE = "delete"


class StepOutcome(str, enum.Enum):
    DONE = "done"
    MISSING = "missing"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class InstallStep:
    """One filesystem transition of the install plan.

    Attributes:
        action: Rename or delete.
        source: File the step operates on.
        destination: Rename target; ``None`` for deletes.
        optional: Whether a missing ``source`` is a no-op instead of an error.
        done_message: Diagnostic logged after the step succeeds.
        missing_message: Diagnostic logged when an optional source is absent.
    """

    action: StepAction
    source: Path
    destination: Optional[Path]
    optional: bool
    done_message: str
    missing_message: str = ""

    def __post_init__(self) -> None:
        if self.action is StepAction.RENAME and self.destination is None:
            raise InstallError(f"Rename of {self.source} has no destination")

    @property
    def rename_target(self) -> Path:
        """Destination of a rename step.

        Raises:
            InstallError: If the step has no destination.
        """

        if self.destination is None:
            raise InstallError(f"Rename of {self.source} has no destination")
        return self.destination

    def describe(self) -> str:
        if self.action is StepAction.DELETE:
            return f"delete {self.source.name}"
        return f"rename {self.source.name} -> {self.rename_target.name}"


@dataclass(slots=True)
class StepResult:
    step: InstallStep
    outcome: StepOutcome
    error: Optional[OSError] = None


@dataclass(slots=True)
class InstallReport:
    """Outcome of every planned step, in plan order."""

    results: List[StepResult] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return all(
            result.outcome in {StepOutcome.DONE, StepOutcome.MISSING} for result in self.results
        )

    @property
    def failed_step(self) -> Optional[StepResult]:
        for result in self.results:
            if result.outcome is StepOutcome.FAILED:
                return result
        return None

    def outcomes(self) -> List[StepOutcome]:
        return [result.outcome for result in self.results]


def plan_install(layout: ArtifactLayout, *, replace: bool, keep: bool) -> List[InstallStep]:
    """Return the ordered install steps for the given retention flags.

    Args:
        layout: File names for the build being installed.
        replace: Also move the new artifact onto the canonical name.
        keep: Preserve superseded artifacts under ``.old.`` names.
    """

    steps: List[InstallStep] = []
    if keep:
        steps.append(
            InstallStep(
                action=StepAction.RENAME,
                source=layout.numbered,
                destination=layout.old_numbered,
                optional=True,
                done_message=f"Renamed old numbered jar to {layout.old_numbered.name}.",
                missing_message="No old numbered jar to rename. Continuing.",
            )
        )
    steps.append(
        InstallStep(
            action=StepAction.RENAME,
            source=layout.new,
            destination=layout.numbered,
            optional=False,
            done_message=f"Renamed {layout.new.name} to {layout.numbered.name}.",
        )
    )
    if not replace:
        return steps

    steps.append(
        InstallStep(
            action=StepAction.RENAME,
            source=layout.canonical,
            destination=layout.sidecar,
            optional=True,
            done_message=f"Renamed old jar to {layout.sidecar.name}.",
            missing_message="No old jar to rename. Continuing.",
        )
    )
    steps.append(
        InstallStep(
            action=StepAction.RENAME,
            source=layout.numbered,
            destination=layout.canonical,
            optional=False,
            done_message="Renamed new jar.",
        )
    )
    if keep:
        steps.append(
            InstallStep(
                action=StepAction.RENAME,
                source=layout.sidecar,
                destination=layout.old_canonical,
                optional=True,
                done_message=f"Renamed temp jar to {layout.old_canonical.name}.",
                missing_message="No temp jar to rename. Continuing.",
            )
        )
    else:
        steps.append(
            InstallStep(
                action=StepAction.DELETE,
                source=layout.sidecar,
                destination=None,
                optional=True,
                done_message="Deleted temp jar.",
                missing_message="No temp jar to delete. Continuing.",
            )
        )
    return steps


def _fsync_directory(directory: Path) -> None:
    try:
        fd = os.open(str(directory), os.O_RDONLY)
    except OSError as exc:
        LOGGER.debug(
            "directory fsync unavailable",
            extra={"stage": "install", "directory": str(directory), "error": str(exc)},
        )
        return
    try:
        os.fsync(fd)
    except OSError as exc:
        LOGGER.debug(
            "directory fsync failed",
            extra={"stage": "install", "directory": str(directory), "error": str(exc)},
        )
    finally:
        os.close(fd)


class InstallPipeline:
    """Execute an install plan for one downloaded build.

    Attributes:
        layout: File names for the build being installed.
        steps: Planned steps derived from the flags.

    Examples:
        >>> pipeline = InstallPipeline(ArtifactLayout(Path("."), "paper", 1), replace=False, keep=False)
        >>> [step.describe() for step in pipeline.steps]
        ['rename paper-1.jar.temp -> paper-1.jar']
    """

    def __init__(self, layout: ArtifactLayout, *, replace: bool, keep: bool) -> None:
        self.layout = layout
        self.replace = replace
        self.keep = keep
        self.steps = plan_install(layout, replace=replace, keep=keep)

    def run(self) -> InstallReport:
        """Execute the plan.

        Returns:
            Report with one result per planned step.

        Raises:
            InstallError: If the downloaded file is missing (no step runs) or
                a step fails for a reason other than an absent optional source.
                The partial report is attached as ``error.report``.
        """

        if not self.layout.new.exists():
            raise InstallError(
                f"Downloaded file {self.layout.new} does not exist; nothing to install"
            )

        report = InstallReport()
        halted = False
        for step in self.steps:
            if halted:
                report.results.append(StepResult(step=step, outcome=StepOutcome.SKIPPED))
                continue
            result = self._execute(step)
            report.results.append(result)
            if result.outcome is StepOutcome.FAILED:
                halted = True

        failed = report.failed_step
        if failed is not None:
            verb = "delete" if failed.step.action is StepAction.DELETE else "rename"
            raise InstallError(
                f"Couldn't {verb} {failed.step.source}: {failed.error}",
                report=report,
            )
        _fsync_directory(self.layout.directory)
        return report

    def _execute(self, step: InstallStep) -> StepResult:
        try:
            if step.action is StepAction.DELETE:
                step.source.unlink()
            else:
                step.source.replace(step.rename_target)
        except FileNotFoundError as exc:
            if step.optional:
                LOGGER.debug(
                    step.missing_message,
                    extra={"stage": "install", "step": step.describe()},
                )
                return StepResult(step=step, outcome=StepOutcome.MISSING)
            LOGGER.error(
                f"Couldn't rename {step.source.name}.",
                extra={"stage": "install", "step": step.describe(), "error": str(exc)},
            )
            return StepResult(step=step, outcome=StepOutcome.FAILED, error=exc)
        except OSError as exc:
            verb = "delete" if step.action is StepAction.DELETE else "rename"
            LOGGER.error(
                f"Couldn't {verb} {step.source.name}.",
                extra={"stage": "install", "step": step.describe(), "error": str(exc)},
            )
            return StepResult(step=step, outcome=StepOutcome.FAILED, error=exc)

        LOGGER.debug(step.done_message, extra={"stage": "install", "step": step.describe()})
        return StepResult(step=step, outcome=StepOutcome.DONE)
