"""
Install orchestrator — the state machine that drives every stage.

Flow:
    PRECHECK → PACKAGES → ENVIRONMENT → SOURCE → PATCH → DEPENDENCIES
             → ASSETS → ARTIFACTS → DONE

Any failed stage after PRECHECK goes through ROLLBACK to FAILED: the
error is logged with its command and source location, the log tail is
captured, the two owned directories are deleted (while rollback is
armed) and the stage's exit code becomes the process exit code.
"""

from __future__ import annotations

import logging
import time
import traceback
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from sdsetup.core.errors import InstallError
from sdsetup.core.models.result import StageResult
from sdsetup.core.models.target import InstallPhase, InstallTarget
from sdsetup.core.observability.logging_config import tail_log
from sdsetup.core.services.removal import rollback
from sdsetup.core.stages.artifacts import ArtifactStage
from sdsetup.core.stages.assets import AssetStage
from sdsetup.core.stages.base import Stage, StageContext
from sdsetup.core.stages.dependencies import DependencyStage
from sdsetup.core.stages.environment import EnvironmentStage
from sdsetup.core.stages.packages import PackageStage
from sdsetup.core.stages.patch import PatchStage
from sdsetup.core.stages.precheck import PrecheckStage
from sdsetup.core.stages.source import SourceStage

logger = logging.getLogger(__name__)

PIPELINE: list[tuple[InstallPhase, type[Stage]]] = [
    (InstallPhase.PACKAGES, PackageStage),
    (InstallPhase.ENVIRONMENT, EnvironmentStage),
    (InstallPhase.SOURCE, SourceStage),
    (InstallPhase.PATCH, PatchStage),
    (InstallPhase.DEPENDENCIES, DependencyStage),
    (InstallPhase.ASSETS, AssetStage),
    (InstallPhase.ARTIFACTS, ArtifactStage),
]

SuccessHook = Callable[[InstallTarget], None]


@dataclass
class InstallReport:
    """Outcome of one orchestrator run."""

    operation_id: str
    target: InstallTarget
    phase: InstallPhase = InstallPhase.PRECHECK
    results: list[StageResult] = field(default_factory=list)
    exit_code: int = 0
    rolled_back: bool = False
    removed: list[Path] = field(default_factory=list)
    failure: StageResult | None = None
    log_tail: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "ok": self.ok,
            "phase": self.phase.value,
            "exit_code": self.exit_code,
            "rolled_back": self.rolled_back,
            "removed": [str(p) for p in self.removed],
            "log_file": str(self.target.log_file),
            "failure": self.failure.model_dump(mode="json") if self.failure else None,
            "log_tail": self.log_tail,
            "stages": [r.model_dump(mode="json") for r in self.results],
        }


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    return f"install-{now}-{uuid.uuid4().hex[:6]}"


def _exception_location(exc: BaseException) -> str:
    frames = traceback.extract_tb(exc.__traceback__)
    if not frames:
        return "unknown"
    last = frames[-1]
    return f"{Path(last.filename).name}:{last.lineno}"


class InstallOrchestrator:
    """Sequence the stages, own the error trap, roll back on failure.

    Rollback is armed once PRECHECK passes and disarmed exactly once,
    right before the success hooks run; nothing after that point can
    undo a finished install.
    """

    def __init__(
        self,
        ctx: StageContext,
        target: InstallTarget,
        *,
        pipeline: list[tuple[InstallPhase, type[Stage]]] | None = None,
        on_success: list[SuccessHook] | None = None,
    ):
        self.ctx = ctx
        self.target = target
        self._pipeline = pipeline if pipeline is not None else PIPELINE
        self._on_success = list(on_success or [])
        self._armed = False

    @property
    def rollback_armed(self) -> bool:
        return self._armed

    def disarm(self) -> None:
        self._armed = False

    # ── Stage execution ────────────────────────────────────────

    def _run_stage(self, stage: Stage) -> StageResult:
        """Run one stage, converting any exception into a failed result."""
        start = time.monotonic()
        try:
            result = stage.run(self.target)
        except InstallError as e:
            result = StageResult.failure(
                stage.name, str(e), exit_code=e.exit_code, location=_exception_location(e),
            )
        except Exception as e:
            logger.debug("Stage %s raised", stage.name, exc_info=True)
            result = StageResult.failure(
                stage.name,
                f"{type(e).__name__}: {e}",
                location=_exception_location(e),
            )
        result.duration_ms = int((time.monotonic() - start) * 1000)

        marker = {"ok": "✓", "skipped": "⊘", "failed": "✗"}[result.status]
        logger.info("%s %s → %s", marker, stage.name, result.status)
        return result

    # ── Error trap ─────────────────────────────────────────────

    def _fail(self, report: InstallReport, result: StageResult) -> InstallReport:
        report.failure = result
        report.exit_code = result.exit_code or 1

        logger.error(
            "ERROR (exit=%d) at %s: %s",
            report.exit_code,
            result.location or "unknown",
            result.command or result.error,
        )
        if result.command and result.error:
            logger.error("  %s", result.error)

        report.log_tail = tail_log(self.target.log_file, self.ctx.settings.log_tail_lines)

        if self._armed:
            report.phase = InstallPhase.ROLLBACK
            report.removed = rollback(self.target)
            report.rolled_back = True
            self._armed = False

        report.phase = InstallPhase.FAILED
        logger.warning("Log saved at: %s", self.target.log_file)
        return report

    # ── Driver ─────────────────────────────────────────────────

    def run(self) -> InstallReport:
        """Execute the full install. Never raises for stage failures."""
        report = InstallReport(operation_id=generate_operation_id(), target=self.target)
        logger.debug("Operation %s starting", report.operation_id)

        report.phase = InstallPhase.PRECHECK
        result = self._run_stage(PrecheckStage(self.ctx))
        report.results.append(result)
        if result.failed:
            return self._fail(report, result)

        self._armed = True
        for phase, stage_cls in self._pipeline:
            report.phase = phase
            result = self._run_stage(stage_cls(self.ctx))
            report.results.append(result)
            if result.failed:
                return self._fail(report, result)

        self.disarm()
        report.phase = InstallPhase.DONE
        logger.info("Setup complete. Start with: %s", self.target.launcher_path)

        for hook in self._on_success:
            try:
                hook(self.target)
            except Exception as e:
                failure = StageResult.failure(
                    "post-install", f"{type(e).__name__}: {e}", location=_exception_location(e),
                )
                report.results.append(failure)
                return self._fail(report, failure)

        return report
