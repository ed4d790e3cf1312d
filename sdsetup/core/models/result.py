"""
Result models — the execution contract between stages and the orchestrator.

Runners return CommandResults, stages return StageResults.
Neither raises for an ordinary failure: the failure is captured in the
result and the orchestrator decides what happens next.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field


def _caller_location(depth: int = 2) -> str:
    """Return ``file:line`` of the frame ``depth`` levels up the stack."""
    try:
        frame = sys._getframe(depth)
    except ValueError:
        return "unknown"
    return f"{Path(frame.f_code.co_filename).name}:{frame.f_lineno}"


class CommandResult(BaseModel):
    """Outcome of one external command."""

    command: str
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def error(self) -> str:
        """Best single-line description of what went wrong."""
        if self.ok:
            return ""
        tail = (self.stderr or self.stdout).strip().splitlines()
        if tail:
            return tail[-1]
        return f"Command exited with code {self.returncode}"


class StageResult(BaseModel):
    """Result of running one install stage.

    ``location`` records the source ``file:line`` where the failure was
    reported, so the error trap can point at the failing call.
    """

    stage: str
    status: Literal["ok", "skipped", "failed"] = "ok"

    exit_code: int = 0
    command: str = ""
    location: str = ""

    output: str = ""
    error: str | None = None
    duration_ms: int = 0

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the stage completed (skipped counts as completed)."""
        return self.status != "failed"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def success(cls, stage: str, output: str = "", **kwargs: Any) -> StageResult:
        """Create a success result."""
        return cls(stage=stage, status="ok", output=output, **kwargs)

    @classmethod
    def skip(cls, stage: str, reason: str = "", **kwargs: Any) -> StageResult:
        """Create a skip result."""
        return cls(stage=stage, status="skipped", output=reason, **kwargs)

    @classmethod
    def failure(
        cls,
        stage: str,
        error: str,
        *,
        exit_code: int = 1,
        command: str = "",
        location: str | None = None,
        **kwargs: Any,
    ) -> StageResult:
        """Create a failure result, recording the caller's location."""
        return cls(
            stage=stage,
            status="failed",
            error=error,
            exit_code=exit_code or 1,
            command=command,
            location=location or _caller_location(),
            **kwargs,
        )

    @classmethod
    def from_command(cls, stage: str, result: CommandResult, **kwargs: Any) -> StageResult:
        """Turn a failed CommandResult into a failed StageResult."""
        return cls.failure(
            stage,
            result.error,
            exit_code=result.returncode,
            command=result.command,
            location=_caller_location(),
            output=result.stdout[-2000:],
            **kwargs,
        )
