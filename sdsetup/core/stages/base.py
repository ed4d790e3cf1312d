"""
Stage base — the contract every install stage implements.

A stage receives an explicit InstallTarget and returns a StageResult.
It never depends on the current working directory or an activated
environment, and it reports command failures through its result
rather than by raising.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from sdsetup.adapters.base import Runner
from sdsetup.core.models.result import StageResult
from sdsetup.core.models.settings import InstallSettings
from sdsetup.core.models.target import InstallTarget
from sdsetup.core.reliability.retry import RetryOutcome, RetryPolicy, run_with_retry
from sdsetup.core.services.network import net_probe


@dataclass
class StageContext:
    """Collaborators shared by all stages of one run."""

    runner: Runner
    settings: InstallSettings = field(default_factory=InstallSettings)
    sleep: Callable[[float], None] = time.sleep
    probe: Callable[..., dict] = net_probe


class Stage(ABC):
    """Abstract base class for install stages.

    To add a stage:
        1. Subclass Stage and set ``name``
        2. Implement ``run``
        3. Register it in the orchestrator's stage table
    """

    name: str = "stage"

    def __init__(self, ctx: StageContext):
        self.ctx = ctx

    @property
    def runner(self) -> Runner:
        return self.ctx.runner

    @property
    def settings(self) -> InstallSettings:
        return self.ctx.settings

    @abstractmethod
    def run(self, target: InstallTarget) -> StageResult:
        """Execute the stage against ``target``."""

    def retry(self, cmd: Sequence[str] | str, policy: RetryPolicy, **kwargs) -> RetryOutcome:
        """Run a network-touching command under ``policy``."""
        return run_with_retry(self.runner, cmd, policy, sleep=self.ctx.sleep, **kwargs)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
