"""
PACKAGES — OS-level build, media and crypto dependencies via apt.
"""

from __future__ import annotations

import logging

from sdsetup.core.errors import LockTimeoutError
from sdsetup.core.models.result import StageResult
from sdsetup.core.models.target import InstallTarget
from sdsetup.core.reliability.locks import LockWaiter
from sdsetup.core.reliability.retry import RetryPolicy
from sdsetup.core.stages.base import Stage

logger = logging.getLogger(__name__)

APT_POLICY = RetryPolicy(attempts=3, delay=5)

_APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


class PackageStage(Stage):
    """Wait for apt locks, refresh the index, install the package list."""

    name = "packages"

    def lock_waiter(self) -> LockWaiter:
        return LockWaiter(
            self.runner,
            self.settings.lock_files,
            interval=self.settings.lock_poll_interval,
            max_polls=self.settings.lock_max_polls,
            sleep=self.ctx.sleep,
        )

    def commands(self) -> list[list[str]]:
        """apt invocations in execution order."""
        cmds = [self.runner.as_root(["apt", "update"], env=_APT_ENV)]
        if self.settings.apt_upgrade:
            cmds.append(self.runner.as_root(["apt", "upgrade", "-y"], env=_APT_ENV))
        cmds.append(
            self.runner.as_root(["apt", "install", "-y", *self.settings.apt_packages], env=_APT_ENV),
        )
        return cmds

    def run(self, target: InstallTarget) -> StageResult:
        try:
            self.lock_waiter().wait()
        except LockTimeoutError as e:
            logger.error("%s", e)
            return StageResult.failure(self.name, str(e), exit_code=e.exit_code)

        logger.info("Updating apt and installing %d packages...", len(self.settings.apt_packages))
        for cmd in self.commands():
            outcome = self.retry(cmd, APT_POLICY, env=_APT_ENV)
            if not outcome.ok:
                return StageResult.from_command(self.name, outcome.result)

        return StageResult.success(
            self.name,
            f"Installed {len(self.settings.apt_packages)} system packages",
        )
