"""
SOURCE — fresh clone of the WebUI repository.
"""

from __future__ import annotations

import logging

from sdsetup.core.models.result import StageResult
from sdsetup.core.models.target import InstallTarget
from sdsetup.core.reliability.retry import RetryPolicy
from sdsetup.core.stages.base import Stage
from sdsetup.core.stages.environment import recreate_dir

logger = logging.getLogger(__name__)

CLONE_POLICY = RetryPolicy(attempts=3, delay=3)


class SourceStage(Stage):
    """Destructively recreate the application directory from upstream."""

    name = "source"

    def run(self, target: InstallTarget) -> StageResult:
        logger.info("Cloning %s...", self.settings.repo_url)
        recreate_dir(target.app_dir)

        outcome = self.retry(
            ["git", "clone", self.settings.repo_url, str(target.app_dir)],
            CLONE_POLICY,
            before_retry=lambda: recreate_dir(target.app_dir),
        )
        if not outcome.ok:
            return StageResult.from_command(
                self.name, outcome.result, metadata={"attempts": outcome.attempts_made},
            )
        return StageResult.success(self.name, f"Cloned into {target.app_dir}")
