"""
DEPENDENCIES — CPU PyTorch and the WebUI's requirements inside the venv.
"""

from __future__ import annotations

import logging

from sdsetup.core.models.result import StageResult
from sdsetup.core.models.target import InstallTarget
from sdsetup.core.reliability.retry import RetryPolicy
from sdsetup.core.stages.base import Stage

logger = logging.getLogger(__name__)

PIP_POLICY = RetryPolicy(attempts=3, delay=5)


class DependencyStage(Stage):
    name = "dependencies"

    def run(self, target: InstallTarget) -> StageResult:
        python = str(target.env_python)

        logger.info("Installing PyTorch (CPU)...")
        outcome = self.retry(
            [
                python, "-m", "pip", "install",
                *self.settings.torch_packages,
                "--index-url", self.settings.torch_index_url,
            ],
            PIP_POLICY,
        )
        if not outcome.ok:
            return StageResult.from_command(self.name, outcome.result)

        logger.info("Installing WebUI requirements...")
        outcome = self.retry(
            [python, "-m", "pip", "install", "-r", self.settings.requirements_file],
            PIP_POLICY,
            cwd=target.app_dir,
        )
        if not outcome.ok:
            return StageResult.from_command(self.name, outcome.result)

        return StageResult.success(self.name, "Python dependencies installed")
