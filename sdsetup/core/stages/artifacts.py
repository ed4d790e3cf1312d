"""
ARTIFACTS — write ``run_sd.sh`` and ``remove.sh`` to the home directory.
"""

from __future__ import annotations

import logging

from sdsetup.core.models.result import StageResult
from sdsetup.core.models.target import InstallTarget
from sdsetup.core.models.template import GeneratedFile
from sdsetup.core.services.scripts import render_launcher, render_remover
from sdsetup.core.stages.base import Stage

logger = logging.getLogger(__name__)


class ArtifactStage(Stage):
    name = "artifacts"

    def render(self, target: InstallTarget) -> list[GeneratedFile]:
        return [
            render_launcher(target, self.settings),
            render_remover(target, self.settings),
        ]

    def run(self, target: InstallTarget) -> StageResult:
        written = []
        for generated in self.render(target):
            logger.info("Creating %s...", generated.path.name)
            written.append(str(generated.write()))
        logger.info("Start with: %s", target.launcher_path)
        return StageResult.success(
            self.name,
            f"Wrote {len(written)} script(s)",
            metadata={"files": written},
        )
