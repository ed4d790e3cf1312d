"""
PATCH — rewrite the retired Stability-AI URL across the clone.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sdsetup.core.models.result import StageResult
from sdsetup.core.models.target import InstallTarget
from sdsetup.core.services.patching import patch_tree
from sdsetup.core.stages.base import Stage

logger = logging.getLogger(__name__)


class PatchStage(Stage):
    """Apply the URL patch to ``target.app_dir``.

    Finding nothing to patch is a normal outcome (upstream may already
    be fixed) and is reported as skipped, not failed.
    """

    name = "patch"

    def run(self, target: InstallTarget, *, now: datetime | None = None) -> StageResult:
        logger.info("Applying Stability-AI URL patch...")
        report = patch_tree(
            target.app_dir,
            self.settings.legacy_urls,
            self.settings.replacement_url,
            stale_dir=self.settings.stale_repo_dir,
            now=now,
        )
        if not report.changed:
            return StageResult.skip(
                self.name,
                "No Stability-AI URL found to patch",
                metadata=report.to_dict(),
            )
        return StageResult.success(
            self.name,
            f"Patched {len(report.patched)} file(s)",
            metadata=report.to_dict(),
        )
