"""
ASSETS — optional model downloads.

Existence of the destination file is the only completion signal: a
file left behind by an interrupted download is treated as complete.
"""

from __future__ import annotations

import logging
from pathlib import Path

from sdsetup.core.models.result import StageResult
from sdsetup.core.models.settings import AssetSpec
from sdsetup.core.models.target import InstallTarget
from sdsetup.core.reliability.retry import RetryPolicy
from sdsetup.core.stages.base import Stage

logger = logging.getLogger(__name__)

DOWNLOAD_POLICY = RetryPolicy(attempts=3, delay=5)


def asset_destination(asset: AssetSpec, target: InstallTarget) -> Path:
    path = Path(asset.path)
    return path if path.is_absolute() else target.app_dir / path


class AssetStage(Stage):
    """Download every configured asset that is not already on disk."""

    name = "assets"

    def download_if_missing(self, url: str, path: Path) -> StageResult:
        if path.exists():
            logger.info("Model exists: %s", path)
            return StageResult.skip(self.name, f"exists: {path}")

        path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Downloading model: %s", url)
        outcome = self.retry(["wget", "-O", str(path), url], DOWNLOAD_POLICY)
        if not outcome.ok:
            return StageResult.from_command(self.name, outcome.result)
        return StageResult.success(self.name, f"downloaded: {path}")

    def run(self, target: InstallTarget) -> StageResult:
        if not self.settings.download_models:
            logger.warning("Skipping model downloads (download_models is off).")
            return StageResult.skip(self.name, "model downloads disabled")

        logger.info("Downloading model files...")
        downloaded: list[str] = []
        for asset in self.settings.assets:
            dest = asset_destination(asset, target)
            result = self.download_if_missing(asset.url, dest)
            if result.failed:
                return result
            if result.status == "ok":
                downloaded.append(str(dest))

        if not downloaded:
            return StageResult.skip(self.name, "all assets present")
        return StageResult.success(
            self.name,
            f"Downloaded {len(downloaded)} asset(s)",
            metadata={"downloaded": downloaded},
        )
