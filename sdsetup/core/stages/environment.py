"""
ENVIRONMENT — pinned Python runtime and a fresh virtual environment.

The environment directory is destroyed and recreated on every run, so
it always belongs to the current install.
"""

from __future__ import annotations

import logging
import shlex
import shutil
from pathlib import Path

from sdsetup.adapters.base import format_command
from sdsetup.core.models.result import StageResult
from sdsetup.core.models.target import InstallTarget
from sdsetup.core.reliability.retry import RetryPolicy
from sdsetup.core.stages.base import Stage

logger = logging.getLogger(__name__)

UV_BOOTSTRAP_POLICY = RetryPolicy(attempts=3, delay=2)
PYTHON_INSTALL_POLICY = RetryPolicy(attempts=3, delay=3)
PIP_POLICY = RetryPolicy(attempts=3, delay=5)


class EnvironmentStage(Stage):
    """Ensure uv, install the pinned Python, recreate the venv, bootstrap pip."""

    name = "environment"

    def ensure_uv(self, target: InstallTarget) -> StageResult | None:
        """Install uv if missing. Returns a failure result, or None when uv is usable."""
        logger.info("Ensuring uv is installed...")
        self.runner.add_to_path(target.home / ".local" / "bin")
        if self.runner.which("uv") is not None:
            return None

        cmd = uv_bootstrap_command(self.settings.uv_installer_url)
        outcome = self.retry(cmd, UV_BOOTSTRAP_POLICY)
        if not outcome.ok:
            return StageResult.from_command(self.name, outcome.result)

        if self.runner.which("uv") is None:
            return StageResult.failure(self.name, "Missing command: uv", command=format_command(cmd))
        return None

    def run(self, target: InstallTarget) -> StageResult:
        failed = self.ensure_uv(target)
        if failed is not None:
            return failed

        version = self.settings.python_version
        logger.info("Installing Python %s via uv...", version)
        outcome = self.retry(["uv", "python", "install", version], PYTHON_INSTALL_POLICY)
        if not outcome.ok:
            return StageResult.from_command(self.name, outcome.result)

        logger.info("Creating venv (Python %s)...", version)
        recreate_dir(target.env_dir)
        result = self.runner.run(["uv", "venv", "--python", version, str(target.env_dir)])
        if not result.ok:
            return StageResult.from_command(self.name, result)

        logger.info("Bootstrapping pip...")
        python = str(target.env_python)
        result = self.runner.run([python, "-m", "ensurepip", "--upgrade"])
        if not result.ok:
            return StageResult.from_command(self.name, result)

        outcome = self.retry(
            [python, "-m", "pip", "install", "--upgrade", "pip", "setuptools", "wheel"],
            PIP_POLICY,
        )
        if not outcome.ok:
            return StageResult.from_command(self.name, outcome.result)

        return StageResult.success(
            self.name,
            f"Python {version} environment at {target.env_dir}",
        )


def uv_bootstrap_command(installer_url: str) -> list[str]:
    """Download-and-run the uv installer; a failed download fails the pipeline."""
    return ["bash", "-o", "pipefail", "-c", f"curl -LsSf {shlex.quote(installer_url)} | sh"]


def recreate_dir(path: Path) -> None:
    """Delete ``path`` if present so the next step starts clean."""
    if path.exists() or path.is_symlink():
        logger.debug("Removing previous %s", path)
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
