"""
InstallTarget — the filesystem footprint of one installation.

Every stage receives an explicit InstallTarget instead of relying on the
current working directory or an activated environment.
"""

from __future__ import annotations

import os
from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, model_validator

from sdsetup.core.models.settings import InstallSettings


class InstallPhase(str, Enum):
    """Orchestrator states, in execution order."""

    PRECHECK = "precheck"
    PACKAGES = "packages"
    ENVIRONMENT = "environment"
    SOURCE = "source"
    PATCH = "patch"
    DEPENDENCIES = "dependencies"
    ASSETS = "assets"
    ARTIFACTS = "artifacts"
    DONE = "done"
    ROLLBACK = "rollback"
    FAILED = "failed"


class InstallState(str, Enum):
    """Machine-wide install state as observed on disk."""

    ABSENT = "absent"
    PARTIAL = "partial"
    INSTALLED = "installed"


class InstallTarget(BaseModel):
    """Paths owned by the installer.

    ``app_dir`` and ``env_dir`` are siblings directly under ``home`` and
    are the only paths rollback deletes.
    """

    home: Path
    app_dir: Path
    env_dir: Path
    log_file: Path
    launcher_path: Path
    remover_path: Path

    @model_validator(mode="after")
    def _owned_dirs_under_home(self) -> InstallTarget:
        for owned in (self.app_dir, self.env_dir):
            if owned.parent != self.home:
                raise ValueError(f"{owned} must be a direct child of {self.home}")
        if self.app_dir == self.env_dir:
            raise ValueError("application and environment directories must differ")
        return self

    @classmethod
    def for_home(
        cls,
        home: Path,
        settings: InstallSettings | None = None,
        *,
        now: datetime | None = None,
    ) -> InstallTarget:
        """Build the standard layout under ``home``."""
        settings = settings or InstallSettings()
        home = Path(home).expanduser().resolve()
        stamp = (now or datetime.now()).strftime("%Y-%m-%d_%H%M%S")
        return cls(
            home=home,
            app_dir=home / settings.app_dir_name,
            env_dir=home / settings.env_dir_name,
            log_file=home / f"{settings.log_prefix}_{stamp}.log",
            launcher_path=home / settings.launcher_name,
            remover_path=home / settings.remover_name,
        )

    @property
    def env_python(self) -> Path:
        return self.env_dir / "bin" / "python"

    @property
    def owned_dirs(self) -> tuple[Path, Path]:
        return (self.app_dir, self.env_dir)

    def observed_state(self) -> InstallState:
        """Derive the install state from what exists on disk."""
        present = [
            p.exists()
            for p in (self.app_dir, self.env_dir, self.launcher_path, self.remover_path)
        ]
        if all(present):
            return InstallState.INSTALLED
        if any(present):
            return InstallState.PARTIAL
        return InstallState.ABSENT


def resolve_home() -> Path:
    """Home directory of the effective caller (``~$USER``)."""
    user = os.environ.get("USER", "")
    if user:
        expanded = os.path.expanduser(f"~{user}")
        if not expanded.startswith("~"):
            return Path(expanded)
    return Path.home()
