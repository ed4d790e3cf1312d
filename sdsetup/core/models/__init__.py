"""
Domain models — Pydantic types for the installer.

All models are re-exported here for convenient access:

    from sdsetup.core.models import InstallTarget, InstallSettings, StageResult
"""

from sdsetup.core.models.result import CommandResult, StageResult
from sdsetup.core.models.settings import AssetSpec, InstallSettings
from sdsetup.core.models.target import (
    InstallPhase,
    InstallState,
    InstallTarget,
    resolve_home,
)

__all__ = [
    # settings.py
    "AssetSpec",
    # result.py
    "CommandResult",
    "InstallPhase",
    "InstallSettings",
    "InstallState",
    # target.py
    "InstallTarget",
    "StageResult",
    "resolve_home",
]
