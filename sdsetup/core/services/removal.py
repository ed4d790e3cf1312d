"""
Removal — undo an installation.

Two entry points with different reach:
    - ``rollback`` deletes only the two owned directories (used by the
      orchestrator's error trap).
    - ``remove_installation`` is the Python twin of ``remove.sh`` and
      also deletes the generated scripts.
Both are best-effort and idempotent.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from sdsetup.core.models.target import InstallTarget

logger = logging.getLogger(__name__)


def _remove_path(path: Path) -> bool:
    """Delete a file or directory tree. Returns True if something was removed."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path, ignore_errors=True)
        return not path.exists()
    if path.exists() or path.is_symlink():
        try:
            path.unlink()
        except OSError as e:
            logger.warning("Could not remove %s: %s", path, e)
            return False
        return True
    return False


def rollback(target: InstallTarget) -> list[Path]:
    """Delete the application and environment directories."""
    logger.warning("Installer failed. Cleaning up partial install...")
    removed = [p for p in target.owned_dirs if _remove_path(p)]
    for path in removed:
        logger.warning("Removed %s", path)
    return removed


def remove_installation(target: InstallTarget) -> list[Path]:
    """Delete launcher, application dir, environment dir and remover."""
    removed: list[Path] = []
    for path in (target.launcher_path, target.app_dir, target.env_dir, target.remover_path):
        if _remove_path(path):
            logger.debug("Removed %s", path)
            removed.append(path)
        else:
            logger.debug("Nothing to remove at %s", path)
    return removed
