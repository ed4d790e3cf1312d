"""
Configuration loader — reads sdsetup.yml into InstallSettings.

The file is optional: without one, the built-in defaults reproduce
the stock install. It reads YAML, validates against the Pydantic
schema, and returns a typed settings object.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from sdsetup.core.errors import InstallError
from sdsetup.core.models.settings import InstallSettings

logger = logging.getLogger(__name__)

CONFIG_FILE = "sdsetup.yml"


class ConfigError(InstallError):
    """Raised when installer configuration is invalid or unreadable."""

    exit_code = 2


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Nearest sdsetup.yml at or above ``start_dir`` (default: cwd), or None."""
    here = (start_dir or Path.cwd()).resolve()
    for directory in (here, *here.parents):
        candidate = directory / CONFIG_FILE
        if candidate.is_file():
            return candidate
    return None


def _read_yaml(path: Path):
    logger.debug("Loading installer config from %s", path)
    try:
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e


def load_settings(path: Path | None = None, *, search: bool = True) -> InstallSettings:
    """Load and validate installer settings.

    Args:
        path: Explicit path to sdsetup.yml. If None and ``search`` is
            set, searches upward from the cwd; if nothing is found the
            defaults are returned.
        search: Whether to look for a config file when ``path`` is None.

    Returns:
        Validated InstallSettings.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    if path is None and search:
        path = find_config_file()

    if path is None:
        logger.debug("No %s found, using defaults", CONFIG_FILE)
        return InstallSettings()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    data = _read_yaml(path)
    if data is None:
        return InstallSettings()
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The YAML may wrap everything under an "install" key or be flat
    settings_data = data["install"] if "install" in data else data
    if not isinstance(settings_data, dict):
        raise ConfigError(f"Expected 'install' to be a mapping in {path}")

    try:
        settings = InstallSettings.model_validate(settings_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid installer configuration: {e}") from e

    logger.debug("Loaded installer config from %s", path)
    return settings
