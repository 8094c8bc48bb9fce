"""Path helpers for locating ciwatch configuration."""

from __future__ import annotations

from pathlib import Path

from platformdirs import user_config_dir

CIWATCH_APP_NAME = "ciwatch"
CONFIG_FILENAME = "config.json"
WORKDIR_PREFIX = "ciwatch-"


def config_dir() -> Path:
    """Return the per-user ciwatch configuration directory.

    Example:
        >>> isinstance(config_dir(), Path)
        True
    """
    return Path(user_config_dir(CIWATCH_APP_NAME))


def default_config_path() -> Path:
    """Return the default settings file location.

    Example:
        >>> default_config_path().name == CONFIG_FILENAME
        True
    """
    return config_dir() / CONFIG_FILENAME
