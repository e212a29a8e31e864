"""Centralized path constants for rpi-cam."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

PACKAGE_ROOT = Path(__file__).resolve().parents[1]

# Defaults shipped with the package
DEFAULT_CONFIG_PATH = PACKAGE_ROOT / "config.txt"

CONFIG_ENV_VAR = "RPI_CAM_CONFIG"
STATE_DIR_ENV_VAR = "RPI_CAM_STATE_DIR"

# User-specific state (allows running from read-only installs)
_USER_STATE_ENV = os.environ.get(STATE_DIR_ENV_VAR)
USER_STATE_DIR = Path(_USER_STATE_ENV).expanduser() if _USER_STATE_ENV else (Path.home() / ".rpi_cam")
USER_CONFIG_PATH = USER_STATE_DIR / "config.txt"
LOGS_DIR = USER_STATE_DIR / "logs"
DEFAULT_LOG_FILE = LOGS_DIR / "rpi_cam.log"


def resolve_config_path(explicit: Optional[Path] = None) -> Path:
    """Pick the config file to load.

    Order: explicit path, ``$RPI_CAM_CONFIG``, the user config if it exists,
    then the packaged defaults.
    """
    if explicit is not None:
        return Path(explicit).expanduser()

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()

    if USER_CONFIG_PATH.exists():
        return USER_CONFIG_PATH

    return DEFAULT_CONFIG_PATH


def ensure_directories() -> None:
    """Create necessary directories if they don't exist."""

    USER_STATE_DIR.mkdir(parents=True, exist_ok=True)
    LOGS_DIR.mkdir(parents=True, exist_ok=True)


__all__ = [
    "PACKAGE_ROOT",
    "DEFAULT_CONFIG_PATH",
    "CONFIG_ENV_VAR",
    "STATE_DIR_ENV_VAR",
    "USER_STATE_DIR",
    "USER_CONFIG_PATH",
    "LOGS_DIR",
    "DEFAULT_LOG_FILE",
    "resolve_config_path",
    "ensure_directories",
]
