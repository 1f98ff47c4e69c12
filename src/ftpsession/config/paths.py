"""Path discovery for ftpsession.

Locates the per-user application data directory that holds saved
settings and log files.
"""

import os
import sys
from pathlib import Path
from typing import Optional


# Application name for config directories
APP_NAME = "ftpsession"

# Overrides the platform default, mainly for tests and containers
APP_DIR_ENV_VAR = "FTPSESSION_HOME"


def get_app_data_dir(create: bool = True) -> Path:
    """
    Get the application data directory.

    Args:
        create: Create the directory if it does not exist

    Returns:
        Path to app data directory

    Platform-specific locations (unless FTPSESSION_HOME is set):
        - Windows: %APPDATA%/ftpsession
        - Linux: ~/.config/ftpsession
        - macOS: ~/Library/Application Support/ftpsession
    """
    override: Optional[str] = os.environ.get(APP_DIR_ENV_VAR)
    if override:
        app_dir = Path(override)
    else:
        if sys.platform == "win32":
            base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        elif sys.platform == "darwin":
            base = Path.home() / "Library" / "Application Support"
        else:
            base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
        app_dir = base / APP_NAME

    if create:
        app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir


def get_settings_path() -> Path:
    """
    Get the path to the settings JSON file.

    Returns:
        Path to settings.json
    """
    return get_app_data_dir() / "settings.json"


def get_log_dir() -> Path:
    """
    Get the directory for log files.

    Returns:
        Path to logs directory (created if not exists)
    """
    log_dir = get_app_data_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def get_log_file_path() -> Path:
    """Path to the ftpsession log file."""
    return get_log_dir() / "ftpsession.log"
