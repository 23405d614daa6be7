"""
Per-user directory lookup for stored annotations and settings.

``INKBURN_HOME`` overrides both locations (portable installs, tests).
"""
import os
import sys
from pathlib import Path

APP_NAME = "InkburnPDF"
HOME_ENV = "INKBURN_HOME"


def _platform_dir(kind: str) -> Path:
    """Base directory for ``kind`` ("data" or "config") on POSIX platforms."""
    if sys.platform == 'darwin':
        if kind == "data":
            return Path.home() / "Library" / "Application Support"
        return Path.home() / "Library" / "Preferences"

    # Linux and others
    if kind == "data":
        return Path(os.environ.get('XDG_DATA_HOME') or Path.home() / ".local" / "share")
    return Path(os.environ.get('XDG_CONFIG_HOME') or Path.home() / ".config")


def _user_dir(kind: str, app_name: str) -> Path:
    override = os.environ.get(HOME_ENV)
    if override:
        path = Path(override) / kind
    elif os.name == 'nt':  # Windows keeps both under APPDATA
        path = Path(os.environ.get('APPDATA', Path.home())) / app_name
        if kind == "config":
            path = path / "config"
    else:
        path = _platform_dir(kind) / app_name

    path.mkdir(parents=True, exist_ok=True)
    return path


def get_app_data_dir(app_name: str = APP_NAME) -> Path:
    """
    Get the directory holding the local annotation store.

    Args:
        app_name: Name of the application

    Returns:
        Path to the app data directory (created if missing)
    """
    return _user_dir("data", app_name)


def get_config_dir(app_name: str = APP_NAME) -> Path:
    """Get the directory holding ``settings.json`` (created if missing)."""
    return _user_dir("config", app_name)
