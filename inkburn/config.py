"""
User-tunable settings for the viewer and the annotation pipeline.

Settings live in ``settings.json`` inside the per-user config directory.
Missing keys keep their defaults; unknown keys are ignored.
"""
import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

from .utils import get_config_dir

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "settings.json"


@dataclass
class Settings:
    """Tool defaults and pipeline thresholds."""

    # Highlight tool
    highlight_color: str = "#4ade80"
    highlight_opacity: float = 0.4

    # Ink tool
    ink_color: str = "#22c55e"
    ink_stroke_width: float = 20.0
    ink_opacity: float = 0.35

    # Note tool
    note_color: str = "#fef9c3"

    # Text layer
    detect_columns: bool = False
    has_text_threshold: int = 5
    ocr_language: str = "eng"

    # Reconciliation
    dedupe_tolerance: float = 2.0

    # Zoom clamping is the caller's job, see coordinates.clamp_scale
    min_scale: float = 0.1
    max_scale: float = 5.0
    initial_scale: float = 1.5

    log_level: str = "INFO"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


def settings_path(config_dir: Optional[Path] = None) -> Path:
    return (config_dir or get_config_dir()) / SETTINGS_FILENAME


def load_settings(path: Optional[Path] = None) -> Settings:
    """
    Load settings from disk.

    Args:
        path: Optional explicit settings file

    Returns:
        Settings, defaults when the file is missing or unreadable
    """
    path = path or settings_path()
    if not path.exists():
        return Settings()

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("settings root must be an object")
        return Settings.from_dict(data)
    except (OSError, ValueError, TypeError) as e:
        logger.warning("Ignoring unreadable settings file %s: %s", path, e)
        return Settings()


def save_settings(settings: Settings, path: Optional[Path] = None) -> bool:
    """
    Save settings to disk.

    Returns:
        True if save was successful
    """
    path = path or settings_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(settings.to_dict(), f, indent=2)
        return True
    except OSError as e:
        logger.error("Failed to save settings to %s: %s", path, e)
        return False
