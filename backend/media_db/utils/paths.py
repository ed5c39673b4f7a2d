"""Filesystem helpers for Media DB configuration paths."""
from __future__ import annotations

from pathlib import Path

from platformdirs import user_config_dir


APP_NAME = "MediaDB"
APP_AUTHOR = "MediaDB"
SETTINGS_FILE_NAME = "settings.json"


def default_settings_path() -> Path:
    """Return the platform-appropriate settings file location."""

    return Path(user_config_dir(APP_NAME, APP_AUTHOR)) / SETTINGS_FILE_NAME


def ensure_parent_directory(path: Path) -> Path:
    """Expand ``path`` and create its parent directory if it does not exist."""

    resolved = path.expanduser()
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return resolved.resolve()
