"""Preferences manager for agent-passkit.

Manages persistent user preferences stored in XDG Base Directory standard location:
~/.config/agent-passkit/preferences.json

Known preferences:
    config_path: absolute path to the YAML config file
    editor: editor command used by 'secrets insert --multiline'
"""
import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

# XDG Base Directory standard location
PREFERENCES_DIR = Path.home() / ".config" / "agent-passkit"
PREFERENCES_FILE = PREFERENCES_DIR / "preferences.json"

KNOWN_PREFERENCES = ("config_path", "editor")


def _load_preferences() -> Dict[str, Any]:
    """
    Load preferences from JSON file.

    Returns:
        Dictionary of preferences, or empty dict if the file is missing or unreadable
    """
    if not PREFERENCES_FILE.exists():
        return {}

    try:
        with open(PREFERENCES_FILE, 'r') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to read preferences file {PREFERENCES_FILE}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.error(f"Ignoring preferences file {PREFERENCES_FILE}: expected a JSON object")
        return {}
    return data


def _save_preferences(preferences: Dict[str, Any]) -> None:
    """
    Atomically replace the preferences file.

    Args:
        preferences: Dictionary of preferences to save
    """
    PREFERENCES_DIR.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=PREFERENCES_DIR, prefix=".preferences-", suffix=".json")
    try:
        with os.fdopen(fd, 'w') as f:
            json.dump(preferences, f, indent=2)
        os.replace(tmp_path, PREFERENCES_FILE)
    except OSError as e:
        logger.error(f"Failed to save preferences to {PREFERENCES_FILE}: {e}")
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def get_preference(key: str) -> Optional[str]:
    """Get preference value by key, or None if not set."""
    return _load_preferences().get(key)


def set_preference(key: str, value: str) -> None:
    """
    Set preference value.

    Raises:
        ValueError: If key is not a known preference
    """
    if key not in KNOWN_PREFERENCES:
        raise ValueError(f"Unknown preference '{key}' (known: {', '.join(KNOWN_PREFERENCES)})")

    preferences = _load_preferences()
    preferences[key] = value
    _save_preferences(preferences)
    logger.info(f"Preference '{key}' set to: {value}")


def clear_preference(key: str) -> None:
    """Remove preference by key. Clearing an unset preference is a no-op."""
    preferences = _load_preferences()
    if preferences.pop(key, None) is None:
        logger.debug(f"Preference '{key}' not found, nothing to clear")
        return
    _save_preferences(preferences)
    logger.info(f"Preference '{key}' cleared")


def get_all_preferences() -> Dict[str, Any]:
    return _load_preferences()
