"""Persistent user preferences for privx-toolkit.

Preferences live in ~/.config/privx-toolkit/preferences.json. The only key
the toolkit reads today is "config_path".
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

APP_DIR_NAME = "privx-toolkit"
PREFERENCES_DIR = Path.home() / ".config" / APP_DIR_NAME
PREFERENCES_FILE = PREFERENCES_DIR / "preferences.json"

CONFIG_PATH_KEY = "config_path"


def default_config_path() -> Path:
    """Default config location, computed from the current home directory."""
    return Path.home() / ".config" / APP_DIR_NAME / "config.yml"


def _load_preferences() -> Dict[str, Any]:
    if not PREFERENCES_FILE.exists():
        return {}

    try:
        with open(PREFERENCES_FILE, 'r') as f:
            loaded = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to read preferences file {PREFERENCES_FILE}: {e}")
        return {}

    if not isinstance(loaded, dict):
        logger.error(f"Ignoring preferences file {PREFERENCES_FILE}: expected a JSON object")
        return {}
    return loaded


def _save_preferences(preferences: Dict[str, Any]) -> None:
    PREFERENCES_DIR.mkdir(parents=True, exist_ok=True)
    with open(PREFERENCES_FILE, 'w') as f:
        json.dump(preferences, f, indent=2, sort_keys=True)


def get_preference(key: str, default: Optional[str] = None) -> Optional[str]:
    return _load_preferences().get(key, default)


def set_preference(key: str, value: str) -> None:
    preferences = _load_preferences()
    preferences[key] = value
    _save_preferences(preferences)
    logger.info(f"Preference '{key}' set to: {value}")


def clear_preference(key: str) -> bool:
    """
    Remove a preference.

    Returns:
        True if the preference existed and was removed
    """
    preferences = _load_preferences()
    if key not in preferences:
        logger.debug(f"Preference '{key}' not found, nothing to clear")
        return False

    del preferences[key]
    _save_preferences(preferences)
    logger.info(f"Preference '{key}' cleared")
    return True


def get_all_preferences() -> Dict[str, Any]:
    return _load_preferences()
