"""Path constants and directory utilities for fouille config.

Follows the XDG Base Directory specification:
- Config: ~/.config/fouille/config.toml
- Query history: ~/.config/fouille/history.json
"""

from pathlib import Path


# XDG-compliant config directory
CONFIG_DIR = Path.home() / ".config" / "fouille"
CONFIG_FILE = CONFIG_DIR / "config.toml"

# Recent searches, used for suggestions
HISTORY_FILE = CONFIG_DIR / "history.json"


def ensure_config_dir() -> Path:
    """Create config directory if it doesn't exist.

    Returns the config directory path.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    return CONFIG_DIR
