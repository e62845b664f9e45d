"""Configuration management module.

Handles loading, saving, and accessing the fouille configuration.
Config is stored at ~/.config/fouille/config.toml

Usage:
    from fouille.config import load_config, get_search_settings

    config = load_config()
    settings = get_search_settings(config)
"""

import tomllib
from pathlib import Path

import tomli_w

from fouille.search.settings import SearchSettings

from .paths import CONFIG_FILE, ensure_config_dir
from .schema import FouilleConfig
from .template import CONFIG_TEMPLATE

# Re-export for convenience
__all__ = [
    "load_config",
    "save_config",
    "init_config",
    "get_account_names",
    "get_account_paths",
    "get_search_settings",
    "set_config_value",
    "CONFIG_FILE",
]

# Module-level cache for loaded config.
# Avoids repeated disk reads during a single CLI invocation.
_cached_config: FouilleConfig | None = None

# Fields needing type conversion in set_config_value
INT_FIELDS = {"default_limit"}
FLOAT_FIELDS = {"lexical_weight", "semantic_weight", "min_score"}
BOOL_FIELDS = {"semantic_enabled"}

_TRUE_VALUES = {"true", "yes", "on", "1"}
_FALSE_VALUES = {"false", "no", "off", "0"}


def load_config(*, force_reload: bool = False) -> FouilleConfig:
    """Load configuration from disk.

    Returns empty dict if config file doesn't exist.
    Uses module-level caching to avoid repeated disk reads.

    Args:
        force_reload: Bypass cache and read from disk (useful after saving).

    Returns:
        The configuration dictionary.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    if not CONFIG_FILE.exists():
        _cached_config = {}
        return _cached_config

    with open(CONFIG_FILE, "rb") as f:
        _cached_config = tomllib.load(f)

    return _cached_config


def save_config(config: FouilleConfig) -> None:
    """Save configuration to disk.

    Creates config directory if needed. Updates the module cache.

    Args:
        config: The configuration dictionary to save.
    """
    global _cached_config

    ensure_config_dir()

    with open(CONFIG_FILE, "wb") as f:
        tomli_w.dump(config, f)

    # Keep cache in sync with disk
    _cached_config = config


def init_config(*, overwrite: bool = False) -> bool:
    """Initialize config directory and create template config file.

    Args:
        overwrite: If True, overwrite existing config file.

    Returns:
        True if config was created, False if it already existed.
    """
    ensure_config_dir()

    if CONFIG_FILE.exists() and not overwrite:
        return False

    CONFIG_FILE.write_text(CONFIG_TEMPLATE)
    return True


def get_account_names(config: FouilleConfig) -> list[str]:
    """Get list of configured account names.

    Args:
        config: The loaded configuration dictionary.

    Returns:
        List of account names, may be empty.
    """
    return list(config.get("accounts", {}).keys())


def get_account_paths(config: FouilleConfig) -> dict[str, Path]:
    """Map each account with a mail_dir to its expanded Maildir path.

    Accounts without a mail_dir are skipped.
    """
    return {
        name: Path(account["mail_dir"]).expanduser()
        for name, account in config.get("accounts", {}).items()
        if account.get("mail_dir")
    }


def get_search_settings(config: FouilleConfig) -> SearchSettings:
    """Build SearchSettings from the [search] table.

    Missing keys fall back to SearchSettings defaults; unknown keys are
    ignored.
    """
    defaults = SearchSettings()
    search = config.get("search", {})

    return SearchSettings(
        semantic_enabled=bool(search.get("semantic_enabled", defaults.semantic_enabled)),
        lexical_weight=float(search.get("lexical_weight", defaults.lexical_weight)),
        semantic_weight=float(search.get("semantic_weight", defaults.semantic_weight)),
        min_score=float(search.get("min_score", defaults.min_score)),
        default_limit=int(search.get("default_limit", defaults.default_limit)),
    )


def set_config_value(key: str, value: str) -> None:
    """Set a configuration value using dot notation.

    Examples:
        set_config_value("search.min_score", "0.25")
        set_config_value("accounts.work.mail_dir", "~/Mail/Work")

    Args:
        key: Dot-separated key path (e.g., "search.lexical_weight").
        value: Value to set (will be type-converted for known fields).

    Raises:
        ValueError: If value cannot be converted to expected type.
    """
    parts = key.split(".")
    final_key = parts[-1]
    converted_value = _convert_value(final_key, value)

    config = load_config(force_reload=True)

    # Navigate to parent dict, creating intermediate dicts as needed
    current: dict = config
    for part in parts[:-1]:
        if part not in current:
            current[part] = {}
        current = current[part]

    current[final_key] = converted_value

    save_config(config)


def _convert_value(key: str, value: str) -> str | int | float | bool:
    """Convert string value to appropriate type based on field name.

    Known numeric and boolean fields are converted, everything else
    stays str.

    Args:
        key: The field name (last part of dot notation key).
        value: The string value from CLI.

    Returns:
        Converted value.

    Raises:
        ValueError: If value cannot be converted to expected type.
    """
    if key in INT_FIELDS:
        return int(value)

    if key in FLOAT_FIELDS:
        return float(value)

    if key in BOOL_FIELDS:
        lowered = value.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValueError(f"expected true or false, got {value!r}")

    return value
