"""
Centralized configuration loader.

Loads tunable settings from defaults.json with an optional override file:
1. Bundled defaults.json (shipped inside this package)
2. User override file named by the INSTRUMENTS_CONFIG environment variable,
   deep-merged over the bundled values

Fixed protocol constants (command strings, bit masks, tables) are not
configuration; they live in each package's config/settings.py.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

_logger = logging.getLogger(__name__)

# Environment variable naming an override JSON file
CONFIG_ENV_VAR = "INSTRUMENTS_CONFIG"


class ConfigurationError(Exception):
    """Raised when configuration cannot be loaded."""
    pass


# Singleton cache for loaded config
_config_cache: Optional[Dict[str, Any]] = None


def get_bundled_path() -> Path:
    """Get path to the bundled defaults.json."""
    return Path(__file__).parent / "defaults.json"


def deep_merge(base: Dict, override: Dict) -> Dict:
    """
    Deep merge override dict into base dict.

    Args:
        base: Base dictionary
        override: Dictionary with values to override

    Returns:
        New merged dictionary (base is not modified)
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_json_file(path: Path) -> Dict[str, Any]:
    """
    Load a JSON configuration file.

    Raises:
        ConfigurationError: If the file is missing, unreadable or not a JSON object
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {path}")
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}")
    except OSError as e:
        raise ConfigurationError(f"Failed to read {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration in {path} must be a JSON object")
    _logger.debug(f"Loaded config version {data.get('version', 'unknown')} from {path}")
    return data


def load_full_config() -> Dict[str, Any]:
    """
    Load the bundled config and apply the optional override file.

    Returns:
        Full config dict

    Raises:
        ConfigurationError: If no configuration source is available
    """
    global _config_cache

    if _config_cache is not None:
        return _config_cache

    config = load_json_file(get_bundled_path())

    override_path = os.environ.get(CONFIG_ENV_VAR)
    if override_path:
        _logger.info(f"Applying configuration overrides from {override_path}")
        config = deep_merge(config, load_json_file(Path(override_path)))

    _config_cache = config
    return config


def get_config() -> Dict[str, Any]:
    """
    Get the full configuration dict.

    Loads config on first call, returns cached copy on subsequent calls.
    """
    return load_full_config()


def reload_config() -> Dict[str, Any]:
    """Force reload config from source (useful for testing)."""
    global _config_cache
    _config_cache = None
    return load_full_config()


def get_log_dir() -> Optional[Path]:
    """Directory for rotating debug logs, or None when file logging is off."""
    log_dir = get_config().get("logging", {}).get("log_dir")
    return Path(log_dir).expanduser() if log_dir else None


class LockinConfig:
    """
    Type-safe accessor for lock-in configuration values.

    All properties lazily load from the singleton config cache.
    """

    @staticmethod
    def _get_lockin() -> Dict[str, Any]:
        """Get the lockin section of config."""
        try:
            return get_config()["lockin"]
        except KeyError:
            raise ConfigurationError("Configuration has no 'lockin' section")

    @property
    def device(self) -> Dict[str, Any]:
        """Transport settings (port, baud rate, timeouts)."""
        return self._get_lockin()["device"]

    @property
    def auto_range(self) -> Dict[str, Any]:
        """Auto-ranging poll interval, settle time and deadline."""
        return self._get_lockin()["auto_range"]


class PositionerConfig:
    """
    Type-safe accessor for positioner configuration values.

    All properties lazily load from the singleton config cache.
    """

    @staticmethod
    def _get_positioner() -> Dict[str, Any]:
        """Get the positioner section of config."""
        try:
            return get_config()["positioner"]
        except KeyError:
            raise ConfigurationError("Configuration has no 'positioner' section")

    @property
    def device(self) -> Dict[str, Any]:
        """Native library name, discovery interface and device index."""
        return self._get_positioner()["device"]


# Singleton instances for convenience
lockin_config = LockinConfig()
positioner_config = PositionerConfig()
