"""
Configuration loading module.

Provides centralized access to tunable settings from defaults.json.
"""

from .loader import (
    get_config,
    reload_config,
    get_log_dir,
    deep_merge,
    LockinConfig,
    PositionerConfig,
    lockin_config,
    positioner_config,
    ConfigurationError,
)

__all__ = [
    "get_config",
    "reload_config",
    "get_log_dir",
    "deep_merge",
    "LockinConfig",
    "PositionerConfig",
    "lockin_config",
    "positioner_config",
    "ConfigurationError",
]
