"""Configuration management for claudesidebar.

Provides layered YAML-based configuration with:
- System-level config (/etc/claudesidebar/ or %PROGRAMDATA%)
- User-level config (~/.config/claudesidebar/ or %APPDATA%)
- An optional explicit file (``--config``)
- Environment variable overrides (highest priority)

Example usage:
    from claudesidebar.config import load_config

    config = load_config()
    print(config.sessions.command)
    print(config.hot_reload.debounce)
"""

from claudesidebar.config.loader import (
    deep_merge,
    get_config,
    load_config,
    reset_config,
)
from claudesidebar.config.paths import (
    get_bundle_dir,
    get_config_paths,
    get_default_data_dir,
    get_system_config_path,
    get_user_config_path,
)
from claudesidebar.config.schema import (
    DEFAULT_ASSISTANT_COMMAND,
    Config,
    HotReloadConfig,
    LoggingConfig,
    OverlayConfig,
    ServerConfig,
    SessionsConfig,
)

__all__ = [
    # Main API
    "Config",
    "load_config",
    "get_config",
    "reset_config",
    "deep_merge",
    # Schema types
    "DEFAULT_ASSISTANT_COMMAND",
    "SessionsConfig",
    "OverlayConfig",
    "HotReloadConfig",
    "ServerConfig",
    "LoggingConfig",
    # Path utilities
    "get_bundle_dir",
    "get_config_paths",
    "get_default_data_dir",
    "get_system_config_path",
    "get_user_config_path",
]
