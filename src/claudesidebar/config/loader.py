"""Configuration file loading and caching.

Handles:
- YAML file parsing
- Layered merging (system -> user -> explicit file -> environment)
- Environment variable overrides
- Conversion from dict to typed Config dataclass
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from claudesidebar.config.paths import get_config_paths
from claudesidebar.config.schema import (
    Config,
    HotReloadConfig,
    LoggingConfig,
    OverlayConfig,
    ServerConfig,
    SessionsConfig,
)

# Module logger (may not be configured yet at import time)
_log = logging.getLogger("claudesidebar.config")

_cached_config: Config | None = None

_KNOWN_KEYS = {"sessions", "overlay", "hot_reload", "server", "logging"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning empty dict if not found or invalid."""
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        _log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``.

    Nested dicts merge recursively, lists and scalars are replaced, and None
    in ``override`` leaves the base value alone.
    """
    result = base.copy()
    for key, value in override.items():
        if value is None:
            continue
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = deep_merge(current, value)
        else:
            result[key] = value
    return result


def env_overrides() -> dict[str, Any]:
    """Build config dict from environment variables.

    - CLAUDE_SIDEBAR_CMD: assistant launch command line
    - CS_LOG: log file path
    - CS_DATA_DIR: data directory holding the overlay and state
    """
    overrides: dict[str, Any] = {}

    command = os.environ.get("CLAUDE_SIDEBAR_CMD")
    if command:
        overrides.setdefault("sessions", {})["command"] = command

    log_path = os.environ.get("CS_LOG")
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    data_dir = os.environ.get("CS_DATA_DIR")
    if data_dir:
        overrides.setdefault("overlay", {})["data_dir"] = data_dir

    return overrides


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name)
    return value if isinstance(value, dict) else {}


def _str_list(value: Any, default: list[str]) -> list[str]:
    if not isinstance(value, list):
        return list(default)
    return [v for v in value if isinstance(v, str) and v]


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert merged dict to typed Config dataclass."""
    sessions_data = _section(data, "sessions")
    sessions_default = SessionsConfig()
    sessions = SessionsConfig(
        command=sessions_data.get("command") or sessions_default.command,
        shell=sessions_data.get("shell"),
        term_name=sessions_data.get("term_name", sessions_default.term_name),
        cols=int(sessions_data.get("cols", sessions_default.cols)),
        rows=int(sessions_data.get("rows", sessions_default.rows)),
        activity_window=float(
            sessions_data.get("activity_window", sessions_default.activity_window)
        ),
        activity_threshold=int(
            sessions_data.get("activity_threshold", sessions_default.activity_threshold)
        ),
        activity_stale=float(
            sessions_data.get("activity_stale", sessions_default.activity_stale)
        ),
    )

    overlay_data = _section(data, "overlay")
    overlay_default = OverlayConfig()
    overlay = OverlayConfig(
        data_dir=overlay_data.get("data_dir"),
        bundle_dir=overlay_data.get("bundle_dir"),
        editable_files=_str_list(
            overlay_data.get("editable_files"), overlay_default.editable_files
        ),
        style_file=overlay_data.get("style_file", overlay_default.style_file),
        bridge_file=overlay_data.get("bridge_file", overlay_default.bridge_file),
        guidance_file=overlay_data.get("guidance_file", overlay_default.guidance_file),
        asset_dirs=_str_list(overlay_data.get("asset_dirs"), overlay_default.asset_dirs),
        plugins_dir=overlay_data.get("plugins_dir", overlay_default.plugins_dir),
    )

    reload_data = _section(data, "hot_reload")
    reload_default = HotReloadConfig()
    hot_reload = HotReloadConfig(
        enabled=bool(reload_data.get("enabled", reload_default.enabled)),
        poll_interval=float(reload_data.get("poll_interval", reload_default.poll_interval)),
        debounce=float(reload_data.get("debounce", reload_default.debounce)),
        reload_grace=float(reload_data.get("reload_grace", reload_default.reload_grace)),
        close_grace=float(reload_data.get("close_grace", reload_default.close_grace)),
    )

    server_data = _section(data, "server")
    server = ServerConfig(
        host=server_data.get("host", ServerConfig.host),
        port=int(server_data.get("port", ServerConfig.port)),
    )

    log_data = _section(data, "logging")
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        verbose=log_data.get("verbose"),
        file=log_data.get("file"),
    )

    extra = {k: v for k, v in data.items() if k not in _KNOWN_KEYS}

    return Config(
        sessions=sessions,
        overlay=overlay,
        hot_reload=hot_reload,
        server=server,
        logging=logging_config,
        extra=extra,
    )


def load_config(config_file: str | Path | None = None, reload: bool = False) -> Config:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. Environment variables
    2. Explicit ``config_file`` (e.g. ``--config`` on the command line)
    3. User config (~/.config/claudesidebar/config.yaml or %APPDATA%)
    4. System config (/etc/claudesidebar/ or %PROGRAMDATA%)

    Only the config built without an explicit file is cached.
    """
    global _cached_config

    if _cached_config is not None and not reload and config_file is None:
        return _cached_config

    merged: dict[str, Any] = {}

    paths = get_config_paths()
    if config_file is not None:
        paths.append(Path(config_file))

    for path in paths:
        config_data = load_yaml_file(path)
        if config_data:
            _log.debug("Loaded config from %s", path)
            merged = deep_merge(merged, config_data)

    merged = deep_merge(merged, env_overrides())

    config = dict_to_config(merged)

    if config_file is None:
        _cached_config = config

    return config


def get_config() -> Config:
    """Get the cached global config, loading it on first use."""
    if _cached_config is None:
        return load_config()
    return _cached_config


def reset_config() -> None:
    """Reset cached config (testing, forced reload)."""
    global _cached_config
    _cached_config = None
