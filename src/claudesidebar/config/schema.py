"""Configuration schema dataclasses for claudesidebar.

Every field has a default so partial YAML files merge cleanly on top of
each other.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_ASSISTANT_COMMAND = "claude --dangerously-skip-permissions"


@dataclass
class SessionsConfig:
    """Terminal session defaults.

    Example config.yaml:
        sessions:
          command: "claude --dangerously-skip-permissions"
          cols: 120
          rows: 30
          activity_threshold: 500
    """

    command: str = DEFAULT_ASSISTANT_COMMAND  # Assistant launch command line
    shell: str | None = None  # Default: $SHELL, then /bin/bash
    term_name: str = "xterm-256color"
    cols: int = 120
    rows: int = 30
    activity_window: float = 2.0  # Seconds before the byte counter lazily resets
    activity_threshold: int = 500  # Bytes that must be exceeded to count as working
    activity_stale: float = 3.0  # Window age after which a session reads idle


@dataclass
class OverlayConfig:
    """Editable UI source overlay."""

    data_dir: str | None = None  # Default: per-platform user data dir
    bundle_dir: str | None = None  # Default: packaged claudesidebar/ui
    editable_files: list[str] = field(
        default_factory=lambda: ["renderer.js", "styles.css", "index.html"]
    )
    style_file: str = "styles.css"  # The only file hot-swapped without reload
    bridge_file: str = "bridge.js"  # Trusted file, always taken from the bundle
    guidance_file: str = "CLAUDE.md"
    asset_dirs: list[str] = field(default_factory=lambda: ["vendor"])
    plugins_dir: str = "plugins"


@dataclass
class HotReloadConfig:
    """Overlay hot-reload timings (seconds)."""

    enabled: bool = True
    poll_interval: float = 0.25
    debounce: float = 0.5
    reload_grace: float = 0.2  # Between request-save-state and force-reload
    close_grace: float = 0.3  # Between request-save-state and shutdown


@dataclass
class ServerConfig:
    """Local HTTP/WebSocket surface for the UI."""

    host: str = "127.0.0.1"
    port: int = 8765


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, overrides level
    file: str | None = None  # Log file path


@dataclass
class Config:
    """Root configuration object."""

    sessions: SessionsConfig = field(default_factory=SessionsConfig)
    overlay: OverlayConfig = field(default_factory=OverlayConfig)
    hot_reload: HotReloadConfig = field(default_factory=HotReloadConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    extra: dict[str, Any] = field(default_factory=dict)  # Unknown top-level keys
