"""User plugin discovery.

Plugins are ``.js`` and ``.css`` files dropped directly into the overlay's
``plugins/`` directory. Scripts are attached after the core renderer and
stylesheets after the core stylesheet, in directory-listing order.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from claudesidebar.logging import get_logger

log = get_logger("plugins")

SCRIPT_EXTENSIONS = (".js",)
STYLE_EXTENSIONS = (".css",)


@dataclass
class PluginSet:
    """Plugin file names split by kind."""

    scripts: list[str] = field(default_factory=list)
    styles: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, list[str]]:
        return {"scripts": list(self.scripts), "styles": list(self.styles)}


class PluginLoader:
    """Enumerates the plugin directory (non-recursive)."""

    def __init__(self, plugins_dir: Path) -> None:
        self._plugins_dir = plugins_dir

    @property
    def plugins_dir(self) -> Path:
        return self._plugins_dir

    def discover(self) -> PluginSet:
        plugins = PluginSet()
        try:
            entries = list(os.scandir(self._plugins_dir))
        except FileNotFoundError:
            return plugins
        except OSError as e:
            log.warning("Cannot list plugins in %s: %s", self._plugins_dir, e)
            return plugins

        for entry in entries:
            if not entry.is_file():
                continue
            name = entry.name
            if name.endswith(SCRIPT_EXTENSIONS):
                plugins.scripts.append(name)
            elif name.endswith(STYLE_EXTENSIONS):
                plugins.styles.append(name)
        return plugins

    def resolve(self, name: str) -> Path | None:
        """Map a plugin file name to its path, refusing anything outside the directory."""
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            return None
        path = self._plugins_dir / name
        if not path.is_file() or not name.endswith(SCRIPT_EXTENSIONS + STYLE_EXTENSIONS):
            return None
        return path
