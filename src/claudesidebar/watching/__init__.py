"""Overlay file watching and hot reload."""

from claudesidebar.watching.hot_reload import (
    DebounceSlot,
    HotReloadWatcher,
    ReloadAction,
    ReloadSink,
)
from claudesidebar.watching.watcher import (
    DirectoryChangeEvent,
    DirectoryWatcher,
)

__all__ = [
    "DebounceSlot",
    "DirectoryChangeEvent",
    "DirectoryWatcher",
    "HotReloadWatcher",
    "ReloadAction",
    "ReloadSink",
]
