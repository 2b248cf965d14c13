"""Editable UI overlay: bundle synchronization and plugin discovery."""

from claudesidebar.overlay.plugins import PluginLoader, PluginSet
from claudesidebar.overlay.sync import (
    DIGEST_FILENAME,
    OVERLAY_DIRNAME,
    OverlayLayout,
    SourceOverlaySync,
    SyncReport,
)

__all__ = [
    "DIGEST_FILENAME",
    "OVERLAY_DIRNAME",
    "OverlayLayout",
    "PluginLoader",
    "PluginSet",
    "SourceOverlaySync",
    "SyncReport",
]
