"""Composition root for the sidebar service.

The Orchestrator wires the session registry, UI state store, overlay sync,
plugin discovery, and hot reload together, serves the calls the UI makes,
and publishes the signals pushed back to it. Everything runs on one asyncio
loop; handlers never block.

Lifecycle:
    async with Orchestrator(config) as orch:
        ...  # serve the UI

``start`` syncs the overlay then starts hot reload. ``shutdown`` asks the UI
to save its state, waits the close grace period, destroys every session and
stops the watchers. Each runs at most once.
"""

from __future__ import annotations

import asyncio
import codecs
import os
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from claudesidebar.bridge.websocket import (
    EXIT,
    FORCE_RELOAD,
    HOT_RELOAD_STYLE,
    OUTPUT,
    REQUEST_SAVE_STATE,
    ConnectionManager,
    make_signal,
)
from claudesidebar.config.loader import get_config
from claudesidebar.config.paths import get_bundle_dir, get_default_data_dir
from claudesidebar.config.schema import Config, OverlayConfig
from claudesidebar.logging import get_logger
from claudesidebar.overlay.plugins import PluginLoader, PluginSet
from claudesidebar.overlay.sync import OverlayLayout, SourceOverlaySync, SyncReport
from claudesidebar.session.registry import SessionRegistry, Spawner
from claudesidebar.session.storage import StateStore
from claudesidebar.terminal.pty_process import spawn_pty
from claudesidebar.watching.hot_reload import HotReloadWatcher

log = get_logger("orchestrator")

DirectoryPicker = Callable[[], Awaitable[str | None]]

_Utf8Decoder = codecs.getincrementaldecoder("utf-8")


def resolve_data_dir(config: OverlayConfig) -> Path:
    if config.data_dir:
        return Path(config.data_dir).expanduser()
    return get_default_data_dir()


def resolve_bundle_dir(config: OverlayConfig) -> Path:
    if config.bundle_dir:
        return Path(config.bundle_dir).expanduser()
    return get_bundle_dir()


class Orchestrator:
    """Serves the UI boundary and sequences startup, reload, and shutdown."""

    def __init__(
        self,
        config: Config | None = None,
        *,
        connections: ConnectionManager | None = None,
        directory_picker: DirectoryPicker | None = None,
        spawner: Spawner = spawn_pty,
        data_dir: str | Path | None = None,
        bundle_dir: str | Path | None = None,
    ) -> None:
        self.config = config or get_config()
        overlay_cfg = self.config.overlay
        self.data_dir = Path(data_dir) if data_dir else resolve_data_dir(overlay_cfg)
        self.layout = OverlayLayout.from_config(
            overlay_cfg,
            data_dir=self.data_dir,
            bundle_dir=Path(bundle_dir) if bundle_dir else resolve_bundle_dir(overlay_cfg),
        )

        self.connections = connections or ConnectionManager()
        self.registry = SessionRegistry(
            self.config.sessions,
            on_output=self._push_output,
            on_exit=self._push_exit,
            spawner=spawner,
        )
        self.state_store = StateStore.for_data_dir(self.data_dir)
        self.overlay = SourceOverlaySync(self.layout)
        self.plugins = PluginLoader(self.layout.plugins_dir)
        self.hot_reload = HotReloadWatcher(self.layout, self, self.config.hot_reload)

        self._directory_picker = directory_picker
        self._decoders: dict[str, codecs.IncrementalDecoder] = {}
        self._started = False
        self._shut_down = False

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> SyncReport | None:
        if self._started:
            return None
        self._started = True
        report = self.overlay.sync()
        if self.config.hot_reload.enabled:
            self.hot_reload.start()
        log.info("Serving UI from %s", self.layout.overlay_dir)
        return report

    async def shutdown(self) -> None:
        if self._shut_down:
            return
        self._shut_down = True
        if self.connections.get_connection_count():
            self.request_save_state()
            await asyncio.sleep(self.config.hot_reload.close_grace)
        destroyed = self.registry.destroy_all()
        self._decoders.clear()
        self.hot_reload.stop()
        await self.connections.close_all()
        log.info("Shut down (%d sessions destroyed)", destroyed)

    async def __aenter__(self) -> Orchestrator:
        await self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.shutdown()

    # -- pushed signals ------------------------------------------------------

    def _push_output(self, session_id: str, data: bytes) -> None:
        decoder = self._decoders.get(session_id)
        if decoder is None:
            decoder = self._decoders[session_id] = _Utf8Decoder(errors="replace")
        text = decoder.decode(data)
        if text:
            self.connections.publish(make_signal(OUTPUT, id=session_id, data=text))

    def _push_exit(self, session_id: str, returncode: int | None) -> None:
        decoder = self._decoders.pop(session_id, None)
        if decoder is not None:
            tail = decoder.decode(b"", final=True)
            if tail:
                self.connections.publish(make_signal(OUTPUT, id=session_id, data=tail))
        self.connections.publish(make_signal(EXIT, id=session_id, code=returncode))

    def request_save_state(self) -> None:
        self.connections.publish(make_signal(REQUEST_SAVE_STATE))

    def hot_reload_style(self) -> None:
        self.connections.publish(make_signal(HOT_RELOAD_STYLE))

    def force_reload(self) -> None:
        self.connections.publish(make_signal(FORCE_RELOAD))

    def notify_hidden(self) -> None:
        """The UI is about to be hidden; ask it to persist first."""
        self.request_save_state()

    # -- session calls -------------------------------------------------------

    async def create(
        self,
        session_id: str,
        cwd: str | None = None,
        resume: bool = False,
    ) -> dict[str, str]:
        existing = self.registry.get(session_id)
        if existing is None or not existing.alive:
            self._decoders.pop(session_id, None)
        await self.registry.create(session_id, cwd=cwd, resume=resume)
        return {"id": session_id}

    def send_input(self, session_id: str, data: bytes | str) -> None:
        self.registry.send_input(session_id, data)

    def resize(self, session_id: str, cols: int, rows: int) -> None:
        self.registry.resize(session_id, cols, rows)

    def destroy(self, session_id: str) -> None:
        self.registry.destroy(session_id)
        self._decoders.pop(session_id, None)

    def is_active(self, session_id: str) -> bool:
        return self.registry.is_active(session_id)

    # -- state ---------------------------------------------------------------

    def save_state(self, snapshot: Any) -> bool:
        return self.state_store.save(snapshot)

    def load_state(self) -> Any | None:
        return self.state_store.load()

    # -- environment, dialogs, plugins ---------------------------------------

    def environment(self) -> dict[str, str]:
        return {
            "home": os.path.expanduser("~"),
            "platform": sys.platform,
            "app_source_dir": str(self.layout.overlay_dir),
        }

    async def pick_directory(self) -> str | None:
        if self._directory_picker is None:
            log.debug("No directory picker configured")
            return None
        try:
            return await self._directory_picker()
        except Exception as e:
            log.warning("Directory picker failed: %s", e)
            return None

    def plugin_set(self) -> PluginSet:
        return self.plugins.discover()

    # -- overlay resets ------------------------------------------------------

    def reset_editable_source(self) -> bool:
        return self.overlay.reset_editable_source()

    def reset_guidance(self) -> bool:
        return self.overlay.reset_guidance()

    def nuke_overlay(self) -> bool:
        return self.overlay.nuke_overlay()
