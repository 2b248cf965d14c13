"""Hot reload of the UI when overlay files change.

Two directory watchers (overlay root and plugins) feed one shared debounce
slot. When the quiet period elapses the slot fires exactly one action:

- patch: only the core stylesheet changed; the UI swaps it in place.
- reload: anything else; the UI is asked to save its state, then after a
  fixed grace period it is told to reload without cache.

A reload classification is sticky: once the slot holds ``reload`` a later
stylesheet change does not downgrade it. There is no acknowledgment for
the save request; a UI slower than the grace period loses that save.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from enum import Enum
from typing import Protocol

from claudesidebar.config.schema import HotReloadConfig
from claudesidebar.logging import get_logger, verbose
from claudesidebar.overlay.plugins import SCRIPT_EXTENSIONS, STYLE_EXTENSIONS
from claudesidebar.overlay.sync import OverlayLayout
from claudesidebar.watching.watcher import DirectoryChangeEvent, DirectoryWatcher

log = get_logger("hot_reload")


class ReloadAction(str, Enum):
    """What the UI should do after overlay files changed."""

    PATCH = "patch"
    RELOAD = "reload"


class ReloadSink(Protocol):
    """Receiver of hot-reload signals (the orchestrator)."""

    def request_save_state(self) -> None: ...

    def hot_reload_style(self) -> None: ...

    def force_reload(self) -> None: ...


class DebounceSlot:
    """One shared timer: ``idle`` or ``pending(action)``.

    Every trigger cancels the armed timer and re-arms it, so a burst of
    events fires once, after the last event plus ``delay``.
    """

    def __init__(self, delay: float, on_fire: Callable[[ReloadAction], None]) -> None:
        self._delay = delay
        self._on_fire = on_fire
        self._handle: asyncio.TimerHandle | None = None
        self.pending: ReloadAction | None = None

    @property
    def is_pending(self) -> bool:
        return self._handle is not None

    def trigger(self, action: ReloadAction) -> None:
        if self._handle is not None:
            self._handle.cancel()
        if self.pending is ReloadAction.RELOAD:
            action = ReloadAction.RELOAD
        self.pending = action
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._fire)

    def _fire(self) -> None:
        action = self.pending
        # Back to idle before dispatch so events during dispatch re-arm
        self._handle = None
        self.pending = None
        if action is not None:
            self._on_fire(action)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self.pending = None


class HotReloadWatcher:
    """Watches the overlay and plugin directories and drives UI reloads."""

    def __init__(
        self,
        layout: OverlayLayout,
        sink: ReloadSink,
        config: HotReloadConfig | None = None,
    ) -> None:
        self._layout = layout
        self._sink = sink
        self._config = config or HotReloadConfig()
        self._slot = DebounceSlot(self._config.debounce, self._on_fire)
        self._watchers: list[DirectoryWatcher] = []
        self._reload_tasks: set[asyncio.Task[None]] = set()

    @property
    def slot(self) -> DebounceSlot:
        return self._slot

    @property
    def enabled(self) -> bool:
        return bool(self._watchers)

    def is_relevant(self, name: str) -> bool:
        return name in self._layout.editable_files or name.endswith(
            SCRIPT_EXTENSIONS + STYLE_EXTENSIONS
        )

    def classify(self, event: DirectoryChangeEvent) -> ReloadAction | None:
        """Map a change to an action, or None if the file is not watched."""
        if not self.is_relevant(event.name):
            return None
        if (
            event.directory == self._layout.overlay_dir
            and event.name == self._layout.style_file
        ):
            return ReloadAction.PATCH
        return ReloadAction.RELOAD

    def handle_change(self, event: DirectoryChangeEvent) -> None:
        action = self.classify(event)
        if action is None:
            return
        verbose(log, "%s %s -> %s", event.name, event.change_type, action.value)
        self._slot.trigger(action)

    def _on_fire(self, action: ReloadAction) -> None:
        if action is ReloadAction.PATCH:
            log.info("Stylesheet changed, hot-swapping")
            self._sink.hot_reload_style()
            return
        log.info("Overlay changed, reloading UI")
        task = asyncio.get_running_loop().create_task(self._reload_sequence())
        self._reload_tasks.add(task)
        task.add_done_callback(self._reload_tasks.discard)

    async def _reload_sequence(self) -> None:
        self._sink.request_save_state()
        await asyncio.sleep(self._config.reload_grace)
        self._sink.force_reload()

    def start(self) -> bool:
        """Start both directory watchers.

        A directory that cannot be watched is logged and skipped; hot reload
        is disabled only when neither can be watched.

        Returns:
            True if at least one directory is being watched.
        """
        if self._watchers:
            return True
        for directory in (self._layout.overlay_dir, self._layout.plugins_dir):
            watcher = DirectoryWatcher(directory, self._config.poll_interval)
            try:
                watcher.start(self.handle_change)
            except OSError as e:
                log.warning("Hot reload unavailable for %s: %s", directory, e)
                continue
            self._watchers.append(watcher)
        if not self._watchers:
            log.warning("Hot reload disabled")
        return self.enabled

    def stop(self) -> None:
        for watcher in self._watchers:
            watcher.stop()
        self._watchers.clear()
        self._slot.cancel()
        for task in list(self._reload_tasks):
            task.cancel()

    async def __aenter__(self) -> HotReloadWatcher:
        self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        self.stop()
