"""Directory watching implementation using polling.

Watches the direct entries of one directory (non-recursive) and reports
per-file creations, modifications, and deletions. Polling is preferred over
native file watchers for cross-platform reliability: editors that save via
rename, network drives and WSL mounts all show up as mtime/size changes.
"""

from __future__ import annotations

import asyncio
import os
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from claudesidebar.logging import get_logger, trace

log = get_logger("watching")

DEFAULT_POLL_INTERVAL = 0.25


@dataclass(frozen=True)
class EntryState:
    """Stat fingerprint of one directory entry."""

    mtime_ns: int
    size: int


@dataclass
class DirectoryChangeEvent:
    """Represents a detected change to one file in a watched directory."""

    directory: Path
    name: str
    change_type: str  # "modified", "created", "deleted"
    timestamp: float = field(default_factory=time.time)

    @property
    def path(self) -> Path:
        return self.directory / self.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "directory": str(self.directory),
            "name": self.name,
            "change_type": self.change_type,
            "timestamp": self.timestamp,
        }


class DirectoryWatcher:
    """Watches one directory's files for changes using polling.

    Example:
        watcher = DirectoryWatcher(Path("~/app-source").expanduser())

        def on_change(event: DirectoryChangeEvent) -> None:
            print(f"{event.name} {event.change_type}")

        watcher.start(on_change)
        ...
        watcher.stop()
    """

    def __init__(self, directory: Path, poll_interval: float = DEFAULT_POLL_INTERVAL) -> None:
        self._directory = directory
        self._poll_interval = max(0.01, poll_interval)
        self._entries: dict[str, EntryState] = {}
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._missing_logged = False

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    def _scan(self) -> dict[str, EntryState]:
        entries: dict[str, EntryState] = {}
        with os.scandir(self._directory) as it:
            for entry in it:
                try:
                    if not entry.is_file():
                        continue
                    stat = entry.stat()
                except OSError:
                    continue
                entries[entry.name] = EntryState(stat.st_mtime_ns, stat.st_size)
        return entries

    def prime(self) -> None:
        """Record the current directory contents as the baseline.

        Raises:
            OSError: The directory cannot be listed.
        """
        self._entries = self._scan()

    def check_changes(self) -> list[DirectoryChangeEvent]:
        """Diff the directory against the last scan.

        A directory that vanished reports every known file as deleted.
        """
        try:
            current = self._scan()
            self._missing_logged = False
        except OSError as e:
            if not self._missing_logged:
                log.warning("Cannot scan %s: %s", self._directory, e)
                self._missing_logged = True
            current = {}

        events: list[DirectoryChangeEvent] = []
        for name, old in self._entries.items():
            new = current.get(name)
            if new is None:
                events.append(DirectoryChangeEvent(self._directory, name, "deleted"))
            elif new != old:
                events.append(DirectoryChangeEvent(self._directory, name, "modified"))

        for name in current:
            if name not in self._entries:
                events.append(DirectoryChangeEvent(self._directory, name, "created"))

        self._entries = current
        return events

    async def _poll_loop(self, callback: Callable[[DirectoryChangeEvent], None]) -> None:
        try:
            while self._running:
                await asyncio.sleep(self._poll_interval)
                if not self._running:
                    break
                events = self.check_changes()
                trace(log, "Polled %s: %d change(s)", self._directory, len(events))
                for event in events:
                    try:
                        callback(event)
                    except Exception as e:
                        log.error("Error in directory change callback: %s", e)
        except asyncio.CancelledError:
            log.debug("DirectoryWatcher for %s cancelled", self._directory)
        finally:
            self._running = False

    def start(self, callback: Callable[[DirectoryChangeEvent], None]) -> None:
        """Prime the baseline and start polling.

        Must be called from within a running event loop.

        Raises:
            OSError: The directory cannot be listed.
        """
        if self._running:
            log.warning("DirectoryWatcher for %s already running", self._directory)
            return

        self.prime()
        self._running = True
        self._task = asyncio.create_task(self._poll_loop(callback))
        log.debug(
            "Watching %s (interval=%.2fs)", self._directory, self._poll_interval
        )

    def stop(self) -> None:
        """Stop the polling loop."""
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None

    def is_running(self) -> bool:
        return self._running
