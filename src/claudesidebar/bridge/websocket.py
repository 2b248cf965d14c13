"""WebSocket fan-out for signals pushed to the UI."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from fastapi import WebSocket

log = logging.getLogger(__name__)

# Pushed signal kinds
OUTPUT = "output"
EXIT = "exit"
REQUEST_SAVE_STATE = "request-save-state"
HOT_RELOAD_STYLE = "hot-reload-style"
FORCE_RELOAD = "force-reload"


def make_signal(kind: str, **payload: Any) -> dict[str, Any]:
    """Build a signal message: ``{"type": kind, **payload}``."""
    return {"type": kind, **payload}


class ConnectionManager:
    """Tracks UI WebSocket clients and delivers pushed signals to them.

    ``publish`` is synchronous so PTY and watcher callbacks can call it
    directly from the event loop. Every client owns an unbounded FIFO queue
    drained by one pump task, so signals (and per-session output) reach each
    client in publish order.
    """

    def __init__(self) -> None:
        self._queues: dict[WebSocket, asyncio.Queue[dict[str, Any] | None]] = {}

    async def connect(self, websocket: WebSocket) -> asyncio.Queue[dict[str, Any] | None]:
        """Accept a new WebSocket connection and give it a queue."""
        await websocket.accept()
        queue: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue()
        self._queues[websocket] = queue
        log.debug("UI client connected (%d total)", len(self._queues))
        return queue

    def disconnect(self, websocket: WebSocket) -> None:
        """Remove a WebSocket connection."""
        if self._queues.pop(websocket, None) is not None:
            log.debug("UI client disconnected (%d left)", len(self._queues))

    def publish(self, message: dict[str, Any]) -> None:
        """Queue ``message`` for every connected client."""
        for queue in self._queues.values():
            queue.put_nowait(message)

    async def pump(
        self,
        websocket: WebSocket,
        queue: asyncio.Queue[dict[str, Any] | None],
    ) -> None:
        """Send queued messages to one client until it goes away."""
        while True:
            message = await queue.get()
            if message is None:
                return
            try:
                await websocket.send_json(message)
            except Exception as e:
                log.debug("Dropping UI client after send failure: %s", e)
                self.disconnect(websocket)
                return

    def get_connection_count(self) -> int:
        return len(self._queues)

    async def close_all(self, reason: str = "Server shutting down") -> None:
        """Close all WebSocket connections gracefully."""
        connections = list(self._queues.items())
        self._queues.clear()

        for websocket, queue in connections:
            queue.put_nowait(None)
            with contextlib.suppress(Exception):
                await websocket.close(code=1001, reason=reason)
        log.info("Closed %d UI connections", len(connections))
