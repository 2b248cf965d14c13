"""HTTP and WebSocket boundary between the UI and the orchestrator.

The UI calls ``/api/...`` for request/response operations and listens on
``/ws`` for pushed signals (terminal output, exits, save-state requests,
stylesheet patches, forced reloads).
"""

from claudesidebar.bridge.websocket import ConnectionManager, make_signal

__all__ = [
    "ConnectionManager",
    "make_signal",
]
