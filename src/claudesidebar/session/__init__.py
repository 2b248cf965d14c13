"""Session layer: live terminal registry and UI state persistence."""

from claudesidebar.session.registry import (
    DuplicateSessionError,
    SessionRegistry,
    TerminalSession,
)
from claudesidebar.session.storage import StateStore, get_state_path

__all__ = [
    "DuplicateSessionError",
    "SessionRegistry",
    "StateStore",
    "TerminalSession",
    "get_state_path",
]
