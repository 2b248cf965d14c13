"""Rolling-window output counter that tells a working session from an idle one.

A response being generated arrives as bursts of output; an idle interactive
display only trickles small redraws. The window resets lazily on the next
chunk, and staleness alone flips the session back to idle.
"""

from __future__ import annotations

import time
from collections.abc import Callable

DEFAULT_WINDOW = 2.0
DEFAULT_THRESHOLD = 500
DEFAULT_STALE = 3.0


class ActivityDetector:
    """Per-session byte counter over a lazily reset window."""

    def __init__(
        self,
        window: float = DEFAULT_WINDOW,
        threshold: int = DEFAULT_THRESHOLD,
        stale_after: float = DEFAULT_STALE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._window = window
        self._threshold = threshold
        self._stale_after = stale_after
        self._clock = clock
        self.bytes_in_window = 0
        self.window_start = clock()

    def record(self, nbytes: int) -> None:
        """Account for one output chunk of ``nbytes`` bytes."""
        now = self._clock()
        if now - self.window_start > self._window:
            self.bytes_in_window = 0
            self.window_start = now
        self.bytes_in_window += nbytes

    def is_active(self) -> bool:
        age = self._clock() - self.window_start
        return self.bytes_in_window > self._threshold and age < self._stale_after

    def __repr__(self) -> str:
        return (
            f"ActivityDetector(bytes={self.bytes_in_window}, "
            f"active={self.is_active()})"
        )
