"""Terminal support for assistant sessions.

Launch command construction per platform, PTY process backends, and the
output-activity heuristic.
"""

from claudesidebar.terminal.activity import ActivityDetector
from claudesidebar.terminal.platform import (
    LaunchSpec,
    build_launch_spec,
    clean_env,
    to_wsl_path,
)
from claudesidebar.terminal.pty_process import (
    PosixPtyProcess,
    PtyProcess,
    SessionSpawnError,
    WinPtyProcess,
    spawn_pty,
)

__all__ = [
    "ActivityDetector",
    "LaunchSpec",
    "PosixPtyProcess",
    "PtyProcess",
    "SessionSpawnError",
    "WinPtyProcess",
    "build_launch_spec",
    "clean_env",
    "spawn_pty",
    "to_wsl_path",
]
