"""Live terminal session registry.

Owns the map of running assistant sessions keyed by caller-supplied ids,
spawns their PTY processes, and tracks per-session output activity.

Lifecycle per id: Created -> Running -> Exited | Destroyed.
- Exited: the process ended on its own; the entry stays queryable but is
  inactive and ignores input.
- Destroyed: explicit ``destroy``; the entry is removed immediately without
  waiting for the process to die. Exit notifications arriving later are
  ignored.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from functools import partial

from claudesidebar.config.schema import SessionsConfig
from claudesidebar.logging import get_logger, verbose
from claudesidebar.terminal.activity import ActivityDetector
from claudesidebar.terminal.platform import LaunchSpec, build_launch_spec
from claudesidebar.terminal.pty_process import (
    DataCallback,
    ExitCallback,
    PtyProcess,
    spawn_pty,
)

log = get_logger("sessions")

OutputHandler = Callable[[str, bytes], None]
ExitHandler = Callable[[str, int | None], None]
Spawner = Callable[[LaunchSpec, DataCallback, ExitCallback], Awaitable[PtyProcess]]


class DuplicateSessionError(ValueError):
    """A live session with this id already exists."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id!r} already exists")
        self.session_id = session_id


@dataclass
class TerminalSession:
    """One assistant session and its PTY process."""

    session_id: str
    cwd: str
    activity: ActivityDetector
    resume: bool = False
    process: PtyProcess | None = None
    alive: bool = True
    exit_code: int | None = None
    created_at: float = field(default_factory=time.time)

    @property
    def accepts_input(self) -> bool:
        return self.alive and self.process is not None

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.session_id,
            "cwd": self.cwd,
            "resume": self.resume,
            "alive": self.alive,
            "active": self.alive and self.activity.is_active(),
            "exit_code": self.exit_code,
            "pid": self.process.pid if self.process is not None else None,
        }


class SessionRegistry:
    """Creates, feeds, and tears down PTY-backed assistant sessions.

    All methods run on the event loop thread; no locking is involved.

    Example:
        registry = SessionRegistry(config.sessions, on_output=push_output)
        await registry.create("tab-1", cwd="/home/u/proj")
        registry.send_input("tab-1", b"hello\\r")
        registry.is_active("tab-1")
        registry.destroy("tab-1")
    """

    def __init__(
        self,
        config: SessionsConfig | None = None,
        *,
        on_output: OutputHandler | None = None,
        on_exit: ExitHandler | None = None,
        spawner: Spawner = spawn_pty,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or SessionsConfig()
        self._on_output = on_output
        self._on_exit = on_exit
        self._spawner = spawner
        self._clock = clock
        self._sessions: dict[str, TerminalSession] = {}

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> TerminalSession | None:
        return self._sessions.get(session_id)

    def list_sessions(self) -> list[TerminalSession]:
        return list(self._sessions.values())

    def launch_spec(self, cwd: str | None, resume: bool) -> LaunchSpec:
        cfg = self._config
        return build_launch_spec(
            cwd,
            resume,
            command=cfg.command,
            shell=cfg.shell,
            term_name=cfg.term_name,
            cols=cfg.cols,
            rows=cfg.rows,
        )

    async def create(
        self,
        session_id: str,
        cwd: str | None = None,
        resume: bool = False,
    ) -> str:
        """Spawn a new session.

        Raises:
            DuplicateSessionError: ``session_id`` is live.
            SessionSpawnError: The process could not be started.
        """
        existing = self._sessions.get(session_id)
        if existing is not None and existing.alive:
            raise DuplicateSessionError(session_id)

        spec = self.launch_spec(cwd, resume)
        verbose(log, "Launching %s: %s", session_id, spec.argv)
        cfg = self._config
        session = TerminalSession(
            session_id=session_id,
            cwd=spec.cwd,
            resume=resume,
            activity=ActivityDetector(
                window=cfg.activity_window,
                threshold=cfg.activity_threshold,
                stale_after=cfg.activity_stale,
                clock=self._clock,
            ),
        )
        # Registered before spawning so a concurrent create sees the id as taken
        self._sessions[session_id] = session

        try:
            process = await self._spawner(
                spec,
                partial(self._handle_output, session),
                partial(self._handle_exit, session),
            )
        except Exception:
            if self._sessions.get(session_id) is session:
                del self._sessions[session_id]
            raise

        session.process = process
        if self._sessions.get(session_id) is not session:
            # Destroyed while spawning
            self._terminate(session)
        else:
            log.info("Session %s started (pid=%s, cwd=%s)", session_id, process.pid, spec.cwd)
        return session_id

    def _handle_output(self, session: TerminalSession, data: bytes) -> None:
        session.activity.record(len(data))
        if self._sessions.get(session.session_id) is not session:
            return
        if self._on_output is not None:
            self._on_output(session.session_id, data)

    def _handle_exit(self, session: TerminalSession, returncode: int | None) -> None:
        session.alive = False
        session.exit_code = returncode
        if self._sessions.get(session.session_id) is not session:
            return
        log.info("Session %s exited (code=%s)", session.session_id, returncode)
        if self._on_exit is not None:
            self._on_exit(session.session_id, returncode)

    def send_input(self, session_id: str, data: bytes | str) -> None:
        session = self._sessions.get(session_id)
        if session is None or not session.accepts_input:
            return
        if isinstance(data, str):
            data = data.encode("utf-8")
        assert session.process is not None
        session.process.write(data)

    def resize(self, session_id: str, cols: int, rows: int) -> None:
        session = self._sessions.get(session_id)
        if session is None or not session.accepts_input:
            return
        if cols <= 0 or rows <= 0:
            return
        assert session.process is not None
        try:
            session.process.resize(cols, rows)
        except Exception as e:
            log.debug("Resize of %s ignored: %s", session_id, e)

    def destroy(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return
        self._terminate(session)
        log.info("Session %s destroyed", session_id)

    def _terminate(self, session: TerminalSession) -> None:
        if session.process is None or not session.alive:
            return
        try:
            session.process.terminate()
        except Exception as e:
            log.debug("Terminate of %s ignored: %s", session.session_id, e)

    def destroy_all(self) -> int:
        """Destroy every session. Returns how many were removed."""
        ids = list(self._sessions)
        for session_id in ids:
            self.destroy(session_id)
        return len(ids)

    def is_active(self, session_id: str) -> bool:
        session = self._sessions.get(session_id)
        if session is None or not session.alive:
            return False
        return session.activity.is_active()
