"""Pseudo-terminal process backends.

Each backend owns one child process attached to a PTY and reports its
output and exit back on the asyncio event loop:

- PosixPtyProcess: stdlib ``pty`` with the master fd registered on the loop
- WinPtyProcess: ``pywinpty`` with a reader thread handing chunks to the loop

Callbacks always run on the loop thread, output in emission order, and the
exit callback fires after the last output chunk.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import sys
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

from claudesidebar.logging import get_logger, trace

if TYPE_CHECKING:
    from claudesidebar.terminal.platform import LaunchSpec

log = get_logger("pty")

DataCallback = Callable[[bytes], None]
ExitCallback = Callable[[int | None], None]

_READ_SIZE = 65536


class SessionSpawnError(RuntimeError):
    """The session process could not be started."""


class PtyProcess(Protocol):
    """A running PTY-backed child process."""

    @property
    def pid(self) -> int: ...

    def write(self, data: bytes) -> None: ...

    def resize(self, cols: int, rows: int) -> None: ...

    def terminate(self) -> None: ...

    async def wait(self) -> int | None: ...


def _set_winsize(fd: int, *, cols: int, rows: int) -> None:
    import fcntl
    import struct
    import termios

    winsize = struct.pack("HHHH", int(rows), int(cols), 0, 0)
    fcntl.ioctl(fd, termios.TIOCSWINSZ, winsize)


def _make_controlling_tty() -> None:
    """preexec hook: new session with the PTY slave as controlling terminal."""
    import fcntl
    import termios

    os.setsid()
    with contextlib.suppress(OSError):
        fcntl.ioctl(0, termios.TIOCSCTTY, 0)


class PosixPtyProcess:
    """Child process on a POSIX pseudo-terminal, read via ``loop.add_reader``."""

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        master_fd: int,
        on_data: DataCallback,
        on_exit: ExitCallback,
    ) -> None:
        self._process = process
        self._fd: int | None = master_fd
        self._on_data = on_data
        self._on_exit = on_exit
        self._loop = asyncio.get_running_loop()
        self._outbuf = bytearray()
        self._writer_registered = False

        self._loop.add_reader(master_fd, self._on_readable)
        self._exit_task = self._loop.create_task(self._watch_exit())

    @classmethod
    async def spawn(
        cls,
        spec: LaunchSpec,
        on_data: DataCallback,
        on_exit: ExitCallback,
    ) -> PosixPtyProcess:
        import pty

        master_fd, slave_fd = pty.openpty()
        try:
            _set_winsize(master_fd, cols=spec.cols, rows=spec.rows)
        except OSError as e:
            log.debug("Initial winsize failed: %s", e)

        env = dict(spec.env)
        env["TERM"] = spec.term_name

        try:
            process = await asyncio.create_subprocess_exec(
                spec.executable,
                *spec.argv[1:],
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                cwd=spec.cwd,
                env=env,
                close_fds=True,
                preexec_fn=_make_controlling_tty,
            )
        except (OSError, ValueError) as e:
            os.close(master_fd)
            os.close(slave_fd)
            raise SessionSpawnError(f"Failed to spawn {spec.executable}: {e}") from e

        os.close(slave_fd)
        os.set_blocking(master_fd, False)
        return cls(process, master_fd, on_data, on_exit)

    @property
    def pid(self) -> int:
        return self._process.pid

    def _on_readable(self) -> None:
        if self._fd is None:
            return
        try:
            data = os.read(self._fd, _READ_SIZE)
        except BlockingIOError:
            return
        except OSError:
            # EIO once the slave side is closed
            self._loop.remove_reader(self._fd)
            return
        if not data:
            self._loop.remove_reader(self._fd)
            return
        trace(log, "pty %d read %d bytes", self.pid, len(data))
        self._on_data(data)

    def _drain(self) -> None:
        """Deliver output still buffered in the master after the child exited."""
        while self._fd is not None:
            try:
                data = os.read(self._fd, _READ_SIZE)
            except OSError:
                return
            if not data:
                return
            self._on_data(data)

    async def _watch_exit(self) -> None:
        returncode = await self._process.wait()
        self._drain()
        self._close_fd()
        log.debug("pty process %d exited with %s", self.pid, returncode)
        self._on_exit(returncode)

    def _close_fd(self) -> None:
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        self._loop.remove_reader(fd)
        if self._writer_registered:
            self._loop.remove_writer(fd)
            self._writer_registered = False
        with contextlib.suppress(OSError):
            os.close(fd)

    def write(self, data: bytes) -> None:
        if self._fd is None or not data:
            return
        self._outbuf.extend(data)
        self._flush()

    def _flush(self) -> None:
        if self._fd is None:
            self._outbuf.clear()
            return
        while self._outbuf:
            try:
                written = os.write(self._fd, self._outbuf)
            except BlockingIOError:
                break
            except OSError as e:
                log.debug("pty write failed: %s", e)
                self._outbuf.clear()
                break
            del self._outbuf[:written]

        if self._outbuf and not self._writer_registered:
            self._loop.add_writer(self._fd, self._flush)
            self._writer_registered = True
        elif not self._outbuf and self._writer_registered:
            self._loop.remove_writer(self._fd)
            self._writer_registered = False

    def resize(self, cols: int, rows: int) -> None:
        if self._fd is None:
            raise OSError("pty is closed")
        _set_winsize(self._fd, cols=cols, rows=rows)

    def terminate(self) -> None:
        import signal

        try:
            os.killpg(self.pid, signal.SIGHUP)
        except OSError:
            self._process.terminate()

    async def wait(self) -> int | None:
        await asyncio.shield(self._exit_task)
        return self._process.returncode


class WinPtyProcess:
    """Child process on a Windows ConPTY via pywinpty."""

    def __init__(self, proc: object, on_data: DataCallback, on_exit: ExitCallback) -> None:
        self._proc = proc
        self._on_data = on_data
        self._on_exit = on_exit
        self._loop = asyncio.get_running_loop()
        self._exited = asyncio.Event()
        self._thread = threading.Thread(
            target=self._reader, name=f"cs-winpty:{self.pid}", daemon=True
        )
        self._thread.start()

    @classmethod
    async def spawn(
        cls,
        spec: LaunchSpec,
        on_data: DataCallback,
        on_exit: ExitCallback,
    ) -> WinPtyProcess:
        from winpty import PtyProcess as _WinPty

        env = dict(spec.env)
        env["TERM"] = spec.term_name
        loop = asyncio.get_running_loop()
        try:
            proc = await loop.run_in_executor(
                None,
                lambda: _WinPty.spawn(
                    spec.argv,
                    cwd=spec.cwd,
                    env=env,
                    dimensions=(spec.rows, spec.cols),
                ),
            )
        except Exception as e:
            raise SessionSpawnError(f"Failed to spawn {spec.executable}: {e}") from e
        return cls(proc, on_data, on_exit)

    @property
    def pid(self) -> int:
        return int(getattr(self._proc, "pid", 0) or 0)

    def _reader(self) -> None:
        while True:
            try:
                chunk = self._proc.read(_READ_SIZE)
            except EOFError:
                break
            except Exception as e:
                log.debug("winpty read failed: %s", e)
                break
            if chunk:
                data = chunk.encode("utf-8") if isinstance(chunk, str) else bytes(chunk)
                self._loop.call_soon_threadsafe(self._on_data, data)
            elif not self._proc.isalive():
                break
        self._loop.call_soon_threadsafe(self._finish)

    def _finish(self) -> None:
        self._exited.set()
        self._on_exit(getattr(self._proc, "exitstatus", None))

    def write(self, data: bytes) -> None:
        self._proc.write(data.decode("utf-8", errors="replace"))

    def resize(self, cols: int, rows: int) -> None:
        self._proc.setwinsize(rows, cols)

    def terminate(self) -> None:
        self._proc.terminate(force=True)

    async def wait(self) -> int | None:
        await self._exited.wait()
        return getattr(self._proc, "exitstatus", None)


async def spawn_pty(
    spec: LaunchSpec,
    on_data: DataCallback,
    on_exit: ExitCallback,
    *,
    platform: str | None = None,
) -> PtyProcess:
    """Spawn ``spec`` with the backend for the host platform.

    Raises:
        SessionSpawnError: The process could not be started.
    """
    if (platform or sys.platform) == "win32":
        return await WinPtyProcess.spawn(spec, on_data, on_exit)
    return await PosixPtyProcess.spawn(spec, on_data, on_exit)
