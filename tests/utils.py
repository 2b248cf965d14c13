"""Shared fakes for claudesidebar tests."""

from __future__ import annotations

from pathlib import Path

from claudesidebar.terminal.platform import LaunchSpec


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePty:
    """Stands in for a PTY-backed process."""

    def __init__(self, spec: LaunchSpec, on_data, on_exit, pid: int = 4242) -> None:
        self.spec = spec
        self.on_data = on_data
        self.on_exit = on_exit
        self.pid = pid
        self.written: list[bytes] = []
        self.sizes: list[tuple[int, int]] = []
        self.terminated = False
        self.fail_resize = False
        self.fail_terminate = False

    def write(self, data: bytes) -> None:
        self.written.append(data)

    def resize(self, cols: int, rows: int) -> None:
        if self.fail_resize:
            raise OSError("pty closed")
        self.sizes.append((cols, rows))

    def terminate(self) -> None:
        if self.fail_terminate:
            raise ProcessLookupError("no such process")
        self.terminated = True

    async def wait(self) -> int | None:
        return 0

    # Simulate the process side
    def emit(self, data: bytes) -> None:
        self.on_data(data)

    def exit(self, code: int | None = 0) -> None:
        self.on_exit(code)


class FakeSpawner:
    """Spawner that records launches and hands back FakePty instances."""

    def __init__(self) -> None:
        self.spawned: list[FakePty] = []
        self.error: Exception | None = None

    async def __call__(self, spec: LaunchSpec, on_data, on_exit) -> FakePty:
        if self.error is not None:
            raise self.error
        pty = FakePty(spec, on_data, on_exit, pid=1000 + len(self.spawned))
        self.spawned.append(pty)
        return pty

    @property
    def last(self) -> FakePty:
        return self.spawned[-1]


class MockWebSocket:
    """Mock WebSocket for testing."""

    def __init__(self, should_fail: bool = False) -> None:
        self.should_fail = should_fail
        self.accepted = False
        self.closed = False
        self.close_code: int | None = None
        self.close_reason: str | None = None
        self.sent_messages: list[dict] = []

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, message: dict) -> None:
        if self.should_fail:
            raise Exception("WebSocket connection failed")
        self.sent_messages.append(message)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed = True
        self.close_code = code
        self.close_reason = reason


BUNDLE_FILES = {
    "renderer.js": "console.log('renderer');\n",
    "styles.css": "body { background: #1a1a1a; }\n",
    "index.html": "<html><body></body></html>\n",
    "bridge.js": "window.sidebar = {};\n",
}


def make_bundle(root: Path) -> Path:
    """Write a small bundled UI tree (editable files, bridge, vendor assets)."""
    root.mkdir(parents=True, exist_ok=True)
    for name, text in BUNDLE_FILES.items():
        (root / name).write_text(text, encoding="utf-8")
    vendor = root / "vendor"
    vendor.mkdir(exist_ok=True)
    (vendor / "lib.js").write_text("// vendored\n", encoding="utf-8")
    return root
