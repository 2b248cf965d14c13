"""Root pytest configuration for all tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from claudesidebar.config import reset_config
from claudesidebar.overlay.sync import OverlayLayout
from tests.utils import FakeClock, FakeSpawner, make_bundle

pytest_plugins = ("pytest_asyncio",)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def spawner() -> FakeSpawner:
    return FakeSpawner()


@pytest.fixture
def bundle_dir(tmp_path: Path) -> Path:
    """A bundled UI source tree with editable files, bridge and assets."""
    return make_bundle(tmp_path / "bundle")


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def layout(bundle_dir: Path, data_dir: Path) -> OverlayLayout:
    return OverlayLayout(bundle_dir=bundle_dir, overlay_dir=data_dir / "app-source")


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch):
    """Keep host config files and env overrides out of tests."""
    monkeypatch.setattr("claudesidebar.config.loader.get_config_paths", lambda: [])
    for name in ("CLAUDE_SIDEBAR_CMD", "CS_LOG", "CS_DATA_DIR"):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()
