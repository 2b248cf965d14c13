"""Tests for the polling directory watcher."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import pytest

from claudesidebar.watching.watcher import DirectoryChangeEvent, DirectoryWatcher


def touch(path: Path, text: str, mtime: float) -> None:
    path.write_text(text, encoding="utf-8")
    os.utime(path, (mtime, mtime))


class TestCheckChanges:
    """Diffing against the last scan."""

    def test_no_changes(self, tmp_path: Path) -> None:
        touch(tmp_path / "a.js", "a", 1_000_000)
        watcher = DirectoryWatcher(tmp_path)
        watcher.prime()
        assert watcher.check_changes() == []

    def test_created_modified_deleted(self, tmp_path: Path) -> None:
        touch(tmp_path / "keep.js", "a", 1_000_000)
        touch(tmp_path / "gone.css", "b", 1_000_000)
        watcher = DirectoryWatcher(tmp_path)
        watcher.prime()

        touch(tmp_path / "keep.js", "aa", 1_000_010)
        (tmp_path / "gone.css").unlink()
        touch(tmp_path / "new.html", "c", 1_000_010)

        changes = {(e.name, e.change_type) for e in watcher.check_changes()}
        assert changes == {
            ("keep.js", "modified"),
            ("gone.css", "deleted"),
            ("new.html", "created"),
        }
        assert watcher.check_changes() == []

    def test_subdirectories_ignored(self, tmp_path: Path) -> None:
        watcher = DirectoryWatcher(tmp_path)
        watcher.prime()
        (tmp_path / "plugins").mkdir()
        assert watcher.check_changes() == []

    def test_vanished_directory_reports_deletions(self, tmp_path: Path) -> None:
        watched = tmp_path / "watched"
        watched.mkdir()
        touch(watched / "a.js", "a", 1_000_000)
        watcher = DirectoryWatcher(watched)
        watcher.prime()
        (watched / "a.js").unlink()
        watched.rmdir()
        events = watcher.check_changes()
        assert [(e.name, e.change_type) for e in events] == [("a.js", "deleted")]
        assert watcher.check_changes() == []

    def test_prime_missing_directory_raises(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            DirectoryWatcher(tmp_path / "nope").prime()

    def test_event_path_and_dict(self, tmp_path: Path) -> None:
        event = DirectoryChangeEvent(tmp_path, "a.js", "created", timestamp=1.0)
        assert event.path == tmp_path / "a.js"
        assert event.to_dict() == {
            "directory": str(tmp_path),
            "name": "a.js",
            "change_type": "created",
            "timestamp": 1.0,
        }


class TestPolling:
    """The background polling loop."""

    @pytest.mark.asyncio
    async def test_callback_receives_events(self, tmp_path: Path) -> None:
        received: list[DirectoryChangeEvent] = []
        watcher = DirectoryWatcher(tmp_path, poll_interval=0.01)
        watcher.start(received.append)
        assert watcher.is_running()
        try:
            (tmp_path / "styles.css").write_text("x", encoding="utf-8")
            for _ in range(100):
                if received:
                    break
                await asyncio.sleep(0.01)
        finally:
            watcher.stop()
        assert [e.name for e in received] == ["styles.css"]
        assert not watcher.is_running()

    @pytest.mark.asyncio
    async def test_start_on_missing_directory_raises(self, tmp_path: Path) -> None:
        watcher = DirectoryWatcher(tmp_path / "nope")
        with pytest.raises(OSError):
            watcher.start(lambda event: None)
        assert not watcher.is_running()
