"""Tests for the editable source overlay."""

from __future__ import annotations

import hashlib
import shutil
from pathlib import Path

import pytest

from claudesidebar.config.schema import OverlayConfig
from claudesidebar.overlay.sync import OverlayLayout, SourceOverlaySync

GUIDANCE = "# guidance\n"


@pytest.fixture
def overlay(layout: OverlayLayout) -> SourceOverlaySync:
    return SourceOverlaySync(layout, guidance_text=GUIDANCE)


def read(path: Path) -> str:
    return path.read_text(encoding="utf-8")


class TestLayout:
    """Layout derived from config."""

    def test_from_config(self, tmp_path: Path) -> None:
        layout = OverlayLayout.from_config(
            OverlayConfig(), data_dir=tmp_path / "d", bundle_dir=tmp_path / "b"
        )
        assert layout.overlay_dir == tmp_path / "d" / "app-source"
        assert layout.plugins_dir == tmp_path / "d" / "app-source" / "plugins"
        assert layout.digest_path.name == ".bundle-hash"
        assert layout.bundle_bridge_path == tmp_path / "b" / "bridge.js"


class TestSync:
    """Startup sync."""

    def test_digest_covers_editable_files_in_order(
        self, overlay: SourceOverlaySync, bundle_dir: Path
    ) -> None:
        expected = hashlib.sha256()
        for name in ("renderer.js", "styles.css", "index.html"):
            expected.update((bundle_dir / name).read_bytes())
        assert overlay.compute_bundle_digest() == expected.hexdigest()

    def test_first_sync_populates_overlay(
        self, overlay: SourceOverlaySync, layout: OverlayLayout, bundle_dir: Path
    ) -> None:
        report = overlay.sync()
        assert report.ok
        assert sorted(report.copied) == ["index.html", "renderer.js", "styles.css"]
        assert report.digest_written
        assert report.bridge_written
        assert report.guidance_written
        assert report.assets_copied == ["vendor"]
        for name in ("renderer.js", "styles.css", "index.html", "bridge.js"):
            assert read(layout.overlay_dir / name) == read(bundle_dir / name)
        assert read(layout.digest_path) == overlay.compute_bundle_digest()
        assert read(layout.guidance_path) == GUIDANCE
        assert (layout.overlay_dir / "vendor" / "lib.js").is_file()
        assert layout.plugins_dir.is_dir()

    def test_second_sync_copies_nothing(
        self, overlay: SourceOverlaySync, layout: OverlayLayout
    ) -> None:
        overlay.sync()
        digest_mtime = layout.digest_path.stat().st_mtime_ns
        report = overlay.sync()
        assert report.copied == []
        assert report.digest_written is False
        assert report.assets_copied == []
        assert report.guidance_written is False
        assert layout.digest_path.stat().st_mtime_ns == digest_mtime

    def test_local_edits_survive_unchanged_bundle(
        self, overlay: SourceOverlaySync, layout: OverlayLayout
    ) -> None:
        overlay.sync()
        (layout.overlay_dir / "styles.css").write_text("edited", encoding="utf-8")
        overlay.sync()
        assert read(layout.overlay_dir / "styles.css") == "edited"

    def test_bundle_change_overwrites_edits(
        self, overlay: SourceOverlaySync, layout: OverlayLayout, bundle_dir: Path
    ) -> None:
        overlay.sync()
        (layout.overlay_dir / "styles.css").write_text("edited", encoding="utf-8")
        (bundle_dir / "renderer.js").write_text("// v2\n", encoding="utf-8")
        report = overlay.sync()
        assert report.digest_written
        assert read(layout.overlay_dir / "renderer.js") == "// v2\n"
        assert read(layout.overlay_dir / "styles.css") == read(bundle_dir / "styles.css")

    def test_bridge_always_overwritten(
        self, overlay: SourceOverlaySync, layout: OverlayLayout, bundle_dir: Path
    ) -> None:
        overlay.sync()
        (layout.overlay_dir / "bridge.js").write_text("tampered", encoding="utf-8")
        report = overlay.sync()
        assert report.bridge_written
        assert report.copied == []
        assert read(layout.overlay_dir / "bridge.js") == read(bundle_dir / "bridge.js")

    def test_guidance_never_rewritten(
        self, overlay: SourceOverlaySync, layout: OverlayLayout
    ) -> None:
        overlay.sync()
        layout.guidance_path.write_text("my notes", encoding="utf-8")
        overlay.sync()
        assert read(layout.guidance_path) == "my notes"

    def test_missing_guidance_regenerated(
        self, overlay: SourceOverlaySync, layout: OverlayLayout
    ) -> None:
        overlay.sync()
        layout.guidance_path.unlink()
        assert overlay.sync().guidance_written
        assert read(layout.guidance_path) == GUIDANCE

    def test_existing_asset_dir_not_replaced(
        self, overlay: SourceOverlaySync, layout: OverlayLayout, bundle_dir: Path
    ) -> None:
        overlay.sync()
        (layout.overlay_dir / "vendor" / "lib.js").write_text("local", encoding="utf-8")
        (bundle_dir / "renderer.js").write_text("// v2\n", encoding="utf-8")
        overlay.sync()
        assert read(layout.overlay_dir / "vendor" / "lib.js") == "local"

    def test_copy_failure_continues_and_skips_digest(
        self, overlay: SourceOverlaySync, layout: OverlayLayout, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        real_copyfile = shutil.copyfile

        def flaky_copyfile(src, dst, *args, **kwargs):
            if Path(src).name == "renderer.js":
                raise PermissionError("denied")
            return real_copyfile(src, dst, *args, **kwargs)

        monkeypatch.setattr(shutil, "copyfile", flaky_copyfile)
        report = overlay.sync()
        assert report.failed == ["renderer.js"]
        assert sorted(report.copied) == ["index.html", "styles.css"]
        assert report.digest_written is False
        assert not layout.digest_path.exists()
        assert report.bridge_written

        monkeypatch.setattr(shutil, "copyfile", real_copyfile)
        report = overlay.sync()
        assert report.ok
        assert report.digest_written

    def test_missing_bundle_file_skipped(
        self, overlay: SourceOverlaySync, layout: OverlayLayout, bundle_dir: Path
    ) -> None:
        (bundle_dir / "index.html").unlink()
        report = overlay.sync()
        assert report.ok
        assert "index.html" not in report.copied


class TestResets:
    """Reset operations."""

    def test_reset_editable_source(
        self, overlay: SourceOverlaySync, layout: OverlayLayout, bundle_dir: Path
    ) -> None:
        overlay.sync()
        (layout.overlay_dir / "renderer.js").write_text("edited", encoding="utf-8")
        layout.guidance_path.write_text("my notes", encoding="utf-8")
        (layout.plugins_dir / "p.js").write_text("plugin", encoding="utf-8")

        assert overlay.reset_editable_source() is True
        assert read(layout.overlay_dir / "renderer.js") == read(bundle_dir / "renderer.js")
        assert read(layout.guidance_path) == "my notes"
        assert (layout.plugins_dir / "p.js").exists()

    def test_reset_guidance(self, overlay: SourceOverlaySync, layout: OverlayLayout) -> None:
        overlay.sync()
        layout.guidance_path.write_text("my notes", encoding="utf-8")
        (layout.overlay_dir / "styles.css").write_text("edited", encoding="utf-8")

        assert overlay.reset_guidance() is True
        assert read(layout.guidance_path) == GUIDANCE
        assert read(layout.overlay_dir / "styles.css") == "edited"

    def test_nuke_overlay(
        self, overlay: SourceOverlaySync, layout: OverlayLayout, bundle_dir: Path
    ) -> None:
        overlay.sync()
        (layout.overlay_dir / "styles.css").write_text("edited", encoding="utf-8")
        layout.guidance_path.write_text("my notes", encoding="utf-8")
        (layout.plugins_dir / "p.js").write_text("plugin", encoding="utf-8")
        (layout.plugins_dir / "nested").mkdir()

        assert overlay.nuke_overlay() is True
        assert read(layout.overlay_dir / "styles.css") == read(bundle_dir / "styles.css")
        assert read(layout.guidance_path) == GUIDANCE
        assert list(layout.plugins_dir.iterdir()) == []
