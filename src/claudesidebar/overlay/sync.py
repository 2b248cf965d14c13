"""Writable mirror of the bundled UI source.

The UI is served from an overlay directory under the data dir so that an
agent can edit it live. On every start:

1. The bundled editable files are hashed (SHA-256, fixed order). When the
   digest differs from the sidecar (or there is no sidecar yet), the bundle
   copies overwrite the overlay and the new digest is written, but only once
   every copy succeeded. A matching digest copies nothing.
2. Static asset directories are copied when missing from the overlay.
3. The bridge file is always overwritten from the bundle.
4. The guidance document is written when absent and never rewritten.

Copy failures are logged and never abort the remaining copies.
"""

from __future__ import annotations

import hashlib
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from claudesidebar.config.schema import OverlayConfig
from claudesidebar.logging import get_logger

log = get_logger("overlay")

OVERLAY_DIRNAME = "app-source"
DIGEST_FILENAME = ".bundle-hash"


@dataclass
class OverlayLayout:
    """Where the bundle lives, where the overlay lives, and what's in each."""

    bundle_dir: Path
    overlay_dir: Path
    editable_files: list[str] = field(
        default_factory=lambda: ["renderer.js", "styles.css", "index.html"]
    )
    style_file: str = "styles.css"
    bridge_file: str = "bridge.js"
    guidance_file: str = "CLAUDE.md"
    asset_dirs: list[str] = field(default_factory=lambda: ["vendor"])
    plugins_dirname: str = "plugins"

    @classmethod
    def from_config(
        cls,
        config: OverlayConfig,
        data_dir: Path,
        bundle_dir: Path,
    ) -> OverlayLayout:
        return cls(
            bundle_dir=bundle_dir,
            overlay_dir=data_dir / OVERLAY_DIRNAME,
            editable_files=list(config.editable_files),
            style_file=config.style_file,
            bridge_file=config.bridge_file,
            guidance_file=config.guidance_file,
            asset_dirs=list(config.asset_dirs),
            plugins_dirname=config.plugins_dir,
        )

    @property
    def plugins_dir(self) -> Path:
        return self.overlay_dir / self.plugins_dirname

    @property
    def digest_path(self) -> Path:
        return self.overlay_dir / DIGEST_FILENAME

    @property
    def guidance_path(self) -> Path:
        return self.overlay_dir / self.guidance_file

    @property
    def bundle_bridge_path(self) -> Path:
        return self.bundle_dir / self.bridge_file


@dataclass
class SyncReport:
    """What one overlay sync did."""

    copied: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    assets_copied: list[str] = field(default_factory=list)
    digest_written: bool = False
    bridge_written: bool = False
    guidance_written: bool = False

    @property
    def ok(self) -> bool:
        return not self.failed


def _copy_file(src: Path, dest: Path, report: SyncReport) -> bool:
    try:
        shutil.copyfile(src, dest)
    except OSError as e:
        log.error("Failed to copy %s -> %s: %s", src, dest, e)
        report.failed.append(src.name)
        return False
    report.copied.append(src.name)
    return True


class SourceOverlaySync:
    """Keeps the overlay in step with the bundled UI source."""

    def __init__(self, layout: OverlayLayout, guidance_text: str | None = None) -> None:
        self._layout = layout
        if guidance_text is None:
            from claudesidebar.prompts import GUIDANCE_TEMPLATE

            guidance_text = GUIDANCE_TEMPLATE
        self._guidance_text = guidance_text

    @property
    def layout(self) -> OverlayLayout:
        return self._layout

    def compute_bundle_digest(self) -> str:
        """Hex SHA-256 over the bundled editable files, in configured order."""
        digest = hashlib.sha256()
        for name in self._layout.editable_files:
            path = self._layout.bundle_dir / name
            if not path.is_file():
                continue
            try:
                digest.update(path.read_bytes())
            except OSError as e:
                log.warning("Cannot read bundled %s: %s", path, e)
        return digest.hexdigest()

    def read_cached_digest(self) -> str | None:
        try:
            return self._layout.digest_path.read_text(encoding="utf-8").strip() or None
        except FileNotFoundError:
            return None
        except OSError as e:
            log.warning("Cannot read %s: %s", self._layout.digest_path, e)
            return None

    def _ensure_dirs(self) -> bool:
        try:
            self._layout.overlay_dir.mkdir(parents=True, exist_ok=True)
            self._layout.plugins_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            log.error("Cannot create overlay at %s: %s", self._layout.overlay_dir, e)
            return False
        return True

    def _copy_editable(self, report: SyncReport) -> None:
        for name in self._layout.editable_files:
            src = self._layout.bundle_dir / name
            if not src.is_file():
                continue
            _copy_file(src, self._layout.overlay_dir / name, report)

    def sync(self) -> SyncReport:
        """Run the startup sync. Never raises."""
        report = SyncReport()
        layout = self._layout
        if not self._ensure_dirs():
            report.failed.append(layout.overlay_dir.name)
            return report

        digest = self.compute_bundle_digest()
        cached = self.read_cached_digest()
        if digest != cached:
            log.info("Bundle changed (%s -> %s), refreshing overlay", cached, digest[:12])
            self._copy_editable(report)
            if report.ok:
                try:
                    layout.digest_path.write_text(digest, encoding="utf-8")
                    report.digest_written = True
                except OSError as e:
                    log.error("Failed to write %s: %s", layout.digest_path, e)

        for dirname in layout.asset_dirs:
            src = layout.bundle_dir / dirname
            dest = layout.overlay_dir / dirname
            if not src.is_dir() or dest.exists():
                continue
            try:
                shutil.copytree(src, dest)
                report.assets_copied.append(dirname)
            except (OSError, shutil.Error) as e:
                log.error("Failed to copy assets %s: %s", src, e)
                report.failed.append(dirname)

        bridge_src = layout.bundle_bridge_path
        if bridge_src.is_file():
            try:
                shutil.copyfile(bridge_src, layout.overlay_dir / layout.bridge_file)
                report.bridge_written = True
            except OSError as e:
                log.error("Failed to copy bridge file %s: %s", bridge_src, e)
                report.failed.append(layout.bridge_file)
        else:
            log.warning("Bundle has no bridge file at %s", bridge_src)

        if not layout.guidance_path.exists():
            try:
                layout.guidance_path.write_text(self._guidance_text, encoding="utf-8")
                report.guidance_written = True
            except OSError as e:
                log.error("Failed to write %s: %s", layout.guidance_path, e)
                report.failed.append(layout.guidance_file)

        log.debug(
            "Overlay sync: copied=%s assets=%s failed=%s",
            report.copied, report.assets_copied, report.failed,
        )
        return report

    def reset_editable_source(self) -> bool:
        """Restore the editable files from the bundle; guidance and plugins untouched."""
        report = SyncReport()
        if not self._ensure_dirs():
            return False
        self._copy_editable(report)
        log.info("Editable source reset (%d files)", len(report.copied))
        return report.ok

    def _delete_guidance(self) -> bool:
        try:
            self._layout.guidance_path.unlink(missing_ok=True)
        except OSError as e:
            log.error("Failed to delete %s: %s", self._layout.guidance_path, e)
            return False
        return True

    def reset_guidance(self) -> bool:
        """Delete the guidance document and re-sync, which rewrites it."""
        deleted = self._delete_guidance()
        report = self.sync()
        return deleted and report.guidance_written

    def _clear_plugins(self) -> bool:
        plugins_dir = self._layout.plugins_dir
        if not plugins_dir.is_dir():
            return True
        ok = True
        for entry in plugins_dir.iterdir():
            try:
                if entry.is_dir() and not entry.is_symlink():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
            except OSError as e:
                log.error("Failed to delete plugin %s: %s", entry, e)
                ok = False
        return ok

    def nuke_overlay(self) -> bool:
        """Reset source and guidance, delete every plugin, then re-sync."""
        source_ok = self.reset_editable_source()
        guidance_ok = self._delete_guidance()
        plugins_ok = self._clear_plugins()
        report = self.sync()
        log.info("Overlay reset to bundle defaults")
        return source_ok and guidance_ok and plugins_ok and report.ok
