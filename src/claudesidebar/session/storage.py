"""UI state persistence.

Stores one opaque JSON snapshot owned by the UI at:
  <data_dir>/state/state.json

The snapshot schema belongs to the UI; it is written and returned verbatim.
A missing file and a corrupted one both load as ``None``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from claudesidebar.logging import get_logger

log = get_logger("storage")

STATE_DIRNAME = "state"
STATE_FILENAME = "state.json"


def get_state_path(data_dir: str | Path) -> Path:
    """Get the state file path under a data directory."""
    return Path(data_dir) / STATE_DIRNAME / STATE_FILENAME


class StateStore:
    """Saves and restores the UI's state snapshot."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @classmethod
    def for_data_dir(cls, data_dir: str | Path) -> StateStore:
        return cls(get_state_path(data_dir))

    @property
    def path(self) -> Path:
        return self._path

    def save(self, snapshot: Any) -> bool:
        """Write ``snapshot`` as pretty-printed JSON.

        Performs atomic write by writing to a temp file first.

        Returns:
            True on success, False (logged) on any serialization or I/O failure.
        """
        temp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            text = json.dumps(snapshot, indent=2)
            self._path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(text, encoding="utf-8")
            temp_path.replace(self._path)
        except (TypeError, ValueError) as e:
            log.error("Failed to save state: snapshot is not JSON serializable: %s", e)
            return False
        except OSError as e:
            log.error("Failed to save state to %s: %s", self._path, e)
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError:
                    pass
            return False

        log.debug("Saved state to %s", self._path)
        return True

    def load(self) -> Any | None:
        """Read the persisted snapshot.

        Returns:
            The parsed value, or None if the file is missing or unparsable.
        """
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            log.warning("Failed to read state from %s: %s", self._path, e)
            return None

        try:
            return json.loads(text)
        except ValueError as e:
            log.warning("Ignoring corrupted state in %s: %s", self._path, e)
            return None
