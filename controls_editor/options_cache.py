"""Local cache of the latest flat control options.

The debounced sync writes here so edits survive a restart before the user
saves a profile or applies it to the game.
"""
from __future__ import annotations

import copy
import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

OPTIONS_CACHE_FILENAME = "control_options_cache.json"
_CACHE_VERSION = 1

LOGGER = logging.getLogger("SCControls.Cache")


def _default_state() -> Dict[str, Any]:
    return {"version": _CACHE_VERSION, "control_options": [], "unsaved": False}


def load_options_cache(path: Path) -> Dict[str, Any]:
    """Tolerant reader; any unreadable or malformed file yields the empty state."""

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return _default_state()
    except (OSError, json.JSONDecodeError) as exc:
        LOGGER.debug("Failed to read options cache %s: %s", path, exc)
        return _default_state()
    if not isinstance(raw, dict):
        return _default_state()
    options = raw.get("control_options")
    if not isinstance(options, list):
        return _default_state()
    version = raw.get("version", _CACHE_VERSION)
    return {
        "version": version if isinstance(version, int) else _CACHE_VERSION,
        "control_options": [group for group in options if isinstance(group, dict)],
        "unsaved": bool(raw.get("unsaved", False)),
        "last_updated": raw.get("last_updated"),
    }


class OptionsCache:
    """Persist control option groups atomically (write ``.tmp`` then replace)."""

    def __init__(self, path: Path, logger: Optional[logging.Logger] = None) -> None:
        self._path = path
        self._logger = logger or LOGGER
        self._state: Dict[str, Any] = load_options_cache(path)

    @property
    def path(self) -> Path:
        return self._path

    def control_options(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._state.get("control_options", []))

    @property
    def unsaved(self) -> bool:
        return bool(self._state.get("unsaved"))

    def write(self, control_options: Sequence[Mapping[str, Any]], *, unsaved: bool = True) -> bool:
        state = {
            "version": _CACHE_VERSION,
            "control_options": [dict(group) for group in control_options],
            "unsaved": unsaved,
            "last_updated": time.time(),
        }
        if not self._write_snapshot(state):
            return False
        self._state = state
        return True

    def reset(self) -> bool:
        """Clear cached options and persist the empty state immediately."""

        state = _default_state()
        if not self._write_snapshot(state):
            return False
        self._state = state
        return True

    def _write_snapshot(self, snapshot: Mapping[str, Any]) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(snapshot, indent=2, sort_keys=True), encoding="utf-8")
            tmp_path.replace(self._path)
            return True
        except (OSError, TypeError, ValueError) as exc:
            self._logger.debug("Failed to write options cache: %s", exc)
            return False


def resolve_cache_path(root: Optional[Path] = None) -> Path:
    base = root if root is not None else Path.cwd()
    return base / OPTIONS_CACHE_FILENAME
