"""Editor configuration: JSON file, environment overrides and build flags."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from controls_editor import __version__

LOGGER = logging.getLogger("SCControls.Config")

CONFIG_FILENAME = "controls_editor.json"
ENV_PREFIX = "SC_CONTROLS_"
DEV_MODE_ENV_VAR = f"{ENV_PREFIX}DEV_MODE"

MIN_DEBOUNCE_SECONDS = 0.05
MAX_INSTANCES_LIMIT = 16
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _coerce_bool(value: Any, default: Optional[bool]) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        token = value.strip().lower()
        if token in {"1", "true", "yes", "on"}:
            return True
        if token in {"0", "false", "no", "off"}:
            return False
    return default


def _coerce_int(value: Any, default: int, *, minimum: Optional[int] = None, maximum: Optional[int] = None) -> int:
    try:
        numeric = int(value)
    except (TypeError, ValueError):
        numeric = default
    if minimum is not None:
        numeric = max(minimum, numeric)
    if maximum is not None:
        numeric = min(maximum, numeric)
    return numeric


def _coerce_float(value: Any, default: float, *, minimum: Optional[float] = None) -> float:
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        numeric = default
    if numeric != numeric:  # NaN
        numeric = default
    if minimum is not None:
        numeric = max(minimum, numeric)
    return numeric


def is_dev_build(version: Optional[str] = None) -> bool:
    """True for ``-dev``/``.devN`` versions unless ``SC_CONTROLS_DEV_MODE`` says otherwise."""

    override = _coerce_bool(os.getenv(DEV_MODE_ENV_VAR), None)
    if override is not None:
        return override
    identifier = (version or __version__ or "").strip().lower()
    return identifier.endswith("-dev") or ".dev" in identifier


@dataclass
class EditorConfig:
    sync_debounce_seconds: float = 0.5
    max_instances: int = 8
    default_sensitivity_min: float = 0.01
    default_sensitivity_max: float = 2.0
    cache_path: Optional[Path] = None
    log_level: str = "INFO"

    @property
    def sensitivity_range(self) -> Tuple[float, float]:
        return (self.default_sensitivity_min, self.default_sensitivity_max)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "sync_debounce_seconds": self.sync_debounce_seconds,
            "max_instances": self.max_instances,
            "default_sensitivity_min": self.default_sensitivity_min,
            "default_sensitivity_max": self.default_sensitivity_max,
            "cache_path": str(self.cache_path) if self.cache_path is not None else None,
            "log_level": self.log_level,
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "EditorConfig":
        defaults = cls()
        sens_min = _coerce_float(data.get("default_sensitivity_min"), defaults.default_sensitivity_min)
        sens_max = _coerce_float(data.get("default_sensitivity_max"), defaults.default_sensitivity_max)
        if sens_min <= 0.0 or sens_max <= sens_min:
            LOGGER.debug("Ignoring invalid sensitivity range %s..%s", sens_min, sens_max)
            sens_min, sens_max = defaults.default_sensitivity_min, defaults.default_sensitivity_max
        raw_cache = data.get("cache_path")
        level = str(data.get("log_level") or defaults.log_level).strip().upper()
        return cls(
            sync_debounce_seconds=_coerce_float(
                data.get("sync_debounce_seconds"),
                defaults.sync_debounce_seconds,
                minimum=MIN_DEBOUNCE_SECONDS,
            ),
            max_instances=_coerce_int(data.get("max_instances"), defaults.max_instances, minimum=1, maximum=MAX_INSTANCES_LIMIT),
            default_sensitivity_min=sens_min,
            default_sensitivity_max=sens_max,
            cache_path=Path(raw_cache) if isinstance(raw_cache, str) and raw_cache.strip() else None,
            log_level=level if level in _LOG_LEVELS else defaults.log_level,
        )


def _environment_overrides(env: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for key in ("sync_debounce_seconds", "max_instances", "default_sensitivity_min", "default_sensitivity_max", "cache_path", "log_level"):
        value = env.get(ENV_PREFIX + key.upper())
        if value is not None and value.strip():
            overrides[key] = value.strip()
    return overrides


def load_editor_config(path: Optional[Path] = None, env: Optional[Mapping[str, str]] = None) -> EditorConfig:
    """Read the config file (missing or malformed means defaults), then apply env overrides."""

    data: Dict[str, Any] = {}
    if path is not None:
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except FileNotFoundError:
            raw = {}
        except (OSError, json.JSONDecodeError) as exc:
            LOGGER.debug("Config file %s is unreadable; using defaults: %s", path, exc)
            raw = {}
        if isinstance(raw, dict):
            data.update(raw)
    data.update(_environment_overrides(os.environ if env is None else env))
    return EditorConfig.from_mapping(data)
