"""Path-keyed user settings with ancestor inheritance.

Keyboard settings live in a single ``path -> record`` mapping; gamepad and
joystick settings are keyed by instance number first. A record is a plain dict
holding any of ``invert``, ``curve_mode``, ``exponent`` and ``curve``; a
missing key means "not set at this node".
"""
from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from controls_editor.curve_math import curve_preset, next_point_input
from controls_editor.models import (
    Curve,
    CurvePoint,
    DeviceClass,
    OptionNode,
    join_path,
    option_name,
    split_path,
)

LOGGER = logging.getLogger("SCControls.Store")

SETTING_INVERT = "invert"
SETTING_CURVE_MODE = "curve_mode"
SETTING_EXPONENT = "exponent"
SETTING_CURVE = "curve"
SETTING_NAMES = frozenset({SETTING_INVERT, SETTING_CURVE_MODE, SETTING_EXPONENT, SETTING_CURVE})

CURVE_MODE_EXPONENT = "exponent"
CURVE_MODE_CURVE = "curve"
CURVE_MODES = frozenset({CURVE_MODE_EXPONENT, CURVE_MODE_CURVE})

DEFAULT_MAX_INSTANCES = 8

SettingsRecord = Dict[str, Any]
PathSettings = Dict[str, SettingsRecord]


class SettingsError(ValueError):
    """Raised for invalid setting names, values or device selections."""


@dataclass(frozen=True)
class DeviceSelection:
    device_class: DeviceClass
    instance: int = 1

    @classmethod
    def of(cls, device_class: Any, instance: Any = 1) -> "DeviceSelection":
        try:
            resolved = DeviceClass.coerce(device_class)
        except ValueError as exc:
            raise SettingsError(str(exc)) from None
        try:
            number = int(instance)
        except (TypeError, ValueError):
            raise SettingsError(f"Instance must be an integer, got {instance!r}") from None
        return cls(resolved, number)


@dataclass(frozen=True)
class InheritedValue:
    value: Any
    inherited: bool = False
    inherited_from: Optional[str] = None


def _copy_value(value: Any) -> Any:
    return value.copy() if isinstance(value, Curve) else value


def normalise_setting(setting: str, value: Any) -> Any:
    """Validate a setting value at the point it is authored."""

    if setting not in SETTING_NAMES:
        raise SettingsError(f"Unknown setting {setting!r}")
    if value is None:
        raise SettingsError(f"{setting} cannot be None; reset the node instead")
    if setting == SETTING_INVERT:
        return bool(value)
    if setting == SETTING_CURVE_MODE:
        token = str(value).strip().lower()
        if token not in CURVE_MODES:
            raise SettingsError(f"Unknown curve mode {value!r}")
        return token
    if setting == SETTING_EXPONENT:
        try:
            exponent = float(value)
        except (TypeError, ValueError):
            raise SettingsError(f"Exponent must be numeric, got {value!r}") from None
        if not math.isfinite(exponent) or exponent <= 0.0:
            raise SettingsError(f"Exponent must be a positive finite number, got {value!r}")
        return exponent
    try:
        return Curve.from_payload(value)
    except ValueError as exc:
        raise SettingsError(str(exc)) from None


class SettingsStore:
    """In-memory settings for every device class and instance of one profile."""

    def __init__(
        self,
        max_instances: int = DEFAULT_MAX_INSTANCES,
        on_change: Optional[Callable[[], None]] = None,
    ) -> None:
        self._max_instances = max(1, int(max_instances))
        self._on_change = on_change
        # Guards every bucket; the debounced sync reads from a timer thread.
        self._lock = threading.RLock()
        self._keyboard: PathSettings = {}
        self._instances: Dict[DeviceClass, Dict[int, PathSettings]] = {
            DeviceClass.GAMEPAD: {},
            DeviceClass.JOYSTICK: {},
        }
        self._dirty = False

    # Bookkeeping ---------------------------------------------------------

    @property
    def max_instances(self) -> int:
        return self._max_instances

    @property
    def lock(self) -> threading.RLock:
        """Reentrant lock; hold it to read several buckets as one snapshot."""

        return self._lock

    @property
    def dirty(self) -> bool:
        return self._dirty

    def mark_saved(self) -> None:
        self._dirty = False

    def set_change_listener(self, listener: Optional[Callable[[], None]]) -> None:
        self._on_change = listener

    def _touch(self) -> None:
        self._dirty = True
        listener = self._on_change
        if listener is not None:
            listener()

    def _validate(self, selection: DeviceSelection) -> DeviceSelection:
        if not selection.device_class.is_multi_instance:
            return selection
        if not 1 <= selection.instance <= self._max_instances:
            raise SettingsError(
                f"{selection.device_class.value} instance {selection.instance} outside 1..{self._max_instances}"
            )
        return selection

    def _bucket(self, selection: DeviceSelection, *, create: bool = False) -> Optional[PathSettings]:
        selection = self._validate(selection)
        if not selection.device_class.is_multi_instance:
            return self._keyboard
        per_instance = self._instances[selection.device_class]
        bucket = per_instance.get(selection.instance)
        if bucket is None and create:
            bucket = per_instance.setdefault(selection.instance, {})
        return bucket

    def bucket(self, selection: DeviceSelection) -> Dict[str, SettingsRecord]:
        """Snapshot of one bucket; editing it does not touch the store."""

        with self._lock:
            bucket = self._bucket(selection) or {}
            return {path: {key: _copy_value(value) for key, value in record.items()} for path, record in bucket.items()}

    def instances(self, device_class: DeviceClass) -> List[int]:
        with self._lock:
            if not device_class.is_multi_instance:
                return [1] if self._keyboard else []
            return sorted(number for number, bucket in self._instances[device_class].items() if bucket)

    def has_settings(self) -> bool:
        with self._lock:
            if self._keyboard:
                return True
            return any(bucket for per_instance in self._instances.values() for bucket in per_instance.values())

    def clear(self) -> None:
        with self._lock:
            self._keyboard = {}
            for device_class in self._instances:
                self._instances[device_class] = {}
            self._dirty = False

    def replace_bucket(self, selection: DeviceSelection, records: Mapping[str, Mapping[str, Any]]) -> None:
        """Install validated records for one bucket without notifying listeners."""

        cleaned: PathSettings = {}
        for path, record in records.items():
            entry = {setting: normalise_setting(setting, value) for setting, value in record.items() if value is not None}
            if entry:
                cleaned[str(path)] = entry
        selection = self._validate(selection)
        with self._lock:
            if selection.device_class.is_multi_instance:
                self._instances[selection.device_class][selection.instance] = cleaned
            else:
                self._keyboard = cleaned

    def replace_all(
        self,
        keyboard: Optional[Mapping[str, Mapping[str, Any]]] = None,
        gamepad: Optional[Mapping[int, Mapping[str, Mapping[str, Any]]]] = None,
        joystick: Optional[Mapping[int, Mapping[str, Mapping[str, Any]]]] = None,
    ) -> None:
        """Swap in a whole profile at once; the store ends up clean."""

        with self._lock:
            self.clear()
            self.replace_bucket(DeviceSelection(DeviceClass.KEYBOARD), keyboard or {})
            for device_class, per_instance in ((DeviceClass.GAMEPAD, gamepad), (DeviceClass.JOYSTICK, joystick)):
                for number, records in (per_instance or {}).items():
                    self.replace_bucket(DeviceSelection.of(device_class, number), records)

    # Lookups -------------------------------------------------------------

    @staticmethod
    def _short_name_lookup(bucket: Mapping[str, SettingsRecord], path: str, setting: str) -> Any:
        """Degraded lookup by the final path segment, for name-keyed imports."""

        short_name = option_name(path)
        if short_name == path:
            return None
        record = bucket.get(short_name)
        if record is None:
            return None
        return record.get(setting)

    def get_direct(self, selection: DeviceSelection, path: str, setting: str) -> Any:
        with self._lock:
            bucket = self._bucket(selection)
            if not bucket:
                return None
            record = bucket.get(path)
            if record is not None and setting in record:
                return _copy_value(record[setting])
            return _copy_value(self._short_name_lookup(bucket, path, setting))

    def has_own_setting(self, selection: DeviceSelection, path: str, setting: str) -> bool:
        return self.get_direct(selection, path, setting) is not None

    def get_with_inheritance(self, selection: DeviceSelection, path: str, setting: str, default: Any = None) -> InheritedValue:
        direct = self.get_direct(selection, path, setting)
        if direct is not None:
            return InheritedValue(direct)
        segments = split_path(path)
        for depth in range(len(segments) - 1, 0, -1):
            ancestor_path = join_path(segments[:depth])
            value = self.get_direct(selection, ancestor_path, setting)
            if value is not None:
                return InheritedValue(value, True, segments[depth - 1])
        return InheritedValue(default)

    # Mutation ------------------------------------------------------------

    def _write(self, selection: DeviceSelection, path: str, setting: str, value: Any) -> None:
        with self._lock:
            bucket = self._bucket(selection, create=True)
            assert bucket is not None
            bucket.setdefault(path, {})[setting] = value

    def set(self, selection: DeviceSelection, path: str, setting: str, value: Any) -> None:
        normalised = normalise_setting(setting, value)
        self._write(selection, path, setting, normalised)
        LOGGER.debug("Set %s=%r at %s (%s #%d)", setting, value, path, selection.device_class.value, selection.instance)
        self._touch()

    def reset_node(self, selection: DeviceSelection, path: str) -> bool:
        """Drop the record stored at ``path`` (descendants are untouched)."""

        with self._lock:
            bucket = self._bucket(selection)
            if not bucket or path not in bucket:
                return False
            del bucket[path]
        self._touch()
        return True

    def propagate_to_descendants(self, selection: DeviceSelection, node: OptionNode, setting: str, value: Any) -> int:
        """Explicitly write ``value`` to every strict descendant of ``node``.

        Exponent and curve writes also switch each descendant's curve mode.
        Returns the number of nodes written.
        """

        normalised = normalise_setting(setting, value)
        mode = {SETTING_EXPONENT: CURVE_MODE_EXPONENT, SETTING_CURVE: CURVE_MODE_CURVE}.get(setting)
        written = 0
        with self._lock:
            for descendant in node.iter_descendants():
                if mode is not None:
                    self._write(selection, descendant.path, SETTING_CURVE_MODE, mode)
                self._write(selection, descendant.path, setting, _copy_value(normalised))
                written += 1
        if written:
            LOGGER.debug("Propagated %s to %d descendant(s) of %s", setting, written, node.name)
            self._touch()
        return written

    # Curve editing -------------------------------------------------------

    def _current_curve(self, selection: DeviceSelection, path: str, default_curve: Optional[Curve]) -> Curve:
        curve = self.get_direct(selection, path, SETTING_CURVE)
        if curve is None:
            curve = default_curve.copy() if default_curve is not None else Curve()
        return Curve(False, list(curve.points))

    def _submit_curve(self, selection: DeviceSelection, path: str, curve: Curve) -> Curve:
        with self._lock:
            self._write(selection, path, SETTING_CURVE_MODE, CURVE_MODE_CURVE)
            self._write(selection, path, SETTING_CURVE, curve)
        self._touch()
        return curve.copy()

    def apply_curve_preset(self, selection: DeviceSelection, path: str, preset: str) -> Curve:
        try:
            curve = curve_preset(preset)
        except KeyError:
            raise SettingsError(f"Unknown curve preset {preset!r}") from None
        LOGGER.debug("Applying preset %s to %s", preset, path)
        return self._submit_curve(selection, path, curve)

    def add_curve_point(self, selection: DeviceSelection, path: str, default_curve: Optional[Curve] = None) -> Curve:
        curve = self._current_curve(selection, path, default_curve)
        new_input = next_point_input(curve.points)
        curve.points.append(CurvePoint(new_input, new_input))
        curve.points.sort(key=lambda point: point.input)
        return self._submit_curve(selection, path, curve)

    def update_curve_point(
        self,
        selection: DeviceSelection,
        path: str,
        index: int,
        field: str,
        value: Any,
        default_curve: Optional[Curve] = None,
    ) -> Curve:
        if field not in ("in", "out"):
            raise SettingsError(f"Curve point field must be 'in' or 'out', got {field!r}")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise SettingsError(f"Curve point value must be numeric, got {value!r}") from None
        if not math.isfinite(number):
            raise SettingsError(f"Curve point value must be finite, got {value!r}")
        curve = self._current_curve(selection, path, default_curve)
        if not 0 <= index < len(curve.points):
            raise SettingsError(f"No curve point at index {index}")
        clamped = max(0.0, min(1.0, number))
        point = curve.points[index]
        if field == "in":
            curve.points[index] = CurvePoint(clamped, point.output)
        else:
            curve.points[index] = CurvePoint(point.input, clamped)
        return self._submit_curve(selection, path, curve)

    def remove_curve_point(self, selection: DeviceSelection, path: str, index: int, default_curve: Optional[Curve] = None) -> Curve:
        curve = self._current_curve(selection, path, default_curve)
        if not 0 <= index < len(curve.points):
            raise SettingsError(f"No curve point at index {index}")
        del curve.points[index]
        return self._submit_curve(selection, path, curve)
