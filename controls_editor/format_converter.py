"""Convert between path-keyed store buckets and name-keyed flat formats.

Flat lists (``{"name", "invert"?, "exponent"?, "curve"?}``) are what the
sync/apply collaborators consume. The persistence record is the profile save
shape and keeps ``invert`` only, since the game does not read curve or
exponent values back from imported profiles.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional

from controls_editor.models import Curve, CurvePoint, DeviceClass, OptionNode, find_node_by_name, option_name
from controls_editor.settings_store import (
    CURVE_MODE_CURVE,
    CURVE_MODE_EXPONENT,
    SETTING_CURVE,
    SETTING_CURVE_MODE,
    SETTING_EXPONENT,
    SETTING_INVERT,
    DeviceSelection,
    SettingsError,
    SettingsRecord,
    SettingsStore,
    normalise_setting,
)

LOGGER = logging.getLogger("SCControls.Format")

IDENTITY_EXPONENT = 1.0
FlatEntry = Dict[str, Any]
Trees = Mapping[DeviceClass, OptionNode]

# Wire names used by the profile file for each record key.
_LOAD_RECORD_KEYS = {
    SETTING_INVERT: SETTING_INVERT,
    "curveMode": SETTING_CURVE_MODE,
    SETTING_CURVE_MODE: SETTING_CURVE_MODE,
    SETTING_EXPONENT: SETTING_EXPONENT,
    SETTING_CURVE: SETTING_CURVE,
}


def _flat_entry(path: str, record: Mapping[str, Any]) -> Optional[FlatEntry]:
    mode = record.get(SETTING_CURVE_MODE) or CURVE_MODE_EXPONENT
    exponent = record.get(SETTING_EXPONENT)
    curve = record.get(SETTING_CURVE)

    has_invert = SETTING_INVERT in record
    has_exponent = mode == CURVE_MODE_EXPONENT and exponent is not None and exponent != IDENTITY_EXPONENT
    has_curve = mode == CURVE_MODE_CURVE and isinstance(curve, Curve) and curve.has_points
    if not (has_invert or has_exponent or has_curve):
        return None

    entry: FlatEntry = {"name": option_name(path)}
    if has_invert:
        entry["invert"] = bool(record[SETTING_INVERT])
    if has_exponent:
        entry["exponent"] = float(exponent)
    elif has_curve:
        entry["exponent"] = IDENTITY_EXPONENT
    if has_curve:
        entry["curve"] = curve.to_payload()
    return entry


def to_flat_list(store: SettingsStore, device_class: Any, instance: int = 1) -> Optional[List[FlatEntry]]:
    """Flatten one bucket's explicit settings; ``None`` when nothing to persist."""

    selection = DeviceSelection.of(device_class, instance)
    entries: List[FlatEntry] = []
    for path, record in store.bucket(selection).items():
        entry = _flat_entry(path, record)
        if entry is None:
            LOGGER.debug("Skipping %s: no persistable settings", path)
            continue
        entries.append(entry)
    return entries or None


def all_control_options(store: SettingsStore, max_instances: Optional[int] = None) -> List[Dict[str, Any]]:
    """Flat lists for every class/instance that has something to persist.

    Built under the store lock so a sync thread never sees half of an edit.
    """

    limit = store.max_instances if max_instances is None else min(int(max_instances), store.max_instances)
    groups: List[Dict[str, Any]] = []
    with store.lock:
        for device_class in DeviceClass:
            numbers = range(1, limit + 1) if device_class.is_multi_instance else (1,)
            for number in numbers:
                options = to_flat_list(store, device_class, number)
                if options:
                    groups.append({"device_type": device_class.value, "instance": number, "options": options})
    return groups


def _coerce_invert(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip() in {"1", "true", "True"}
    return bool(value)


def _curve_points(raw_curve: Any) -> List[CurvePoint]:
    if isinstance(raw_curve, Curve):
        return [CurvePoint(point.input, point.output) for point in raw_curve.points]
    if not isinstance(raw_curve, Mapping):
        return []
    points: List[CurvePoint] = []
    for raw_point in raw_curve.get("points") or ():
        try:
            points.append(CurvePoint.from_payload(raw_point))
        except ValueError as exc:
            LOGGER.warning("Ignoring malformed curve point: %s", exc)
    return points


def record_from_flat_entry(entry: Mapping[str, Any]) -> SettingsRecord:
    """Rebuild a record; a non-empty curve always wins the curve mode."""

    record: SettingsRecord = {}
    if entry.get("invert") is not None:
        record[SETTING_INVERT] = _coerce_invert(entry["invert"])
    points = _curve_points(entry.get("curve"))
    raw_exponent = entry.get("exponent")
    if raw_exponent is not None:
        try:
            exponent = float(raw_exponent)
        except (TypeError, ValueError):
            exponent = math.nan
        if math.isfinite(exponent) and exponent > 0.0:
            record[SETTING_EXPONENT] = exponent
            if not points:
                record[SETTING_CURVE_MODE] = CURVE_MODE_EXPONENT
        else:
            LOGGER.warning("Ignoring invalid exponent %r for %s", raw_exponent, entry.get("name"))
    if points:
        record[SETTING_CURVE_MODE] = CURVE_MODE_CURVE
        record[SETTING_CURVE] = Curve(reset=False, points=points)
    return record


def resolve_canonical_path(tree: Optional[OptionNode], name: str) -> str:
    """Full tree path for an option name, or the bare name when not in the tree."""

    node = find_node_by_name(tree, name)
    if node is not None and node.path:
        return node.path
    return name


def from_flat_list(
    store: SettingsStore,
    trees: Optional[Trees],
    device_class: Any,
    instance: int,
    entries: Iterable[Mapping[str, Any]],
) -> int:
    """Load flat entries into one bucket, replacing records path by path."""

    selection = DeviceSelection.of(device_class, instance)
    tree = trees.get(selection.device_class) if trees else None
    records = store.bucket(selection)
    loaded = 0
    for entry in entries or ():
        if not isinstance(entry, Mapping):
            continue
        name = str(entry.get("name") or "").strip()
        if not name:
            continue
        record = record_from_flat_entry(entry)
        if not record:
            continue
        records[resolve_canonical_path(tree, name)] = record
        loaded += 1
    store.replace_bucket(selection, records)
    return loaded


def load_flat_groups(store: SettingsStore, trees: Optional[Trees], groups: Iterable[Mapping[str, Any]]) -> int:
    """Replace the whole store with grouped flat lists."""

    store.clear()
    loaded = 0
    for group in groups or ():
        device_type = group.get("device_type") or group.get("deviceType")
        options = group.get("options") or group.get("control_options") or ()
        try:
            loaded += from_flat_list(store, trees, device_type, int(group.get("instance") or 1), options)
        except (SettingsError, TypeError, ValueError) as exc:
            LOGGER.warning("Skipping control options for %s: %s", device_type, exc)
    return loaded


def _persist_bucket(bucket: Mapping[str, Mapping[str, Any]]) -> Dict[str, Dict[str, bool]]:
    result: Dict[str, Dict[str, bool]] = {}
    for path, record in bucket.items():
        if SETTING_INVERT in record:
            result[option_name(path)] = {"invert": bool(record[SETTING_INVERT])}
    return result


def to_persistence_record(store: SettingsStore) -> Dict[str, Any]:
    """Invert-only save shape keyed by option name (and instance number)."""

    keyboard = _persist_bucket(store.bucket(DeviceSelection(DeviceClass.KEYBOARD)))
    devices: Dict[str, Any] = {DeviceClass.KEYBOARD.value: keyboard or None}
    for device_class in (DeviceClass.GAMEPAD, DeviceClass.JOYSTICK):
        per_instance: Dict[str, Any] = {}
        for number in store.instances(device_class):
            persisted = _persist_bucket(store.bucket(DeviceSelection(device_class, number)))
            if persisted:
                per_instance[str(number)] = persisted
        devices[device_class.value] = per_instance or None
    return devices


def record_from_load_entry(settings: Mapping[str, Any]) -> SettingsRecord:
    record: SettingsRecord = {}
    for wire_key, setting in _LOAD_RECORD_KEYS.items():
        value = settings.get(wire_key)
        if value is None or setting in record:
            continue
        try:
            record[setting] = normalise_setting(setting, value)
        except SettingsError as exc:
            LOGGER.warning("Ignoring %s in loaded settings: %s", wire_key, exc)
    return record


def _load_bucket(tree: Optional[OptionNode], options: Any) -> Dict[str, SettingsRecord]:
    records: Dict[str, SettingsRecord] = {}
    if not isinstance(options, Mapping):
        return records
    for name, settings in options.items():
        if not isinstance(settings, Mapping):
            continue
        record = record_from_load_entry(settings)
        if record:
            records[resolve_canonical_path(tree, str(name)) if tree is not None else str(name)] = record
    return records


def from_load_record(store: SettingsStore, devices: Mapping[str, Any], trees: Optional[Trees] = None) -> None:
    """Replace the store from the profile load shape.

    Keys stay bare option names unless ``trees`` is given, in which case they
    are resolved to canonical paths once here.
    """

    store.clear()
    if not isinstance(devices, Mapping):
        return
    keyboard_tree = trees.get(DeviceClass.KEYBOARD) if trees else None
    store.replace_bucket(DeviceSelection(DeviceClass.KEYBOARD), _load_bucket(keyboard_tree, devices.get("keyboard")))
    for device_class in (DeviceClass.GAMEPAD, DeviceClass.JOYSTICK):
        per_instance = devices.get(device_class.value)
        if not isinstance(per_instance, Mapping):
            continue
        tree = trees.get(device_class) if trees else None
        for instance_key, options in per_instance.items():
            try:
                selection = DeviceSelection.of(device_class, instance_key)
                store.replace_bucket(selection, _load_bucket(tree, options))
            except SettingsError as exc:
                LOGGER.warning("Skipping %s instance %s: %s", device_class.value, instance_key, exc)
