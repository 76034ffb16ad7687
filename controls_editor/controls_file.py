"""The ``.sccontrols`` JSON profile format."""
from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

LOGGER = logging.getLogger("SCControls.ControlsFile")

CONTROLS_FILE_VERSION = "1.0"
CONTROLS_FILE_SUFFIX = ".sccontrols"

OptionSettings = Dict[str, Any]


class ControlsFileError(ValueError):
    """Raised when a profile document is not a usable controls file."""


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _clean_option(name: str, raw: Any) -> OptionSettings:
    """Normalise one option entry to the wire keys; unknown keys are dropped."""

    if not isinstance(raw, Mapping):
        raise ControlsFileError(f"Settings for {name!r} must be an object")
    cleaned: OptionSettings = {}
    invert = raw.get("invert")
    if invert is not None:
        if not isinstance(invert, bool):
            raise ControlsFileError(f"invert for {name!r} must be a boolean")
        cleaned["invert"] = invert
    curve_mode = raw.get("curveMode", raw.get("curve_mode"))
    if curve_mode is not None:
        cleaned["curveMode"] = str(curve_mode)
    exponent = raw.get("exponent")
    if exponent is not None:
        if isinstance(exponent, bool) or not isinstance(exponent, (int, float)) or not math.isfinite(exponent):
            raise ControlsFileError(f"exponent for {name!r} must be a finite number")
        cleaned["exponent"] = float(exponent)
    curve = raw.get("curve")
    if curve is not None:
        cleaned["curve"] = {"points": _clean_points(name, curve)}
    return cleaned


def _clean_points(name: str, curve: Any) -> list:
    if not isinstance(curve, Mapping) or not isinstance(curve.get("points", []), list):
        raise ControlsFileError(f"curve for {name!r} must be an object with a points list")
    points = []
    for point in curve.get("points", []):
        try:
            points.append({"in": float(point["in"]), "out": float(point["out"])})
        except (KeyError, TypeError, ValueError):
            raise ControlsFileError(f"Malformed curve point for {name!r}: {point!r}") from None
    return points


@dataclass
class DeviceInstanceSettings:
    options: Dict[str, OptionSettings] = field(default_factory=dict)
    product: Optional[str] = None

    @classmethod
    def from_options(cls, options: Mapping[str, Any], product: Optional[str] = None) -> "DeviceInstanceSettings":
        """Build from a name-keyed mapping, dropping entries with no fields."""

        cleaned: Dict[str, OptionSettings] = {}
        for name, raw in options.items():
            entry = _clean_option(str(name), raw)
            if entry:
                cleaned[str(name)] = entry
        return cls(cleaned, product)

    @classmethod
    def from_payload(cls, payload: Any) -> "DeviceInstanceSettings":
        if not isinstance(payload, Mapping):
            raise ControlsFileError("Device settings must be an object")
        options = payload.get("options")
        if not isinstance(options, Mapping):
            raise ControlsFileError("Device settings are missing an options object")
        product = payload.get("product")
        return cls.from_options(options, str(product) if product else None)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if self.product:
            payload["product"] = self.product
        payload["options"] = {name: dict(settings) for name, settings in sorted(self.options.items())}
        return payload


def _instances_from_payload(raw: Any) -> Dict[str, DeviceInstanceSettings]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ControlsFileError("Multi-instance device settings must be an object")
    # Early files stored a single gamepad block instead of per-instance blocks.
    if "options" in raw:
        return {"1": DeviceInstanceSettings.from_payload(raw)}
    return {str(number): DeviceInstanceSettings.from_payload(settings) for number, settings in raw.items()}


@dataclass
class ControlsFile:
    profile_name: str
    version: str = CONTROLS_FILE_VERSION
    last_modified: Optional[str] = None
    keyboard: Optional[DeviceInstanceSettings] = None
    gamepad: Dict[str, DeviceInstanceSettings] = field(default_factory=dict)
    joystick: Dict[str, DeviceInstanceSettings] = field(default_factory=dict)

    @classmethod
    def new(cls, profile_name: str) -> "ControlsFile":
        return cls(profile_name=profile_name, last_modified=_timestamp())

    def touch(self) -> None:
        self.last_modified = _timestamp()

    @classmethod
    def from_devices(cls, profile_name: str, devices: Mapping[str, Any]) -> "ControlsFile":
        """Build a profile from the persistence record shape (name-keyed options)."""

        controls = cls.new(profile_name)
        keyboard = devices.get("keyboard")
        if isinstance(keyboard, Mapping):
            settings = DeviceInstanceSettings.from_options(keyboard)
            controls.keyboard = settings if settings.options else None
        for attr in ("gamepad", "joystick"):
            per_instance = devices.get(attr)
            if not isinstance(per_instance, Mapping):
                continue
            target: Dict[str, DeviceInstanceSettings] = getattr(controls, attr)
            for number, options in per_instance.items():
                if not isinstance(options, Mapping):
                    continue
                settings = DeviceInstanceSettings.from_options(options)
                if settings.options:
                    target[str(number)] = settings
        return controls

    def to_load_record(self) -> Dict[str, Any]:
        """Name-keyed device settings, ``None`` for classes with nothing stored."""

        def _instances(source: Dict[str, DeviceInstanceSettings]) -> Optional[Dict[str, Any]]:
            if not source:
                return None
            return {number: {name: dict(opts) for name, opts in settings.options.items()} for number, settings in source.items()}

        keyboard = None
        if self.keyboard is not None:
            keyboard = {name: dict(opts) for name, opts in self.keyboard.options.items()}
        return {"keyboard": keyboard, "gamepad": _instances(self.gamepad), "joystick": _instances(self.joystick)}

    def to_payload(self) -> Dict[str, Any]:
        def _instances(source: Dict[str, DeviceInstanceSettings]) -> Optional[Dict[str, Any]]:
            if not source:
                return None
            return {number: source[number].to_payload() for number in sorted(source, key=instance_sort_key)}

        return {
            "version": self.version,
            "profile_name": self.profile_name,
            "last_modified": self.last_modified,
            "devices": {
                "keyboard": self.keyboard.to_payload() if self.keyboard is not None else None,
                "gamepad": _instances(self.gamepad),
                "joystick": _instances(self.joystick),
            },
        }

    def to_json(self) -> str:
        return json.dumps(self.to_payload(), indent=2)

    @classmethod
    def from_payload(cls, payload: Any) -> "ControlsFile":
        if not isinstance(payload, Mapping):
            raise ControlsFileError("Controls file root must be an object")
        version = payload.get("version")
        profile_name = payload.get("profile_name")
        if not isinstance(version, str) or not version:
            raise ControlsFileError("Controls file is missing its version")
        if not isinstance(profile_name, str):
            raise ControlsFileError("Controls file is missing its profile_name")
        if version != CONTROLS_FILE_VERSION:
            LOGGER.warning("Controls file version %s differs from %s; reading anyway", version, CONTROLS_FILE_VERSION)
        devices = payload.get("devices")
        if devices is None:
            devices = {}
        if not isinstance(devices, Mapping):
            raise ControlsFileError("Controls file devices must be an object")
        keyboard_raw = devices.get("keyboard")
        last_modified = payload.get("last_modified")
        return cls(
            profile_name=profile_name,
            version=version,
            last_modified=str(last_modified) if last_modified else None,
            keyboard=DeviceInstanceSettings.from_payload(keyboard_raw) if keyboard_raw is not None else None,
            gamepad=_instances_from_payload(devices.get("gamepad")),
            joystick=_instances_from_payload(devices.get("joystick")),
        )

    @classmethod
    def from_json(cls, text: str) -> "ControlsFile":
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ControlsFileError(f"Failed to parse controls file: {exc}") from exc
        return cls.from_payload(payload)

    @classmethod
    def read(cls, path: Path) -> "ControlsFile":
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise ControlsFileError(f"Unable to read {path}: {exc}") from exc
        return cls.from_json(text)

    def write(self, path: Path) -> None:
        """Write atomically (``.tmp`` then replace)."""

        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = target.with_suffix(target.suffix + ".tmp")
        tmp_path.write_text(self.to_json(), encoding="utf-8")
        tmp_path.replace(target)
        LOGGER.debug("Wrote controls profile %s to %s", self.profile_name, target)


def instance_sort_key(number: str) -> tuple:
    return (0, int(number), number) if number.isdigit() else (1, 0, number)
