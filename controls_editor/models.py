"""Node, curve and device types shared by the controls editor engine."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Literal, Mapping, Optional, Sequence, Union

Visibility = Union[bool, Literal["inherit"], None]

PATH_SEPARATOR = "."


class DeviceClass(str, Enum):
    KEYBOARD = "keyboard"
    GAMEPAD = "gamepad"
    JOYSTICK = "joystick"

    @property
    def is_multi_instance(self) -> bool:
        return self is not DeviceClass.KEYBOARD

    @classmethod
    def coerce(cls, value: Union[str, "DeviceClass"]) -> "DeviceClass":
        if isinstance(value, DeviceClass):
            return value
        token = str(value or "").strip().lower()
        try:
            return cls(token)
        except ValueError:
            raise ValueError(f"Unknown device class {value!r}") from None


class SectionType(str, Enum):
    INVERSION = "inversion"
    CURVES = "curves"


@dataclass
class CurvePoint:
    input: float
    output: float

    def to_payload(self) -> Dict[str, float]:
        return {"in": self.input, "out": self.output}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CurvePoint":
        """Build a point from an ``{"in": .., "out": ..}`` mapping.

        Raises ``ValueError`` when either coordinate is missing or not a finite number.
        """
        try:
            value_in = float(payload["in"])
            value_out = float(payload["out"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Invalid curve point {payload!r}") from exc
        if not (math.isfinite(value_in) and math.isfinite(value_out)):
            raise ValueError(f"Curve point must be finite: {payload!r}")
        return cls(value_in, value_out)


@dataclass
class Curve:
    """Custom response curve; ``reset`` means linear with no points."""

    reset: bool = False
    points: List[CurvePoint] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.reset:
            self.points = []

    @property
    def has_points(self) -> bool:
        return bool(self.points)

    def copy(self) -> "Curve":
        return Curve(self.reset, [CurvePoint(p.input, p.output) for p in self.points])

    def sorted_points(self) -> List[CurvePoint]:
        return sorted(self.points, key=lambda point: point.input)

    def to_payload(self) -> Dict[str, Any]:
        return {"points": [point.to_payload() for point in self.points]}

    @classmethod
    def from_payload(cls, payload: Any) -> "Curve":
        if isinstance(payload, Curve):
            return payload.copy()
        if not isinstance(payload, Mapping):
            raise ValueError(f"Curve payload must be a mapping, got {type(payload).__name__}")
        reset = bool(payload.get("reset", False))
        raw_points = payload.get("points") or []
        if not isinstance(raw_points, Sequence) or isinstance(raw_points, (str, bytes)):
            raise ValueError("Curve points must be a list")
        return cls(reset, [CurvePoint.from_payload(point) for point in raw_points])


@dataclass
class OptionNode:
    name: str
    label: str
    path: str
    device_class: DeviceClass
    show_invert: Visibility = None
    show_curve: Visibility = None
    show_sensitivity: Visibility = None
    invert: bool = False
    invert_linked_variable: Optional[str] = None
    exponent: Optional[float] = None
    curve: Optional[Curve] = None
    section_type: Optional[SectionType] = None
    is_section: bool = False
    disabled: bool = False
    disabled_reason: Optional[str] = None
    children: List["OptionNode"] = field(default_factory=list)
    # Only populated on tree roots.
    instances: int = 1
    sensitivity_min: Optional[float] = None
    sensitivity_max: Optional[float] = None

    @property
    def is_container(self) -> bool:
        return bool(self.children)

    def disable(self, reason: str) -> None:
        self.disabled = True
        self.disabled_reason = reason

    def iter_descendants(self) -> Iterator["OptionNode"]:
        """Yield every strict descendant, depth first."""
        for child in self.children:
            yield child
            yield from child.iter_descendants()

    def walk(self) -> Iterator["OptionNode"]:
        yield self
        yield from self.iter_descendants()

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "name": self.name,
            "label": self.label,
            "path": self.path,
            "deviceType": self.device_class.value,
            "showInvert": self.show_invert,
            "showCurve": self.show_curve,
            "showSensitivity": self.show_sensitivity,
            "invert": self.invert,
            "invertCvar": self.invert_linked_variable,
            "exponent": self.exponent,
            "curve": None if self.curve is None else {"reset": self.curve.reset, **self.curve.to_payload()},
            "children": [child.to_payload() for child in self.children],
        }
        if self.section_type is not None:
            payload["sectionType"] = self.section_type.value
        if self.is_section:
            payload["isSection"] = True
        if self.disabled:
            payload["disabled"] = True
            payload["disabledReason"] = self.disabled_reason
        return payload


def clone_node(node: OptionNode) -> OptionNode:
    """Return a structural deep copy sharing no mutable state with ``node``."""

    return OptionNode(
        name=node.name,
        label=node.label,
        path=node.path,
        device_class=node.device_class,
        show_invert=node.show_invert,
        show_curve=node.show_curve,
        show_sensitivity=node.show_sensitivity,
        invert=node.invert,
        invert_linked_variable=node.invert_linked_variable,
        exponent=node.exponent,
        curve=node.curve.copy() if node.curve is not None else None,
        section_type=node.section_type,
        is_section=node.is_section,
        disabled=node.disabled,
        disabled_reason=node.disabled_reason,
        children=[clone_node(child) for child in node.children],
        instances=node.instances,
        sensitivity_min=node.sensitivity_min,
        sensitivity_max=node.sensitivity_max,
    )


def split_path(path: str) -> List[str]:
    return path.split(PATH_SEPARATOR) if path else []


def join_path(segments: Sequence[str]) -> str:
    return PATH_SEPARATOR.join(segments)


def option_name(path: str) -> str:
    """Return the final segment of a dotted path."""
    return path.rsplit(PATH_SEPARATOR, 1)[-1]


def find_node_by_path(root: Optional[OptionNode], path: str) -> Optional[OptionNode]:
    if root is None or not path:
        return None
    for node in root.walk():
        if node.path == path:
            return node
    return None


def find_node_by_name(root: Optional[OptionNode], name: str) -> Optional[OptionNode]:
    """Depth-first search for the first node whose ``name`` matches."""
    if root is None or not name:
        return None
    for node in root.walk():
        if node.name == name:
            return node
    return None
