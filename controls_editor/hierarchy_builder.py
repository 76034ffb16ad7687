"""Build normalized option trees from the raw option-group hierarchy.

The raw hierarchy is a nested mapping per device class, mirroring the
``<optiontree>``/``<optiongroup>`` attributes of the game's binding catalogue:

    {"name": ..., "UILabel": ..., "UIShowInvert": "-1", "invert": "1",
     "invert_cvar": ..., "exponent": "1.5",
     "nonlinearity_curve": {"reset": "0", "points": [{"in": .., "out": ..}]},
     "children": [ ...same shape... ]}

Roots additionally carry ``instances``, ``UISensitivityMin`` and
``UISensitivityMax``. ``raw_groups_from_xml`` produces this shape from XML.
"""
from __future__ import annotations

import logging
import math
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from lxml import etree

from controls_editor.display_transform import build_display_trees
from controls_editor.models import Curve, CurvePoint, DeviceClass, OptionNode, Visibility

LOGGER = logging.getLogger("SCControls.Hierarchy")

DEFAULT_ROOT_NAME = "root"
DEFAULT_SENSITIVITY_RANGE: Tuple[float, float] = (0.01, 2.0)
DEFAULT_JOYSTICK_INSTANCES = 8

_DEFAULT_ROOT_LABELS = {
    DeviceClass.KEYBOARD: "Keyboard Settings",
    DeviceClass.GAMEPAD: "Gamepad Settings",
    DeviceClass.JOYSTICK: "Joystick Settings",
}


_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


class HierarchyError(ValueError):
    """Raised when the raw option hierarchy cannot be parsed."""


def parse_visibility(raw: Any) -> Visibility:
    """Map the UIShow* tri-state: -1 inherit, 0 hidden, 1 shown, else unset."""

    if raw is None:
        return None
    match = _LEADING_INT_RE.match(str(raw))
    if match is None:
        return None
    value = int(match.group(1))
    if value == -1:
        return "inherit"
    if value == 0:
        return False
    if value == 1:
        return True
    return None


def _parse_exponent(raw: Any) -> Optional[float]:
    if raw is None:
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value <= 0.0:
        return None
    return value


def _parse_float(raw: Any, default: float) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(value) or value == 0.0:
        return default
    return value


def _parse_instances(raw: Any, default: int = 1) -> int:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def parse_curve(raw: Mapping[str, Any]) -> Curve:
    if str(raw.get("reset", "")).strip() == "1":
        return Curve(reset=True)
    points: List[CurvePoint] = []
    for raw_point in raw.get("points") or ():
        try:
            points.append(CurvePoint.from_payload(raw_point))
        except ValueError as exc:
            LOGGER.debug("Skipping malformed curve point: %s", exc)
    return Curve(reset=False, points=points)


def build_option_node(raw: Mapping[str, Any], device_class: DeviceClass, parent_path: str = "") -> OptionNode:
    """Depth-first conversion of one raw option group and its children."""

    raw_name = raw.get("name")
    name = str(raw_name) if raw_name else DEFAULT_ROOT_NAME
    label = raw.get("UILabel") or raw_name or "Unknown"
    path = f"{parent_path}.{name}" if parent_path else name

    curve_raw = raw.get("nonlinearity_curve")
    node = OptionNode(
        name=name,
        label=str(label),
        path=path,
        device_class=device_class,
        show_invert=parse_visibility(raw.get("UIShowInvert")),
        show_curve=parse_visibility(raw.get("UIShowCurve")),
        show_sensitivity=parse_visibility(raw.get("UIShowSensitivity")),
        invert=str(raw.get("invert", "")).strip() == "1",
        invert_linked_variable=raw.get("invert_cvar") or None,
        exponent=_parse_exponent(raw.get("exponent")),
        curve=parse_curve(curve_raw) if isinstance(curve_raw, Mapping) else None,
    )
    seen: set[str] = set()
    for child_raw in raw.get("children") or ():
        if not isinstance(child_raw, Mapping):
            continue
        child = build_option_node(child_raw, device_class, path)
        if child.name in seen:
            LOGGER.debug("Duplicate option group %s under %s; keeping the first", child.name, path)
            continue
        seen.add(child.name)
        node.children.append(child)
    return node


def build_option_root(
    raw: Mapping[str, Any],
    device_class: DeviceClass,
    sensitivity_range: Tuple[float, float] = DEFAULT_SENSITIVITY_RANGE,
) -> OptionNode:
    root = build_option_node(raw, device_class)
    root.instances = _parse_instances(raw.get("instances"))
    root.sensitivity_min = _parse_float(raw.get("UISensitivityMin"), sensitivity_range[0])
    root.sensitivity_max = _parse_float(raw.get("UISensitivityMax"), sensitivity_range[1])
    return root


def default_option_root(device_class: DeviceClass) -> OptionNode:
    """Empty-but-valid root used when a class has no usable source data."""

    return OptionNode(
        name=DEFAULT_ROOT_NAME,
        label=_DEFAULT_ROOT_LABELS[device_class],
        path=DEFAULT_ROOT_NAME,
        device_class=device_class,
        instances=DEFAULT_JOYSTICK_INSTANCES if device_class is DeviceClass.JOYSTICK else 1,
    )


def default_option_trees() -> Dict[DeviceClass, OptionNode]:
    return {device_class: default_option_root(device_class) for device_class in DeviceClass}


def build_option_trees(
    raw_by_class: Mapping[str, Any],
    sensitivity_range: Tuple[float, float] = DEFAULT_SENSITIVITY_RANGE,
) -> Dict[DeviceClass, OptionNode]:
    """Build one normalized tree per device class, substituting empty roots."""

    trees: Dict[DeviceClass, OptionNode] = {}
    for device_class in DeviceClass:
        raw = raw_by_class.get(device_class.value) if isinstance(raw_by_class, Mapping) else None
        if not isinstance(raw, Mapping):
            LOGGER.warning("No option tree for %s; using an empty tree", device_class.value)
            trees[device_class] = default_option_root(device_class)
            continue
        try:
            trees[device_class] = build_option_root(raw, device_class, sensitivity_range)
        except (TypeError, ValueError, AttributeError) as exc:
            LOGGER.warning("Failed to build option tree for %s: %s", device_class.value, exc)
            trees[device_class] = default_option_root(device_class)
    return trees


def _element_to_raw(element: Any) -> Dict[str, Any]:
    raw: Dict[str, Any] = dict(element.attrib)
    children: List[Dict[str, Any]] = []
    for child in element:
        if not isinstance(child.tag, str):
            continue
        if child.tag == "optiongroup":
            children.append(_element_to_raw(child))
        elif child.tag == "nonlinearity_curve" and "nonlinearity_curve" not in raw:
            raw["nonlinearity_curve"] = {
                "reset": child.get("reset"),
                "points": [dict(point.attrib) for point in child.iter("point")],
            }
    raw["children"] = children
    return raw


def raw_groups_from_xml(xml_text: str) -> Dict[str, Dict[str, Any]]:
    """Extract raw option groups keyed by ``optiontree@type``."""

    data = xml_text.encode("utf-8") if isinstance(xml_text, str) else xml_text
    parser = etree.XMLParser(resolve_entities=False, remove_comments=True, huge_tree=True)
    try:
        document = etree.fromstring(data, parser=parser)
    except (etree.XMLSyntaxError, ValueError) as exc:
        raise HierarchyError(f"Unable to parse option tree XML: {exc}") from exc
    if document is None:
        raise HierarchyError("Option tree XML is empty")

    known = {device_class.value for device_class in DeviceClass}
    result: Dict[str, Dict[str, Any]] = {}
    for tree in document.iter("optiontree"):
        tree_type = tree.get("type")
        if tree_type not in known:
            continue
        result[tree_type] = _element_to_raw(tree)
    return result


def load_option_trees_from_xml(
    xml_text: Optional[str],
    sensitivity_range: Tuple[float, float] = DEFAULT_SENSITIVITY_RANGE,
) -> Dict[DeviceClass, OptionNode]:
    """Parse, normalize and reshape option trees; never raises.

    Returns display trees for all three device classes, falling back to the
    default empty trees when the XML is missing or malformed.
    """

    if not xml_text:
        LOGGER.warning("Option tree source unavailable; using default trees")
        return default_option_trees()
    try:
        raw = raw_groups_from_xml(xml_text)
    except HierarchyError as exc:
        LOGGER.warning("%s; using default trees", exc)
        return default_option_trees()
    display = build_display_trees(build_option_trees(raw, sensitivity_range))
    for device_class in DeviceClass:
        display.setdefault(device_class, default_option_root(device_class))
    return display
