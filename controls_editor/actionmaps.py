"""Read and render the ``<options>`` blocks of an actionmaps document.

Only the invert attribute is rendered back out; exponent and curve values are
read for display but the game does not keep them across restarts.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from lxml import etree

from controls_editor.controls_file import ControlsFile, DeviceInstanceSettings, instance_sort_key
from controls_editor.models import DeviceClass

LOGGER = logging.getLogger("SCControls.Actionmaps")

CURVE_ELEMENT = "nonlinearity_curve"


class ActionmapsError(ValueError):
    """Raised when an actionmaps document cannot be parsed."""


@dataclass
class ActionmapsCurvePoint:
    in_val: str
    out_val: str


@dataclass
class ActionmapsControlOption:
    name: str
    attributes: List[Tuple[str, str]] = field(default_factory=list)
    curve_points: List[ActionmapsCurvePoint] = field(default_factory=list)

    def attribute(self, key: str) -> Optional[str]:
        for name, value in self.attributes:
            if name == key:
                return value
        return None


@dataclass
class ActionmapsDeviceOptions:
    device_type: str
    instance: str
    product: str = ""
    options: List[ActionmapsControlOption] = field(default_factory=list)


def _parse_option(element: Any) -> ActionmapsControlOption:
    option = ActionmapsControlOption(name=element.tag, attributes=list(element.attrib.items()))
    for curve in element.iter(CURVE_ELEMENT):
        for point in curve.iter("point"):
            option.curve_points.append(ActionmapsCurvePoint(point.get("in", ""), point.get("out", "")))
    return option


def parse_actionmaps_options(xml_text: str) -> List[ActionmapsDeviceOptions]:
    """Collect every ``<options>`` block in document order."""

    data = xml_text.encode("utf-8") if isinstance(xml_text, str) else xml_text
    parser = etree.XMLParser(resolve_entities=False, remove_comments=True)
    try:
        document = etree.fromstring(data, parser=parser)
    except (etree.XMLSyntaxError, ValueError) as exc:
        raise ActionmapsError(f"XML parse error: {exc}") from exc

    devices: List[ActionmapsDeviceOptions] = []
    for block in document.iter("options"):
        device = ActionmapsDeviceOptions(
            device_type=block.get("type", ""),
            instance=block.get("instance", ""),
            product=block.get("Product", ""),
        )
        for child in block:
            if isinstance(child.tag, str):
                device.options.append(_parse_option(child))
        devices.append(device)
    return devices


def _finite(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _flat_option(option: ActionmapsControlOption) -> Optional[Dict[str, Any]]:
    entry: Dict[str, Any] = {"name": option.name}
    invert = option.attribute("invert")
    if invert is not None:
        entry["invert"] = invert.strip() == "1"
    exponent = _finite(option.attribute("exponent"))
    if exponent is not None and exponent > 0.0:
        entry["exponent"] = exponent
    points = []
    for point in option.curve_points:
        value_in, value_out = _finite(point.in_val), _finite(point.out_val)
        if value_in is None or value_out is None:
            LOGGER.debug("Skipping malformed curve point on %s", option.name)
            continue
        points.append({"in": value_in, "out": value_out})
    if points:
        entry["curve"] = {"points": points}
    return entry if len(entry) > 1 else None


def actionmaps_to_flat_groups(devices: Sequence[ActionmapsDeviceOptions]) -> List[Dict[str, Any]]:
    """Turn parsed blocks into ``{"device_type", "instance", "product", "options"}`` groups."""

    groups: List[Dict[str, Any]] = []
    for device in devices:
        try:
            device_class = DeviceClass.coerce(device.device_type)
        except ValueError:
            LOGGER.debug("Ignoring options for unknown device type %r", device.device_type)
            continue
        try:
            instance = int(device.instance or 1)
        except ValueError:
            LOGGER.debug("Ignoring %s options with instance %r", device_class.value, device.instance)
            continue
        options = [entry for entry in (_flat_option(option) for option in device.options) if entry is not None]
        if options:
            groups.append(
                {
                    "device_type": device_class.value,
                    "instance": instance,
                    "product": device.product,
                    "options": options,
                }
            )
    return groups


def _invert_options(settings: DeviceInstanceSettings) -> List[ActionmapsControlOption]:
    options: List[ActionmapsControlOption] = []
    for name, entry in sorted(settings.options.items()):
        invert = entry.get("invert")
        if invert is None:
            continue
        options.append(ActionmapsControlOption(name=name, attributes=[("invert", "1" if invert else "0")]))
    return options


def controls_to_actionmaps(controls: ControlsFile) -> List[ActionmapsDeviceOptions]:
    """Blocks to apply for a profile; devices without invert values are omitted."""

    result: List[ActionmapsDeviceOptions] = []
    if controls.keyboard is not None:
        options = _invert_options(controls.keyboard)
        if options:
            result.append(ActionmapsDeviceOptions("keyboard", "1", controls.keyboard.product or "", options))
    for device_type, per_instance in (("gamepad", controls.gamepad), ("joystick", controls.joystick)):
        for number in sorted(per_instance, key=instance_sort_key):
            settings = per_instance[number]
            options = _invert_options(settings)
            if options:
                result.append(ActionmapsDeviceOptions(device_type, number, settings.product or "", options))
    return result


def options_element(device: ActionmapsDeviceOptions) -> Any:
    element = etree.Element("options")
    element.set("type", device.device_type)
    element.set("instance", device.instance)
    if device.product:
        element.set("Product", device.product)
    for option in device.options:
        child = etree.SubElement(element, option.name)
        for key, value in option.attributes:
            child.set(key, value)
        if option.curve_points:
            curve = etree.SubElement(child, CURVE_ELEMENT)
            for point in option.curve_points:
                node = etree.SubElement(curve, "point")
                node.set("in", point.in_val)
                node.set("out", point.out_val)
    return element


def generate_options_xml(device: ActionmapsDeviceOptions) -> str:
    """Render one ``<options>`` block; empty devices become a self-closing tag."""

    return etree.tostring(options_element(device), pretty_print=True, encoding="unicode")
