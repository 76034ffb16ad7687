"""Reshape normalized option trees into the curated display sections.

Raw layout: ``root > master > {mouse,thumbstick,joystick}_curves > inversion > ...``.
Multi-instance classes get two independent copies of the inversion subtree
(an inversion section and a disabled sensitivity-curves section); the
keyboard/mouse class gets the inversion section only.
"""
from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional

from controls_editor.labels import INVERSION_SECTION_LABEL, JOYSTICK_CURVES_LABEL, THUMBSTICK_CURVES_LABEL
from controls_editor.models import (
    DeviceClass,
    OptionNode,
    SectionType,
    clone_node,
    join_path,
    split_path,
)

LOGGER = logging.getLogger("SCControls.Display")

WRAPPER_NODE = "master"
INVERSION_NODE = "inversion"
CURVES_SECTION_NAME = "sensitivity_curves"
DISPLAY_ROOT_NAME = "root"
CURVE_CONTAINERS: Mapping[DeviceClass, str] = {
    DeviceClass.KEYBOARD: "mouse_curves",
    DeviceClass.GAMEPAD: "thumbstick_curves",
    DeviceClass.JOYSTICK: "joystick_curves",
}
CURVES_DISABLED_REASON = (
    "Sensitivity curve settings do not persist properly in Star Citizen "
    "and have been temporarily disabled."
)
_ROOT_LABELS = {
    DeviceClass.KEYBOARD: "Mouse Controls",
    DeviceClass.GAMEPAD: "Gamepad Controls",
    DeviceClass.JOYSTICK: "Joystick Controls",
}


def rewrite_path_segment(path: str, old: str, new: str) -> str:
    """Replace every segment equal to ``old``, wherever it sits in the path."""

    return join_path([new if segment == old else segment for segment in split_path(path)])


def _child_named(node: OptionNode, name: str) -> Optional[OptionNode]:
    for child in node.children:
        if child.name == name:
            return child
    return None


def find_content_node(raw_root: OptionNode, device_class: DeviceClass) -> OptionNode:
    """Descend through the wrapper to this class's curve-family container."""

    wrapper = _child_named(raw_root, WRAPPER_NODE)
    if wrapper is None:
        return raw_root
    preferred = _child_named(wrapper, CURVE_CONTAINERS[device_class])
    if preferred is not None:
        return preferred
    for container in CURVE_CONTAINERS.values():
        fallback = _child_named(wrapper, container)
        if fallback is not None:
            LOGGER.debug("Using %s for %s (no %s container)", container, device_class.value, CURVE_CONTAINERS[device_class])
            return fallback
    return raw_root


def _tag_section(node: OptionNode, section_type: SectionType, rename: Optional[str] = None) -> None:
    for item in node.walk():
        item.section_type = section_type
        if rename is not None:
            item.path = rewrite_path_segment(item.path, INVERSION_NODE, rename)


def _inversion_section(inversion: OptionNode) -> OptionNode:
    section = clone_node(inversion)
    _tag_section(section, SectionType.INVERSION)
    section.label = INVERSION_SECTION_LABEL
    section.is_section = True
    return section


def _curves_section(inversion: OptionNode, device_class: DeviceClass) -> OptionNode:
    section = clone_node(inversion)
    _tag_section(section, SectionType.CURVES, rename=CURVES_SECTION_NAME)
    section.name = CURVES_SECTION_NAME
    section.label = JOYSTICK_CURVES_LABEL if device_class is DeviceClass.JOYSTICK else THUMBSTICK_CURVES_LABEL
    section.is_section = True
    for item in section.walk():
        item.disable(CURVES_DISABLED_REASON)
    return section


def transform_to_display_hierarchy(raw_root: Optional[OptionNode], device_class: DeviceClass) -> Optional[OptionNode]:
    """Return the display root for one device class.

    ``None`` when there is no source tree; the unmodified content node when it
    has no ``inversion`` child.
    """

    if raw_root is None:
        return None
    content = find_content_node(raw_root, device_class)
    inversion = _child_named(content, INVERSION_NODE)
    if inversion is None:
        LOGGER.warning("No inversion section for %s; showing the raw tree", device_class.value)
        return content

    sections = [_inversion_section(inversion)]
    if device_class.is_multi_instance:
        sections.append(_curves_section(inversion, device_class))
    return OptionNode(
        name=DISPLAY_ROOT_NAME,
        label=_ROOT_LABELS[device_class],
        path=DISPLAY_ROOT_NAME,
        device_class=device_class,
        children=sections,
        instances=raw_root.instances or 1,
        sensitivity_min=raw_root.sensitivity_min,
        sensitivity_max=raw_root.sensitivity_max,
    )


def build_display_trees(raw_trees: Mapping[DeviceClass, OptionNode]) -> Dict[DeviceClass, OptionNode]:
    display: Dict[DeviceClass, OptionNode] = {}
    for device_class, raw_root in raw_trees.items():
        tree = transform_to_display_hierarchy(raw_root, device_class)
        if tree is not None:
            display[device_class] = tree
    return display


def effective_section_type(node: OptionNode) -> SectionType:
    return node.section_type or SectionType.INVERSION
