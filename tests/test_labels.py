import pytest

from controls_editor.labels import INVERSION_SECTION_LABEL, cleanup_label, display_label
from controls_editor.models import DeviceClass, OptionNode


def _node(label):
    return OptionNode(name="n", label=label, path="root.n", device_class=DeviceClass.JOYSTICK)


@pytest.mark.parametrize(
    "label, expected",
    [
        ("@ui_COFlightPitch", "Flight (Pitch)"),
        (INVERSION_SECTION_LABEL, "Inversion Settings"),
        ("@ui_co_eva_roll", "EVA Roll"),
        ("@ui_SpaceBrake", "Space Brake"),
        ("@ui_turret_gyro", "Turret gyro"),
        ("Plain Text", "Plain Text"),
    ],
)
def test_display_label(label, expected):
    assert display_label(_node(label)) == expected


@pytest.mark.parametrize("node", [None, _node("")])
def test_display_label_unknown(node):
    assert display_label(node) == "Unknown"


def test_cleanup_label_is_case_insensitive_on_prefix():
    assert cleanup_label("@UI_MiningMode") == "Mining Mode"
