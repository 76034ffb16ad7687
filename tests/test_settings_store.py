from __future__ import annotations

import threading

import pytest

from controls_editor.format_converter import all_control_options

from controls_editor.models import Curve, CurvePoint, DeviceClass, find_node_by_path
from controls_editor.settings_store import DeviceSelection, SettingsError, SettingsStore

FLIGHT = "root.master.joystick_curves.inversion.flight"
MOVE = FLIGHT + ".flight_move"
PITCH = MOVE + ".flight_move_pitch"
YAW = MOVE + ".flight_move_yaw"

JOY1 = DeviceSelection(DeviceClass.JOYSTICK, 1)
JOY2 = DeviceSelection(DeviceClass.JOYSTICK, 2)
KEYBOARD = DeviceSelection(DeviceClass.KEYBOARD)


def test_get_direct_returns_none_when_unset():
    store = SettingsStore()
    assert store.get_direct(JOY1, PITCH, "invert") is None
    assert store.has_own_setting(JOY1, PITCH, "invert") is False


def test_inheritance_walks_to_nearest_ancestor():
    store = SettingsStore()
    store.set(JOY1, FLIGHT, "invert", True)
    result = store.get_with_inheritance(JOY1, PITCH, "invert", False)
    assert result.value is True
    assert result.inherited is True
    assert result.inherited_from == "flight"

    store.set(JOY1, MOVE, "invert", False)
    result = store.get_with_inheritance(JOY1, PITCH, "invert", False)
    assert result.value is False
    assert result.inherited_from == "flight_move"


def test_own_value_wins_over_ancestor():
    store = SettingsStore()
    store.set(JOY1, FLIGHT, "exponent", 2.0)
    store.set(JOY1, PITCH, "exponent", 3.0)
    result = store.get_with_inheritance(JOY1, PITCH, "exponent", 1.0)
    assert (result.value, result.inherited, result.inherited_from) == (3.0, False, None)


def test_inheritance_falls_back_to_default():
    store = SettingsStore()
    result = store.get_with_inheritance(JOY1, PITCH, "exponent", 1.5)
    assert (result.value, result.inherited, result.inherited_from) == (1.5, False, None)


def test_short_name_records_resolve_for_full_paths():
    store = SettingsStore()
    store.replace_bucket(JOY1, {"flight_move_pitch": {"invert": True}})
    assert store.get_direct(JOY1, PITCH, "invert") is True
    # A single-segment path never falls back to itself.
    assert store.get_direct(JOY1, "flight_move_yaw", "invert") is None


def test_instances_are_independent():
    store = SettingsStore()
    store.set(JOY1, PITCH, "invert", True)
    assert store.get_direct(JOY2, PITCH, "invert") is None
    assert store.instances(DeviceClass.JOYSTICK) == [1]


def test_keyboard_ignores_instance_number():
    store = SettingsStore(max_instances=2)
    store.set(DeviceSelection(DeviceClass.KEYBOARD, 5), "root.x.fps_view_pitch", "invert", True)
    assert store.get_direct(KEYBOARD, "root.x.fps_view_pitch", "invert") is True


@pytest.mark.parametrize("instance", [0, 9, -1])
def test_out_of_range_instance_raises(instance):
    store = SettingsStore(max_instances=8)
    with pytest.raises(SettingsError):
        store.set(DeviceSelection(DeviceClass.GAMEPAD, instance), PITCH, "invert", True)


def test_device_selection_of_validates_input():
    assert DeviceSelection.of("Joystick", "3") == DeviceSelection(DeviceClass.JOYSTICK, 3)
    with pytest.raises(SettingsError):
        DeviceSelection.of("wheel", 1)
    with pytest.raises(SettingsError):
        DeviceSelection.of("joystick", "one")


@pytest.mark.parametrize(
    "setting, value",
    [("sensitivity", 1.0), ("curve_mode", "spline"), ("exponent", 0.0), ("exponent", "fast"), ("invert", None)],
)
def test_invalid_settings_are_rejected(setting, value):
    store = SettingsStore()
    with pytest.raises(SettingsError):
        store.set(JOY1, PITCH, setting, value)
    assert store.dirty is False


def test_curves_are_stored_and_returned_as_copies():
    store = SettingsStore()
    curve = Curve(points=[CurvePoint(0.5, 0.2)])
    store.set(JOY1, PITCH, "curve", curve)
    curve.points.append(CurvePoint(0.8, 0.9))
    stored = store.get_direct(JOY1, PITCH, "curve")
    assert len(stored.points) == 1
    stored.points[0].output = 0.99
    assert store.get_direct(JOY1, PITCH, "curve").points[0].output == 0.2


def test_set_marks_dirty_and_notifies():
    calls = []
    store = SettingsStore(on_change=lambda: calls.append(1))
    store.set(JOY1, PITCH, "invert", True)
    assert store.dirty is True
    assert calls == [1]
    store.mark_saved()
    assert store.dirty is False


def test_reset_node_removes_only_that_record():
    calls = []
    store = SettingsStore(on_change=lambda: calls.append(1))
    store.set(JOY1, MOVE, "invert", True)
    store.set(JOY1, PITCH, "invert", False)
    store.mark_saved()
    calls.clear()

    assert store.reset_node(JOY1, MOVE) is True
    assert store.get_direct(JOY1, MOVE, "invert") is None
    assert store.get_direct(JOY1, PITCH, "invert") is False
    assert store.dirty is True
    assert calls == [1]
    assert store.reset_node(JOY1, MOVE) is False


def test_propagate_writes_strict_descendants_only(option_trees):
    store = SettingsStore()
    tree = option_trees[DeviceClass.JOYSTICK]
    flight = find_node_by_path(tree, FLIGHT)
    written = store.propagate_to_descendants(JOY1, flight, "exponent", 2.0)
    assert written == 3
    assert store.get_direct(JOY1, FLIGHT, "exponent") is None
    for path in (MOVE, PITCH, YAW):
        assert store.get_direct(JOY1, path, "exponent") == 2.0
        assert store.get_direct(JOY1, path, "curve_mode") == "exponent"


def test_propagate_on_leaf_is_a_no_op(option_trees):
    calls = []
    store = SettingsStore(on_change=lambda: calls.append(1))
    leaf = find_node_by_path(option_trees[DeviceClass.JOYSTICK], PITCH)
    assert store.propagate_to_descendants(JOY1, leaf, "invert", True) == 0
    assert calls == []
    assert store.has_settings() is False


def test_propagated_curves_are_independent(option_trees):
    store = SettingsStore()
    move = find_node_by_path(option_trees[DeviceClass.JOYSTICK], MOVE)
    store.propagate_to_descendants(JOY1, move, "curve", Curve(points=[CurvePoint(0.5, 0.3)]))
    assert store.get_direct(JOY1, PITCH, "curve_mode") == "curve"
    store.update_curve_point(JOY1, PITCH, 0, "out", 0.9)
    assert store.get_direct(JOY1, YAW, "curve").points[0].output == 0.3


def test_add_curve_point_inserts_into_largest_gap():
    store = SettingsStore()
    curve = store.add_curve_point(JOY1, PITCH)
    assert [(p.input, p.output) for p in curve.points] == [(0.5, 0.5)]
    curve = store.add_curve_point(JOY1, PITCH)
    assert [p.input for p in curve.points] == [0.25, 0.5]
    assert store.get_direct(JOY1, PITCH, "curve_mode") == "curve"


def test_add_curve_point_starts_from_default_curve():
    store = SettingsStore()
    default = Curve(points=[CurvePoint(0.5, 0.25)])
    curve = store.add_curve_point(JOY1, PITCH, default)
    assert [p.input for p in curve.points] == [0.25, 0.5]
    assert default.points == [CurvePoint(0.5, 0.25)]


def test_update_curve_point_clamps_and_validates():
    store = SettingsStore()
    store.apply_curve_preset(JOY1, PITCH, "smooth")
    curve = store.update_curve_point(JOY1, PITCH, 0, "out", 1.7)
    assert curve.points[0].output == 1.0
    curve = store.update_curve_point(JOY1, PITCH, 1, "in", "-0.2")
    assert curve.points[1].input == 0.0
    with pytest.raises(SettingsError):
        store.update_curve_point(JOY1, PITCH, 0, "out", "abc")
    with pytest.raises(SettingsError):
        store.update_curve_point(JOY1, PITCH, 12, "out", 0.5)
    with pytest.raises(SettingsError):
        store.update_curve_point(JOY1, PITCH, 0, "slope", 0.5)


def test_remove_curve_point():
    store = SettingsStore()
    store.apply_curve_preset(JOY1, PITCH, "precise")
    curve = store.remove_curve_point(JOY1, PITCH, 0)
    assert len(curve.points) == 4
    assert curve.points[0].input == 0.3
    with pytest.raises(SettingsError):
        store.remove_curve_point(JOY1, PITCH, 4)


def test_apply_unknown_preset_raises():
    store = SettingsStore()
    with pytest.raises(SettingsError):
        store.apply_curve_preset(JOY1, PITCH, "wobbly")


def test_replace_bucket_does_not_notify():
    calls = []
    store = SettingsStore(on_change=lambda: calls.append(1))
    store.replace_bucket(JOY2, {PITCH: {"invert": True, "exponent": None}})
    assert calls == []
    assert store.dirty is False
    assert store.bucket(JOY2) == {PITCH: {"invert": True}}


def test_bucket_returns_a_snapshot():
    store = SettingsStore()
    store.set(JOY1, PITCH, "invert", True)
    snapshot = store.bucket(JOY1)
    snapshot[PITCH]["invert"] = False
    snapshot["other"] = {"invert": True}
    assert store.bucket(JOY1) == {PITCH: {"invert": True}}


def test_replace_all_swaps_every_bucket():
    store = SettingsStore()
    store.set(JOY1, PITCH, "invert", True)
    store.replace_all(
        keyboard={"root.fps_view_pitch": {"invert": True}},
        gamepad={2: {PITCH: {"exponent": 2.0}}},
    )
    assert store.dirty is False
    assert store.get_direct(JOY1, PITCH, "invert") is None
    assert store.instances(DeviceClass.GAMEPAD) == [2]
    assert store.instances(DeviceClass.KEYBOARD) == [1]
    store.clear()
    assert store.has_settings() is False


def test_sync_snapshot_waits_for_an_edit_in_progress():
    store = SettingsStore()
    snapshots = []
    reader = threading.Thread(target=lambda: snapshots.append(all_control_options(store)), daemon=True)

    with store.lock:
        reader.start()
        store.set(JOY1, PITCH, "curve_mode", "exponent")
        reader.join(timeout=0.2)
        assert reader.is_alive()
        store.set(JOY1, PITCH, "exponent", 2.0)

    reader.join(timeout=5.0)
    assert not reader.is_alive()
    assert snapshots == [
        [{"device_type": "joystick", "instance": 1, "options": [{"name": "flight_move_pitch", "exponent": 2.0}]}]
    ]


def test_lock_is_reentrant_for_compound_edits():
    store = SettingsStore()
    with store.lock:
        store.set(JOY1, PITCH, "invert", True)
        assert store.bucket(JOY1) == {PITCH: {"invert": True}}
    assert store.dirty is True
