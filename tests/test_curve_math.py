import pytest

from controls_editor import curve_math
from controls_editor.models import CurvePoint


def _pts(*pairs):
    return [CurvePoint(a, b) for a, b in pairs]


def test_exponent_one_is_identity():
    for value in (0.0, 0.123456789, 0.5, 1.0):
        assert curve_math.evaluate_exponent(value, 1.0) == value


def test_exponent_applies_power():
    assert curve_math.evaluate_exponent(0.5, 2.0) == pytest.approx(0.25)
    assert curve_math.evaluate_exponent(0.25, 0.5) == pytest.approx(0.5)


def test_piecewise_without_points_is_identity():
    assert curve_math.evaluate_piecewise(0.37, []) == 0.37


def test_piecewise_single_point_scales_from_origin_and_extrapolates_to_unit():
    points = _pts((0.5, 0.25))
    assert curve_math.evaluate_piecewise(0.25, points) == pytest.approx(0.125)
    assert curve_math.evaluate_piecewise(0.5, points) == pytest.approx(0.25)
    assert curve_math.evaluate_piecewise(0.75, points) == pytest.approx(0.625)
    assert curve_math.evaluate_piecewise(1.0, points) == pytest.approx(1.0)


def test_piecewise_interpolates_between_points():
    points = _pts((0.2, 0.1), (0.6, 0.5))
    assert curve_math.evaluate_piecewise(0.4, points) == pytest.approx(0.3)


def test_piecewise_sorts_points_first():
    ordered = _pts((0.2, 0.1), (0.6, 0.5), (0.8, 0.9))
    shuffled = [ordered[2], ordered[0], ordered[1]]
    for value in (0.1, 0.3, 0.7, 0.95):
        assert curve_math.evaluate_piecewise(value, shuffled) == curve_math.evaluate_piecewise(value, ordered)


def test_piecewise_first_point_at_zero_returns_its_output():
    points = _pts((0.0, 0.1), (0.5, 0.5))
    assert curve_math.evaluate_piecewise(0.0, points) == 0.1


def test_piecewise_last_point_at_one_returns_its_output():
    points = _pts((0.5, 0.5), (1.0, 0.8))
    assert curve_math.evaluate_piecewise(1.0, points) == 0.8


def test_piecewise_duplicate_inputs_do_not_divide_by_zero():
    points = _pts((0.2, 0.1), (0.5, 0.3), (0.5, 0.7), (0.8, 0.9))
    assert curve_math.evaluate_piecewise(0.5, points) == pytest.approx(0.3)


@pytest.mark.parametrize("name", sorted(curve_math.CURVE_PRESETS))
def test_presets_are_monotone_and_anchored(name):
    points = curve_math.curve_preset(name).points
    samples = curve_math.sample_curve(points, 51)
    outputs = [y for _, y in samples]
    assert outputs[0] == pytest.approx(0.0)
    assert outputs[-1] == pytest.approx(1.0)
    assert all(b >= a - 1e-12 for a, b in zip(outputs, outputs[1:]))


def test_curve_preset_returns_independent_copy():
    preset = curve_math.curve_preset("smooth")
    preset.points.append(CurvePoint(0.9, 0.9))
    preset.points[0].output = 0.99
    fresh = curve_math.curve_preset("smooth")
    assert len(fresh.points) == 4
    assert fresh.points[0].output == 0.05


def test_curve_preset_unknown_raises_key_error():
    with pytest.raises(KeyError):
        curve_math.curve_preset("wobbly")


def test_linear_preset_is_empty():
    assert curve_math.curve_preset("linear").points == []


@pytest.mark.parametrize(
    "inputs, expected",
    [
        ((), 0.5),
        ((0.5,), 0.25),
        ((0.2, 0.4), 0.7),
        ((0.1, 0.9), 0.5),
    ],
)
def test_next_point_input_uses_largest_gap(inputs, expected):
    points = [CurvePoint(value, value) for value in inputs]
    assert curve_math.next_point_input(points) == pytest.approx(expected)


def test_sample_exponent_returns_evenly_spaced_pairs():
    assert curve_math.sample_exponent(2.0, 3) == [(0.0, 0.0), (0.5, 0.25), (1.0, 1.0)]
