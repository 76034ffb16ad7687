"""Pure response-curve helpers (no UI types).

Both evaluators assume an input already clamped to ``[0, 1]``; callers reject
non-finite exponents and malformed points before reaching this module.
"""
from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from controls_editor.models import Curve, CurvePoint

_ORIGIN = CurvePoint(0.0, 0.0)
_UNIT = CurvePoint(1.0, 1.0)


def evaluate_exponent(value: float, exponent: float) -> float:
    """Power curve ``value ** exponent``; an exponent of 1 is the identity."""

    if exponent == 1.0:
        return value
    return value ** exponent


def evaluate_piecewise(value: float, points: Sequence[CurvePoint]) -> float:
    """Linear interpolation over control points, anchored at (0,0) and (1,1).

    Points may arrive in any order. An empty sequence is the identity.
    """

    if not points:
        return value
    ordered = sorted(points, key=lambda point: point.input)
    first = ordered[0]
    last = ordered[-1]

    if value <= first.input:
        if first.input == 0.0:
            return first.output
        return first.output * (value / first.input)
    if value >= last.input:
        if last.input == 1.0:
            return last.output
        remaining = (value - last.input) / (1.0 - last.input)
        return last.output + remaining * (1.0 - last.output)

    lower = _ORIGIN
    upper = _UNIT
    for point in ordered:
        if point.input <= value:
            lower = point
        if point.input >= value:
            upper = point
            break
    if lower.input == upper.input:
        return lower.output
    t = (value - lower.input) / (upper.input - lower.input)
    return lower.output + t * (upper.output - lower.output)


def _points(*pairs: Tuple[float, float]) -> List[CurvePoint]:
    return [CurvePoint(value_in, value_out) for value_in, value_out in pairs]


CURVE_PRESETS: Dict[str, Curve] = {
    "linear": Curve(reset=False, points=[]),
    "smooth": Curve(points=_points((0.2, 0.05), (0.4, 0.15), (0.6, 0.35), (0.8, 0.65))),
    "aggressive": Curve(
        points=_points(
            (0.1, 0.015),
            (0.2, 0.02),
            (0.3, 0.04),
            (0.4, 0.06),
            (0.5, 0.08),
            (0.6, 0.15),
            (0.7, 0.26),
            (0.8, 0.38),
            (0.9, 0.58),
        )
    ),
    "precise": Curve(points=_points((0.1, 0.02), (0.3, 0.08), (0.5, 0.20), (0.7, 0.45), (0.9, 0.80))),
}


def curve_preset(name: str) -> Curve:
    """Return an independent copy of a named preset; raises KeyError when unknown."""

    return CURVE_PRESETS[name].copy()


def next_point_input(points: Sequence[CurvePoint]) -> float:
    """Input for a new point: the midpoint of the widest gap on [0, 1]."""

    inputs = sorted(point.input for point in points)
    if not inputs:
        return 0.5
    gap_start = 0.0
    max_gap = inputs[0]
    for current, following in zip(inputs, inputs[1:]):
        gap = following - current
        if gap > max_gap:
            max_gap = gap
            gap_start = current
    end_gap = 1.0 - inputs[-1]
    if end_gap > max_gap:
        max_gap = end_gap
        gap_start = inputs[-1]
    return gap_start + max_gap / 2.0


def _sample_inputs(samples: int) -> List[float]:
    count = max(2, int(samples))
    return [index / (count - 1) for index in range(count)]


def sample_curve(points: Sequence[CurvePoint], samples: int = 21) -> List[Tuple[float, float]]:
    return [(x, evaluate_piecewise(x, points)) for x in _sample_inputs(samples)]


def sample_exponent(exponent: float, samples: int = 21) -> List[Tuple[float, float]]:
    return [(x, evaluate_exponent(x, exponent)) for x in _sample_inputs(samples)]
