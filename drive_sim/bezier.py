"""Quintic Bezier curves and arc-length parameterization.

A curve is defined by six control points. ``build_distance_table`` samples
it at evenly spaced t values and accumulates chord lengths, which the
profile and path planners invert to place points evenly by distance.
"""

import math
from typing import List, Sequence, Union

import numpy as np
import numpy.typing as npt

from .config import FIVENOMIAL_CONSTANTS
from .geometry import Point, dist, goal_yaw, points_from_doubles
from .numeric import clamp_num, find_sandwiched_elements, fuzzy_equals, interpolate

T_EPSILON = 1e-5
"""Offset in t used for finite-difference radius and heading."""

MAX_CURVE_RADIUS = 1e6
"""Radius reported for straight sections of the curve (inches)."""

ControlPoints = Union[Sequence[Point], Sequence[Sequence[float]]]


class BezierPath:
    """Quintic Bezier curve through six control points.

    Attributes:
        control_points: The six control points, first and last on the curve.
    """

    def __init__(self, control_points: ControlPoints) -> None:
        """Initialize the curve.

        Args:
            control_points: Six ``Point`` objects or six ``(x, y)`` pairs.

        Raises:
            ValueError: If there are not exactly six control points.
        """
        if len(control_points) > 0 and isinstance(control_points[0], Point):
            if len(control_points) != 6:
                raise ValueError(
                    f"A quintic curve needs 6 control points, got {len(control_points)}"
                )
            self.control_points: List[Point] = [p.copy() for p in control_points]  # type: ignore[union-attr]
        else:
            self.control_points = points_from_doubles(control_points)  # type: ignore[arg-type]

    @property
    def start(self) -> Point:
        return self.control_points[0].copy()

    @property
    def end(self) -> Point:
        return self.control_points[-1].copy()

    def set_coordinate(self, key: str, value: float) -> None:
        """Set one coordinate of a control point.

        Args:
            key: Axis letter followed by the point index, e.g. ``"x3"`` or ``"y0"``.
            value: New coordinate value.

        Raises:
            ValueError: If the key does not name an axis and a valid index.
        """
        axis, index_text = key[:1], key[1:]
        if axis not in ("x", "y") or not index_text.isdigit() or int(index_text) > 5:
            raise ValueError(f"Unknown control point coordinate: {key!r}")

        point = self.control_points[int(index_text)]
        if axis == "x":
            point.x = value
        else:
            point.y = value

    def calc_point(self, t: float) -> Point:
        """Evaluate the curve at parameter ``t`` in [0, 1]."""
        sum_x = 0.0
        sum_y = 0.0
        for i, coeff in enumerate(FIVENOMIAL_CONSTANTS):
            weight = coeff * (1 - t) ** (5 - i) * t**i
            sum_x += self.control_points[i].x * weight
            sum_y += self.control_points[i].y * weight
        return Point(sum_x, sum_y)

    def calc_radius(self, t: float) -> float:
        """Radius of curvature at ``t`` from three closely spaced curve points.

        Returns:
            Radius in inches, capped at ``MAX_CURVE_RADIUS``.
        """
        t = clamp_num(t, T_EPSILON, 1 - T_EPSILON)

        p1 = self.calc_point(t - T_EPSILON)
        p2 = self.calc_point(t + T_EPSILON)
        p3 = self.calc_point(t)

        a = dist(p1, p2)
        b = dist(p2, p3)
        c = dist(p1, p3)

        s = (a + b + c) / 2.0
        k = math.sqrt(max(0.0, s * (s - a) * (s - b) * (s - c)))
        if fuzzy_equals(k, 0.0, 1e-12):
            return MAX_CURVE_RADIUS

        return clamp_num((a * b * c) / (4.0 * k), -MAX_CURVE_RADIUS, MAX_CURVE_RADIUS)

    def calc_heading(self, t: float) -> float:
        """Heading of the curve at ``t`` in degrees (0 along +y)."""
        if t <= T_EPSILON:
            return goal_yaw(self.calc_point(T_EPSILON), self.calc_point(0)) - 180.0
        elif t >= 1 - T_EPSILON:
            return goal_yaw(self.calc_point(1 - T_EPSILON), self.calc_point(1))
        return goal_yaw(self.calc_point(t - T_EPSILON), self.calc_point(t + T_EPSILON))

    @property
    def initial_heading(self) -> float:
        """Heading at the start of the curve (degrees)."""
        return self.calc_heading(0)


def build_distance_table(path: BezierPath, size: int) -> npt.NDArray[np.float64]:
    """Cumulative chord length at ``size`` evenly spaced t values.

    Entry ``i`` is the distance along the curve at ``t = i / size``. The last
    entry is used as the curve's total length.

    Args:
        path: Curve to measure.
        size: Number of samples.

    Returns:
        Array of cumulative distances starting at zero.
    """
    step = 1.0 / size
    distances = np.zeros(size)

    t = 0.0
    prev = path.calc_point(t)
    for i in range(1, size):
        t += step
        current = path.calc_point(t)
        distances[i] = distances[i - 1] + dist(current, prev)
        prev = current

    return distances


def t_for_distance(distances: npt.NDArray[np.float64], d: float) -> float:
    """Invert a distance table, interpolating the t value that reaches ``d``."""
    step = 1.0 / len(distances)
    k = find_sandwiched_elements(distances, d, 1e-3)[0]
    # The last entry has no upper neighbour
    k = min(k, len(distances) - 2)

    return interpolate(d, k * step, distances[k], (k + 1) * step, distances[k + 1])
