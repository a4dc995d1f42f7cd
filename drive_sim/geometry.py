"""Planar geometry for field positioning.

Points, poses and the geometric helpers used by the planners and the pure
pursuit tracker.

Field convention: a heading of 0 points along +y and positive headings turn
toward +x, so translating by ``mag`` along ``angle`` moves
``(mag * sin(angle), mag * cos(angle))``. Yaw angles returned by
``goal_yaw`` are in degrees in the same convention.
"""

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .numeric import fuzzy_equals

POINT_EPSILON = 0.001
"""Tolerance for point equality (inches)."""

MAX_RADIUS = 100000.0
"""Radius reported for collinear (straight) point triples (inches)."""

Color = Tuple[int, int, int]


class Point:
    """A mutable 2D point with lazily cached magnitude and heading.

    Attributes:
        x: X coordinate.
        y: Y coordinate.
    """

    def __init__(self, x: float = 0.0, y: float = 0.0) -> None:
        self._x = float(x)
        self._y = float(y)
        self._mag = 0.0
        self._heading = 0.0

    @classmethod
    def from_sequence(cls, coords: Sequence[float]) -> "Point":
        """Build a point from an ``(x, y)`` pair."""
        return cls(coords[0], coords[1])

    @classmethod
    def vector(cls, mag: float, heading: float) -> "Point":
        """Build a vector from polar coordinates (heading from +x, radians)."""
        return cls(mag * math.cos(heading), mag * math.sin(heading))

    @classmethod
    def random_point(
        cls, rng: np.random.Generator, width: float, height: float
    ) -> "Point":
        """Uniformly random point in ``[0, width] x [0, height]``."""
        return cls(rng.uniform(0.0, width), rng.uniform(0.0, height))

    @property
    def x(self) -> float:
        return self._x

    @x.setter
    def x(self, value: float) -> None:
        self._x = float(value)
        self._mag = 0.0
        self._heading = 0.0

    @property
    def y(self) -> float:
        return self._y

    @y.setter
    def y(self, value: float) -> None:
        self._y = float(value)
        self._mag = 0.0
        self._heading = 0.0

    @property
    def mag(self) -> float:
        """Distance from the origin, recomputed while the cache is zero."""
        if self._mag == 0:
            self._mag = math.hypot(self._x, self._y)
        return self._mag

    @property
    def heading(self) -> float:
        """Angle from the +x axis (radians), recomputed while the cache is zero."""
        if self._heading == 0:
            self._heading = math.atan2(self._y, self._x)
        return self._heading

    def copy(self) -> "Point":
        return Point(self._x, self._y)

    def as_tuple(self) -> Tuple[float, float]:
        return self._x, self._y

    def set_xy(self, x: float, y: float) -> None:
        self.x = x
        self.y = y

    def translate(self, mag: float, angle: float) -> None:
        """Move the point ``mag`` units along a field heading (radians)."""
        self.x = self._x + mag * math.sin(angle)
        self.y = self._y + mag * math.cos(angle)

    def scale(self, s: float) -> "Point":
        return Point(self._x * s, self._y * s)

    def dot(self, other: "Point") -> float:
        return self._x * other.x + self._y * other.y

    def normalize(self) -> "Point":
        """Unit vector in the same direction, or the zero vector."""
        mag = self.mag
        if mag == 0:
            return Point(0.0, 0.0)
        return self.scale(1.0 / mag)

    def set_mag(self, mag: float) -> "Point":
        return self.normalize().scale(mag)

    def limit_mag(self, max_mag: float) -> "Point":
        """Shrink the vector to ``max_mag`` if it is longer."""
        if self.mag > max_mag:
            return self.set_mag(max_mag)
        return self.copy()

    def min_mag(self, min_mag: float) -> "Point":
        """Stretch the vector to ``min_mag`` if it is shorter."""
        if self.mag < min_mag:
            return self.set_mag(min_mag)
        return self.copy()

    def __add__(self, other: "Point") -> "Point":
        return Point(self._x + other.x, self._y + other.y)

    def __sub__(self, other: "Point") -> "Point":
        return Point(self._x - other.x, self._y - other.y)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Point):
            return NotImplemented
        return fuzzy_equals(self._x, other.x, POINT_EPSILON) and fuzzy_equals(
            self._y, other.y, POINT_EPSILON
        )

    # Equality is approximate, so points cannot be hashed consistently
    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Point({self._x:.3f}, {self._y:.3f})"

    def __str__(self) -> str:
        return f"({self._x:.3f},{self._y:.3f})"


class Pose:
    """Robot position, heading (radians) and display color.

    The point is copied in and out so a recorded pose never aliases the
    robot's live position.
    """

    def __init__(self, point: Point, heading: float = 0.0, color: Color = (128, 0, 128)) -> None:
        self._point = point.copy()
        self.heading = heading
        self.color = color

    @property
    def point(self) -> Point:
        return self._point.copy()

    @property
    def x(self) -> float:
        return self._point.x

    @property
    def y(self) -> float:
        return self._point.y

    def __repr__(self) -> str:
        return f"Pose({self._point}, heading={self.heading:.3f})"


# ============================================================================
# Field Positioning
# ============================================================================


def dist(p1: Point, p2: Point) -> float:
    """Euclidean distance between two points."""
    return math.hypot(p2.x - p1.x, p2.y - p1.y)


def distsq(p1: Point, p2: Point) -> float:
    """Squared distance between two points."""
    dx = p2.x - p1.x
    dy = p2.y - p1.y
    return dx * dx + dy * dy


def goal_yaw(current: Point, goal: Point) -> float:
    """Field yaw (degrees) the robot must face to look from ``current`` at ``goal``.

    0 is +y, 90 is +x, 180 is -y and -90 is -x.
    """
    dx = goal.x - current.x
    dy = goal.y - current.y

    if dy == 0:
        return 90.0 if dx > 0 else -90.0
    if dx == 0:
        return 0.0 if dy > 0 else 180.0

    if dy < 0 and dx > 0:
        return 90.0 - math.degrees(math.atan(dy / dx))
    if dy < 0 and dx < 0:
        return -90.0 - math.degrees(math.atan(dy / dx))

    return math.degrees(math.atan2(dx, dy))


def is_within_bounds(goal: Point, current: Point, radius: float) -> bool:
    """Return True if ``current`` lies inside the square of half-size ``radius`` around ``goal``."""
    return abs(goal.x - current.x) < radius and abs(goal.y - current.y) < radius


def points_from_doubles(control_pts: Sequence[Sequence[float]]) -> List[Point]:
    """Convert six ``(x, y)`` pairs into Bezier control points.

    Raises:
        ValueError: If there are not exactly six pairs.
    """
    if len(control_pts) != 6:
        raise ValueError(f"A quintic curve needs 6 control points, got {len(control_pts)}")
    return [Point.from_sequence(p) for p in control_pts]


def flip_curve(curve: Sequence[Sequence[float]]) -> List[List[float]]:
    """Swap the x and y values of every control point."""
    return [[p[1], p[0]] for p in curve]


def calc_radius(p1: Point, p2: Point, p3: Point) -> float:
    """Circumradius of the triangle through three points.

    Uses ``abc / 4K`` with Heron's formula for the area ``K``. Nearly
    collinear triples report ``MAX_RADIUS`` instead of an infinite radius.
    """
    a = dist(p1, p2)
    b = dist(p2, p3)
    c = dist(p1, p3)

    s = (a + b + c) / 2.0
    # Rounding can push the product slightly negative for collinear points
    k = math.sqrt(max(0.0, s * (s - a) * (s - b) * (s - c)))

    if fuzzy_equals(k, 0.0, 0.001):
        return MAX_RADIUS
    return (a * b * c) / (4.0 * k)


def angle_wrap(ang: float) -> float:
    """Wrap an angle in radians to [-pi, pi)."""
    return ang - 2.0 * math.pi * math.floor((ang + math.pi) / (2.0 * math.pi))


def angle_wrap_deg(ang_deg: float) -> float:
    """Wrap an angle in degrees to [-180, 180)."""
    return ang_deg - 360.0 * math.floor((ang_deg + 180.0) / 360.0)


def get_normal_point(p: Point, a: Point, b: Point) -> Point:
    """Project ``p`` onto the infinite line through ``a`` and ``b``."""
    ap = p - a
    ab = b - a
    return a + ab.set_mag(ap.dot(ab.normalize()))


def point_on_line(p: Point, a: Point, b: Point, eps: float = POINT_EPSILON) -> bool:
    """Return True if ``p`` lies on the segment from ``a`` to ``b``."""
    return fuzzy_equals(dist(a, b), dist(p, a) + dist(p, b), eps)


def line_circle_intersect(start: Point, end: Point, center: Point, radius: float) -> List[Point]:
    """Intersections of a circle with the segment from ``start`` to ``end``.

    Solves the quadratic in the segment parameter and keeps only the roots
    that land on the segment itself.

    Args:
        start: First end of the segment.
        end: Second end of the segment.
        center: Circle center.
        radius: Circle radius.

    Returns:
        Zero, one or two intersection points, nearest to ``start`` first.
    """
    d = end - start
    f = start - center

    a = d.dot(d)
    if a == 0:
        return []
    b = 2.0 * f.dot(d)
    c = f.dot(f) - radius * radius

    discriminant = b * b - 4.0 * a * c
    if discriminant < 0:
        return []

    discriminant = math.sqrt(discriminant)
    t1 = (-b - discriminant) / (2.0 * a)
    t2 = (-b + discriminant) / (2.0 * a)

    # A tangent line touches the circle once
    roots = (t1,) if t1 == t2 else (t1, t2)

    intersects = []
    for t in roots:
        p = start + d.scale(t)
        if point_on_line(p, start, end):
            intersects.append(p)
    return intersects


def closest_point(points: Sequence[Point], target: Point) -> Optional[Point]:
    """Point of ``points`` nearest ``target`` by squared distance (first on ties)."""
    best: Optional[Point] = None
    best_dist = math.inf
    for p in points:
        d = distsq(p, target)
        if d < best_dist:
            best_dist = d
            best = p
    return best
