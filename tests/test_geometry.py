import math

import numpy as np
import pytest

from drive_sim.geometry import (
    MAX_RADIUS,
    Point,
    Pose,
    angle_wrap,
    angle_wrap_deg,
    calc_radius,
    closest_point,
    dist,
    distsq,
    flip_curve,
    get_normal_point,
    goal_yaw,
    is_within_bounds,
    line_circle_intersect,
    point_on_line,
    points_from_doubles,
)


class TestPoint:
    def test_translate_follows_field_convention(self):
        p = Point(0, 0)
        p.translate(10, 0)
        assert p == Point(0, 10)

        p = Point(0, 0)
        p.translate(10, math.pi / 2)
        assert p == Point(10, 0)

    def test_equality_is_approximate(self):
        assert Point(1.0, 2.0) == Point(1.0004, 1.9996)
        assert Point(1.0, 2.0) != Point(1.01, 2.0)

    def test_points_are_unhashable(self):
        with pytest.raises(TypeError):
            hash(Point(1, 2))

    def test_vector_arithmetic(self):
        a = Point(3, 4)
        assert a.mag == pytest.approx(5)
        assert (a + Point(1, 1)) == Point(4, 5)
        assert (a - Point(1, 1)) == Point(2, 3)
        assert a.scale(2) == Point(6, 8)
        assert a.dot(Point(1, 0)) == pytest.approx(3)
        assert a.normalize().mag == pytest.approx(1)
        assert a.limit_mag(1).mag == pytest.approx(1)
        assert a.min_mag(10).mag == pytest.approx(10)

    def test_polar_vector_is_measured_from_x_axis(self):
        assert Point.vector(5, 0) == Point(5, 0)
        assert Point.vector(5, math.pi / 2) == Point(0, 5)

    def test_cached_magnitude_refreshes_after_move(self):
        p = Point(3, 4)
        assert p.mag == pytest.approx(5)
        p.set_xy(6, 8)
        assert p.mag == pytest.approx(10)

    def test_copy_does_not_alias(self):
        p = Point(1, 1)
        q = p.copy()
        q.x = 5
        assert p.x == 1

    def test_random_point_is_within_area(self):
        rng = np.random.default_rng(0)
        for _ in range(20):
            p = Point.random_point(rng, 10, 20)
            assert 0 <= p.x <= 10
            assert 0 <= p.y <= 20


def test_pose_copies_point():
    point = Point(1, 2)
    pose = Pose(point, 0.5)
    point.x = 100
    assert pose.x == 1
    assert pose.point == Point(1, 2)


def test_distances():
    assert dist(Point(0, 0), Point(3, 4)) == pytest.approx(5)
    assert distsq(Point(0, 0), Point(3, 4)) == pytest.approx(25)


@pytest.mark.parametrize(
    "goal, expected",
    [
        (Point(0, 10), 0.0),
        (Point(10, 0), 90.0),
        (Point(0, -10), 180.0),
        (Point(-10, 0), -90.0),
        (Point(1, 1), 45.0),
        (Point(1, -1), 135.0),
        (Point(-1, -1), -135.0),
        (Point(-1, 1), -45.0),
    ],
)
def test_goal_yaw(goal, expected):
    assert goal_yaw(Point(0, 0), goal) == pytest.approx(expected)


def test_is_within_bounds_uses_square():
    assert is_within_bounds(Point(0, 0), Point(0.9, -0.9), 1)
    assert not is_within_bounds(Point(0, 0), Point(1.0, 0), 1)


def test_points_from_doubles():
    points = points_from_doubles([[0, 0], [1, 1], [2, 2], [3, 3], [4, 4], [5, 5]])
    assert len(points) == 6
    assert points[3] == Point(3, 3)

    with pytest.raises(ValueError):
        points_from_doubles([[0, 0], [1, 1]])


def test_flip_curve():
    assert flip_curve([[1, 2], [3, 4]]) == [[2, 1], [4, 3]]


def test_calc_radius():
    assert calc_radius(Point(10, 0), Point(0, 10), Point(-10, 0)) == pytest.approx(10)
    assert calc_radius(Point(0, 0), Point(0, 5), Point(0, 10)) == MAX_RADIUS


@pytest.mark.parametrize(
    "angle, expected",
    [
        (0.0, 0.0),
        (math.pi, -math.pi),
        (3 * math.pi / 2, -math.pi / 2),
        (-3 * math.pi / 2, math.pi / 2),
    ],
)
def test_angle_wrap(angle, expected):
    assert angle_wrap(angle) == pytest.approx(expected)


def test_angle_wrap_deg():
    assert angle_wrap_deg(190) == pytest.approx(-170)
    assert angle_wrap_deg(-190) == pytest.approx(170)


def test_normal_point_and_point_on_line():
    normal = get_normal_point(Point(5, 5), Point(0, 0), Point(10, 0))
    assert normal == Point(5, 0)
    assert point_on_line(normal, Point(0, 0), Point(10, 0))
    assert not point_on_line(Point(5, 5), Point(0, 0), Point(10, 0))


class TestLineCircleIntersect:
    def test_segment_through_circle(self):
        points = line_circle_intersect(Point(0, -20), Point(0, 20), Point(0, 0), 10)
        assert points == [Point(0, -10), Point(0, 10)]

    def test_segment_inside_circle(self):
        assert line_circle_intersect(Point(0, 0), Point(0, 5), Point(0, 0), 10) == []

    def test_segment_misses_circle(self):
        assert line_circle_intersect(Point(20, -5), Point(20, 5), Point(0, 0), 10) == []

    def test_degenerate_segment(self):
        assert line_circle_intersect(Point(1, 1), Point(1, 1), Point(0, 0), 10) == []

    def test_tangent_segment_touches_once(self):
        points = line_circle_intersect(Point(2, -2), Point(2, 2), Point(0, 0), 2)
        assert points == [Point(2, 0)]


def test_closest_point():
    points = [Point(0, 0), Point(5, 5), Point(10, 10)]
    assert closest_point(points, Point(6, 6)) == Point(5, 5)
    assert closest_point([], Point(0, 0)) is None
