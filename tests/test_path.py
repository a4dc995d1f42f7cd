import math

import numpy as np
import pytest

from drive_sim.config import NICE_LONG_CURVE, REFERENCE_CURVES
from drive_sim.geometry import MAX_RADIUS, Point, dist
from drive_sim.path import PursuitPath

STRAIGHT = [[0, 0], [0, 30], [0, 60], [0, 90], [0, 120], [0, 150]]


@pytest.fixture
def straight_path() -> PursuitPath:
    return PursuitPath(STRAIGHT, 30, 12, 200, 200, 24)


class TestStraightPath:
    def test_points_are_evenly_spaced(self, straight_path):
        points = straight_path.points
        assert straight_path.size == 7
        for i, p in enumerate(points):
            assert p == Point(0, 24 * i)
        assert straight_path.distances == pytest.approx(np.arange(7) * 24.0)

    def test_ends_are_straight(self, straight_path):
        radii = straight_path.radii
        assert radii[0] == MAX_RADIUS
        assert radii[-1] == MAX_RADIUS
        assert np.all(radii == MAX_RADIUS)

    def test_velocity_plan(self, straight_path):
        vel = straight_path.velocities
        assert vel[0] == 0
        assert vel[-1] == 0
        assert vel[1:-1] == pytest.approx(np.full(5, 12.0), rel=1e-3)

    def test_start_end_and_heading(self, straight_path):
        assert straight_path.start == Point(0, 0)
        assert straight_path.end == Point(0, 144)
        assert straight_path.initial_heading == pytest.approx(0)

    def test_accessors_return_copies(self, straight_path):
        straight_path.points[0].x = 50
        straight_path.velocities[1] = 99
        assert straight_path.start == Point(0, 0)
        assert straight_path.velocities[1] != 99


@pytest.fixture(scope="module")
def curved_path() -> PursuitPath:
    return PursuitPath(NICE_LONG_CURVE, 30, 12, 200)


class TestCurvedPath:
    def test_spacing_is_close_to_requested(self, curved_path):
        points = curved_path.points
        gaps = [dist(a, b) for a, b in zip(points, points[1:])]
        # Chords are a little shorter than the arc between points
        assert max(gaps) <= 24.01
        assert min(gaps) > 10

    def test_velocities_bounded(self, curved_path):
        vel = curved_path.velocities
        assert vel[0] == 0
        assert vel[-1] == 0
        assert np.all(vel >= 0)
        assert np.all(vel <= 12)

    def test_curvature_slows_the_plan(self, curved_path):
        radii = curved_path.radii
        vel = curved_path.velocities
        tightest = int(np.argmin(radii))
        assert vel[tightest] < 12 * 0.99

    def test_distances_increase(self, curved_path):
        assert np.all(np.diff(curved_path.distances) > 0)

    def test_initial_heading_points_toward_second_waypoint(self, curved_path):
        first, second = curved_path.points[:2]
        heading = curved_path.initial_heading
        walked = first.copy()
        walked.translate(dist(first, second), heading)
        assert walked == second


@pytest.mark.parametrize("name", sorted(REFERENCE_CURVES))
def test_velocity_changes_respect_acceleration(name):
    path = PursuitPath(REFERENCE_CURVES[name], 30, 12, 200)
    vel = path.velocities
    up = 2.0 * path.acc * path.spacing
    down = 2.0 * path.dec * path.spacing

    for i in range(1, len(vel)):
        assert vel[i] <= math.sqrt(vel[i - 1] ** 2 + up) + 1e-9
    for i in range(len(vel) - 1):
        assert vel[i] <= math.sqrt(vel[i + 1] ** 2 + down) + 1e-9


def test_deceleration_magnitude_is_used():
    forward = PursuitPath(STRAIGHT, 30, 12, 200, 200, 24)
    negative = PursuitPath(STRAIGHT, 30, 12, 200, -200, 24)
    assert negative.dec == 200
    assert negative.velocities == pytest.approx(forward.velocities)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"spacing": 0},
        {"spacing": -5},
        {"track_width": 0},
        {"max_vel": 0},
        {"acc": 0},
    ],
)
def test_rejects_non_positive_inputs(kwargs):
    args = {"track_width": 30, "max_vel": 12, "acc": 200}
    args.update(kwargs)
    with pytest.raises(ValueError):
        PursuitPath(STRAIGHT, **args)


class TestPersistence:
    def test_write_then_read(self, straight_path, tmp_path):
        target = tmp_path / "path.txt"
        assert straight_path.write_to_file(target)

        loaded = PursuitPath.create_from_file(target)
        assert loaded is not None
        assert loaded.size == straight_path.size
        assert loaded.points[3] == straight_path.points[3]
        assert loaded.velocities == pytest.approx(straight_path.velocities, abs=1e-3)
        assert loaded.curve is None

    def test_file_header_is_point_count(self, straight_path, tmp_path):
        target = tmp_path / "path.txt"
        straight_path.write_to_file(target)
        lines = target.read_text().splitlines()
        assert lines[0] == "7"
        assert len(lines) == 8

    def test_write_to_missing_directory(self, straight_path, tmp_path):
        assert not straight_path.write_to_file(tmp_path / "missing" / "path.txt")

    def test_missing_file(self, tmp_path):
        assert PursuitPath.create_from_file(tmp_path / "nope.txt") is None

    def test_malformed_file(self, tmp_path):
        target = tmp_path / "bad.txt"
        target.write_text("2\n1 2 3 4 5\nnot numbers\n")
        assert PursuitPath.create_from_file(target) is None

    def test_truncated_file(self, tmp_path):
        target = tmp_path / "short.txt"
        target.write_text("3\n1 2 3 4 5\n")
        assert PursuitPath.create_from_file(target) is None
