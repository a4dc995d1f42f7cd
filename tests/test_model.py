import math

import pytest

from drive_sim.config import NEO, SimConfig
from drive_sim.geometry import Point
from drive_sim.model import STOPPED_COLOR, Gearbox, Motor, Robot
from drive_sim.telemetry import TELEMETRY_COLUMNS


def test_motor_constants():
    motor = Motor(NEO)
    assert motor.resistance == pytest.approx(12 / 166)
    assert motor.k_t == pytest.approx(3.36 / 166)
    expected_kv = 5880 * math.pi / 30 / (12 - (12 / 166) * 1.3 + 0.206)
    assert motor.k_v == pytest.approx(expected_kv)


def test_ratio_from_top_speed():
    assert Gearbox.ratio_from_top_speed(NEO, 4, 12) == pytest.approx(8.5521, abs=1e-3)


def test_gearbox_clone_has_fresh_state():
    gearbox = Gearbox(8.5, Motor(NEO), 2)
    gearbox.update(10.0)
    clone = gearbox.clone()
    assert clone.velocity == 0
    assert clone.position == 0
    assert clone.c_voltage == gearbox.c_voltage


def test_reference_robot_top_speed(robot):
    assert robot.max_lin_speed == pytest.approx(12.0, rel=1e-3)
    assert robot.track_width == pytest.approx(30.0)


def test_reference_robot_turn_speed(robot):
    assert robot.max_ang_speed == pytest.approx(24 * robot.max_lin_speed * 0.0254 / robot.width)
    assert robot.max_ang_speed > 0


def test_robot_at_rest_stays_at_rest(robot):
    for _ in range(100):
        robot.update(0, 0)
    assert robot.average_pos == 0
    assert robot.linear_vel == 0
    assert robot.point == Point(0, 0)
    assert robot.color == STOPPED_COLOR


def test_voltages_are_clamped(robot):
    robot.update(20, -20)
    assert robot.left_voltage == 12
    assert robot.right_voltage == -12


def test_equal_voltages_drive_straight_up_the_field(robot):
    for _ in range(1000):
        robot.update(12, 12)

    assert robot.heading == pytest.approx(0)
    assert robot.x == pytest.approx(0)
    assert robot.y == pytest.approx(robot.average_pos)
    assert 0 < robot.linear_vel < robot.max_lin_speed
    # Settled close to free speed after 5 s
    assert robot.linear_vel == pytest.approx(robot.max_lin_speed, rel=0.02)
    assert robot.color[1] > 0 and robot.color[0] == 0


def test_reverse_voltage_drives_backwards(robot):
    for _ in range(200):
        robot.update(-6, -6)
    assert robot.linear_vel < 0
    assert robot.y < 0
    assert robot.color[0] > 0 and robot.color[1] == 0


def test_opposite_voltages_turn_in_place(robot):
    for _ in range(200):
        robot.update(-6, 6)
    assert robot.heading > 0
    assert robot.angular_vel > 0
    assert robot.linear_vel == pytest.approx(0, abs=1e-9)
    assert robot.point == Point(0, 0)


def test_heavier_robot_accelerates_slower(config):
    gearbox = Gearbox(Gearbox.ratio_from_top_speed(NEO, 4, 12), Motor(NEO), 2, config)
    light = Robot(4, 100, 30, 30, gearbox, config)
    heavy = Robot(4, 150, 30, 30, gearbox, config)
    for _ in range(20):
        light.update(12, 12)
        heavy.update(12, 12)
    assert light.linear_vel > heavy.linear_vel


def test_yaw_wraps_to_degrees(robot):
    robot.set_heading_degrees(425)
    assert robot.yaw == pytest.approx(65)
    robot.set_heading(-math.pi / 2)
    assert robot.yaw == pytest.approx(270)


def test_set_to_wait_keeps_pose(robot):
    for _ in range(100):
        robot.update(12, 10)
    pose = robot.pose
    position = robot.average_pos

    robot.set_to_wait()

    assert robot.linear_vel == 0
    assert robot.angular_vel == 0
    assert robot.left_gearbox.velocity == 0
    assert robot.average_pos == position
    assert robot.point == pose.point


def test_reset_returns_to_origin(robot):
    robot.set_xy(Point(50, 50))
    for _ in range(100):
        robot.update(12, 12)
    robot.goal_point = Point(1, 1)

    robot.reset()

    assert robot.point == Point(0, 0)
    assert robot.average_pos == 0
    assert robot.heading == 0
    assert robot.goal_point is None


def test_is_slower_than_percent(robot):
    assert robot.is_slower_than_percent(0.1)
    for _ in range(1000):
        robot.update(12, 12)
    assert not robot.is_slower_than_percent(0.5)


def test_pose_is_a_snapshot(robot):
    pose = robot.pose
    for _ in range(100):
        robot.update(12, 12)
    assert pose.y == 0


def test_telemetry_snapshot(robot):
    robot.command_name = "Test"
    for _ in range(10):
        robot.update(6, 6)

    snapshot = robot.telemetry()
    assert snapshot.command == "Test"
    assert snapshot.avg_pos == robot.average_pos
    assert snapshot.left_voltage == 6
    assert snapshot.left_pos == pytest.approx(robot.average_pos)
    assert snapshot.goal_point is None

    row = snapshot.to_dict()
    assert list(row) == TELEMETRY_COLUMNS
    assert row["goal_x"] == ""
    assert row["pid_output"] == ""


def test_telemetry_includes_goal_point(robot):
    robot.goal_point = Point(3, 4)
    robot.lookahead = 18.0
    row = robot.telemetry().to_dict()
    assert row["goal_x"] == 3
    assert row["goal_y"] == 4
    assert row["lookahead"] == 18.0


def test_config_update_period_is_used():
    config = SimConfig(update_period=0.01)
    gearbox = Gearbox(8.5521, Motor(NEO, config), 2, config)
    slow = Robot(4, 120, 30, 30, gearbox, config)
    fast = Robot(4, 120, 30, 30, Gearbox(8.5521, Motor(NEO), 2))
    slow.update(12, 12)
    fast.update(12, 12)
    assert slow.linear_vel == pytest.approx(2 * fast.linear_vel)
