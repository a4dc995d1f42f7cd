import logging
import math

import pytest

from drive_sim.drive_loop import (
    ClosedLoopProfileSetpoint,
    DriveDistanceSetpoint,
    DriveState,
    DriveToGoalSetpoint,
    Waiting,
)
from drive_sim.geometry import Point
from drive_sim.profiles import ProfileSample


def test_starts_waiting(loop):
    assert loop.state is DriveState.WAITING
    assert isinstance(loop.setpoint, Waiting)


def test_entering_a_mode_logs_its_name(loop, caplog):
    with caplog.at_level(logging.DEBUG):
        loop.set_state(DriveState.PURE_PURSUIT)
    assert "Drive loop entered PURE_PURSUIT" in caplog.text


def test_controllers_are_copied_for_robot_speed(loop):
    assert loop.drive_pid.top_speed == pytest.approx(loop.robot.max_lin_speed)
    assert loop.turn_pid.top_speed == pytest.approx(loop.robot.max_lin_speed)
    assert loop.drive_pid is not loop.turn_pid


@pytest.mark.parametrize(
    "state",
    [
        DriveState.DRIVE_DISTANCE,
        DriveState.TURN_ANGLE,
        DriveState.DRIVE_TO_GOAL,
        DriveState.OPEN_LOOP_PROFILE,
        DriveState.CLOSED_LOOP_LINEAR_PROFILE,
    ],
)
def test_set_state_rejects_modes_with_setpoints(loop, state):
    with pytest.raises(ValueError):
        loop.set_state(state)


def test_set_state_accepts_plain_modes(loop):
    loop.set_state(DriveState.PURE_PURSUIT)
    assert loop.state is DriveState.PURE_PURSUIT
    loop.set_state(DriveState.WAITING)
    assert loop.state is DriveState.WAITING


def test_waiting_holds_robot_still(loop):
    for _ in range(50):
        loop.on_loop()
    assert loop.robot.point == Point(0, 0)
    assert loop.robot.linear_vel == 0
    assert loop.robot.left_voltage == 0


def test_waiting_stops_a_moving_robot(loop):
    for _ in range(100):
        loop.robot.update(12, 12)
    position = loop.robot.average_pos

    loop.on_loop()

    assert loop.robot.linear_vel == 0
    assert loop.robot.average_pos == position


def test_drive_distance_goal_is_relative(loop):
    for _ in range(100):
        loop.robot.update(6, 6)
    start = loop.robot.average_pos

    loop.set_drive_distance_state(50, 12, 1)

    assert isinstance(loop.setpoint, DriveDistanceSetpoint)
    assert loop.setpoint.goal_dist == pytest.approx(50 + start)
    assert loop.setpoint.goal_angle == loop.robot.heading
    assert loop.state is DriveState.DRIVE_DISTANCE


def test_drive_distance_moves_forward(loop):
    loop.set_drive_distance_state(50, 12, 1)
    for _ in range(100):
        loop.on_loop()
    assert loop.robot.average_pos > 0
    assert loop.robot.pid_output is not None
    assert loop.robot.heading == pytest.approx(0)


def test_turn_angle_relative_goal(loop):
    loop.robot.set_heading(0.5)
    loop.set_turn_angle_state(1.0, 12, 0.05, relative=True)
    assert loop.setpoint.goal_angle == pytest.approx(1.5)

    loop.set_turn_angle_state(1.0, 12, 0.05, relative=False)
    assert loop.setpoint.goal_angle == pytest.approx(1.0)


def test_turn_angle_turns_in_place(loop):
    loop.set_turn_angle_state(math.pi / 2, 12, 0.05, relative=False)
    for _ in range(50):
        loop.on_loop()
    assert loop.robot.heading > 0
    assert loop.robot.left_voltage == pytest.approx(-loop.robot.right_voltage)


def test_drive_to_goal_update_keeps_controller_state(loop):
    loop.set_drive_to_goal_state(40, 0, 1, 12, 0, False)
    loop.on_loop()
    last_error = loop.drive_pid.last_error
    assert last_error != 0

    loop.update_drive_to_goal_state(41, 0, 1, 12, 0, False)

    assert isinstance(loop.setpoint, DriveToGoalSetpoint)
    assert loop.setpoint.goal_dist == 41
    assert loop.drive_pid.last_error == last_error


def test_entering_a_mode_clears_overlays(loop):
    loop.robot.goal_point = Point(1, 2)
    loop.robot.lookahead = 18.0
    loop.set_drive_distance_state(10, 12, 1)
    assert loop.robot.goal_point is None
    assert loop.robot.lookahead is None


def test_open_loop_profile_applies_feed_forward(loop):
    loop.set_open_loop_profile_state()
    sample = ProfileSample(0.0, 6.0, 0.0)
    loop.update_open_loop_profile_state(sample, sample)
    loop.on_loop()
    expected = loop.k_v * 6.0
    assert loop.robot.left_voltage == pytest.approx(expected)
    assert loop.robot.right_voltage == pytest.approx(expected)


def test_open_loop_profile_starts_from_rest(loop):
    loop.set_open_loop_profile_state()
    loop.on_loop()
    assert loop.robot.left_voltage == 0


def test_profile_updates_ignored_in_other_modes(loop):
    sample = ProfileSample(1.0, 2.0, 3.0)
    loop.update_open_loop_profile_state(sample, sample)
    loop.update_closed_loop_linear_profile_state(sample, sample)
    assert loop.state is DriveState.WAITING


def test_closed_loop_entry_resets_controller(loop):
    loop.drive_pid.calc_pid(10, 0, 1)
    loop.set_closed_loop_linear_profile_state(2, 100, 25)

    assert isinstance(loop.setpoint, ClosedLoopProfileSetpoint)
    assert loop.drive_pid.last_error == 0
    assert loop.drive_pid.error_sum == 0
    assert loop.drive_pid.init_pos == 25
    assert loop.setpoint.left == ProfileSample(0.0, 0.0, 0.0)


def test_set_ff_values(loop):
    loop.set_ff_values(1.5, 0.25)
    assert (loop.k_v, loop.k_a) == (1.5, 0.25)


def test_pure_pursuit_loop_publishes_goal(loop):
    loop.ppc.set_waypoints([Point(0, 0), Point(0, 100)])
    loop.set_pure_pursuit_state()
    loop.update_pure_pursuit_state(loop.robot.pose, loop.robot.linear_vel)
    loop.on_loop()

    assert loop.robot.goal_point == Point(0, 18)
    assert loop.robot.lookahead == 18
    assert loop.robot.left_voltage == pytest.approx(loop.robot.right_voltage)


def test_robot_speed_queries(loop):
    assert loop.is_robot_slower_than_vel(1)
    assert loop.is_robot_slower_than_percent(0.1)


def test_unknown_setpoint_is_rejected(loop):
    loop.setpoint = object()
    with pytest.raises(TypeError):
        loop.on_loop()
