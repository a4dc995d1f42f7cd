"""Canned command sequences and characterisation runs.

Each builder takes a drive loop and returns a ``CommandGroup`` ready to
``run()``. Builders only queue commands; nothing moves until the group runs.
"""

import logging
import math
from typing import List, Optional, Sequence

import numpy as np

from .bezier import ControlPoints
from .commands import (
    CommandGroup,
    DriveClosedLoopLinearProfile,
    DriveDistance,
    DriveOpenLoopProfile,
    DriveToGoal,
    PurePursuit,
    SetPose,
    TimedVoltage,
    Wait,
)
from .config import (
    DEFAULT_CONFIG,
    FIELD_HEIGHT,
    FIELD_WIDTH,
    NEO,
    NICE_LONG_CURVE,
    PATH_ACC,
    PATH_MAX_VEL,
    PATH_SPACING,
    PP_ACC_TIME,
    PP_END_DIST,
    PP_GOAL_DIST,
    PP_LOOKAHEAD,
    PP_MAX_SPEED,
    PP_TURN_CONST,
    ROBOT_LENGTH,
    ROBOT_MASS,
    ROBOT_MOTOR_COUNT,
    ROBOT_TOP_SPEED,
    ROBOT_WHEEL_DIAMETER,
    ROBOT_WIDTH,
    SimConfig,
)
from .drive_loop import DriveLoop
from .follower import PurePursuitController
from .geometry import Point
from .model import Gearbox, Motor, Robot
from .numeric import regressed_slope
from .path import PursuitPath
from .profiles import BezierProfile, TrapezoidalProfile

SWEEP_DISTANCE = 75.0
"""Offset of each drive-to-goal sweep target from the field center (inches)."""

SWEEP_TIMEOUT = 2.0
"""Time allowed for each drive-to-goal sweep target (seconds)."""

DEMO_POINTS = 20
"""Number of random targets in the drive-to-goal demo."""


# ============================================================================
# Robot Construction
# ============================================================================


def build_reference_robot(config: Optional[SimConfig] = None) -> Robot:
    """Build the reference robot: 4 in wheels, 120 lb, 30x30 in, two NEOs per side at 12 ft/s."""
    config = config or DEFAULT_CONFIG
    ratio = Gearbox.ratio_from_top_speed(NEO, ROBOT_WHEEL_DIAMETER, ROBOT_TOP_SPEED)
    gearbox = Gearbox(ratio, Motor(NEO, config), ROBOT_MOTOR_COUNT, config)
    return Robot(ROBOT_WHEEL_DIAMETER, ROBOT_MASS, ROBOT_LENGTH, ROBOT_WIDTH, gearbox, config)


def build_reference_loop(config: Optional[SimConfig] = None) -> DriveLoop:
    """Drive loop around a fresh reference robot, with the pursuit tracker tuned."""
    config = config or DEFAULT_CONFIG
    loop = DriveLoop.from_config(build_reference_robot(config), config)
    configure_pursuit(loop.ppc)
    return loop


def configure_pursuit(ppc: PurePursuitController, reverse: bool = False) -> None:
    """Apply the default seek, arrive and lookahead constants."""
    ppc.set_seek_constants(PP_ACC_TIME, PP_TURN_CONST, PP_MAX_SPEED, reverse)
    ppc.set_arrive_constants(PP_GOAL_DIST, PP_END_DIST)
    ppc.set_pure_pursuit_constants(PP_LOOKAHEAD)


# ============================================================================
# Routines
# ============================================================================


def straight_profile_test(loop: DriveLoop) -> CommandGroup:
    """Drive 100 in straight up the field from (100, 100)."""
    return CommandGroup(
        SetPose(loop, 100, 100, 0),
        DriveDistance(loop, 100, 1, 12),
    )


def trapezoid_profile_test(loop: DriveLoop, closed_loop: bool = True) -> CommandGroup:
    """Follow a 100 in trapezoidal profile from (100, 100)."""
    profile = TrapezoidalProfile(100, 24, 12, loop.config)
    if closed_loop:
        follow = DriveClosedLoopLinearProfile(loop, profile, 1)
    else:
        follow = DriveOpenLoopProfile(loop, profile)

    return CommandGroup(SetPose(loop, 100, 100, 0), follow)


def bezier_profile_test(loop: DriveLoop, curve: ControlPoints = NICE_LONG_CURVE) -> CommandGroup:
    """Follow a Bezier wheel profile open loop from the curve's start pose."""
    profile = BezierProfile(
        curve, loop.robot.track_width, PATH_MAX_VEL * 12.0, PATH_ACC, PATH_ACC, loop.config
    )
    start = profile.start_position
    follow = DriveOpenLoopProfile(loop, profile)
    follow.set_timeout(profile.total_time + 1.0)

    return CommandGroup(
        SetPose(loop, start.x, start.y, profile.initial_heading),
        follow,
    )


def drive_to_goal_demo(loop: DriveLoop, rng: Optional[np.random.Generator] = None) -> CommandGroup:
    """Visit random points on the near half of the field.

    The first and last points are driven forward, the last one with no
    minimum speed. The ones between are driven in a random direction with a
    speed floor of half the top speed.

    Args:
        loop: Drive loop to control.
        rng: Random source. Default: a fresh unseeded generator.
    """
    rng = rng or np.random.default_rng()
    top_speed = loop.robot.max_lin_speed

    group = CommandGroup(SetPose(loop, 30, 30, 0))
    for i in range(DEMO_POINTS):
        goal = Point(
            float(rng.uniform(15, FIELD_HEIGHT - 15)),
            float(rng.uniform(15, FIELD_WIDTH / 2 - 15)),
        )

        if i == 0:
            reverse, min_speed = False, 6.0
        elif i == DEMO_POINTS - 1:
            reverse, min_speed = False, 0.0
        else:
            reverse, min_speed = bool(rng.integers(2)), top_speed / 2

        group.add(DriveToGoal(loop, goal, 1, top_speed, min_speed, reverse))

    return group


def sweep_targets(center: Point, distance: float = SWEEP_DISTANCE) -> List[Point]:
    """Eight targets around ``center``: four on the axes, then four on the diagonals."""
    offsets = [
        (0, 1), (0, -1), (-1, 0), (1, 0),
        (1, 1), (1, -1), (-1, -1), (-1, 1),
    ]  # fmt: skip
    return [Point(center.x + dx * distance, center.y + dy * distance) for dx, dy in offsets]


def _reset_to(group: CommandGroup, loop: DriveLoop, point: Point) -> None:
    group.add(Wait(loop, 0.5))
    group.add(SetPose(loop, point.x, point.y))
    group.add(Wait(loop, 0.5))


def drive_to_goal_sweep(loop: DriveLoop) -> CommandGroup:
    """Drive from the field center to targets in every direction, forward and reverse.

    The robot is stopped and placed back at the center before every target.
    """
    center = Point(FIELD_HEIGHT / 2, FIELD_WIDTH / 2)
    targets = sweep_targets(center)

    # Axis targets forward then reverse, then diagonals forward then reverse
    cases = [(p, False) for p in targets[:4]] + [(p, True) for p in targets[:4]]
    cases += [(p, False) for p in targets[4:]] + [(p, True) for p in targets[4:]]

    group = CommandGroup()
    _reset_to(group, loop, center)
    for target, reverse in cases:
        group.add(DriveToGoal(loop, target, 1, 12, 2, reverse).set_timeout(SWEEP_TIMEOUT))
        _reset_to(group, loop, center)

    return group


def pure_pursuit_demo(
    loop: DriveLoop,
    curve: ControlPoints = NICE_LONG_CURVE,
    spacing: float = PATH_SPACING,
) -> CommandGroup:
    """Track the waypoints of a planned path from its first point."""
    path = PursuitPath(curve, loop.robot.track_width, PATH_MAX_VEL, PATH_ACC, PATH_ACC, spacing)
    start = path.start

    return CommandGroup(
        SetPose(loop, start.x, start.y, math.degrees(path.initial_heading)),
        PurePursuit(loop, path.points),
    )


# ============================================================================
# Characterisation
# ============================================================================


def characterize_kv(
    config: Optional[SimConfig] = None,
    volt_step: float = 0.1,
    duration: float = 5.0,
    voltages: Optional[Sequence[float]] = None,
) -> float:
    """Measure settled speed per volt on the reference robot.

    The robot is run at each voltage for ``duration`` seconds from rest and
    its final linear velocity recorded; the result is the least-squares slope
    of velocity against voltage.

    Args:
        config: Simulation configuration. Default: ``DEFAULT_CONFIG``.
        volt_step: Spacing of the voltage sweep (volts).
        duration: Time spent at each voltage (seconds).
        voltages: Explicit voltages to use instead of the sweep.

    Returns:
        Slope in ft/s per volt.
    """
    config = config or DEFAULT_CONFIG
    if voltages is None:
        voltages = np.arange(0.0, config.max_voltage, volt_step).tolist()

    loop = DriveLoop.from_config(build_reference_robot(config), config)
    velocities = []
    for volt in voltages:
        TimedVoltage(loop, volt, time=duration).set_timeout(duration + 1.0).run()
        velocities.append(loop.robot.linear_vel)
        loop.robot.reset()

    slope = regressed_slope(voltages, velocities)
    logging.info(f"Characterized kV slope: {slope:.4f} over {len(voltages)} voltages")
    return slope
