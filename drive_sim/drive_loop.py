"""Drive loop state machine.

The drive loop owns the drive and turn PID controllers and the pure pursuit
tracker, and writes one pair of wheel voltages into the robot per tick. Each
mode carries its own setpoint record; a mode is entered only through its
``set_*_state`` method, and every entry that uses a PID controller resets it.

Modes:
    WAITING: hold the robot at rest.
    DRIVE_TO_GOAL: PID on distance to a goal plus PID on bearing to it.
    DRIVE_DISTANCE: regulated PID on average position with heading hold.
    TURN_ANGLE: regulated PID on heading.
    OPEN_LOOP_PROFILE: feed-forward from the active profile sample.
    CLOSED_LOOP_LINEAR_PROFILE: distance-velocity PID plus feed-forward.
    PURE_PURSUIT: linear and angular outputs from the pursuit tracker.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Optional, Union

from .config import DEFAULT_CONFIG, SimConfig
from .follower import PurePursuitController
from .geometry import Pose
from .model import Robot
from .pid import PIDController
from .profiles import ProfileSample

ZERO_SAMPLE = ProfileSample(0.0, 0.0, 0.0)


class DriveState(Enum):
    """Drive loop modes. The mode name is logged whenever the loop enters it."""

    WAITING = "waiting"
    DRIVE_TO_GOAL = "drive_to_goal"
    DRIVE_DISTANCE = "drive_distance"
    TURN_ANGLE = "turn_angle"
    OPEN_LOOP_PROFILE = "open_loop_profile"
    CLOSED_LOOP_LINEAR_PROFILE = "closed_loop_linear_profile"
    PURE_PURSUIT = "pure_pursuit"


@dataclass
class Waiting:
    state: ClassVar[DriveState] = DriveState.WAITING


@dataclass
class DriveDistanceSetpoint:
    """Goal position (inches) and heading (radians) for a straight drive."""

    state: ClassVar[DriveState] = DriveState.DRIVE_DISTANCE

    goal_dist: float
    goal_angle: float
    top_speed: float
    tolerance: float
    min_speed: float = 0.0


@dataclass
class TurnAngleSetpoint:
    """Goal heading (radians) for a turn in place."""

    state: ClassVar[DriveState] = DriveState.TURN_ANGLE

    goal_angle: float
    top_speed: float
    tolerance: float


@dataclass
class DriveToGoalSetpoint:
    """Distance and heading setpoints refreshed every tick while driving to a point."""

    state: ClassVar[DriveState] = DriveState.DRIVE_TO_GOAL

    goal_dist: float
    goal_angle: float
    tolerance: float
    top_speed: float
    min_speed: float
    reverse: bool = False


@dataclass
class OpenLoopProfileSetpoint:
    """Latest profile samples for feed-forward only following."""

    state: ClassVar[DriveState] = DriveState.OPEN_LOOP_PROFILE

    left: ProfileSample = ZERO_SAMPLE
    right: ProfileSample = ZERO_SAMPLE


@dataclass
class ClosedLoopProfileSetpoint:
    """Latest profile sample plus the start position of a straight profile."""

    state: ClassVar[DriveState] = DriveState.CLOSED_LOOP_LINEAR_PROFILE

    tolerance: float
    total_dist: float
    init_pos: float
    left: ProfileSample = field(default=ZERO_SAMPLE)
    right: ProfileSample = field(default=ZERO_SAMPLE)


@dataclass
class PurePursuitSetpoint:
    state: ClassVar[DriveState] = DriveState.PURE_PURSUIT


Setpoint = Union[
    Waiting,
    DriveDistanceSetpoint,
    TurnAngleSetpoint,
    DriveToGoalSetpoint,
    OpenLoopProfileSetpoint,
    ClosedLoopProfileSetpoint,
    PurePursuitSetpoint,
]


class DriveLoop:
    """Per-tick controller dispatch for a single robot.

    Attributes:
        robot: Plant the loop drives.
        drive_pid: Controller on average position.
        turn_pid: Controller on heading.
        ppc: Pure pursuit tracker.
        k_v: Velocity feed-forward (volts per ft/s).
        k_a: Acceleration feed-forward (volts per in/s^2).
        setpoint: Record of the active mode.
    """

    def __init__(
        self,
        robot: Robot,
        drive_pid: PIDController,
        turn_pid: PIDController,
        ppc: Optional[PurePursuitController] = None,
        config: Optional[SimConfig] = None,
    ) -> None:
        """Initialize the loop in the waiting state.

        The PID controllers are copied with the robot's top speed, so the
        caller's instances are never mutated.

        Args:
            robot: Plant to drive.
            drive_pid: Template for the drive controller.
            turn_pid: Template for the turn controller.
            ppc: Pure pursuit tracker. Default: a fresh tracker.
            config: Simulation configuration. Default: ``DEFAULT_CONFIG``.
        """
        self.config = config or DEFAULT_CONFIG
        self.robot = robot
        self.drive_pid = drive_pid.copy(top_speed=robot.max_lin_speed)
        self.turn_pid = turn_pid.copy(top_speed=robot.max_lin_speed)
        self.ppc = ppc or PurePursuitController(self.config)

        self.k_v = self.config.k_v
        self.k_a = self.config.k_a

        self.setpoint: Setpoint = Waiting()

    @classmethod
    def from_config(cls, robot: Robot, config: Optional[SimConfig] = None) -> "DriveLoop":
        """Build a loop whose controllers use the configured gains."""
        config = config or DEFAULT_CONFIG
        drive_pid = PIDController(
            config.kp_drive, config.ki_drive, config.kd_drive, robot.max_lin_speed, config
        )
        turn_pid = PIDController(
            config.kp_turn, config.ki_turn, config.kd_turn, robot.max_lin_speed, config
        )
        return cls(robot, drive_pid, turn_pid, config=config)

    # ------------------------------------------------------------------
    # Configuration and queries
    # ------------------------------------------------------------------

    def set_ff_values(self, k_v: float, k_a: float) -> None:
        self.k_v = k_v
        self.k_a = k_a

    @property
    def state(self) -> DriveState:
        return self.setpoint.state

    def set_state(self, state: DriveState) -> None:
        """Enter a mode that needs no setpoints.

        Raises:
            ValueError: If the mode needs setpoints and has its own entry point.
        """
        if state is DriveState.WAITING:
            self._enter(Waiting())
        elif state is DriveState.PURE_PURSUIT:
            self._enter(PurePursuitSetpoint())
        else:
            raise ValueError(f"{state.name} must be entered through its own set_*_state method")

    def is_drive_pid_at_target(self) -> bool:
        return self.drive_pid.is_done()

    def is_turn_pid_at_target(self) -> bool:
        return self.turn_pid.is_done()

    def is_robot_slower_than_percent(self, percent: float) -> bool:
        return self.robot.is_slower_than_percent(percent)

    def is_robot_slower_than_vel(self, vel: float) -> bool:
        """Return True if the robot is slower than ``vel`` (ft/s)."""
        return self.robot.is_slower_than_percent(abs(vel) / self.robot.max_lin_speed)

    def _enter(self, setpoint: Setpoint) -> None:
        self.setpoint = setpoint
        self.robot.pid_output = None
        self.robot.lookahead = None
        self.robot.goal_point = None
        logging.debug(f"Drive loop entered {setpoint.state.name}")

    # ------------------------------------------------------------------
    # State entry points
    # ------------------------------------------------------------------

    def set_drive_distance_state(self, distance: float, top_speed: float, tolerance: float) -> None:
        """Drive ``distance`` inches from the current position, holding the current heading."""
        self._enter(
            DriveDistanceSetpoint(
                goal_dist=distance + self.robot.average_pos,
                goal_angle=self.robot.heading,
                top_speed=top_speed,
                tolerance=tolerance,
            )
        )
        self.drive_pid.reset()
        self.turn_pid.reset()

    def set_turn_angle_state(
        self, angle: float, top_speed: float, tolerance: float, relative: bool
    ) -> None:
        """Turn to ``angle`` radians, measured from the current heading if ``relative``."""
        goal = angle + (self.robot.heading if relative else 0.0)
        self._enter(TurnAngleSetpoint(goal_angle=goal, top_speed=top_speed, tolerance=tolerance))
        self.drive_pid.reset()
        self.turn_pid.reset()

    def set_drive_to_goal_state(
        self,
        dist: float,
        angle: float,
        tolerance: float,
        top_speed: float,
        min_speed: float,
        reverse: bool,
    ) -> None:
        """Start driving to a point with fresh controllers."""
        self.update_drive_to_goal_state(dist, angle, tolerance, top_speed, min_speed, reverse)
        self.drive_pid.reset()
        self.turn_pid.reset()

    def update_drive_to_goal_state(
        self,
        dist: float,
        angle: float,
        tolerance: float,
        top_speed: float,
        min_speed: float,
        reverse: bool,
    ) -> None:
        """Refresh the drive-to-goal setpoints without resetting the controllers.

        Args:
            dist: Average position setpoint (inches).
            angle: Heading setpoint (radians).
            tolerance: Position tolerance (inches).
            top_speed: Speed ceiling (ft/s).
            min_speed: Speed floor (ft/s).
            reverse: Whether the goal is approached backwards.
        """
        setpoint = DriveToGoalSetpoint(dist, angle, tolerance, top_speed, min_speed, reverse)
        if isinstance(self.setpoint, DriveToGoalSetpoint):
            self.setpoint = setpoint
        else:
            self._enter(setpoint)

    def set_open_loop_profile_state(self) -> None:
        self._enter(OpenLoopProfileSetpoint())

    def update_open_loop_profile_state(self, left: ProfileSample, right: ProfileSample) -> None:
        if isinstance(self.setpoint, OpenLoopProfileSetpoint):
            self.setpoint.left = left
            self.setpoint.right = right

    def set_closed_loop_linear_profile_state(
        self, tolerance: float, total_dist: float, init_pos: float
    ) -> None:
        """Follow a straight profile starting from ``init_pos`` (inches)."""
        self._enter(ClosedLoopProfileSetpoint(tolerance, total_dist, init_pos))
        self.drive_pid.reset()
        self.drive_pid.init_pos = init_pos

    def update_closed_loop_linear_profile_state(
        self, left: ProfileSample, right: ProfileSample
    ) -> None:
        if isinstance(self.setpoint, ClosedLoopProfileSetpoint):
            self.setpoint.left = left
            self.setpoint.right = right

    def set_pure_pursuit_state(self) -> None:
        self._enter(PurePursuitSetpoint())

    def update_pure_pursuit_state(self, pose: Pose, robot_speed: float) -> None:
        self.ppc.calc_outputs(pose, robot_speed)

    # ------------------------------------------------------------------
    # Per-tick dispatch
    # ------------------------------------------------------------------

    def on_loop(self) -> None:
        """Compute and apply one tick of output for the active mode.

        Raises:
            TypeError: If the setpoint record is not a known mode.
        """
        sp = self.setpoint
        if isinstance(sp, Waiting):
            self.robot.set_to_wait()
        elif isinstance(sp, DriveToGoalSetpoint):
            self._drive_to_goal_loop(sp)
        elif isinstance(sp, DriveDistanceSetpoint):
            self._drive_distance_loop(sp)
        elif isinstance(sp, TurnAngleSetpoint):
            self._turn_angle_loop(sp)
        elif isinstance(sp, OpenLoopProfileSetpoint):
            self._open_loop_profile_loop(sp)
        elif isinstance(sp, ClosedLoopProfileSetpoint):
            self._closed_loop_linear_profile_loop(sp)
        elif isinstance(sp, PurePursuitSetpoint):
            self._pure_pursuit_loop()
        else:
            raise TypeError(f"Unknown drive loop setpoint: {sp!r}")

    def _drive_distance_loop(self, sp: DriveDistanceSetpoint) -> None:
        drive_out = self.drive_pid.calc_regulated_pid(
            sp.goal_dist, self.robot.average_pos, sp.tolerance, sp.top_speed, sp.min_speed
        )
        turn_out = self.turn_pid.calc_pid(sp.goal_angle, self.robot.heading, 1)

        self.robot.update(drive_out - turn_out, drive_out + turn_out)
        self.robot.pid_output = drive_out

    def _turn_angle_loop(self, sp: TurnAngleSetpoint) -> None:
        turn_out = self.turn_pid.calc_regulated_pid(
            sp.goal_angle, self.robot.heading, sp.tolerance, sp.top_speed, 0
        )

        self.robot.update(-turn_out, turn_out)
        self.robot.pid_output = turn_out

    def _drive_to_goal_loop(self, sp: DriveToGoalSetpoint) -> None:
        drive_out = self.drive_pid.calc_regulated_pid(
            sp.goal_dist, self.robot.average_pos, sp.tolerance, sp.top_speed, sp.min_speed
        )
        turn_out = self.turn_pid.calc_pid(sp.goal_angle, self.robot.heading, math.radians(1))

        self.robot.update(drive_out - turn_out, drive_out + turn_out)
        self.robot.pid_output = drive_out

    def _calc_ff_output(self, vel: float, acc: float) -> float:
        return self.k_v * vel + self.k_a * acc

    def _open_loop_profile_loop(self, sp: OpenLoopProfileSetpoint) -> None:
        left_out = self._calc_ff_output(sp.left.vel, sp.left.acc)
        right_out = self._calc_ff_output(sp.right.vel, sp.right.acc)

        self.robot.update(left_out, right_out)

    def _closed_loop_linear_profile_loop(self, sp: ClosedLoopProfileSetpoint) -> None:
        # Both sides of a straight profile are identical
        pos = sp.left.pos + self.drive_pid.init_pos
        vel = sp.left.vel
        acc = sp.left.acc

        feedback = self.drive_pid.calc_dv_pid(pos, self.robot.average_pos, vel, sp.tolerance)
        output = feedback + self._calc_ff_output(vel, acc)

        self.robot.update(output, output)
        self.robot.pid_output = feedback

    def _pure_pursuit_loop(self) -> None:
        speed = self.ppc.lin_out
        turn = self.ppc.ang_out

        self.robot.update(speed - turn, speed + turn)
        self.robot.goal_point = self.ppc.goal
        self.robot.lookahead = self.ppc.lookahead
