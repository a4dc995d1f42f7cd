"""Execution harness and the commands it runs.

A command is initialized once and then ticked until it reports that it is
finished or its iteration cap fires. Every tick appends the robot pose and a
telemetry snapshot to the command's trace. Normal completion calls ``end()``;
hitting the cap calls ``timed_out()`` instead.

Commands:
    DriveDistance, TurnAngle, DriveToGoal: PID driving.
    DriveOpenLoopProfile, DriveClosedLoopLinearProfile: profile following.
    PurePursuit: waypoint tracking.
    SetPose, TimedVoltage, Wait: setup and characterisation helpers.
    CommandGroup: runs commands in order and concatenates their traces.
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from .drive_loop import DriveLoop, DriveState
from .geometry import Point, Pose, dist, goal_yaw, is_within_bounds
from .model import Robot
from .profiles import DriveProfile, TrapezoidalProfile
from .telemetry import Telemetry


class Command(ABC):
    """Base class for commands run by the harness.

    Attributes:
        loop: Drive loop the command controls.
        robot: Robot driven by the loop.
        name: Command name, used as the telemetry command label.
        poses: Robot pose after every tick.
        data: Telemetry snapshot after every tick.
        iterations: Ticks run by the latest ``run()``.
        max_iterations: Iteration cap.
        is_timed_out: Whether the latest ``run()`` hit the cap.
    """

    def __init__(self, loop: DriveLoop) -> None:
        self.loop = loop
        self.robot: Robot = loop.robot
        self.config = loop.config
        self.name = type(self).__name__

        self.poses: List[Pose] = []
        self.data: List[Telemetry] = []
        self.iterations = 0
        self.max_iterations = self.config.max_iterations
        self.is_timed_out = False
        self.is_running = False

    def set_timeout(self, timeout: float) -> "Command":
        """Cap the command at ``timeout`` seconds of simulated time."""
        self.max_iterations = self.config.iterations_for(timeout)
        return self

    @abstractmethod
    def initialize(self) -> None:
        ...

    @abstractmethod
    def execute(self) -> None:
        ...

    @abstractmethod
    def is_finished(self) -> bool:
        ...

    def end(self) -> None:
        pass

    def timed_out(self) -> None:
        pass

    def run(self) -> bool:
        """Run the command to completion or time-out.

        Returns:
            True if the command finished, False if it timed out.
        """
        self.poses = []
        self.data = []
        self.iterations = 0
        self.is_timed_out = False
        self.is_running = True

        self.robot.command_name = self.name
        logging.debug(f"Starting {self.name}")

        self.initialize()

        while not self.is_finished() and not self.is_timed_out:
            self.execute()

            self.poses.append(self.robot.pose)
            self.data.append(self.robot.telemetry())

            self.iterations += 1
            self.is_timed_out = self.iterations >= self.max_iterations

        self.is_running = False

        if self.is_timed_out:
            logging.warning(f"{self.name} timed out after {self.iterations} iterations")
            self.timed_out()
            return False

        logging.debug(f"Finished {self.name} in {self.iterations} iterations")
        self.end()
        return True


class CommandGroup:
    """Commands run one after another, with their traces concatenated.

    Attributes:
        commands: Commands in run order.
        poses: Poses from every command of the latest run.
        data: Telemetry from every command of the latest run.
    """

    def __init__(self, *commands: Command) -> None:
        self.commands: List[Command] = list(commands)
        self.poses: List[Pose] = []
        self.data: List[Telemetry] = []
        self.name = type(self).__name__
        self.is_running = False

    def add(self, command: Command) -> "CommandGroup":
        self.commands.append(command)
        return self

    def __len__(self) -> int:
        return len(self.commands)

    def run(self) -> bool:
        """Run every command in order.

        Returns:
            True if no command timed out.
        """
        self.poses = []
        self.data = []
        self.is_running = True
        completed = True

        for i, command in enumerate(self.commands):
            completed = command.run() and completed
            self.poses.extend(command.poses)
            self.data.extend(command.data)
            logging.debug(f"Simulated command {i}: {command.name}")

        self.is_running = False
        return completed


# ============================================================================
# PID Driving
# ============================================================================


class DriveDistance(Command):
    """Drive straight a distance under PID control."""

    def __init__(self, loop: DriveLoop, distance: float, tolerance: float, top_speed: float) -> None:
        """Initialize the command.

        Args:
            loop: Drive loop to control.
            distance: Distance to drive (inches).
            tolerance: Position tolerance (inches).
            top_speed: Speed ceiling (ft/s).
        """
        super().__init__(loop)
        self.distance = distance
        self.tolerance = tolerance
        self.top_speed = top_speed

    def initialize(self) -> None:
        self.loop.set_drive_distance_state(self.distance + self.tolerance, self.top_speed, self.tolerance)

    def execute(self) -> None:
        self.loop.on_loop()

    def is_finished(self) -> bool:
        # Slow enough that the remaining error is within tolerance
        return self.loop.is_drive_pid_at_target() and self.loop.is_robot_slower_than_percent(
            self.loop.drive_pid.kp * self.tolerance * 0.01
        )

    def end(self) -> None:
        self.robot.update(0, 0)

    def timed_out(self) -> None:
        self.robot.update(0, 0)


class TurnAngle(Command):
    """Turn in place to a heading under PID control."""

    def __init__(
        self,
        loop: DriveLoop,
        angle: float,
        tolerance: float,
        top_speed: float,
        relative: bool = False,
    ) -> None:
        """Initialize the command.

        Args:
            loop: Drive loop to control.
            angle: Heading to turn to (degrees).
            tolerance: Heading tolerance (degrees).
            top_speed: Wheel speed ceiling (ft/s).
            relative: Whether ``angle`` is measured from the current heading.
        """
        super().__init__(loop)
        self.angle = math.radians(angle)
        self.tolerance = math.radians(tolerance)
        self.top_speed = top_speed
        self.relative = relative

    def initialize(self) -> None:
        self.loop.set_turn_angle_state(self.angle, self.top_speed, self.tolerance, self.relative)

    def execute(self) -> None:
        self.loop.on_loop()

    def is_finished(self) -> bool:
        return self.loop.is_turn_pid_at_target() and self.loop.is_robot_slower_than_percent(0.05)


class DriveToGoal(Command):
    """Drive to a field point, steering toward it every tick.

    The distance setpoint is refreshed from the robot's distance to the goal
    and the heading setpoint from its bearing, until the robot is inside the
    tolerance. The speed ceiling shrinks quadratically with heading error and
    is zero beyond 90 degrees, so large corrections turn in place first.
    """

    def __init__(
        self,
        loop: DriveLoop,
        goal: Point,
        tolerance: float,
        top_speed: float,
        min_speed: float,
        reverse: bool = False,
    ) -> None:
        """Initialize the command.

        Args:
            loop: Drive loop to control.
            goal: Point to drive to.
            tolerance: Half-size of the square around the goal counted as arrived (inches).
            top_speed: Speed ceiling (ft/s).
            min_speed: Speed floor, and the speed to be under at arrival (ft/s).
            reverse: Whether to drive to the goal backwards.
        """
        super().__init__(loop)
        self.goal_point = goal.copy()
        self.tolerance = tolerance
        self.top_speed = top_speed
        self.min_speed = min_speed
        self.reverse = reverse
        self.lookahead = self.config.lookahead_dist

        self.setpoint = 0.0
        self.goal_angle = 0.0
        self.scale = 0.0

    def initialize(self) -> None:
        self.setpoint = self.robot.average_pos
        self.goal_angle = self.robot.heading
        self.update_setpoints()

        self.loop.set_drive_to_goal_state(
            self.setpoint,
            self.goal_angle,
            self.tolerance,
            self.top_speed * self.scale,
            self.min_speed,
            self.reverse,
        )
        self.robot.goal_point = self.goal_point.copy()

    def execute(self) -> None:
        self.update_setpoints()
        self.loop.update_drive_to_goal_state(
            self.setpoint,
            self.goal_angle,
            self.tolerance,
            self.top_speed * self.scale,
            self.min_speed,
            self.reverse,
        )
        self.loop.on_loop()

    def is_finished(self) -> bool:
        return is_within_bounds(
            self.goal_point, self.robot.point, self.tolerance
        ) and self.loop.is_robot_slower_than_vel(self.min_speed)

    def timed_out(self) -> None:
        logging.warning(
            f"{self.name} timed out | errorX: {self.goal_point.x - self.robot.x:f}, "
            f"errorY: {self.goal_point.y - self.robot.y:f}, "
            f"errorH: {self.goal_angle - self.robot.heading:f}"
        )

    def update_setpoints(self) -> None:
        """Refresh the distance and heading setpoints and the speed scale."""
        d = dist(self.robot.point, self.goal_point)

        # Hold the last setpoints once inside the tolerance
        if d >= self.tolerance:
            self.setpoint = self.robot.average_pos + (-d if self.reverse else d) + self.lookahead
            self.goal_angle = math.radians(self.calc_delta_angle()) + self.robot.heading

        d_angle = abs(math.degrees(self.goal_angle - self.robot.heading))
        self.scale = self.calc_scale(d_angle)

    @staticmethod
    def calc_scale(d_angle: float) -> float:
        """Speed scale for a heading error in degrees."""
        if d_angle > 90:
            return 0.0
        return (d_angle - 90) ** 2 / 90**2

    def calc_delta_angle(self) -> float:
        """Yaw change (degrees) that points the robot at the goal."""
        point_yaw = goal_yaw(self.robot.point, self.goal_point)
        if self.reverse:
            point_yaw -= math.copysign(180, point_yaw)

        delta = point_yaw - self.robot.yaw
        if abs(delta) >= 180:
            delta += 360
        return delta


# ============================================================================
# Profile Following
# ============================================================================


class DriveOpenLoopProfile(Command):
    """Follow a profile with feed-forward output only."""

    def __init__(self, loop: DriveLoop, profile: DriveProfile) -> None:
        super().__init__(loop)
        self.profile = profile
        self.index = 0

    @classmethod
    def trapezoidal(
        cls, loop: DriveLoop, total_dist: float, acc_dist: float, max_vel: float
    ) -> "DriveOpenLoopProfile":
        """Follow a trapezoidal profile built from its parameters (inches, ft/s)."""
        return cls(loop, TrapezoidalProfile(total_dist, acc_dist, max_vel, loop.config))

    def initialize(self) -> None:
        self.loop.set_open_loop_profile_state()
        self.index = 0

    def execute(self) -> None:
        time = self.index * self.config.update_period
        self.loop.update_open_loop_profile_state(
            self.profile.left_sample(time), self.profile.right_sample(time)
        )
        self.loop.on_loop()
        self.index += 1

    def is_finished(self) -> bool:
        return self.index * self.config.update_period > self.profile.total_time

    def end(self) -> None:
        logging.debug(f"{self.name} ended at {self.robot.average_pos:.3f} in")


class DriveClosedLoopLinearProfile(Command):
    """Follow a straight profile with distance-velocity PID plus feed-forward."""

    def __init__(self, loop: DriveLoop, profile: DriveProfile, tolerance: float) -> None:
        """Initialize the command.

        Args:
            loop: Drive loop to control.
            profile: Straight profile to follow.
            tolerance: Position tolerance (inches). One inch is added to it.
        """
        super().__init__(loop)
        self.profile = profile
        self.tolerance = tolerance + 1
        self.index = 0

    @classmethod
    def trapezoidal(
        cls,
        loop: DriveLoop,
        total_dist: float,
        acc_dist: float,
        max_vel: float,
        tolerance: float,
    ) -> "DriveClosedLoopLinearProfile":
        """Follow a trapezoidal profile built from its parameters (inches, ft/s)."""
        return cls(loop, TrapezoidalProfile(total_dist, acc_dist, max_vel, loop.config), tolerance)

    def initialize(self) -> None:
        self.loop.set_closed_loop_linear_profile_state(
            self.tolerance, self.profile.total_dist, self.robot.average_pos
        )
        self.index = 0

    def execute(self) -> None:
        time = self.index * self.config.update_period
        self.loop.update_closed_loop_linear_profile_state(
            self.profile.left_sample(time), self.profile.right_sample(time)
        )
        self.loop.on_loop()
        self.index += 1

    def is_finished(self) -> bool:
        settled = self.loop.is_drive_pid_at_target() or self.loop.is_robot_slower_than_percent(0.1)
        return settled and self.index * self.config.update_period > self.profile.total_time

    def end(self) -> None:
        logging.debug(f"{self.name} ended at {self.robot.average_pos:.3f} in")


# ============================================================================
# Path Tracking
# ============================================================================


class PurePursuit(Command):
    """Track a list of waypoints with the loop's pure pursuit controller."""

    def __init__(self, loop: DriveLoop, goals: Sequence[Point]) -> None:
        super().__init__(loop)
        self.goals = [p.copy() for p in goals]
        self.ppc = loop.ppc

    def initialize(self) -> None:
        self.loop.set_pure_pursuit_state()
        self.ppc.set_waypoints(self.goals)
        self.robot.lookahead = self.ppc.lookahead
        self.robot.goal_point = self.ppc.goal

    def execute(self) -> None:
        self.loop.update_pure_pursuit_state(self.robot.pose, self.robot.linear_vel)
        self.loop.on_loop()

    def is_finished(self) -> bool:
        return self.ppc.is_arrived()


# ============================================================================
# Setup and Characterisation
# ============================================================================


class SetPose(Command):
    """Place the robot at a pose and stop it."""

    def __init__(self, loop: DriveLoop, x: float, y: float, heading: float = 0.0) -> None:
        """Initialize the command.

        Args:
            loop: Drive loop to control.
            x: Field x position (inches).
            y: Field y position (inches).
            heading: Heading (degrees).
        """
        super().__init__(loop)
        self.point = Point(x, y)
        self.heading = heading

    def initialize(self) -> None:
        self.robot.set_xy(self.point)
        self.robot.set_heading(math.radians(self.heading))
        self.loop.set_state(DriveState.WAITING)

    def execute(self) -> None:
        pass

    def is_finished(self) -> bool:
        return True


class TimedVoltage(Command):
    """Apply fixed voltages to each side for a length of time."""

    def __init__(
        self,
        loop: DriveLoop,
        left_voltage: float,
        right_voltage: Optional[float] = None,
        time: float = 1.0,
    ) -> None:
        """Initialize the command.

        Args:
            loop: Drive loop whose robot is driven.
            left_voltage: Left side voltage.
            right_voltage: Right side voltage. Default: ``left_voltage``.
            time: Duration (seconds).
        """
        super().__init__(loop)
        self.left_voltage = left_voltage
        self.right_voltage = left_voltage if right_voltage is None else right_voltage
        self.time = time
        self.counter = 0.0

    def initialize(self) -> None:
        self.counter = 0.0

    def execute(self) -> None:
        self.robot.update(self.left_voltage, self.right_voltage)
        self.counter += self.config.update_period

    def is_finished(self) -> bool:
        return self.counter >= self.time


class Wait(Command):
    """Hold the robot at rest for a length of time."""

    def __init__(self, loop: DriveLoop, wait_time: float) -> None:
        super().__init__(loop)
        self.wait_time = wait_time
        self.updates = 0
        self.counter = 0

    def initialize(self) -> None:
        self.updates = int(self.wait_time / self.config.update_period)
        self.counter = 0
        self.loop.set_state(DriveState.WAITING)
        self.robot.set_to_wait()

    def execute(self) -> None:
        self.counter += 1

    def is_finished(self) -> bool:
        return self.counter > self.updates
