"""
Differential drive robot dynamic model.

This module provides the plant that the drive loop controls: DC motors,
the gearboxes they drive, and the chassis that couples the two sides.
Per-side voltages are turned into wheel torques with a linear motor model,
the chassis couples the two wheel forces through its mass and moment of
inertia, and each gearbox integrates its own acceleration over one tick.

Units: distances are configured in inches and pounds and converted to
meters and kilograms for the dynamics. Positions are reported in inches,
linear speeds in ft/s, headings in radians.
"""

import math
from typing import Optional, Tuple

from .config import DEFAULT_CONFIG, INCHES_TO_METERS, LBS_TO_KG, MotorSpec, SimConfig
from .geometry import Color, Point, Pose
from .numeric import clamp_num
from .telemetry import Telemetry

STOPPED_COLOR: Color = (255, 255, 0)
"""Robot color when it is not moving."""


class Motor:
    """DC motor constants derived from its datasheet values.

    Attributes:
        free_speed: Free speed (RPM).
        free_current: Free current (A).
        stall_torque: Stall torque (Nm).
        stall_current: Stall current (A).
        resistance: Winding resistance (ohms).
        k_v: Velocity constant (rad/s per volt).
        k_t: Torque constant (Nm per amp).
    """

    def __init__(self, spec: MotorSpec, config: Optional[SimConfig] = None) -> None:
        """Initialize the motor.

        Args:
            spec: ``(free speed [RPM], free current [A], stall torque [Nm], stall current [A])``.
            config: Simulation configuration supplying the supply voltage and
                voltage intercept. Default: ``DEFAULT_CONFIG``.
        """
        config = config or DEFAULT_CONFIG
        self.spec = tuple(spec)
        self.free_speed, self.free_current, self.stall_torque, self.stall_current = spec

        self.resistance = config.max_voltage / self.stall_current
        self.k_v = (self.free_speed * (math.pi / 30.0)) / (
            config.max_voltage - self.resistance * self.free_current + config.v_intercept
        )
        self.k_t = self.stall_torque / self.stall_current


class Gearbox:
    """A set of identical motors driving one side through a reduction.

    Kinematic state is measured at the wheel: position (rad), velocity
    (rad/s) and acceleration (rad/s^2).
    """

    def __init__(
        self,
        ratio: float,
        motor: Motor,
        num_motors: int,
        config: Optional[SimConfig] = None,
    ) -> None:
        """Initialize the gearbox.

        Args:
            ratio: Gear reduction (motor turns per wheel turn).
            motor: Motor driving the gearbox.
            num_motors: Number of motors in the gearbox.
            config: Simulation configuration supplying the tick period.
        """
        self.config = config or DEFAULT_CONFIG
        self.ratio = ratio
        self.motor = motor
        self.num_motors = num_motors

        # torque = c_voltage * V + c_velocity * omega
        self.c_voltage = (ratio * motor.k_t * num_motors) / motor.resistance
        self.c_velocity = -(ratio**2 * motor.k_t * num_motors) / (motor.resistance * motor.k_v)

        self.position = 0.0
        self.velocity = 0.0
        self.acceleration = 0.0

    @staticmethod
    def ratio_from_top_speed(motor: MotorSpec, wheel_dia: float, top_speed: float) -> float:
        """Gear ratio that gives a target free speed.

        Args:
            motor: Motor specification tuple.
            wheel_dia: Wheel diameter (inches).
            top_speed: Desired robot free speed (ft/s).

        Returns:
            Gear reduction.
        """
        return (math.pi * motor[0] * wheel_dia) / (720.0 * top_speed)

    def clone(self) -> "Gearbox":
        """Gearbox with the same constants and zeroed kinematic state."""
        return Gearbox(self.ratio, self.motor, self.num_motors, self.config)

    def calc_torque(self, voltage: float) -> float:
        """Torque at the wheel for an applied voltage at the current speed (Nm)."""
        return self.c_voltage * voltage + self.c_velocity * self.velocity

    def update(self, acceleration: float) -> None:
        """Advance one tick assuming constant acceleration."""
        dt = self.config.update_period
        self.acceleration = acceleration
        self.velocity += acceleration * dt
        self.position += self.velocity * dt + 0.5 * acceleration * dt * dt

    def zero_vel(self) -> None:
        self.velocity = 0.0
        self.acceleration = 0.0

    def reset(self) -> None:
        self.position = 0.0
        self.velocity = 0.0
        self.acceleration = 0.0


class Robot:
    """Two-gearbox differential drive chassis.

    ``update(left_voltage, right_voltage)`` is the plant's only input; it
    clamps the voltages, advances both gearboxes one tick and updates the
    pose. Everything else reads or resets state.

    Attributes:
        left_gearbox: Left side gearbox.
        right_gearbox: Right side gearbox.
        average_pos: Average wheel displacement (inches).
        linear_vel: Linear velocity (ft/s).
        angular_vel: Angular velocity (rad/s).
        heading: Heading (radians, 0 along +y).
        max_lin_speed: Free linear speed (ft/s).
        max_ang_speed: Free angular speed (rad/s).
    """

    def __init__(
        self,
        wheel_dia: float,
        mass: float,
        length: float,
        width: float,
        gearbox: Gearbox,
        config: Optional[SimConfig] = None,
    ) -> None:
        """Initialize the robot.

        Args:
            wheel_dia: Wheel diameter (inches).
            mass: Robot mass (pounds).
            length: Chassis length (inches).
            width: Chassis width (inches).
            gearbox: Gearbox template, cloned for each side.
            config: Simulation configuration. Default: ``DEFAULT_CONFIG``.
        """
        self.config = config or DEFAULT_CONFIG

        # Physical constants in SI units
        self.wheel_radius = (wheel_dia / 2.0) * INCHES_TO_METERS
        self.mass = mass * LBS_TO_KG
        self.length = length * INCHES_TO_METERS
        self.width = width * INCHES_TO_METERS

        self.left_gearbox = gearbox.clone()
        self.right_gearbox = gearbox.clone()

        # Chassis coupling between the two wheel forces
        self.moment_of_inertia = self.mass * (self.length**2 + self.width**2) / 12.0
        self.pivot_arm = self.width / 2.0
        self.f_minus = 1.0 / self.mass - self.pivot_arm**2 / self.moment_of_inertia
        self.f_plus = 1.0 / self.mass + self.pivot_arm**2 / self.moment_of_inertia

        self.max_lin_speed = (math.pi * gearbox.motor.free_speed * self.wheel_radius) / (
            360.0 * gearbox.ratio * INCHES_TO_METERS
        )
        self.max_ang_speed = (24.0 * self.max_lin_speed * INCHES_TO_METERS) / self.width

        # Kinematics
        self.average_pos = 0.0
        self.linear_vel = 0.0
        self.angular_vel = 0.0
        self.left_voltage = 0.0
        self.right_voltage = 0.0

        # Pose
        self.heading = 0.0
        self._point = Point(0.0, 0.0)
        self.color: Color = STOPPED_COLOR

        # Annotation channels set by commands and the drive loop
        self.command_name = ""
        self.goal_point: Optional[Point] = None
        self.lookahead: Optional[float] = None
        self.pid_output: Optional[float] = None

    # ------------------------------------------------------------------
    # Pose
    # ------------------------------------------------------------------

    @property
    def point(self) -> Point:
        """Copy of the robot's field position (inches)."""
        return self._point.copy()

    @property
    def x(self) -> float:
        return self._point.x

    @property
    def y(self) -> float:
        return self._point.y

    @property
    def yaw(self) -> float:
        """Heading in degrees wrapped to [0, 360)."""
        return math.degrees(self.heading) % 360.0

    @property
    def pose(self) -> Pose:
        return Pose(self._point, self.heading, self.color)

    @property
    def track_width(self) -> float:
        """Wheel-to-wheel width (inches)."""
        return self.width / INCHES_TO_METERS

    def set_xy(self, point: Point) -> None:
        self._point = point.copy()

    def set_heading(self, heading: float) -> None:
        """Set the heading (radians)."""
        self.heading = heading

    def set_heading_degrees(self, heading: float) -> None:
        self.heading = math.radians(heading)

    # ------------------------------------------------------------------
    # Dynamics
    # ------------------------------------------------------------------

    def update(self, left_voltage: float, right_voltage: float) -> None:
        """Apply voltages to both sides for one tick.

        Args:
            left_voltage: Requested left voltage, clamped to the supply limit.
            right_voltage: Requested right voltage, clamped to the supply limit.
        """
        max_v = self.config.max_voltage
        self.left_voltage = clamp_num(left_voltage, -max_v, max_v)
        self.right_voltage = clamp_num(right_voltage, -max_v, max_v)

        # Force each gearbox exerts on the chassis
        left_force = self.left_gearbox.calc_torque(self.left_voltage) / self.wheel_radius
        right_force = self.right_gearbox.calc_torque(self.right_voltage) / self.wheel_radius

        self._update_gearboxes(left_force, right_force)
        self._update_speeds()
        self._update_pose()
        self._update_color()

    def _update_gearboxes(self, left_force: float, right_force: float) -> None:
        # Linear accelerations converted to wheel angular accelerations
        left_acc = (self.f_plus * left_force + self.f_minus * right_force) / self.wheel_radius
        right_acc = (self.f_minus * left_force + self.f_plus * right_force) / self.wheel_radius

        self.left_gearbox.update(left_acc)
        self.right_gearbox.update(right_acc)

    def _update_speeds(self) -> None:
        left_vel = self.left_gearbox.velocity
        right_vel = self.right_gearbox.velocity

        self.angular_vel = (self.wheel_radius / (2.0 * self.pivot_arm)) * (right_vel - left_vel)
        self.linear_vel = self.wheel_radius / INCHES_TO_METERS / 12.0 * (right_vel + left_vel) / 2.0

    def _update_pose(self) -> None:
        disp = (self.left_gearbox.position + self.right_gearbox.position) / 2.0
        new_pos = disp * self.wheel_radius / INCHES_TO_METERS

        # Move along the heading held during this tick, then turn
        self._point.translate(new_pos - self.average_pos, self.heading)
        self.average_pos = new_pos

        self.heading += self.angular_vel * self.config.update_period

    def _update_color(self) -> None:
        modifier = min(1.0, abs(self.linear_vel) / self.max_lin_speed)
        val = 127 + int(128 * modifier)

        if self.linear_vel > 0:
            self.color = (0, val, 0)
        elif self.linear_vel < 0:
            self.color = (val, 0, 0)
        else:
            self.color = STOPPED_COLOR

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Zero all kinematic state and return to the origin."""
        self.left_gearbox.reset()
        self.right_gearbox.reset()
        self.average_pos = 0.0
        self.linear_vel = 0.0
        self.angular_vel = 0.0
        self.left_voltage = 0.0
        self.right_voltage = 0.0
        self.heading = 0.0
        self._point = Point(0.0, 0.0)
        self.color = STOPPED_COLOR
        self.goal_point = None
        self.lookahead = None
        self.pid_output = None

    def set_to_wait(self) -> None:
        """Stop the robot in place, keeping its pose and odometry."""
        self.left_gearbox.zero_vel()
        self.right_gearbox.zero_vel()
        self.linear_vel = 0.0
        self.angular_vel = 0.0
        self.left_voltage = 0.0
        self.right_voltage = 0.0
        self.color = STOPPED_COLOR

    def is_slower_than_percent(self, percent: float) -> bool:
        """Return True if the linear speed is below a fraction of top speed."""
        return abs(self.linear_vel) < percent * self.max_lin_speed

    def wheel_positions(self) -> Tuple[float, float]:
        """Left and right wheel displacements (inches)."""
        scale = self.wheel_radius / INCHES_TO_METERS
        return self.left_gearbox.position * scale, self.right_gearbox.position * scale

    def wheel_velocities(self) -> Tuple[float, float]:
        """Left and right wheel speeds (ft/s)."""
        scale = self.wheel_radius / INCHES_TO_METERS / 12.0
        return self.left_gearbox.velocity * scale, self.right_gearbox.velocity * scale

    def telemetry(self) -> Telemetry:
        """Snapshot every channel after the latest tick."""
        left_pos, right_pos = self.wheel_positions()
        left_vel, right_vel = self.wheel_velocities()
        left_acc = self.left_gearbox.acceleration
        right_acc = self.right_gearbox.acceleration

        return Telemetry(
            command=self.command_name,
            avg_pos=self.average_pos,
            lin_vel=self.linear_vel,
            ang_vel=self.angular_vel,
            heading=self.heading,
            yaw=self.yaw,
            x=self._point.x,
            y=self._point.y,
            left_pos=left_pos,
            right_pos=right_pos,
            left_vel=left_vel,
            right_vel=right_vel,
            left_acc=left_acc,
            right_acc=right_acc,
            lin_acc=((left_acc + right_acc) / 2.0) * self.wheel_radius / INCHES_TO_METERS,
            ang_acc=(self.wheel_radius / (2.0 * self.pivot_arm)) * (right_acc - left_acc),
            left_voltage=self.left_voltage,
            right_voltage=self.right_voltage,
            color=self.color,
            goal_point=self.goal_point.as_tuple() if self.goal_point is not None else None,
            lookahead=self.lookahead,
            pid_output=self.pid_output,
        )
