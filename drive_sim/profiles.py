"""Precomputed motion profiles for the left and right wheels.

Each profile builds an ordered table of (position, velocity, acceleration)
samples per side when it is constructed and is read-only afterwards:

- ``TrapezoidalProfile``: accelerate, cruise, decelerate.
- ``JerkProfile``: five-segment profile with a linear acceleration ramp.
- ``BezierProfile``: follows a quintic Bezier curve under curvature,
  acceleration and deceleration limits.

Positions are in inches, velocities in ft/s and accelerations in in/s^2.
"""

import logging
import math
from pathlib import Path
from typing import List, NamedTuple, Optional, Protocol, Tuple, Union

import numpy as np
import numpy.typing as npt

from .bezier import BezierPath, ControlPoints, build_distance_table, t_for_distance
from .config import DEFAULT_CONFIG, SimConfig
from .geometry import Point, Pose
from .numeric import find_sandwiched_elements


class ProfileSample(NamedTuple):
    """One row of a profile table."""

    pos: float
    vel: float
    acc: float


class DriveProfile(Protocol):
    """Read surface shared by every profile."""

    @property
    def total_time(self) -> float:
        ...

    @property
    def total_dist(self) -> float:
        ...

    def left_sample(self, time: float) -> ProfileSample:
        ...

    def right_sample(self, time: float) -> ProfileSample:
        ...


def _check_positive(**values: float) -> None:
    for name, value in values.items():
        if value <= 0:
            raise ValueError(f"{name} must be positive, got {value}")


def _ramp_limits(total_dist: float, acc_dist: float, max_vel: float) -> Tuple[float, float]:
    """Ramp distance and peak velocity (in/s) for a symmetric straight profile.

    A ramp longer than half the drive leaves no room to cruise, so the
    profile becomes triangular: each ramp covers half the distance at the
    acceleration implied by the requested ramp, and the peak drops to match.
    """
    vel = max_vel * 12.0
    if acc_dist <= total_dist / 2.0:
        return acc_dist, vel

    acc = vel**2 / (2.0 * acc_dist)
    peak = math.sqrt(acc * total_dist)
    logging.debug(
        f"Ramp of {acc_dist:.2f} in exceeds half of {total_dist:.2f} in, "
        f"peak lowered to {peak / 12.0:.3f} ft/s"
    )
    return total_dist / 2.0, peak


class _FixedStepProfile:
    """Table sampled once per loop period, indexed by ``floor(time / dt)``."""

    def __init__(self, config: Optional[SimConfig]) -> None:
        self.config = config or DEFAULT_CONFIG
        self.left: List[ProfileSample] = []
        self.right: List[ProfileSample] = []
        self._total_time = 0.0

    @property
    def total_time(self) -> float:
        return self._total_time

    @property
    def total_dist(self) -> float:
        return self.left[-1].pos

    @property
    def size(self) -> int:
        return len(self.left)

    def _index(self, time: float) -> int:
        return max(0, min(int(time / self.config.update_period), len(self.left) - 1))

    def left_sample(self, time: float) -> ProfileSample:
        return self.left[self._index(time)]

    def right_sample(self, time: float) -> ProfileSample:
        return self.right[self._index(time)]

    def left_velocities(self) -> List[float]:
        return [row.vel for row in self.left]

    def right_velocities(self) -> List[float]:
        return [row.vel for row in self.right]

    def _append(self, pos: float, vel: float, acc: float) -> None:
        # Velocity is tabulated in ft/s
        row = ProfileSample(pos, vel / 12.0, acc)
        self.left.append(row)
        self.right.append(row)


class TrapezoidalProfile(_FixedStepProfile):
    """Symmetric accelerate-cruise-decelerate profile for a straight drive.

    Attributes:
        total_distance: Distance to travel (inches).
        acc_distance: Distance spent accelerating, and again decelerating (inches).
        max_vel: Cruise velocity (in/s).
        acc: Acceleration (in/s^2).
        dec: Deceleration, negative (in/s^2).
    """

    def __init__(
        self,
        total_dist: float,
        acc_dist: float,
        max_vel: float,
        config: Optional[SimConfig] = None,
    ) -> None:
        """Build the profile.

        Args:
            total_dist: Distance to travel (inches).
            acc_dist: Distance to accelerate over, and to decelerate over (inches).
            max_vel: Cruise velocity (ft/s). Lowered when the ramps would overlap.
            config: Simulation configuration supplying the loop period.

        Raises:
            ValueError: If any argument is not positive.
        """
        _check_positive(total_dist=total_dist, acc_dist=acc_dist, max_vel=max_vel)
        super().__init__(config)

        self.total_distance = total_dist
        self.acc_distance, self.max_vel = _ramp_limits(total_dist, acc_dist, max_vel)
        acc_dist = self.acc_distance

        # v^2 / 2d
        self.acc = self.max_vel**2 / (2.0 * acc_dist)
        self.dec = -self.acc

        self.acc_time = (2.0 * acc_dist) / self.max_vel
        self.dec_time = self.acc_time
        cruise_time = (total_dist - 2.0 * acc_dist) / self.max_vel
        self._total_time = self.acc_time + cruise_time + self.dec_time

        self._fill()

    def _state(self, t: float) -> Tuple[float, float, float]:
        """Position, velocity and acceleration at time ``t`` in closed form."""
        if t < self.acc_time:
            return 0.5 * self.acc * t**2, self.acc * t, self.acc
        elif t < self._total_time - self.dec_time:
            return self.acc_distance + self.max_vel * (t - self.acc_time), self.max_vel, 0.0

        # Mirror of the ramp up, counted back from the end
        remaining = self._total_time - t
        return (
            self.total_distance - 0.5 * self.acc * remaining**2,
            self.acc * remaining,
            self.dec,
        )

    def _fill(self) -> None:
        dt = self.config.update_period

        self.left.append(ProfileSample(0.0, 0.0, self.acc))
        self.right.append(ProfileSample(0.0, 0.0, self.acc))

        loops = int(math.ceil(self._total_time / dt))
        for i in range(1, loops + 1):
            t = min(i * dt, self._total_time)
            self._append(*self._state(t))


class JerkProfile(_FixedStepProfile):
    """Five-segment jerk-limited profile for a straight drive.

    Velocity is evaluated in closed form per segment and acceleration is
    the finite difference of consecutive velocities.
    """

    def __init__(
        self,
        total_dist: float,
        acc_dist: float,
        max_vel: float,
        config: Optional[SimConfig] = None,
    ) -> None:
        """Build the profile.

        Args:
            total_dist: Distance to travel (inches).
            acc_dist: Distance to accelerate over, and to decelerate over (inches).
            max_vel: Cruise velocity (ft/s). Lowered when the ramps would overlap.
            config: Simulation configuration supplying the loop period.

        Raises:
            ValueError: If any argument is not positive.
        """
        _check_positive(total_dist=total_dist, acc_dist=acc_dist, max_vel=max_vel)
        super().__init__(config)

        self.total_distance = total_dist
        self.acc_distance, self.max_vel = _ramp_limits(total_dist, acc_dist, max_vel)
        acc_dist = self.acc_distance

        self.acc_time = (2.0 * acc_dist) / self.max_vel
        self.dec_time = self.acc_time
        cruise_time = (total_dist - 2.0 * acc_dist) / self.max_vel
        self._total_time = self.acc_time + cruise_time + self.dec_time

        # 4v / t^2
        self.jerk_acc = (4.0 * self.max_vel) / self.acc_time**2
        self.jerk_dec = -self.jerk_acc

        self._fill()

    def _velocity(self, t: float) -> float:
        t1 = self.acc_time / 2.0
        t2 = self.acc_time
        t3 = self._total_time - self.dec_time
        t4 = self._total_time - self.dec_time / 2.0

        if t <= t1:
            return 0.5 * self.jerk_acc * t**2
        elif t <= t2:
            return -0.5 * self.jerk_acc * (t - t2) ** 2 + self.jerk_acc * t1**2
        elif t <= t3:
            return self.max_vel
        elif t <= t4:
            return self.max_vel + 0.5 * self.jerk_dec * (t - t3) ** 2
        return -0.5 * self.jerk_dec * (t - self._total_time) ** 2

    def _fill(self) -> None:
        dt = self.config.update_period
        p = 0.0
        prev_v = 0.0

        loops = int(math.ceil(self._total_time / dt))
        for i in range(1, loops + 1):
            v = self._velocity(i * dt)
            a = (v - prev_v) / dt
            p += v * dt
            prev_v = v

            self._append(p, v, a)


class BezierProfile:
    """Wheel profiles for driving along a quintic Bezier curve.

    The curve is resampled at ``SIZE`` points evenly spaced by arc length.
    The center velocity at each point is limited by the local radius, then
    by a forward acceleration pass and a backward deceleration pass. Wheel
    velocities are the center velocity scaled by each wheel's radius around
    the turn, and each sample lasts as long as the center takes to cover one
    distance step.

    Attributes:
        path: Curve being followed.
        track_width: Wheel-to-wheel width (inches).
        max_vel: Maximum center velocity (in/s).
        max_acc: Maximum acceleration (in/s^2).
        max_dec: Maximum deceleration magnitude (in/s^2).
        total_length: Arc length of the curve (inches).
    """

    SIZE = 500

    def __init__(
        self,
        control_points: ControlPoints,
        track_width: float,
        max_vel: float,
        max_acc: float,
        max_dec: float,
        config: Optional[SimConfig] = None,
    ) -> None:
        """Build the profile.

        Args:
            control_points: Six control points of the curve.
            track_width: Wheel-to-wheel width (inches).
            max_vel: Maximum center velocity (in/s).
            max_acc: Maximum acceleration (in/s^2).
            max_dec: Maximum deceleration magnitude (in/s^2).
            config: Simulation configuration supplying the loop period.

        Raises:
            ValueError: If a limit is not positive or the control points are invalid.
        """
        _check_positive(track_width=track_width, max_vel=max_vel, max_acc=max_acc)
        _check_positive(max_dec=abs(max_dec))

        self.config = config or DEFAULT_CONFIG
        self.path = BezierPath(control_points)
        self.track_width = track_width
        self.max_vel = max_vel
        self.max_acc = max_acc
        self.max_dec = abs(max_dec)

        distances = build_distance_table(self.path, self.SIZE)
        self.total_length = float(distances[-1])
        self.dist_step = self.total_length / self.SIZE

        self._parameterize_by_distance(distances)
        self._constrain_center_velocity()
        self._fill_wheels()
        self._fill_poses()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _parameterize_by_distance(self, distances: npt.NDArray[np.float64]) -> None:
        self.t_vals = np.zeros(self.SIZE)
        self.even_points: List[Point] = [self.path.start]

        for i in range(1, self.SIZE):
            self.t_vals[i] = t_for_distance(distances, i * self.dist_step)
            self.even_points.append(self.path.calc_point(self.t_vals[i]))

        self.center_radius = np.array([self.path.calc_radius(t) for t in self.t_vals])
        self.headings = np.array([self.path.calc_heading(t) for t in self.t_vals])

    def _constrain_center_velocity(self) -> None:
        r = self.center_radius
        vel = (self.max_vel * r) / (r + self.track_width / 2.0)

        vel[0] = 0.0
        for i in range(1, self.SIZE):
            vel[i] = min(vel[i], math.sqrt(vel[i - 1] ** 2 + 2.0 * self.max_acc * self.dist_step))

        vel[-1] = 0.0
        for i in range(self.SIZE - 2, -1, -1):
            vel[i] = min(vel[i], math.sqrt(vel[i + 1] ** 2 + 2.0 * self.max_dec * self.dist_step))

        self.center_vel = vel

    def _delta_headings(self) -> npt.NDArray[np.int_]:
        # -1 when turning left (right wheel outside), 1 when turning right
        d_theta = np.zeros(self.SIZE, dtype=int)
        d_heading = np.diff(self.headings)
        d_theta[1:] = np.where(d_heading > 0, -1, np.where(d_heading < 0, 1, 0))
        return d_theta

    def _fill_wheels(self) -> None:
        offset = self.track_width / 2.0
        d_theta = self._delta_headings()

        self.left_radius = np.full(self.SIZE, 1e6)
        self.right_radius = np.full(self.SIZE, 1e6)
        for i in range(self.SIZE):
            if d_theta[i] == 1:
                self.left_radius[i] = self.center_radius[i] + offset
                self.right_radius[i] = self.center_radius[i] - offset
            elif d_theta[i] == -1:
                self.left_radius[i] = self.center_radius[i] - offset
                self.right_radius[i] = self.center_radius[i] + offset

        self.left_vel = np.zeros(self.SIZE)
        self.right_vel = np.zeros(self.SIZE)
        for i in range(self.SIZE):
            if self.center_radius[i] != 0:
                angular = self.center_vel[i] / self.center_radius[i]
                self.left_vel[i] = angular * self.left_radius[i]
                self.right_vel[i] = angular * self.right_radius[i]

        # A stationary sample takes no time
        self.times = np.zeros(self.SIZE)
        for i in range(1, self.SIZE):
            step = 0.0 if self.center_vel[i] == 0 else self.dist_step / self.center_vel[i]
            self.times[i] = self.times[i - 1] + step
        self._total_time = float(self.times[-1])

        self.left_pos = np.zeros(self.SIZE)
        self.right_pos = np.zeros(self.SIZE)
        self.left_acc = np.zeros(self.SIZE)
        self.right_acc = np.zeros(self.SIZE)
        for i in range(1, self.SIZE):
            dt = self.times[i] - self.times[i - 1]
            self.left_pos[i] = self.left_pos[i - 1] + self.left_vel[i] * dt
            self.right_pos[i] = self.right_pos[i - 1] + self.right_vel[i] * dt
            if dt > 0:
                self.left_acc[i] = (self.left_vel[i] - self.left_vel[i - 1]) / dt
                self.right_acc[i] = (self.right_vel[i] - self.right_vel[i - 1]) / dt

        self.left = [
            ProfileSample(float(p), float(v) / 12.0, float(a))
            for p, v, a in zip(self.left_pos, self.left_vel, self.left_acc)
        ]
        self.right = [
            ProfileSample(float(p), float(v) / 12.0, float(a))
            for p, v, a in zip(self.right_pos, self.right_vel, self.right_acc)
        ]

    def _fill_poses(self) -> None:
        self.poses = [Pose(self.path.start, math.radians(self.path.initial_heading))]
        self.omega = np.zeros(self.SIZE)

        for i in range(1, self.SIZE):
            self.omega[i] = (
                math.radians(self.headings[i] - self.headings[i - 1]) / self.config.update_period
            )
            self.poses.append(Pose(self.even_points[i], math.radians(self.headings[i])))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def total_time(self) -> float:
        return self._total_time

    @property
    def total_dist(self) -> float:
        """Distance covered by the left wheel (inches)."""
        return self.left[-1].pos

    @property
    def size(self) -> int:
        return self.SIZE

    @property
    def start_position(self) -> Point:
        return self.path.start

    @property
    def initial_heading(self) -> float:
        """Heading at the start of the curve (degrees)."""
        return self.path.initial_heading

    def get_index(self, time: float) -> int:
        """Index of the sample active at ``time`` (seconds)."""
        time = max(min(self._total_time, time), 0.0)
        return find_sandwiched_elements(self.times, time, 1e-3)[0]

    def left_sample(self, time: float) -> ProfileSample:
        return self.left[self.get_index(time)]

    def right_sample(self, time: float) -> ProfileSample:
        return self.right[self.get_index(time)]

    def heading(self, time: float) -> float:
        """Curve heading at ``time`` (degrees)."""
        return float(self.headings[self.get_index(time)])

    def pose(self, time: float) -> Pose:
        return self.poses[self.get_index(time)]

    def center_velocity(self, time: float) -> float:
        """Center velocity at ``time`` (in/s)."""
        return float(self.center_vel[self.get_index(time)])

    def omega_at(self, time: float) -> float:
        """Angular velocity at ``time`` (rad/s)."""
        return float(self.omega[self.get_index(time)])

    def _tick_times(self) -> npt.NDArray[np.float64]:
        return np.arange(0.0, self._total_time, self.config.update_period)

    def left_velocities(self) -> List[float]:
        """Left wheel velocity once per loop period (ft/s)."""
        return [self.left_sample(t).vel for t in self._tick_times()]

    def right_velocities(self) -> List[float]:
        """Right wheel velocity once per loop period (ft/s)."""
        return [self.right_sample(t).vel for t in self._tick_times()]

    def save_vels_to_file(self, filename: Union[str, Path]) -> bool:
        """Write ``time left right`` velocity lines, one per loop period.

        Returns:
            True if the file was written, False if it could not be.
        """
        path = Path(filename)
        try:
            with path.open("w") as f:
                for t in self._tick_times():
                    i = self.get_index(t)
                    f.write(f"{t:.3f} {self.left[i].vel:.8f} {self.right[i].vel:.8f}\n")
        except OSError as e:
            logging.warning(f"Could not write profile velocities to {path}: {e}")
            return False

        logging.debug(f"Profile velocities written to {path}")
        return True

