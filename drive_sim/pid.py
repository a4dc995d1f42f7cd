"""Discrete PID regulator for the drive and turn axes.

The controller assumes a fixed loop period. Besides the plain PID output it
offers a regulated variant that bounds the output magnitude between a floor
and a ceiling expressed as speeds, and a distance-velocity variant used to
track a motion profile.
"""

from typing import Optional

from .config import DEFAULT_CONFIG, SimConfig
from .numeric import regulated_clamp


class PIDController:
    """PID feedback controller with at-target detection.

    Control law:
        output = kP * e + kI * sum(e) + kD * (e - e_prev)

    The derivative term is skipped while the previous error is exactly zero,
    so the first call after ``reset()`` produces no derivative kick.

    Attributes:
        kp: Proportional gain.
        ki: Integral gain.
        kd: Derivative gain.
        top_speed: Speed that maps to full output in the regulated variant (ft/s).
        error_sum: Accumulated error.
        last_error: Error from the previous call.
        at_target: Whether the last call was within tolerance.
        init_pos: Reference position for the distance-velocity variant.
    """

    def __init__(
        self,
        kp: float,
        ki: float,
        kd: float,
        top_speed: float,
        config: Optional[SimConfig] = None,
    ) -> None:
        """Initialize the PID controller.

        Args:
            kp: Proportional gain.
            ki: Integral gain.
            kd: Derivative gain.
            top_speed: Top speed the controller can command (ft/s).
            config: Simulation configuration supplying the loop period and
                voltage limit. Default: ``DEFAULT_CONFIG``.
        """
        self.config = config or DEFAULT_CONFIG
        self.kp = kp
        self.ki = ki
        self.kd = kd
        self.top_speed = top_speed

        self.error_sum = 0.0
        self.last_error = 0.0
        self.at_target = False
        self.init_pos = 0.0

    def copy(self, top_speed: Optional[float] = None) -> "PIDController":
        """Fresh controller with the same gains, optionally for a new top speed."""
        return PIDController(
            self.kp,
            self.ki,
            self.kd,
            self.top_speed if top_speed is None else top_speed,
            self.config,
        )

    def set_gains(self, kp: float, ki: float, kd: float) -> None:
        self.kp = kp
        self.ki = ki
        self.kd = kd

    def reset(self) -> None:
        """Clear accumulated state before the controller is reused."""
        self.error_sum = 0.0
        self.last_error = 0.0
        self.at_target = False

    def is_done(self) -> bool:
        return self.at_target

    def calc_pid(self, setpoint: float, current: float, epsilon: float) -> float:
        """Compute the PID output.

        Args:
            setpoint: Value to reach.
            current: Measured value.
            epsilon: Error magnitude counted as at target.

        Returns:
            Controller output (volts).
        """
        error = setpoint - current
        self.at_target = abs(error) <= epsilon

        p_out = self.kp * error

        self.error_sum += error
        i_out = self.ki * self.error_sum

        d_out = 0.0
        if self.last_error != 0:
            d_out = self.kd * (error - self.last_error)
        self.last_error = error

        return p_out + i_out + d_out

    def calc_regulated_pid(
        self,
        setpoint: float,
        current: float,
        epsilon: float,
        top_speed: float,
        min_speed: float,
    ) -> float:
        """Compute the PID output with its magnitude bounded by two speeds.

        Both speeds are converted to voltages as a fraction of the
        controller's top speed. The output keeps its sign.

        Args:
            setpoint: Value to reach.
            current: Measured value.
            epsilon: Error magnitude counted as at target.
            top_speed: Ceiling on the output speed (ft/s).
            min_speed: Floor on the output speed (ft/s).

        Returns:
            Regulated output (volts).
        """
        output = self.calc_pid(setpoint, current, epsilon)
        top_limit = self.config.max_voltage * (abs(top_speed) / self.top_speed)
        bot_limit = self.config.max_voltage * (abs(min_speed) / self.top_speed)

        return regulated_clamp(output, bot_limit, top_limit)

    def calc_dv_pid(self, setpoint: float, current: float, goal_vel: float, epsilon: float) -> float:
        """Compute a distance-velocity output for profile tracking.

        At-target is judged on absolute displacement from ``init_pos``, and
        the derivative term compares the error rate (converted to ft/s) with
        the goal velocity.

        Args:
            setpoint: Goal distance (inches).
            current: Measured distance (inches).
            goal_vel: Goal velocity (ft/s).
            epsilon: Distance counted as at target (inches).

        Returns:
            Feedback output (volts).
        """
        error = setpoint - current
        self.at_target = abs(current) >= self.init_pos + setpoint - epsilon

        p_out = self.kp * error

        error_vel = (error - self.last_error) / (self.config.update_period * 12.0)
        d_out = self.kd * (error_vel - goal_vel)

        self.last_error = error

        return p_out + d_out
