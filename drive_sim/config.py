"""Configuration parameters for the drive simulation.

This module centralizes all configuration parameters including:
- Unit conversions and timing
- Motor specifications
- Control system gains and feed-forward constants
- Field geometry and reference curves
- Pure pursuit tuning

All parameters are documented with their units and origin. Components do not
read these constants directly during a run; they receive a ``SimConfig`` whose
defaults come from this module, so tests can build independent configurations
side by side.
"""

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Tuple

# ============================================================================
# Timing and Units
# ============================================================================

UPDATE_PERIOD = 0.005
"""Fixed control loop period (seconds).
200 Hz, the rate a competition drivetrain runs its control loop at."""

MAX_VOLTAGE = 12.0
"""Largest magnitude voltage the plant accepts per side (volts)."""

V_INTERCEPT = 0.206
"""Voltage intercept used when deriving motor velocity-per-volt (volts)."""

INCHES_TO_METERS = 0.0254
"""Inches to meters conversion factor."""

LBS_TO_KG = 0.453592
"""Pounds to kilograms conversion factor."""

FIVENOMIAL_CONSTANTS: Tuple[int, ...] = (1, 5, 10, 10, 5, 1)
"""Binomial coefficients for a quintic Bezier curve."""


# ============================================================================
# Motor Specifications
# ============================================================================

# Each motor is (free speed [RPM], free current [A], stall torque [Nm], stall current [A])
MotorSpec = Tuple[float, float, float, float]

NEO: MotorSpec = (5880, 1.3, 3.36, 166)
"""REV NEO brushless motor."""

CIM: MotorSpec = (5330, 2.7, 2.41, 131)
"""CIM brushed motor."""

MINI_CIM: MotorSpec = (5840, 3, 1.41, 89)
"""Mini CIM brushed motor."""

PRO_775: MotorSpec = (18730, 0.7, 0.71, 134)
"""775pro brushed motor."""

FALCON_500: MotorSpec = (6380, 1.5, 4.69, 257)
"""Falcon 500 brushless motor."""


# ============================================================================
# Reference Robot
# ============================================================================

ROBOT_WHEEL_DIAMETER = 4.0
"""Drive wheel diameter (inches)."""

ROBOT_MASS = 120.0
"""Robot mass (pounds)."""

ROBOT_LENGTH = 30.0
"""Chassis length (inches)."""

ROBOT_WIDTH = 30.0
"""Chassis width, also used as the track width (inches)."""

ROBOT_TOP_SPEED = 12.0
"""Free speed the gearbox ratio is chosen for (ft/s)."""

ROBOT_MOTOR_COUNT = 2
"""Motors per gearbox side."""


# ============================================================================
# Feedback Gains
# ============================================================================

KP_DRIVE = 0.9
"""Drive proportional gain (volts per inch of error)."""

KI_DRIVE = 0.0
"""Drive integral gain. Unused in the tuned loop."""

KD_DRIVE = 0.13
"""Drive derivative gain (volts per inch of error change per tick)."""

KP_TURN = 0.06
"""Turn proportional gain (volts per radian of error)."""

KI_TURN = 0.0
"""Turn integral gain. Unused in the tuned loop."""

KD_TURN = 0.05
"""Turn derivative gain."""


# ============================================================================
# Feed-forward Constants
# ============================================================================

KV_MODEL = 0.182
"""Velocity feed-forward derived from the motor model (volts per ft/s per motor)."""

KA_MODEL = 0.0203
"""Acceleration feed-forward derived from the motor model."""

KV_EMPIRICAL = 1.07
"""Velocity feed-forward measured by the voltage sweep (volts per ft/s).

Origin: ``routines.characterize_kv`` runs the reference robot at 0-12 V in
0.1 V steps for 5 s each and regresses voltage against settled speed. The
sweep lands near 0.99; 1.07 leaves headroom for profile tracking lag.
"""

KA_EMPIRICAL = 0.005
"""Acceleration feed-forward used alongside KV_EMPIRICAL (volts per in/s^2)."""


# ============================================================================
# Field
# ============================================================================

FIELD_WIDTH = 648.0
"""Field width (inches)."""

FIELD_HEIGHT = 324.0
"""Field height (inches)."""


# ============================================================================
# Pure Pursuit and Path Planning
# ============================================================================

PP_ACC_TIME = 0.25
"""Time for the pursuit speed output to ramp from zero to maximum (seconds)."""

PP_TURN_CONST = 22.0
"""Angular output per radian of heading error (volts per radian)."""

PP_MAX_SPEED = 12.0
"""Maximum pursuit linear output (volts)."""

PP_GOAL_DIST = 30.0
"""Distance from the final waypoint at which arrival slow-down begins (inches)."""

PP_END_DIST = 3.0
"""Distance from a waypoint at which it counts as reached (inches)."""

PP_LOOKAHEAD = 18.0
"""Lookahead circle radius (inches)."""

PATH_SPACING = 24.0
"""Spacing between waypoints of a planned pursuit path (inches)."""

PATH_MAX_VEL = 12.0
"""Maximum center speed for a planned pursuit path."""

PATH_ACC = 200.0
"""Acceleration and deceleration limit for a planned pursuit path."""


# ============================================================================
# Harness
# ============================================================================

DEFAULT_TIMEOUT = 10.0
"""Default command timeout before the iteration cap fires (seconds)."""


# ============================================================================
# Reference Curves (quintic Bezier control points, inches)
# ============================================================================

CURVE = [[5.4, 3.7], [97, 6], [136, 73.2], [99.7, 60.2], [146, 51], [149.4, 150.4]]
"""Short S-bend used by the curve evaluation checks."""

CURVE2 = [[5.4, 3.7], [491.6, 24.7], [255, 152], [63.7, 98], [29, 255], [28, 300]]
"""Wide sweeping curve across the field."""

NICE_LONG_CURVE = [
    [23.4, 25.7],
    [23.0, 320.0],
    [116.0, 297.2],
    [205.7, 60.2],
    [300.0, 11.0],
    [301.4, 300.4],
]
"""Long serpentine used by the pure pursuit demo."""

J_SHAPE = [[23.4, 25.7], [23.5, 145.5], [282, 37], [308.5, 271], [147.5, 312], [47.5, 228.5]]
"""Hook shaped curve."""

ALMOST_S = [[36, 171], [-3.5, 39.5], [139, 26.5], [137.5, 64.5], [69.5, 317.5], [254, 129]]
"""S-shaped curve with a tight first bend."""

WRONG_L = [[28, 303], [54, 285.5], [263, 272.5], [315.5, 300.5], [229, 142], [288.5, 28.5]]
"""L-shaped curve that doubles back."""

REFERENCE_CURVES: Dict[str, Any] = {
    "curve": CURVE,
    "curve2": CURVE2,
    "nice_long_curve": NICE_LONG_CURVE,
    "j_shape": J_SHAPE,
    "almost_s": ALMOST_S,
    "wrong_l": WRONG_L,
}
"""Reference curves addressable by name from the command line."""


# ============================================================================
# Terminal Colors
# ============================================================================

TERM_BLUE = "\033[38;2;35;116;247m"
"""Terminal color code for status lines (RGB: 35, 116, 247)."""

TERM_RESET = "\033[0m"
"""Terminal color reset code."""


@dataclass(frozen=True)
class SimConfig:
    """Tuning and physical constants handed to every simulation component.

    Attributes:
        update_period: Control loop period (seconds).
        max_voltage: Plant voltage limit per side (volts).
        v_intercept: Motor voltage intercept (volts).
        kp_drive, ki_drive, kd_drive: Drive PID gains.
        kp_turn, ki_turn, kd_turn: Turn PID gains.
        k_v: Velocity feed-forward (volts per ft/s).
        k_a: Acceleration feed-forward (volts per in/s^2).
        lookahead_dist: Extra setpoint distance driven past a drive-to-goal
            target so the robot cruises through it (inches).
        default_timeout: Harness timeout when a command sets none (seconds).
    """

    update_period: float = UPDATE_PERIOD
    max_voltage: float = MAX_VOLTAGE
    v_intercept: float = V_INTERCEPT
    kp_drive: float = KP_DRIVE
    ki_drive: float = KI_DRIVE
    kd_drive: float = KD_DRIVE
    kp_turn: float = KP_TURN
    ki_turn: float = KI_TURN
    kd_turn: float = KD_TURN
    k_v: float = KV_EMPIRICAL
    k_a: float = KA_EMPIRICAL
    lookahead_dist: float = 0.0
    default_timeout: float = DEFAULT_TIMEOUT

    @property
    def max_iterations(self) -> int:
        """Iteration cap implied by ``default_timeout``."""
        return int(self.default_timeout * (1.0 / self.update_period))

    def iterations_for(self, timeout: float) -> int:
        """Convert a timeout in seconds to an iteration cap."""
        return int(timeout * (1.0 / self.update_period))

    def ticks(self, seconds: float) -> int:
        """Number of whole ticks that fit in ``seconds``."""
        return int(math.floor(seconds / self.update_period))

    def to_dict(self) -> Dict[str, float]:
        """Convert to dictionary for logging."""
        return asdict(self)


DEFAULT_CONFIG = SimConfig()
"""Configuration used when a component is built without one."""
