"""Per-tick telemetry snapshot of the simulated robot.

A fixed-shape record replaces an open channel map: every channel the plant
always knows is a required field, and channels that only some drive modes
produce (goal point, lookahead, PID output) are optional and default to None.
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, List, Optional, Tuple

TELEMETRY_COLUMNS: List[str] = []
"""Flattened CSV column names, filled in below from the dataclass fields."""


@dataclass(frozen=True)
class Telemetry:
    """Snapshot of the plant and controller channels after one tick.

    Attributes:
        command: Label of the command or drive mode that produced the tick.
        avg_pos: Average wheel displacement (inches).
        lin_vel: Linear velocity (ft/s).
        ang_vel: Angular velocity (rad/s).
        heading: Heading (radians, unwrapped).
        yaw: Heading in degrees wrapped to [0, 360).
        x: Field x position (inches).
        y: Field y position (inches).
        left_pos: Left wheel displacement (inches).
        right_pos: Right wheel displacement (inches).
        left_vel: Left wheel speed (ft/s).
        right_vel: Right wheel speed (ft/s).
        left_acc: Left gearbox acceleration (rad/s^2).
        right_acc: Right gearbox acceleration (rad/s^2).
        lin_acc: Linear acceleration (in/s^2).
        ang_acc: Angular acceleration (rad/s^2).
        left_voltage: Voltage applied to the left side after clamping.
        right_voltage: Voltage applied to the right side after clamping.
        color: RGB display color scaled by speed.
        goal_point: Current goal point, if the mode has one.
        lookahead: Pure pursuit lookahead radius, if pursuing.
        pid_output: Drive or turn PID output, if a PID mode is active.
    """

    command: str
    avg_pos: float
    lin_vel: float
    ang_vel: float
    heading: float
    yaw: float
    x: float
    y: float
    left_pos: float
    right_pos: float
    left_vel: float
    right_vel: float
    left_acc: float
    right_acc: float
    lin_acc: float
    ang_acc: float
    left_voltage: float
    right_voltage: float
    color: Tuple[int, int, int]
    goal_point: Optional[Tuple[float, float]] = None
    lookahead: Optional[float] = None
    pid_output: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Flatten to one value per CSV column.

        The color splits into three channels and the goal point into two.
        Absent optional channels become empty strings.
        """
        data = asdict(self)

        r, g, b = data.pop("color")
        data["color_r"], data["color_g"], data["color_b"] = r, g, b

        goal = data.pop("goal_point")
        data["goal_x"] = goal[0] if goal is not None else ""
        data["goal_y"] = goal[1] if goal is not None else ""

        for key in ("lookahead", "pid_output"):
            if data[key] is None:
                data[key] = ""

        return {column: data[column] for column in TELEMETRY_COLUMNS}


for _field in fields(Telemetry):
    if _field.name == "color":
        TELEMETRY_COLUMNS.extend(["color_r", "color_g", "color_b"])
    elif _field.name == "goal_point":
        TELEMETRY_COLUMNS.extend(["goal_x", "goal_y"])
    else:
        TELEMETRY_COLUMNS.append(_field.name)
