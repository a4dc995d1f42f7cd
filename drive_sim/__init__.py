"""Drive Sim - Deterministic Motion Control for Differential-Drive Robots

A fixed-step simulation of a differential-drive robot together with the
controllers that drive it: PID regulators, motion profiles, a pure pursuit
waypoint tracker and the drive loop state machine that dispatches between
them every 5 ms tick.

## Architecture Overview

### Plant (model.py)
Linear DC motor model feeding two gearboxes coupled through the chassis.
- Input: left and right voltages, clamped to +/-12 V
- Output: wheel kinematics, linear and angular velocity, field pose

### Controllers
- `pid.py` - Plain, regulated (clamped with speed floor) and distance-velocity PID
- `profiles.py` - Trapezoidal, jerk-limited and Bezier wheel profiles
- `path.py` - Evenly spaced waypoints with curvature and acceleration limited speeds
- `follower.py` - Pure pursuit seek-and-arrive tracker

### Drive Loop (drive_loop.py)
One setpoint record per mode (waiting, drive distance, turn angle, drive to
goal, open and closed loop profile, pure pursuit). Entering a mode resets the
controllers it uses; ``on_loop()`` applies one tick of output.

### Harness (commands.py, routines.py)
Commands run until finished or until their iteration cap fires, recording
a pose and a telemetry snapshot every tick. Routines chain commands into
demo and test sequences.

## Modules

- `config.py` - Centralized configuration parameters with documentation
- `numeric.py` - Clamping, interpolation and regression helpers
- `geometry.py` - Points, poses and field positioning
- `telemetry.py` - Per-tick telemetry record
- `bezier.py` - Quintic Bezier curve evaluation
- `data_collector.py` - CSV logging of run traces
- `simulator.py` - Logging setup, scenario registry and CLI

## Quick Start

```python
from drive_sim import DriveDistance, build_reference_loop

loop = build_reference_loop()
command = DriveDistance(loop, 100, 1, 12)
command.run()
print(loop.robot.average_pos)
```

Or use the command-line interface:
```bash
python -m drive_sim pure-pursuit --curve j_shape
```

## Units

Distances in inches, linear speeds in ft/s, headings in radians with 0
pointing along +y. Pure pursuit speeds are in volts.

## Version

0.1.0 - Initial implementation
"""

__version__ = "0.1.0"
__author__ = "Nishalan Govender"

from .commands import (
    Command,
    CommandGroup,
    DriveClosedLoopLinearProfile,
    DriveDistance,
    DriveOpenLoopProfile,
    DriveToGoal,
    PurePursuit,
    SetPose,
    TimedVoltage,
    TurnAngle,
    Wait,
)
from .config import DEFAULT_CONFIG, SimConfig
from .data_collector import DataCollector
from .drive_loop import DriveLoop, DriveState
from .follower import PurePursuitController
from .geometry import Point, Pose
from .model import Gearbox, Motor, Robot
from .path import PursuitPath
from .pid import PIDController
from .profiles import BezierProfile, JerkProfile, TrapezoidalProfile
from .routines import build_reference_loop, build_reference_robot
from .telemetry import Telemetry

__all__ = [
    "Command",
    "CommandGroup",
    "DriveClosedLoopLinearProfile",
    "DriveDistance",
    "DriveOpenLoopProfile",
    "DriveToGoal",
    "PurePursuit",
    "SetPose",
    "TimedVoltage",
    "TurnAngle",
    "Wait",
    "DEFAULT_CONFIG",
    "SimConfig",
    "DataCollector",
    "DriveLoop",
    "DriveState",
    "PurePursuitController",
    "Point",
    "Pose",
    "Gearbox",
    "Motor",
    "Robot",
    "PursuitPath",
    "PIDController",
    "BezierProfile",
    "JerkProfile",
    "TrapezoidalProfile",
    "build_reference_loop",
    "build_reference_robot",
    "Telemetry",
]
