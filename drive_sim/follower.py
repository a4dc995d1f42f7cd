"""Pure pursuit waypoint tracker.

The tracker intersects a lookahead circle centered on the robot with the
segments of a waypoint list and steers toward the chosen goal with a
seek-and-arrive law:

- Arrive: within ``goal_dist`` of the final waypoint the speed ramps down
  linearly, reaching zero at ``end_dist``.
- Seek: speed shrinks as the bearing error grows (zero at 90 degrees), is
  rate limited on the way up, and the turn output is proportional to the
  bearing error.

Outputs are combined downstream as ``left = lin - ang`` and
``right = lin + ang``.
"""

import math
from typing import List, Optional, Sequence

from .config import DEFAULT_CONFIG, SimConfig
from .geometry import (
    Point,
    Pose,
    angle_wrap,
    closest_point,
    dist,
    is_within_bounds,
    line_circle_intersect,
)
from .numeric import min_mag


class PurePursuitController:
    """Lookahead tracker over an ordered list of waypoints.

    Attributes:
        acc_time: Time for the speed output to ramp from zero to maximum (s).
        turn_const: Turn output per radian of bearing error.
        max_speed: Maximum linear output.
        reverse: Whether the path is driven backwards.
        goal_dist: Distance from the final waypoint where slow-down starts.
        end_dist: Distance at which a goal counts as reached.
        lookahead: Lookahead circle radius.
        goal_index: Index of the waypoint currently being approached.
        goal: Point currently steered toward.
        speed: Latest linear output.
        turn: Latest angular output.
        arrived: Whether the last waypoint has been reached.
    """

    def __init__(self, config: Optional[SimConfig] = None) -> None:
        self.config = config or DEFAULT_CONFIG

        self.acc_time = 0.0
        self.turn_const = 0.0
        self.max_speed = 0.0
        self.reverse = False
        self.max_speed_step = 0.0
        self.last_speed = 0.0

        self.goal_dist = 0.0
        self.end_dist = 0.0
        self.lookahead = 0.0

        self.goals: List[Point] = []
        self.goal_index = 0
        self.goal: Optional[Point] = None

        self.robot_speed = 0.0
        self.speed = 0.0
        self.turn = 0.0
        self.arrived = False

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_waypoints(self, goals: Sequence[Point]) -> None:
        """Set the waypoints to follow and restart from the first one.

        Raises:
            ValueError: If ``goals`` is empty.
        """
        if not goals:
            raise ValueError("Pure pursuit needs at least one waypoint")
        self.goals = [p.copy() for p in goals]
        self.goal = self.goals[0].copy()
        self.goal_index = 0
        self.last_speed = 0.0
        self.arrived = False

    def set_seek_constants(
        self, acc_time: float, turn_const: float, max_speed: float, reverse: bool = False
    ) -> None:
        """Set the steering constants and restart the speed ramp."""
        self.acc_time = acc_time
        self.turn_const = turn_const
        self.max_speed = max_speed
        self.reverse = reverse
        self.last_speed = 0.0
        self.max_speed_step = self.config.update_period * max_speed / acc_time

    def set_arrive_constants(self, goal_dist: float, end_dist: float) -> None:
        """Set the slow-down band and restart from the first waypoint."""
        self.goal_dist = goal_dist
        self.end_dist = end_dist
        self.goal_index = 0

    def set_pure_pursuit_constants(self, lookahead: float) -> None:
        self.lookahead = lookahead

    # ------------------------------------------------------------------
    # Outputs
    # ------------------------------------------------------------------

    @property
    def lin_out(self) -> float:
        return self.speed

    @property
    def ang_out(self) -> float:
        return self.turn

    def is_arrived(self) -> bool:
        return self.arrived

    def calc_outputs(self, pose: Pose, robot_speed: float) -> None:
        """Update the linear and angular outputs for the robot's pose.

        Args:
            pose: Current robot pose.
            robot_speed: Current robot linear velocity. Recorded only.

        Raises:
            RuntimeError: If no waypoints have been set.
        """
        if self.goal is None:
            raise RuntimeError("set_waypoints() must be called before calc_outputs()")
        self.robot_speed = robot_speed
        position = pose.point

        if not self.arrived and dist(position, self.goal) <= self.end_dist:
            self.goal_index += 1
            self.goal = self.goals[min(self.goal_index, len(self.goals) - 1)].copy()

        self.arrived = self.goal_index >= len(self.goals)

        if self.arrived:
            self.speed = 0.0
            self.turn = 0.0
        else:
            self._pure_pursuit(pose)

    def _pure_pursuit(self, pose: Pose) -> None:
        position = pose.point
        final = self.goals[-1]

        intersects: List[Point] = []
        for start, end in zip(self.goals, self.goals[1:]):
            intersects.extend(line_circle_intersect(start, end, position, self.lookahead))

        # The last intersection found favours progress along the path
        if dist(position, final) < self.goal_dist:
            goal = final.copy()
        elif not intersects:
            goal = closest_point(self.goals, position).copy()  # type: ignore[union-attr]
        else:
            goal = intersects[-1]
        self.goal = goal

        self._arrive(position, goal)
        self._seek(pose, goal)

    def _arrive(self, position: Point, goal: Point) -> None:
        if is_within_bounds(self.goals[-1], position, self.goal_dist):
            d = dist(position, goal)
            scale = 0.0 if d < self.end_dist else (d - self.end_dist) / (self.goal_dist - self.end_dist)
            self.speed = self.max_speed * scale
        else:
            self.speed = self.max_speed

    def _seek(self, pose: Pose, goal: Point) -> None:
        delta = goal - pose.point
        abs_ang = math.atan2(delta.x, delta.y)

        rel_ang = angle_wrap(abs_ang - (pose.heading - math.pi / 2))
        rel_turn = rel_ang - math.pi / 2

        twist = min_mag(rel_turn, rel_turn + 2 * math.pi)
        if self.reverse:
            twist = angle_wrap(twist + math.pi)

        # Full stop at a right angle to the goal
        self.speed *= 1 - min(math.pi / 2, abs(twist)) / (math.pi / 2)
        if self.reverse:
            self.speed = -abs(self.speed)

        if abs(self.speed) > abs(self.last_speed):
            self.speed = min(self.speed, self.last_speed + self.max_speed_step)
            self.last_speed = self.speed

        self.turn = math.copysign(self.turn_const * abs(twist), twist)
