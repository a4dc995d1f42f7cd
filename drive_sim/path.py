"""Waypoint path for pure pursuit tracking.

A quintic Bezier curve is resampled into points evenly spaced by arc length.
Each point carries its distance along the path, the local radius of travel
and a speed limited by curvature, acceleration and deceleration.

Paths can be written to and read back from a plain text file: a header line
with the point count followed by one ``x y distance radius velocity`` line
per point.
"""

import logging
import math
from pathlib import Path
from typing import List, Optional, Union

import numpy as np
import numpy.typing as npt

from .bezier import BezierPath, ControlPoints, build_distance_table, t_for_distance
from .config import PATH_SPACING
from .geometry import MAX_RADIUS, Point, calc_radius, dist

DISTANCE_TABLE_SIZE = 500
"""Number of t samples used to measure the curve."""


class PursuitPath:
    """Evenly spaced waypoints along a Bezier curve with planned speeds.

    Attributes:
        track_width: Wheel-to-wheel width (inches).
        max_vel: Maximum center velocity.
        acc: Acceleration limit.
        dec: Deceleration limit magnitude.
        spacing: Distance between consecutive waypoints (inches).
        total_length: Arc length of the curve (inches).
    """

    def __init__(
        self,
        control_points: ControlPoints,
        track_width: float,
        max_vel: float,
        acc: float,
        dec: Optional[float] = None,
        spacing: float = PATH_SPACING,
    ) -> None:
        """Plan the path.

        Args:
            control_points: Six control points of the curve.
            track_width: Wheel-to-wheel width (inches).
            max_vel: Maximum center velocity.
            acc: Acceleration limit.
            dec: Deceleration limit. Only its magnitude is used. Default: ``acc``.
            spacing: Distance between consecutive waypoints (inches).

        Raises:
            ValueError: If the spacing, width or a limit is not positive.
        """
        if spacing <= 0:
            raise ValueError(f"Waypoint spacing must be positive, got {spacing}")
        if track_width <= 0 or max_vel <= 0 or acc <= 0:
            raise ValueError("Track width, maximum velocity and acceleration must be positive")

        curve = BezierPath(control_points)
        self.curve: Optional[BezierPath] = curve
        self.track_width = track_width
        self.max_vel = max_vel
        self.acc = acc
        self.dec = abs(acc if dec is None else dec)
        self.spacing = spacing

        distances = build_distance_table(curve, DISTANCE_TABLE_SIZE)
        self.total_length = float(distances[-1])

        self._place_points(curve, distances)
        self._calc_radii()
        self._plan_velocities()

        logging.debug(
            f"Planned pursuit path: {len(self._points)} points over {self.total_length:.1f} in"
        )

    @classmethod
    def from_arrays(
        cls,
        points: List[Point],
        dist_along_path: npt.ArrayLike,
        radius: npt.ArrayLike,
        vel: npt.ArrayLike,
    ) -> "PursuitPath":
        """Wrap already planned waypoint data without a source curve."""
        path = cls.__new__(cls)
        path.curve = None
        path.track_width = 0.0
        path.max_vel = float(np.max(vel)) if len(points) else 0.0
        path.acc = 0.0
        path.dec = 0.0
        path.spacing = 0.0

        path._points = [p.copy() for p in points]
        path._dist_along_path = np.asarray(dist_along_path, dtype=float)
        path._radius = np.asarray(radius, dtype=float)
        path._vel = np.asarray(vel, dtype=float)
        path.total_length = float(path._dist_along_path[-1]) if len(points) else 0.0
        return path

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def _place_points(self, curve: BezierPath, distances: npt.NDArray[np.float64]) -> None:
        size = max(1, int(math.ceil(self.total_length / self.spacing)))

        self._points: List[Point] = [curve.start]
        self._dist_along_path = np.zeros(size)

        for i in range(1, size):
            t = t_for_distance(distances, i * self.spacing)
            self._points.append(curve.calc_point(t))
            self._dist_along_path[i] = self._dist_along_path[i - 1] + dist(
                self._points[i - 1], self._points[i]
            )

    def _calc_radii(self) -> None:
        # End segments are treated as straight
        n = len(self._points)
        self._radius = np.full(n, MAX_RADIUS)
        for i in range(1, n - 1):
            self._radius[i] = calc_radius(self._points[i - 1], self._points[i], self._points[i + 1])

    def _plan_velocities(self) -> None:
        r = self._radius
        vel = (self.max_vel * r) / (r + self.track_width / 2.0)

        vel[0] = 0.0
        for i in range(1, len(vel)):
            vel[i] = min(vel[i], math.sqrt(vel[i - 1] ** 2 + 2.0 * self.acc * self.spacing))

        vel[-1] = 0.0
        for i in range(len(vel) - 2, -1, -1):
            vel[i] = min(vel[i], math.sqrt(vel[i + 1] ** 2 + 2.0 * self.dec * self.spacing))

        self._vel = vel

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def points(self) -> List[Point]:
        """Copies of the waypoints in path order."""
        return [p.copy() for p in self._points]

    @property
    def distances(self) -> npt.NDArray[np.float64]:
        """Cumulative distance along the path at each waypoint (inches)."""
        return self._dist_along_path.copy()

    @property
    def radii(self) -> npt.NDArray[np.float64]:
        """Radius of travel at each waypoint (inches)."""
        return self._radius.copy()

    @property
    def velocities(self) -> npt.NDArray[np.float64]:
        """Planned center velocity at each waypoint."""
        return self._vel.copy()

    @property
    def size(self) -> int:
        return len(self._points)

    @property
    def start(self) -> Point:
        return self._points[0].copy()

    @property
    def end(self) -> Point:
        return self._points[-1].copy()

    @property
    def initial_heading(self) -> float:
        """Field heading from the first waypoint toward the second (radians)."""
        if len(self._points) < 2:
            return 0.0
        p0, p1 = self._points[0], self._points[1]
        return math.atan2(p1.x - p0.x, p1.y - p0.y)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def write_to_file(self, filename: Union[str, Path]) -> bool:
        """Write the waypoints to a text file.

        Returns:
            True if the file was written, False if it could not be.
        """
        path = Path(filename)
        try:
            with path.open("w") as f:
                f.write(f"{len(self._points)}\n")
                for p, d, r, v in zip(self._points, self._dist_along_path, self._radius, self._vel):
                    f.write(f"{p.x:.3f} {p.y:.3f} {d:.3f} {r:.3f} {v:.3f}\n")
        except OSError as e:
            logging.warning(f"Could not write pursuit path to {path}: {e}")
            return False

        logging.debug(f"Pursuit path written to {path}")
        return True

    @classmethod
    def create_from_file(cls, filename: Union[str, Path]) -> Optional["PursuitPath"]:
        """Read a path written by ``write_to_file``.

        Returns:
            The path, or None if the file is missing or malformed.
        """
        path = Path(filename)
        try:
            lines = path.read_text().split("\n")
            size = int(lines[0])

            points: List[Point] = []
            values: List[List[float]] = []
            for line in lines[1 : size + 1]:
                x, y, d, r, v = (float(token) for token in line.split())
                points.append(Point(x, y))
                values.append([d, r, v])
        except OSError as e:
            logging.warning(f"Could not read pursuit path from {path}: {e}")
            return None
        except (ValueError, IndexError) as e:
            logging.warning(f"Malformed pursuit path file {path}: {e}")
            return None

        if size < 1 or len(points) != size:
            logging.warning(f"Pursuit path file {path} holds {len(points)} of {size} points")
            return None

        table = np.array(values)
        return cls.from_arrays(points, table[:, 0], table[:, 1], table[:, 2])
