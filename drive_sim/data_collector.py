"""Data collection and CSV logging for simulated drive runs.

This module provides CSV data logging for:
- Telemetry (every plant and controller channel, once per tick)
- Poses (field position, heading and display color, once per tick)
- Run summary (iterations, final pose, completion)
"""

import csv
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, TextIO

from .config import TERM_BLUE, TERM_RESET
from .geometry import Pose
from .telemetry import TELEMETRY_COLUMNS, Telemetry

POSE_COLUMNS = ["time", "x", "y", "heading", "color_r", "color_g", "color_b"]


class DataCollector:
    """Manages CSV file creation and logging for a simulation run.

    Attributes:
        run_dir: Directory path for this run's output files.
        telemetry_csv_file: File handle for the telemetry CSV.
        pose_csv_file: File handle for the pose CSV.
        summary_output_path: Path for the run summary text file.
    """

    def __init__(self, output_dir: str = ".", run_dir: Optional[str] = None) -> None:
        """Initialize the data collector.

        Args:
            output_dir: Base directory for output files (default: current directory).
            run_dir: Optional specific run directory. If None, creates a timestamped
                directory. Can also be set via the RUN_DIR environment variable.

        Raises:
            ValueError: If output_dir is not a valid directory.
        """
        output_path = Path(output_dir)
        if output_path.exists() and not output_path.is_dir():
            raise ValueError(f"Output path exists but is not a directory: {output_dir}")

        self.telemetry_csv_file: Optional[TextIO] = None
        self.telemetry_csv_writer: Any = None
        self.pose_csv_file: Optional[TextIO] = None
        self.pose_csv_writer: Any = None
        self.rows_written = 0

        if run_dir:
            self.run_dir: Path = Path(run_dir)
        elif env_run_dir := os.environ.get("RUN_DIR"):
            self.run_dir = Path(env_run_dir)
        else:
            # results/run_YYYYMMDD_HHMMSS/
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.run_dir = output_path / "results" / f"run_{timestamp}"

        self.run_dir.mkdir(parents=True, exist_ok=True)

        self.telemetry_output_path: Path = self.run_dir / "telemetry.csv"
        self.pose_output_path: Path = self.run_dir / "poses.csv"
        self.summary_output_path: Path = self.run_dir / "summary.txt"

    def setup(self) -> None:
        """Open the CSV files and write their headers.

        Must be called before writing data.
        """
        self.telemetry_csv_file = open(self.telemetry_output_path, "w", newline="")
        self.telemetry_csv_writer = csv.DictWriter(
            self.telemetry_csv_file, fieldnames=["time"] + TELEMETRY_COLUMNS
        )
        self.telemetry_csv_writer.writeheader()

        self.pose_csv_file = open(self.pose_output_path, "w", newline="")
        self.pose_csv_writer = csv.writer(self.pose_csv_file)
        self.pose_csv_writer.writerow(POSE_COLUMNS)

        logging.debug(f"Data collection opened in {self.run_dir}")
        print(f"{TERM_BLUE}✓ Initialized data collection to {self.run_dir}/{TERM_RESET}")

    def log_telemetry(self, time: float, snapshot: Telemetry) -> None:
        """Log one telemetry snapshot.

        Args:
            time: Simulated time of the tick (seconds).
            snapshot: Telemetry after the tick.
        """
        row = {"time": time}
        row.update(snapshot.to_dict())
        self.telemetry_csv_writer.writerow(row)
        self.rows_written += 1

    def log_pose(self, time: float, pose: Pose) -> None:
        """Log one robot pose.

        Args:
            time: Simulated time of the tick (seconds).
            pose: Robot pose after the tick.
        """
        r, g, b = pose.color
        self.pose_csv_writer.writerow([time, pose.x, pose.y, pose.heading, r, g, b])

    def log_trace(
        self, poses: Iterable[Pose], data: Iterable[Telemetry], update_period: float
    ) -> None:
        """Log a whole command trace, timing tick ``i`` at ``(i + 1) * update_period``."""
        for i, (pose, snapshot) in enumerate(zip(poses, data)):
            time = (i + 1) * update_period
            self.log_pose(time, pose)
            self.log_telemetry(time, snapshot)

        if self.telemetry_csv_file:
            self.telemetry_csv_file.flush()
        if self.pose_csv_file:
            self.pose_csv_file.flush()

    def log_summary(self, summary: Dict[str, Any]) -> None:
        """Write the run summary as ``key: value`` lines.

        Args:
            summary: Summary values, written in insertion order.
        """
        with open(self.summary_output_path, "w") as f:
            for key, value in summary.items():
                if isinstance(value, float):
                    f.write(f"{key}: {value:.6f}\n")
                else:
                    f.write(f"{key}: {value}\n")
        print(f"{TERM_BLUE}✓ Saved run summary to {self.summary_output_path.name}{TERM_RESET}")

    def cleanup(self) -> None:
        """Close all CSV files and report the output location."""
        if self.telemetry_csv_file:
            self.telemetry_csv_file.close()
        if self.pose_csv_file:
            self.pose_csv_file.close()

        print(f"{TERM_BLUE}✓ Saved {self.rows_written} ticks to {self.run_dir}/{TERM_RESET}")

    def __enter__(self) -> "DataCollector":
        self.setup()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit point - ensures cleanup is called."""
        self.cleanup()
