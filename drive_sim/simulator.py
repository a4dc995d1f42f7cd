#!/usr/bin/env python3
"""
Simulation runner for the differential drive motion-control engine.

This module ties the pieces together: it builds the reference robot and
drive loop, runs a named scenario through the command harness, logs a
summary and saves the per-tick trace to CSV files.
"""

import argparse
import logging
import time
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from .commands import CommandGroup
from .config import DEFAULT_CONFIG, REFERENCE_CURVES, TERM_BLUE, TERM_RESET, SimConfig
from .data_collector import DataCollector
from .drive_loop import DriveLoop
from . import routines

ScenarioBuilder = Callable[[DriveLoop, np.random.Generator, str], CommandGroup]

SCENARIOS: Dict[str, ScenarioBuilder] = {
    "straight": lambda loop, rng, curve: routines.straight_profile_test(loop),
    "trapezoid": lambda loop, rng, curve: routines.trapezoid_profile_test(loop, closed_loop=True),
    "trapezoid-open": lambda loop, rng, curve: routines.trapezoid_profile_test(
        loop, closed_loop=False
    ),
    "bezier-profile": lambda loop, rng, curve: routines.bezier_profile_test(
        loop, REFERENCE_CURVES[curve]
    ),
    "drive-to-goal": lambda loop, rng, curve: routines.drive_to_goal_demo(loop, rng),
    "drive-to-goal-sweep": lambda loop, rng, curve: routines.drive_to_goal_sweep(loop),
    "pure-pursuit": lambda loop, rng, curve: routines.pure_pursuit_demo(
        loop, REFERENCE_CURVES[curve]
    ),
}
"""Scenarios runnable from the command line, by name."""

CHARACTERIZE = "characterize"
"""Scenario name for the kV voltage sweep, which runs outside the drive loop."""


class CustomFormatter(logging.Formatter):
    """Custom logging formatter that removes timestamps from INFO messages.

    INFO messages print bare for clean console output; WARNING, ERROR and
    DEBUG messages keep their timestamp and level.
    """

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno == logging.INFO:
            return record.getMessage()
        return f"{self.formatTime(record, self.datefmt)} - {record.levelname} - {record.getMessage()}"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbose: If True, show all levels with timestamps. If False, show INFO
                 without timestamps and WARNING/ERROR with timestamps.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(CustomFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
        logger = logging.getLogger()
        logger.setLevel(logging.INFO)
        logger.addHandler(handler)


class Simulator:
    """Runs command groups against the reference robot and records the results.

    Attributes:
        config: Simulation configuration.
        loop: Drive loop around the reference robot.
        collector: CSV collector, or None when saving is disabled.
    """

    def __init__(
        self,
        config: Optional[SimConfig] = None,
        output_dir: str = ".",
        save: bool = True,
        run_dir: Optional[str] = None,
    ) -> None:
        """Initialize the simulator.

        Args:
            config: Simulation configuration. Default: ``DEFAULT_CONFIG``.
            output_dir: Base directory for run output.
            save: Whether to write CSV and summary files.
            run_dir: Optional specific run directory.

        Raises:
            ValueError: If output_dir is not a valid directory.
        """
        self.config = config or DEFAULT_CONFIG
        self.loop = routines.build_reference_loop(self.config)
        self.collector: Optional[DataCollector] = (
            DataCollector(output_dir, run_dir) if save else None
        )

    def __enter__(self) -> "Simulator":
        if self.collector:
            self.collector.setup()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self.collector:
            self.collector.cleanup()

    def run(self, group: CommandGroup, name: str = "custom") -> Dict[str, Any]:
        """Run a command group and record its trace.

        Args:
            group: Commands to run.
            name: Scenario name for the summary.

        Returns:
            Run summary.
        """
        logging.info(f"{TERM_BLUE}Running {name} ({len(group)} commands){TERM_RESET}")
        start = time.perf_counter()
        completed = group.run()
        elapsed = time.perf_counter() - start

        robot = self.loop.robot
        iterations = len(group.data)
        summary: Dict[str, Any] = {
            "scenario": name,
            "commands": len(group),
            "completed": completed,
            "iterations": iterations,
            "sim_time": iterations * self.config.update_period,
            "final_x": robot.x,
            "final_y": robot.y,
            "final_yaw": robot.yaw,
            "final_avg_pos": robot.average_pos,
            "wall_time": elapsed,
        }

        logging.info(
            f"Simulated {iterations} ticks ({summary['sim_time']:.2f}s) in {elapsed:.2f}s"
        )
        logging.info(
            f"Final pose: ({robot.x:.2f}, {robot.y:.2f}) in, yaw {robot.yaw:.1f} deg"
        )
        if not completed:
            logging.warning(f"{name}: at least one command timed out")

        if self.collector:
            self.collector.log_trace(group.poses, group.data, self.config.update_period)
            self.collector.log_summary(summary)

        return summary

    def run_scenario(
        self, name: str, seed: Optional[int] = None, curve: str = "nice_long_curve"
    ) -> Dict[str, Any]:
        """Build and run a scenario from ``SCENARIOS``.

        Raises:
            KeyError: If the scenario or curve name is unknown.
        """
        rng = np.random.default_rng(seed)
        group = SCENARIOS[name](self.loop, rng, curve)
        return self.run(group, name)

    def characterize(self) -> Dict[str, Any]:
        """Run the kV voltage sweep and record its result."""
        slope = routines.characterize_kv(self.config)
        summary: Dict[str, Any] = {"scenario": CHARACTERIZE, "kv_slope": slope}
        if self.collector:
            self.collector.log_summary(summary)
        return summary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Differential drive motion-control simulation"
    )
    parser.add_argument(
        "scenario",
        choices=sorted(SCENARIOS) + [CHARACTERIZE],
        help="Scenario to run",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging with timestamps"
    )
    parser.add_argument(
        "--output-dir", default=".", help="Base directory for results (default: current directory)"
    )
    parser.add_argument("--no-save", action="store_true", help="Do not write CSV output")
    parser.add_argument("--seed", type=int, default=None, help="Seed for randomised scenarios")
    parser.add_argument(
        "--curve",
        choices=sorted(REFERENCE_CURVES),
        default="nice_long_curve",
        help="Reference curve for path scenarios",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Command line entry point.

    Returns:
        Process exit code: 0 if every command finished, 1 otherwise.
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    logging.debug(f"Configuration: {DEFAULT_CONFIG.to_dict()}")

    with Simulator(output_dir=args.output_dir, save=not args.no_save) as sim:
        if args.scenario == CHARACTERIZE:
            summary = sim.characterize()
            logging.info(f"kV slope: {summary['kv_slope']:.4f} ft/s per volt")
            return 0

        summary = sim.run_scenario(args.scenario, seed=args.seed, curve=args.curve)

    return 0 if summary["completed"] else 1
