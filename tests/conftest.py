"""Shared fixtures: the reference robot, the model-check robot and their drive loops."""

import pytest

from drive_sim.config import NEO, SimConfig
from drive_sim.drive_loop import DriveLoop
from drive_sim.model import Gearbox, Motor, Robot
from drive_sim.routines import build_reference_loop, build_reference_robot

MODEL_CHECK_RATIO = 8.5521


@pytest.fixture
def config() -> SimConfig:
    return SimConfig()


@pytest.fixture
def robot(config: SimConfig) -> Robot:
    """4 in wheels, 120 lb, 30x30 in, two NEOs per side geared for 12 ft/s."""
    return build_reference_robot(config)


@pytest.fixture
def loop(config: SimConfig) -> DriveLoop:
    return build_reference_loop(config)


@pytest.fixture
def model_check_robot(config: SimConfig) -> Robot:
    """4 in wheels, 153 lb, 30x30 in, two NEOs per side at an 8.5521 reduction."""
    gearbox = Gearbox(MODEL_CHECK_RATIO, Motor(NEO, config), 2, config)
    return Robot(4, 153, 30, 30, gearbox, config)


@pytest.fixture
def model_check_loop(model_check_robot: Robot, config: SimConfig) -> DriveLoop:
    return DriveLoop.from_config(model_check_robot, config)
