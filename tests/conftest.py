# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Pytest configuration and fixtures for garage door tests."""
from __future__ import annotations

import pytest

from garagedoor import DoorTimingConfig, GarageDoor, MotionController, SimulatedPin


# ============================================================================
# Timing
# ============================================================================

# Round numbers keep expected heights easy to compute by hand
FAST_DOOR_HEIGHT = 7.0


@pytest.fixture
def fast_timing() -> DoorTimingConfig:
    """Timing config that runs a full door travel in a fraction of a second."""
    return DoorTimingConfig(
        door_height=FAST_DOOR_HEIGHT,
        open_time=0.2,
        close_time=0.18,
        pulse_hold_time=0.005,
        pulse_spacing=0.01,
        bounce_back_height=-1.0,
        bounce_back_delay=0.01,
        light_pulse_duration=0.005,
    )


@pytest.fixture
def bounce_timing(fast_timing) -> DoorTimingConfig:
    """Fast timing with bounce-back handling enabled below one foot."""
    values = fast_timing.to_dict()
    values["bounce_back_height"] = 1.0
    return DoorTimingConfig.from_dict(values)


# ============================================================================
# Door Objects
# ============================================================================

@pytest.fixture
def pin() -> SimulatedPin:
    """Pin that records every write."""
    return SimulatedPin()


@pytest.fixture
def controller(pin, fast_timing) -> MotionController:
    """Controller for a closed door."""
    return MotionController(pin, fast_timing)


@pytest.fixture
def door(pin, fast_timing):
    """GarageDoor facade for a closed door."""
    door = GarageDoor(pin, fast_timing)
    yield door
    door.close()
