# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Garage door motion controller.

Positions a garage door driven by a single-button opener. The opener has
one toggle input and no position feedback, so the door height is tracked
by timing and every request is turned into a sequence of button presses.

Example usage:
    # Run the service with a simulated pin
    python -m garagedoor --simulate

    # Or use programmatically
    from garagedoor import GarageDoor
    door = GarageDoor()
    await door.move("to", 3.5)
"""

from .controller import MotionController, MotionState
from .door import GarageDoor
from .exceptions import (
    DoorBusyError,
    GarageDoorError,
    HardwareWriteFailure,
    InvalidRequest,
    MovementCancelled,
)
from .pin import GpioPin, PinDriver, SimulatedPin
from .position import DoorState, PositionModel
from .request import AbsoluteHeight, MovementRequest, RelativeDown, RelativeUp, parse_request
from .timing import DoorTimingConfig, load_timing_config

__all__ = [
    # Main classes
    "GarageDoor",
    "MotionController",
    "MotionState",
    # State and configuration
    "DoorState",
    "DoorTimingConfig",
    "PositionModel",
    "load_timing_config",
    # Requests
    "AbsoluteHeight",
    "MovementRequest",
    "RelativeDown",
    "RelativeUp",
    "parse_request",
    # Pins
    "GpioPin",
    "PinDriver",
    "SimulatedPin",
    # Exceptions
    "DoorBusyError",
    "GarageDoorError",
    "HardwareWriteFailure",
    "InvalidRequest",
    "MovementCancelled",
]
