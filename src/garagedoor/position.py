# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tracked door state and the arithmetic that projects it over time."""
from __future__ import annotations

from dataclasses import dataclass

from .const import HEIGHT_CLOSED, HEIGHT_FULLY_OPEN
from .timing import DoorTimingConfig


@dataclass
class DoorState:
    """What the controller believes about the door.

    There is no sensor; every field is extrapolated from the pulses issued
    and the time elapsed since.
    """

    # Height of the bottom edge, 0 <= height_feet <= door height
    height_feet: float = 0.0

    # Opener's latched toggle direction. Flips on every pulse that starts
    # motion, independent of height.
    last_direction_up: bool = False

    # True between the pulse that starts motion and the one that stops it
    is_moving: bool = False


class PositionModel:
    """Pure height/time arithmetic over a DoorTimingConfig."""

    def __init__(self, timing: DoorTimingConfig):
        self.timing = timing

    @property
    def door_height(self) -> float:
        return self.timing.door_height

    def clamp(self, height: float) -> float:
        """Keep a height within the door's travel."""
        return max(0.0, min(self.timing.door_height, height))

    def rate(self, direction_up: bool) -> float:
        """Travel rate in feet per second for a direction."""
        return self.timing.open_rate if direction_up else self.timing.close_rate

    def signed_rate(self, direction_up: bool) -> float:
        """Travel rate with the sign of the height change it causes."""
        return self.rate(direction_up) if direction_up else -self.rate(direction_up)

    def is_interior(self, height: float) -> bool:
        """Whether a height is strictly between the floor and fully open."""
        return 0 < height < self.timing.door_height

    def travel_time(
        self,
        from_height: float,
        to_height: float,
        direction_up: bool,
        stopping_early: bool,
    ) -> float:
        """Seconds of travel between two heights.

        When the door will be stopped short of a limit, the stop pulse has
        to be started one hold time early so the door halts on target.
        Never negative.
        """
        seconds = abs(to_height - from_height) / self.rate(direction_up)
        if stopping_early:
            seconds -= self.timing.pulse_hold_time
        return max(0.0, seconds)

    def describe(self, height: float) -> str:
        """Human-readable classification of a height."""
        if height <= 0:
            return HEIGHT_CLOSED
        if height >= self.timing.door_height:
            return HEIGHT_FULLY_OPEN
        return f"at {round(height, 4)} feet"
