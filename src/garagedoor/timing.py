# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Timing configuration for the garage door opener.

All durations are in seconds and all distances in feet. A single
DoorTimingConfig is built at startup and shared read-only by the
actuator, position model and controller.
"""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

from .const import (
    BOUNCE_BACK_DELAY_SEC,
    BOUNCE_BACK_HEIGHT_FEET,
    DOOR_CLOSE_TIME_SEC,
    DOOR_HEIGHT_FEET,
    DOOR_OPEN_TIME_SEC,
    LIGHT_PULSE_DURATION_SEC,
    PULSE_HOLD_TIME_SEC,
    PULSE_SPACING_SEC,
)


@dataclass(frozen=True)
class DoorTimingConfig:
    """Timing constants for one door (all times in seconds)."""

    # Height of the door edge when fully open
    door_height: float = DOOR_HEIGHT_FEET

    # Full travel, closed to open and open to closed
    open_time: float = DOOR_OPEN_TIME_SEC
    close_time: float = DOOR_CLOSE_TIME_SEC

    # How long the signal is held, and the minimum gap before the next pulse
    pulse_hold_time: float = PULSE_HOLD_TIME_SEC
    pulse_spacing: float = PULSE_SPACING_SEC

    # Floor auto-reverse behavior (estimates, not measured)
    bounce_back_height: float = BOUNCE_BACK_HEIGHT_FEET
    bounce_back_delay: float = BOUNCE_BACK_DELAY_SEC

    # Light-only press, shorter than the motor engagement threshold
    light_pulse_duration: float = LIGHT_PULSE_DURATION_SEC

    def __post_init__(self):
        if self.door_height <= 0:
            raise ValueError(f"door_height must be positive, got {self.door_height}")
        if self.open_time <= 0 or self.close_time <= 0:
            raise ValueError("open_time and close_time must be positive")
        for name in (
            "pulse_hold_time",
            "pulse_spacing",
            "bounce_back_delay",
            "light_pulse_duration",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")

    @property
    def open_rate(self) -> float:
        """Rate at which the door opens, in feet per second."""
        return self.door_height / self.open_time

    @property
    def close_rate(self) -> float:
        """Rate at which the door closes, in feet per second."""
        return self.door_height / self.close_time

    @property
    def bounce_back_enabled(self) -> bool:
        return self.bounce_back_height > 0

    def to_dict(self) -> dict[str, float]:
        """Convert to a plain dict (for status output and JSON files)."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DoorTimingConfig":
        """Create a config from a dict, using defaults for missing keys.

        Raises:
            ValueError: If the dict has unknown keys or invalid values.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown timing keys: {', '.join(sorted(unknown))}")
        return cls(**{key: float(value) for key, value in data.items()})


def load_timing_config(path: str | Path) -> DoorTimingConfig:
    """Load timing overrides from a JSON file."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Timing file {path} must contain a JSON object")
    return DoorTimingConfig.from_dict(data)
