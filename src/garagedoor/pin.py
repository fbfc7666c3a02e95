# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Actuation pin drivers.

The controller only ever calls PinDriver.drive_pin(). Which variant is
behind it (a simulated no-op pin or a real GPIO line) is decided once at
startup by the caller.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from .const import DEFAULT_GPIO_CHIP, DEFAULT_GPIO_PIN, GPIO_CONSUMER

logger = logging.getLogger(__name__)


class PinDriver(ABC):
    """Capability to drive the opener's actuation signal."""

    @abstractmethod
    def drive_pin(self, active: bool) -> None:
        """Drive the actuation signal active (pressed) or inactive."""

    def close(self) -> None:
        """Release the underlying hardware."""


class SimulatedPin(PinDriver):
    """No-op pin used when not running on the opener hardware.

    Every write is recorded in ``writes`` so callers can count pulses.
    Setting ``fail_after`` makes the pin raise OSError once that many
    writes have succeeded.
    """

    def __init__(self, fail_after: Optional[int] = None):
        self.writes: list[bool] = []
        self.active = False
        self.fail_after = fail_after

    def drive_pin(self, active: bool) -> None:
        if self.fail_after is not None and len(self.writes) >= self.fail_after:
            raise OSError("simulated pin write failure")
        self.writes.append(active)
        self.active = active
        logger.debug(f"Simulated pin {'active' if active else 'inactive'}")

    @property
    def press_count(self) -> int:
        """Number of times the signal has been driven active."""
        return sum(1 for value in self.writes if value)

    def reset(self) -> None:
        """Forget recorded writes."""
        self.writes.clear()


class GpioPin(PinDriver):
    """Real actuation pin on a Linux GPIO character device.

    The opener relay is wired active-low, so "active" drives the line low
    unless ``active_low`` is False.
    """

    def __init__(
        self,
        pin: int = DEFAULT_GPIO_PIN,
        chip: str = DEFAULT_GPIO_CHIP,
        active_low: bool = True,
    ):
        import gpiod
        from gpiod.line import Direction, Value

        self.pin = pin
        self.chip = chip
        self._value_active = Value.ACTIVE
        self._value_inactive = Value.INACTIVE
        self._request = gpiod.request_lines(
            chip,
            consumer=GPIO_CONSUMER,
            config={
                pin: gpiod.LineSettings(
                    direction=Direction.OUTPUT,
                    output_value=Value.INACTIVE,
                    active_low=active_low,
                )
            },
        )
        logger.info(f"Set up GPIO pin {pin} on {chip}")

    def drive_pin(self, active: bool) -> None:
        value = self._value_active if active else self._value_inactive
        self._request.set_value(self.pin, value)
        logger.debug(f"Turned pin {self.pin} {'active' if active else 'inactive'}")

    def close(self) -> None:
        if self._request is not None:
            self._request.release()
            self._request = None
            logger.info(f"Released GPIO pin {self.pin}")
