# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Timed actuation pulses against the opener's toggle signal."""
from __future__ import annotations

import asyncio
import logging

from .exceptions import GarageDoorError, HardwareWriteFailure
from .pin import PinDriver
from .position import DoorState
from .timing import DoorTimingConfig

logger = logging.getLogger(__name__)


class Actuator:
    """Issues pulses on the actuation line, one at a time.

    A pulse is: drive active, hold, drive inactive, then wait the minimum
    spacing before the line may be used again. The opener does not reliably
    count pulses that arrive closer together than that, so the spacing is
    part of the pulse rather than a courtesy delay.

    Each completed pulse toggles ``state.is_moving``; a pulse that starts
    motion also toggles the latched ``state.last_direction_up``.
    """

    def __init__(self, pin: PinDriver, timing: DoorTimingConfig, state: DoorState):
        self.pin = pin
        self.timing = timing
        self.state = state
        self.pulse_count = 0
        self._line = asyncio.Lock()

    @property
    def busy(self) -> bool:
        """Whether a pulse currently owns the line."""
        return self._line.locked()

    async def pulse(self) -> None:
        """Issue one full pulse and wait out its spacing."""
        async with self._line:
            await self._press()

    async def halt(self) -> bool:
        """Pulse once if the door is moving.

        The moving flag is read after any in-flight pulse has finished, so
        a halt never races the pulse that started the motion.

        Returns:
            True if a pulse was issued.
        """
        async with self._line:
            if not self.state.is_moving:
                return False
            await self._press()
            return True

    async def light_pulse(self) -> None:
        """Briefly press to toggle the opener light without moving the door."""
        async with self._line:
            self._write(True)
            try:
                await asyncio.sleep(self.timing.light_pulse_duration)
            finally:
                self._write(False)
            logger.info("Pulsed opener light")
            await asyncio.sleep(self.timing.pulse_spacing)

    async def _press(self) -> None:
        logger.debug("Pressing button...")
        self._write(True)
        try:
            await asyncio.sleep(self.timing.pulse_hold_time)
        finally:
            self._write(False)

        self.pulse_count += 1
        self.state.is_moving = not self.state.is_moving
        if self.state.is_moving:
            self.state.last_direction_up = not self.state.last_direction_up
        logger.debug(
            f"Pulse {self.pulse_count}: moving={self.state.is_moving} "
            f"last_direction_up={self.state.last_direction_up}"
        )

        await asyncio.sleep(self.timing.pulse_spacing)

    def _write(self, active: bool) -> None:
        try:
            self.pin.drive_pin(active)
        except GarageDoorError:
            raise
        except Exception as e:
            raise HardwareWriteFailure(
                f"could not drive pin {'active' if active else 'inactive'}: {e}"
            ) from e
