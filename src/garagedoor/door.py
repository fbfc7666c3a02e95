# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""High-level garage door interface.

This module provides a facade over MotionController for front ends (the
interactive console and the control port). It serializes requests, swaps
in a fresh controller after an emergency stop, and reports completion and
failure through callbacks.

Example usage:
    from garagedoor import GarageDoor

    async def main():
        door = GarageDoor()
        door.on_complete(lambda where: print(f"Door is {where}"))

        await door.move("up")
        await door.move("down", 3)
        await door.stop()
        door.close()
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Union

from .controller import MotionController, MotionState
from .exceptions import DoorBusyError, GarageDoorError, MovementCancelled
from .pin import PinDriver, SimulatedPin
from .position import DoorState
from .request import MovementRequest, describe_request, parse_request
from .timing import DoorTimingConfig

logger = logging.getLogger(__name__)


class GarageDoor:
    """One garage door behind a single actuation pin."""

    def __init__(
        self,
        pin: Optional[PinDriver] = None,
        timing: Optional[DoorTimingConfig] = None,
        initial_height: float = 0.0,
    ):
        """Initialize GarageDoor.

        Args:
            pin: Actuation pin driver (defaults to a SimulatedPin).
            timing: Timing configuration shared by every controller.
            initial_height: Tracked height to start from, in feet.
        """
        self.pin = pin or SimulatedPin()
        self.timing = timing or DoorTimingConfig()
        self._controller = MotionController(self.pin, self.timing, initial_height)
        self._request_task: Optional[asyncio.Task] = None

        # User callbacks
        self._complete_callbacks: list[Callable[[str], None]] = []
        self._error_callbacks: list[Callable[[Exception], None]] = []

    # =========================================================================
    # State
    # =========================================================================

    @property
    def controller(self) -> MotionController:
        """The controller currently driving the door."""
        return self._controller

    @property
    def height(self) -> float:
        """Tracked height of the door edge, in feet."""
        return self._controller.current_height()

    @property
    def motion_state(self) -> MotionState:
        return self._controller.motion_state

    @property
    def busy(self) -> bool:
        """Whether a movement is in progress."""
        return self._controller.busy

    def describe_height(self) -> str:
        """"closed", "fully open" or "at <height> feet"."""
        return self._controller.describe_height()

    # =========================================================================
    # Door Control
    # =========================================================================

    async def move(
        self,
        movement: Union[str, MovementRequest],
        amount: Optional[float] = None,
    ) -> float:
        """Move the door and wait for the movement to finish.

        Completion callbacks receive the height description. Errors are
        logged, passed to error callbacks and re-raised. An emergency stop
        is reported only in the log.
        """
        try:
            height = await self._controller.handle_request(movement, amount)
        except MovementCancelled as e:
            logger.info(f"Movement cancelled: {e}")
            raise
        except GarageDoorError as e:
            logger.error(f"Door request failed: {e}")
            self._notify_error(e)
            raise

        self._notify_complete(self.describe_height())
        return height

    def start_move(
        self,
        movement: str,
        amount: Optional[float] = None,
    ) -> asyncio.Task:
        """Validate a request and run it in the background.

        Raises:
            InvalidRequest: If the request is malformed.
            DoorBusyError: If a movement is already in progress.
        """
        request = parse_request(movement, amount)
        if self.busy or (self._request_task is not None and not self._request_task.done()):
            raise DoorBusyError(f"door is busy; rejected {describe_request(request)}")

        self._request_task = asyncio.create_task(self._run_move(request))
        return self._request_task

    async def _run_move(self, request: MovementRequest) -> None:
        try:
            await self.move(request)
        except GarageDoorError:
            # Already logged and passed to error callbacks by move()
            pass

    async def stop(self) -> None:
        """Emergency stop, then replace the controller with a fresh one.

        The new controller starts from the last tracked height. The latched
        opener direction is kept only when the stop needed no press; after
        an emergency halt it is reset.
        """
        old = self._controller
        halted = await old.stop()
        if self._request_task is not None:
            await asyncio.gather(self._request_task, return_exceptions=True)
            self._request_task = None
        state = DoorState(height_feet=old.current_height())
        if not halted:
            state.last_direction_up = old.state.last_direction_up
        self._controller = MotionController(self.pin, self.timing, state=state)
        logger.info(f"Created new controller with door {self.describe_height()}")

    async def light(self) -> None:
        """Toggle the opener light without moving the door."""
        await self._controller.light_pulse()

    async def wait_idle(self) -> None:
        """Wait for a background movement started by start_move()."""
        if self._request_task is not None:
            await asyncio.gather(self._request_task, return_exceptions=True)

    def close(self) -> None:
        """Release the pin."""
        self.pin.close()

    # =========================================================================
    # Callbacks
    # =========================================================================

    def on_complete(self, callback: Callable[[str], None]) -> None:
        """Register a callback for finished movements."""
        self._complete_callbacks.append(callback)

    def on_error(self, callback: Callable[[Exception], None]) -> None:
        """Register a callback for failed requests."""
        self._error_callbacks.append(callback)

    def _notify_complete(self, description: str) -> None:
        for callback in self._complete_callbacks:
            try:
                callback(description)
            except Exception:
                logger.exception("Error in completion callback")

    def _notify_error(self, error: Exception) -> None:
        for callback in self._error_callbacks:
            try:
                callback(error)
            except Exception:
                logger.exception("Error in error callback")
