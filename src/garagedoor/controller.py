# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Motion-control state machine for a single-button garage door opener.

The opener has one toggle input and no position feedback. Every press
starts or stops the motor, and a press that starts it reverses the
direction it moved last. MotionController turns a movement request into
the right sequence of presses and keeps an extrapolated door height that
follows the opener's behavior:

- A door resting part-way open that last moved the requested direction
  would move the wrong way on a single press, so the controller first
  presses twice to flip the opener's latched direction.
- A door resting just above the floor after closing is expected to hit
  the floor and reverse by itself (bounce-back), so the controller rides
  the reversal instead of fighting it.

Example usage:
    controller = MotionController(SimulatedPin())
    await controller.handle_request("up")
    print(controller.describe_height())  # "fully open"
    await controller.handle_request("down", 3)
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Union

from .actuator import Actuator
from .cancellation import CancellationRegistry
from .const import BOUNCE_BACK_CLEARANCE_FACTOR
from .exceptions import DoorBusyError, MovementCancelled
from .pin import PinDriver
from .position import DoorState, PositionModel
from .request import (
    AbsoluteHeight,
    MovementRequest,
    RelativeUp,
    describe_request,
    parse_request,
)
from .timing import DoorTimingConfig

logger = logging.getLogger(__name__)

NUM_DASHES = 30


class MotionState(Enum):
    """Controller states."""

    IDLE = "idle"
    MOVING = "moving"
    STOPPING_EARLY = "stopping_early"
    BOUNCING_BACK = "bouncing_back"


class MotionController:
    """Drives one door through its single actuation pin.

    Only one request may be in flight at a time. After stop() the
    controller refuses further requests; the latched direction is no longer
    trustworthy, so callers should build a fresh controller.
    """

    def __init__(
        self,
        pin: PinDriver,
        timing: Optional[DoorTimingConfig] = None,
        initial_height: float = 0.0,
        state: Optional[DoorState] = None,
    ):
        self.timing = timing or DoorTimingConfig()
        self.position = PositionModel(self.timing)
        self.state = state or DoorState(height_feet=self.position.clamp(initial_height))
        self.actuator = Actuator(pin, self.timing, self.state)
        self.registry = CancellationRegistry()
        self._motion_state = MotionState.IDLE
        self._stopped = False

    # =========================================================================
    # Status
    # =========================================================================

    @property
    def motion_state(self) -> MotionState:
        return self._motion_state

    @property
    def busy(self) -> bool:
        """Whether a request is in flight."""
        return self._motion_state is not MotionState.IDLE

    @property
    def stopped(self) -> bool:
        """Whether this controller has been emergency stopped."""
        return self._stopped

    @property
    def pulse_count(self) -> int:
        return self.actuator.pulse_count

    def current_height(self) -> float:
        """Tracked height of the door edge, in feet."""
        return self.state.height_feet

    def describe_height(self) -> str:
        """"closed", "fully open" or "at <height> feet"."""
        return self.position.describe(self.state.height_feet)

    # =========================================================================
    # Request Handling
    # =========================================================================

    async def handle_request(
        self,
        movement: Union[str, MovementRequest],
        amount: Optional[float] = None,
    ) -> float:
        """Move the door and wait until the movement has finished.

        Args:
            movement: "to", "up" or "down", or an already-built MovementRequest.
            amount: Height for "to"; distance for "up"/"down" (None = to limit).

        Returns:
            The tracked height once the movement completes.

        Raises:
            InvalidRequest: If the request is malformed (state untouched).
            DoorBusyError: If another request is in flight.
            MovementCancelled: If stop() interrupts the movement, or this
                controller was already stopped.
            HardwareWriteFailure: If a pin write fails. State is left at its
                last-known values.
        """
        if isinstance(movement, str):
            request = parse_request(movement, amount)
        else:
            request = movement

        if self._stopped:
            raise MovementCancelled("controller was emergency stopped; create a new one")
        if self.busy:
            raise DoorBusyError(
                f"door is busy ({self._motion_state.value}); rejected {describe_request(request)}"
            )

        logger.info("----- handling request -----")
        logger.info(f"Current height: {self.state.height_feet}")
        logger.info(f"Request: {describe_request(request)}")

        target = self.position.clamp(self.resolve_target(request))
        if target == self.state.height_feet:
            logger.info(f"Already at {target} feet, nothing to do")
            return target

        self._motion_state = MotionState.MOVING
        try:
            await self._move_to(target)
        finally:
            self._motion_state = MotionState.IDLE
        return self.state.height_feet

    def resolve_target(self, request: MovementRequest) -> float:
        """Absolute (unclamped) target height for a request."""
        if isinstance(request, AbsoluteHeight):
            return request.target
        distance = request.distance if request.distance is not None else self.timing.door_height
        if isinstance(request, RelativeUp):
            return self.state.height_feet + distance
        return self.state.height_feet - distance

    async def _move_to(self, target: float) -> None:
        should_go_up = target > self.state.height_feet
        direction = "up" if should_go_up else "down"
        logger.info(f"Moving {direction} to {target} feet")

        if self._will_bounce_back():
            await self._handle_bounce_back(should_go_up)
        else:
            await self._double_pulse_if_needed(should_go_up)
            await self._pulse(f"go {direction}")

        await self._travel_to(target, should_go_up)

    async def _travel_to(self, target: float, should_go_up: bool) -> None:
        stopping_early = self.position.is_interior(target)
        seconds = self.position.travel_time(
            self.state.height_feet, target, should_go_up, stopping_early
        )
        logger.info(f"Moving over {seconds:.3f} sec")

        await self.registry.wait(seconds, "travel")

        if stopping_early:
            self._motion_state = MotionState.STOPPING_EARLY
            await self._pulse("stop door")

        self.state.height_feet = target
        self.state.is_moving = False
        logger.info(f"Current height after handling: {self.state.height_feet}")
        logger.info("-" * NUM_DASHES)

    async def _pulse(self, purpose: str) -> None:
        # Checked on both sides so nothing follows a stop that landed mid-pulse
        self.registry.raise_if_cancelled()
        await self.actuator.pulse()
        self.registry.raise_if_cancelled()
        logger.info(f"Pressed button to {purpose}")

    # =========================================================================
    # Bounce-back
    # =========================================================================

    def _will_bounce_back(self) -> bool:
        return (
            0 < self.state.height_feet <= self.timing.bounce_back_height
            and not self.state.last_direction_up
        )

    async def _handle_bounce_back(self, should_go_up: bool) -> None:
        self._motion_state = MotionState.BOUNCING_BACK
        await self._pulse("make door go down to bounce back up")

        rebound_height = self.timing.bounce_back_height * BOUNCE_BACK_CLEARANCE_FACTOR
        seconds = (
            self.state.height_feet / self.timing.close_rate
            + self.timing.bounce_back_delay
            + rebound_height / self.timing.open_rate
        )
        logger.info(f"Waiting {seconds:.3f} sec for door to bounce back")
        await self.registry.wait(seconds, "bounce-back")
        self.state.height_feet = self.position.clamp(rebound_height)

        if not should_go_up:
            await self._pulse("stop door just above bounce-back height")
            # The door keeps rising for the length of the press
            self.state.height_feet = self.position.clamp(
                self.state.height_feet + self.timing.pulse_hold_time * self.timing.open_rate
            )
            await self._pulse("make door go down")

        self._motion_state = MotionState.MOVING

    # =========================================================================
    # Direction toggle
    # =========================================================================

    async def _double_pulse_if_needed(self, should_go_up: bool) -> None:
        # Part-way open and last moved the desired direction: one press would
        # move it the wrong way, so flip the opener's direction first.
        if not (
            self.position.is_interior(self.state.height_feet)
            and should_go_up == self.state.last_direction_up
        ):
            return

        await self._pulse("toggle opener direction")

        # The door travels the wrong way while the two presses are spaced
        # out and while the stop press is held.
        rate = self.position.signed_rate(self.state.last_direction_up)
        self.state.height_feet = self.position.clamp(
            self.state.height_feet + self.timing.pulse_spacing * rate
        )

        await self._pulse("stop door")

        self.state.height_feet = self.position.clamp(
            self.state.height_feet + self.timing.pulse_hold_time * rate
        )
        logger.info(f"Current height after double press: {self.state.height_feet}")

    # =========================================================================
    # Emergency stop and light
    # =========================================================================

    async def stop(self) -> bool:
        """Emergency stop.

        Cancels every pending completion wait so none of them fire, then
        presses once if the door is moving. The interrupted request raises
        MovementCancelled.

        Returns:
            True if a press was needed to halt the door.
        """
        logger.info("-" * NUM_DASHES)
        logger.info("Emergency stopping door")

        self._stopped = True
        self.registry.cancel_all()

        halted = await self.actuator.halt()
        if halted:
            logger.info("Pressed button to emergency stop door")

        self._motion_state = MotionState.IDLE
        logger.info("Emergency stopped door")
        logger.info("-" * NUM_DASHES)
        return halted

    async def light_pulse(self) -> None:
        """Toggle the opener light. Independent of the motion state."""
        await self.actuator.light_pulse()
