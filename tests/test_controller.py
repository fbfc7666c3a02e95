# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for the motion-control state machine (controller.py)."""
from __future__ import annotations

import asyncio

import pytest

from garagedoor import (
    DoorBusyError,
    DoorState,
    HardwareWriteFailure,
    InvalidRequest,
    MotionController,
    MotionState,
    MovementCancelled,
    RelativeUp,
    SimulatedPin,
)
from garagedoor.const import BOUNCE_BACK_CLEARANCE_FACTOR


# Matches the fast_timing fixture
FAST_DOOR_HEIGHT = 7.0


def make_controller(pin, timing, height, last_direction_up=False) -> MotionController:
    state = DoorState(height_feet=height, last_direction_up=last_direction_up)
    return MotionController(pin, timing, state=state)


# ============================================================================
# Basic Movement
# ============================================================================

class TestBasicMovement:
    """Requests that run the door to a limit or to a height."""

    @pytest.mark.asyncio
    async def test_up_from_closed_opens_fully(self, controller, pin):
        height = await controller.handle_request("up")
        assert height == FAST_DOOR_HEIGHT
        assert controller.describe_height() == "fully open"
        # Runs into the limit on its own, so only the start press
        assert pin.press_count == 1
        assert controller.state.is_moving is False
        assert controller.state.last_direction_up is True
        assert controller.motion_state is MotionState.IDLE

    @pytest.mark.asyncio
    async def test_down_from_open_closes(self, controller, pin):
        await controller.handle_request("up")
        height = await controller.handle_request("down")
        assert height == 0.0
        assert controller.describe_height() == "closed"
        assert pin.press_count == 2
        assert controller.state.last_direction_up is False

    @pytest.mark.asyncio
    async def test_to_interior_height_stops_early(self, controller, pin):
        height = await controller.handle_request("to", 3.5)
        assert height == 3.5
        assert controller.describe_height() == "at 3.5 feet"
        # Start press and stop press
        assert pin.press_count == 2
        assert controller.state.is_moving is False

    @pytest.mark.asyncio
    async def test_request_object_accepted(self, controller):
        assert await controller.handle_request(RelativeUp(2.0)) == 2.0

    @pytest.mark.asyncio
    async def test_to_sequence_ends_at_last_target(self, controller):
        for target in (3.0, 5.5, 1.25, 7.0, 2.0):
            await controller.handle_request("to", target)
        assert controller.current_height() == 2.0

    @pytest.mark.asyncio
    async def test_to_is_clamped(self, controller):
        assert await controller.handle_request("to", 50) == FAST_DOOR_HEIGHT
        assert await controller.handle_request("to", -3) == 0.0

    @pytest.mark.asyncio
    async def test_to_without_height_closes(self, pin, fast_timing):
        controller = make_controller(pin, fast_timing, 3.0, last_direction_up=True)
        assert await controller.handle_request("to", None) == 0.0
        assert pin.press_count == 1

    @pytest.mark.asyncio
    async def test_travel_takes_expected_time(self, controller, fast_timing):
        loop = asyncio.get_running_loop()
        start = loop.time()
        await controller.handle_request("up")
        elapsed = loop.time() - start
        expected = fast_timing.pulse_hold_time + fast_timing.pulse_spacing + fast_timing.open_time
        assert elapsed >= expected - 0.01


class TestNoOp:
    """Requests for the current height do nothing."""

    @pytest.mark.asyncio
    async def test_to_current_height_issues_no_pulses(self, controller, pin):
        assert await controller.handle_request("to", 0) == 0.0
        assert pin.writes == []

    @pytest.mark.asyncio
    async def test_down_when_closed(self, controller, pin):
        await controller.handle_request("down")
        assert pin.writes == []
        assert controller.motion_state is MotionState.IDLE

    @pytest.mark.asyncio
    async def test_up_when_open(self, pin, fast_timing):
        controller = make_controller(pin, fast_timing, FAST_DOOR_HEIGHT)
        await controller.handle_request("up", 1)
        assert pin.writes == []

    @pytest.mark.asyncio
    async def test_zero_distance(self, pin, fast_timing):
        controller = make_controller(pin, fast_timing, 3.0)
        await controller.handle_request("down", 0)
        assert pin.writes == []
        assert controller.current_height() == 3.0


# ============================================================================
# Relative Requests and Limits
# ============================================================================

class TestRelative:
    """up/down by a distance."""

    @pytest.mark.asyncio
    async def test_up_past_limit_stops_at_limit(self, pin, fast_timing):
        controller = make_controller(pin, fast_timing, 6.0)
        assert await controller.handle_request("up", 5) == FAST_DOOR_HEIGHT

    @pytest.mark.asyncio
    async def test_down_from_half(self, pin, fast_timing):
        half = FAST_DOOR_HEIGHT / 2
        controller = make_controller(pin, fast_timing, half)
        assert await controller.handle_request("down", 3) == pytest.approx(max(0.0, half - 3))

    @pytest.mark.asyncio
    async def test_down_past_floor(self, pin, fast_timing):
        controller = make_controller(pin, fast_timing, 2.0, last_direction_up=True)
        assert await controller.handle_request("down", 10) == 0.0

    @pytest.mark.asyncio
    async def test_repeated_up_stops_exactly_at_limit(self, controller):
        heights = [await controller.handle_request("up", 2) for _ in range(5)]
        assert heights == [2.0, 4.0, 6.0, FAST_DOOR_HEIGHT, FAST_DOOR_HEIGHT]

    @pytest.mark.asyncio
    async def test_repeated_down_stops_exactly_at_floor(self, pin, fast_timing):
        controller = make_controller(pin, fast_timing, FAST_DOOR_HEIGHT, last_direction_up=True)
        heights = [await controller.handle_request("down", 3) for _ in range(4)]
        assert heights == [4.0, 1.0, 0.0, 0.0]

    @pytest.mark.asyncio
    async def test_relative_target_uses_height_at_request(self, pin, fast_timing):
        """The direction correction moves the door but not the target."""
        controller = make_controller(pin, fast_timing, 3.0, last_direction_up=True)
        assert await controller.handle_request("up", 1) == 4.0


# ============================================================================
# Direction Toggle
# ============================================================================

class TestDoublePulse:
    """Part-way doors that last moved the requested direction."""

    @pytest.mark.asyncio
    async def test_same_direction_adds_two_pulses(self, pin, fast_timing):
        half = FAST_DOOR_HEIGHT / 2
        controller = make_controller(pin, fast_timing, half, last_direction_up=True)
        await controller.handle_request("up", 1)
        # Toggle, stop, start, stop
        assert pin.press_count == 4
        assert controller.current_height() == pytest.approx(half + 1)

    @pytest.mark.asyncio
    async def test_opposite_direction_needs_no_toggle(self, pin, fast_timing):
        half = FAST_DOOR_HEIGHT / 2
        controller = make_controller(pin, fast_timing, half, last_direction_up=True)
        await controller.handle_request("down", 1)
        assert pin.press_count == 2

    @pytest.mark.asyncio
    async def test_not_applied_at_limits(self, pin, fast_timing):
        controller = make_controller(pin, fast_timing, 0.0, last_direction_up=True)
        await controller.handle_request("up")
        assert pin.press_count == 1

    @pytest.mark.asyncio
    async def test_height_adjustment(self, pin, fast_timing):
        """The door travels the wrong way while the toggle presses run."""
        controller = make_controller(pin, fast_timing, 3.5, last_direction_up=True)
        await controller._double_pulse_if_needed(True)

        drift = (fast_timing.pulse_spacing + fast_timing.pulse_hold_time) * fast_timing.close_rate
        assert controller.current_height() == pytest.approx(3.5 - drift)
        assert pin.press_count == 2
        assert controller.state.last_direction_up is False
        assert controller.state.is_moving is False

    @pytest.mark.asyncio
    async def test_height_adjustment_going_down(self, pin, fast_timing):
        controller = make_controller(pin, fast_timing, 3.5, last_direction_up=False)
        await controller._double_pulse_if_needed(False)

        drift = (fast_timing.pulse_spacing + fast_timing.pulse_hold_time) * fast_timing.open_rate
        assert controller.current_height() == pytest.approx(3.5 + drift)
        assert controller.state.last_direction_up is True

    @pytest.mark.asyncio
    async def test_height_adjustment_is_clamped(self, pin, fast_timing):
        controller = make_controller(pin, fast_timing, 0.01, last_direction_up=True)
        await controller._double_pulse_if_needed(True)
        assert controller.current_height() == 0.0


# ============================================================================
# Bounce-back
# ============================================================================

class TestBounceBack:
    """Doors resting just above the floor after closing."""

    @pytest.mark.asyncio
    async def test_disabled_by_default(self, pin, fast_timing):
        controller = make_controller(pin, fast_timing, 0.5)
        await controller.handle_request("to", 3)
        # Plain start and stop
        assert pin.press_count == 2

    @pytest.mark.asyncio
    async def test_up_rides_the_bounce(self, pin, bounce_timing):
        controller = make_controller(pin, bounce_timing, 0.5)
        states = []

        async def watch():
            while True:
                states.append(controller.motion_state)
                await asyncio.sleep(0.002)

        watcher = asyncio.create_task(watch())
        height = await controller.handle_request("to", 3)
        watcher.cancel()
        await asyncio.gather(watcher, return_exceptions=True)

        assert height == 3.0
        # Bounce press, then the stop press at the target
        assert pin.press_count == 2
        assert MotionState.BOUNCING_BACK in states

    @pytest.mark.asyncio
    async def test_down_stops_after_bounce_then_closes(self, pin, bounce_timing):
        controller = make_controller(pin, bounce_timing, 0.5)
        assert await controller.handle_request("to", 0) == 0.0
        # Bounce press, stop above the threshold, go down
        assert pin.press_count == 3
        assert controller.state.last_direction_up is False

    @pytest.mark.asyncio
    async def test_bounce_sets_height_above_threshold(self, pin, bounce_timing):
        controller = make_controller(pin, bounce_timing, 0.5)
        await controller._handle_bounce_back(True)
        assert controller.current_height() == pytest.approx(
            bounce_timing.bounce_back_height * BOUNCE_BACK_CLEARANCE_FACTOR
        )

    @pytest.mark.asyncio
    async def test_bounce_down_adds_hold_overshoot(self, pin, bounce_timing):
        controller = make_controller(pin, bounce_timing, 0.5)
        await controller._handle_bounce_back(False)
        expected = (
            bounce_timing.bounce_back_height * BOUNCE_BACK_CLEARANCE_FACTOR
            + bounce_timing.pulse_hold_time * bounce_timing.open_rate
        )
        assert controller.current_height() == pytest.approx(expected)

    @pytest.mark.asyncio
    async def test_no_bounce_after_moving_up(self, pin, bounce_timing):
        controller = make_controller(pin, bounce_timing, 0.5, last_direction_up=True)
        await controller.handle_request("to", 3)
        assert pin.press_count == 4


# ============================================================================
# Emergency Stop
# ============================================================================

class TestEmergencyStop:
    """stop() cancels pending motion and halts the door."""

    @pytest.mark.asyncio
    async def test_stop_interrupts_request(self, controller, pin):
        task = asyncio.create_task(controller.handle_request("up"))
        await asyncio.sleep(0.05)

        await controller.stop()

        with pytest.raises(MovementCancelled):
            await task
        # Start press plus the emergency press
        assert pin.press_count == 2
        assert controller.state.is_moving is False
        assert controller.current_height() == 0.0
        assert controller.registry.pending == []
        assert controller.motion_state is MotionState.IDLE

    @pytest.mark.asyncio
    async def test_no_height_change_after_stop(self, controller):
        task = asyncio.create_task(controller.handle_request("to", 5))
        await asyncio.sleep(0.05)
        await controller.stop()
        await asyncio.gather(task, return_exceptions=True)

        height = controller.current_height()
        await asyncio.sleep(0.3)
        assert controller.current_height() == height

    @pytest.mark.asyncio
    async def test_stop_idle_door_issues_no_pulse(self, controller, pin):
        assert await controller.stop() is False
        assert pin.writes == []
        assert controller.stopped is True

    @pytest.mark.asyncio
    async def test_stopped_controller_refuses_requests(self, controller, pin):
        await controller.stop()
        with pytest.raises(MovementCancelled):
            await controller.handle_request("up")
        assert pin.writes == []

    @pytest.mark.asyncio
    async def test_stop_during_first_pulse(self, controller, pin):
        """A stop that lands mid-press still halts the door it started."""
        task = asyncio.create_task(controller.handle_request("up"))
        await asyncio.sleep(0)
        await controller.stop()

        with pytest.raises(MovementCancelled):
            await task
        assert pin.press_count == 2
        assert controller.state.is_moving is False


# ============================================================================
# Errors
# ============================================================================

class TestErrors:
    """Busy, invalid and hardware failures."""

    @pytest.mark.asyncio
    async def test_busy_rejects_second_request(self, controller):
        task = asyncio.create_task(controller.handle_request("up"))
        await asyncio.sleep(0.01)
        assert controller.busy is True

        with pytest.raises(DoorBusyError, match="busy"):
            await controller.handle_request("down")

        assert await task == FAST_DOOR_HEIGHT

    @pytest.mark.asyncio
    async def test_invalid_request_touches_nothing(self, controller, pin):
        with pytest.raises(InvalidRequest):
            await controller.handle_request("sideways")
        with pytest.raises(InvalidRequest):
            await controller.handle_request("up", -1)
        assert pin.writes == []
        assert controller.motion_state is MotionState.IDLE

    @pytest.mark.asyncio
    async def test_hardware_failure_on_first_write(self, fast_timing):
        controller = MotionController(SimulatedPin(fail_after=0), fast_timing)
        with pytest.raises(HardwareWriteFailure) as exc_info:
            await controller.handle_request("up")
        assert isinstance(exc_info.value.__cause__, OSError)
        assert controller.current_height() == 0.0
        assert controller.busy is False

    @pytest.mark.asyncio
    async def test_hardware_failure_on_stop_press(self, fast_timing):
        # Start press succeeds, stop press fails
        controller = MotionController(SimulatedPin(fail_after=2), fast_timing)
        with pytest.raises(HardwareWriteFailure):
            await controller.handle_request("to", 3.5)
        # Height is never committed; state is left as last known
        assert controller.current_height() == 0.0
        assert controller.state.is_moving is True
        assert controller.busy is False


class TestLight:
    """Light pulses."""

    @pytest.mark.asyncio
    async def test_light_pulse(self, controller, pin):
        await controller.light_pulse()
        assert pin.writes == [True, False]
        assert controller.pulse_count == 0
        assert controller.current_height() == 0.0
