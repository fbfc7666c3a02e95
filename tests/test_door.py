# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for the GarageDoor facade (door.py)."""
from __future__ import annotations

import asyncio
import logging

import pytest

from garagedoor import (
    DoorBusyError,
    GarageDoor,
    HardwareWriteFailure,
    InvalidRequest,
    MotionState,
    MovementCancelled,
    SimulatedPin,
)


class TestMove:
    """move() and callbacks."""

    @pytest.mark.asyncio
    async def test_move_reports_completion(self, door):
        completed = []
        door.on_complete(completed.append)

        assert await door.move("up") == 7.0
        await door.move("to", 2.5)

        assert completed == ["fully open", "at 2.5 feet"]
        assert door.height == 2.5

    @pytest.mark.asyncio
    async def test_default_pin_is_simulated(self, fast_timing):
        door = GarageDoor(timing=fast_timing)
        assert isinstance(door.pin, SimulatedPin)
        await door.move("up", 1)
        assert door.pin.press_count == 2

    @pytest.mark.asyncio
    async def test_initial_height(self, pin, fast_timing):
        door = GarageDoor(pin, fast_timing, initial_height=3.0)
        assert door.describe_height() == "at 3.0 feet"

    @pytest.mark.asyncio
    async def test_initial_height_clamped(self, pin, fast_timing):
        door = GarageDoor(pin, fast_timing, initial_height=99)
        assert door.describe_height() == "fully open"

    @pytest.mark.asyncio
    async def test_error_callback(self, fast_timing, caplog):
        door = GarageDoor(SimulatedPin(fail_after=0), fast_timing)
        errors = []
        door.on_error(errors.append)

        with caplog.at_level(logging.ERROR):
            with pytest.raises(HardwareWriteFailure):
                await door.move("up")

        assert len(errors) == 1
        assert isinstance(errors[0], HardwareWriteFailure)
        assert "Door request failed" in caplog.text

    @pytest.mark.asyncio
    async def test_invalid_request_reported(self, door):
        errors = []
        door.on_error(errors.append)
        with pytest.raises(InvalidRequest):
            await door.move("sideways")
        assert isinstance(errors[0], InvalidRequest)

    @pytest.mark.asyncio
    async def test_callback_errors_are_logged(self, door, caplog):
        def broken(_):
            raise RuntimeError("boom")

        seen = []
        door.on_complete(broken)
        door.on_complete(seen.append)

        with caplog.at_level(logging.ERROR):
            await door.move("up", 1)

        assert seen == ["at 1.0 feet"]
        assert "Error in completion callback" in caplog.text


class TestStartMove:
    """Background requests."""

    @pytest.mark.asyncio
    async def test_start_move_runs_in_background(self, door):
        task = door.start_move("up")
        assert isinstance(task, asyncio.Task)
        await door.wait_idle()
        assert door.height == 7.0

    @pytest.mark.asyncio
    async def test_start_move_rejects_when_busy(self, door):
        door.start_move("up")
        with pytest.raises(DoorBusyError):
            door.start_move("down")
        await door.wait_idle()
        assert door.height == 7.0

    @pytest.mark.asyncio
    async def test_start_move_validates_first(self, door):
        with pytest.raises(InvalidRequest):
            door.start_move("sideways")
        assert door.busy is False

    @pytest.mark.asyncio
    async def test_background_failure_goes_to_callbacks(self, fast_timing):
        door = GarageDoor(SimulatedPin(fail_after=0), fast_timing)
        errors = []
        door.on_error(errors.append)
        door.start_move("up")
        await door.wait_idle()
        assert isinstance(errors[0], HardwareWriteFailure)


class TestStop:
    """Emergency stop and controller recreation."""

    @pytest.mark.asyncio
    async def test_stop_replaces_controller(self, door, pin):
        door.start_move("up")
        await asyncio.sleep(0.05)
        old = door.controller

        await door.stop()

        assert door.controller is not old
        assert old.stopped is True
        assert door.busy is False
        assert door.motion_state is MotionState.IDLE
        assert door.height == 0.0
        # Start press plus the emergency press
        assert pin.press_count == 2

    @pytest.mark.asyncio
    async def test_door_usable_after_stop(self, door):
        door.start_move("up")
        await asyncio.sleep(0.05)
        await door.stop()

        assert await door.move("to", 3) == 3.0

    @pytest.mark.asyncio
    async def test_new_controller_keeps_height(self, pin, fast_timing):
        door = GarageDoor(pin, fast_timing, initial_height=4.0)
        await door.stop()
        assert door.height == 4.0
        assert door.controller.state.last_direction_up is False

    @pytest.mark.asyncio
    async def test_idle_stop_keeps_latched_direction(self, door, pin):
        await door.move("up")
        assert door.controller.state.last_direction_up is True
        presses = pin.press_count

        await door.stop()

        assert pin.press_count == presses
        assert door.controller.state.last_direction_up is True
        # Known direction: one press starts the door down, one stops it
        assert await door.move("down", 2) == 5.0
        assert pin.press_count == presses + 2

    @pytest.mark.asyncio
    async def test_halting_stop_resets_direction(self, door):
        door.start_move("up")
        await asyncio.sleep(0.05)
        await door.stop()
        assert door.controller.state.last_direction_up is False

    @pytest.mark.asyncio
    async def test_interrupted_move_raises(self, door):
        task = asyncio.create_task(door.move("up"))
        await asyncio.sleep(0.05)
        await door.stop()
        with pytest.raises(MovementCancelled):
            await task

    @pytest.mark.asyncio
    async def test_cancelled_move_not_reported_as_error(self, door):
        errors = []
        completed = []
        door.on_error(errors.append)
        door.on_complete(completed.append)

        door.start_move("up")
        await asyncio.sleep(0.05)
        await door.stop()

        assert errors == []
        assert completed == []


class TestLight:
    """Light toggle."""

    @pytest.mark.asyncio
    async def test_light(self, door, pin):
        await door.light()
        assert pin.writes == [True, False]
        assert door.height == 0.0
