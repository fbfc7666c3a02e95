# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Door movement commands."""

from typing import TYPE_CHECKING, Optional

from ..const import MOVE_DOWN, MOVE_TO, MOVE_UP
from ..exceptions import GarageDoorError
from .base import ArgSpec, CommandResult, command

if TYPE_CHECKING:
    from ..door import GarageDoor


class DoorCommandsMixin:
    """Mixin providing door movement commands."""

    door: "GarageDoor"

    def _start(self, movement: str, amount: Optional[float], message: str) -> CommandResult:
        try:
            self.door.start_move(movement, amount)
        except GarageDoorError as e:
            return CommandResult(False, str(e))
        return CommandResult(True, message)

    @command(
        "up",
        ["u", "open"],
        "Raise the door",
        category="door",
        args=[
            ArgSpec(
                "distance",
                "float",
                required=False,
                min_value=0,
                description="Feet to raise (omit for fully open)",
            )
        ],
    )
    def up(self, distance: Optional[float] = None) -> CommandResult:
        """Raise the door by a distance, or all the way."""
        what = f"{distance} feet" if distance is not None else "all the way"
        return self._start(MOVE_UP, distance, f"Moving door up {what}")

    @command(
        "down",
        ["d", "close"],
        "Lower the door",
        category="door",
        args=[
            ArgSpec(
                "distance",
                "float",
                required=False,
                min_value=0,
                description="Feet to lower (omit for fully closed)",
            )
        ],
    )
    def down(self, distance: Optional[float] = None) -> CommandResult:
        """Lower the door by a distance, or all the way."""
        what = f"{distance} feet" if distance is not None else "all the way"
        return self._start(MOVE_DOWN, distance, f"Moving door down {what}")

    @command(
        "to",
        ["t", "height"],
        "Move the door to a height",
        category="door",
        args=[
            ArgSpec(
                "height",
                "float",
                required=False,
                default=0.0,
                description="Target height in feet (omit for closed)",
            )
        ],
    )
    def to(self, height: float = 0.0) -> CommandResult:
        """Move the door edge to an absolute height."""
        return self._start(MOVE_TO, height, f"Moving door to {height} feet")

    @command("stop", ["s", "halt"], "Emergency stop the door", category="door")
    async def stop(self) -> CommandResult:
        """Emergency stop: cancel pending movement and halt the motor."""
        await self.door.stop()
        return CommandResult(True, f"Door stopped {self.door.describe_height()}")

    @command("light", ["l"], "Toggle the opener light", category="door")
    async def light(self) -> CommandResult:
        """Press briefly to toggle the light without moving the door."""
        await self.door.light()
        return CommandResult(True, "Toggled opener light")
