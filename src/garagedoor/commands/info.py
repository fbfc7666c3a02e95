# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Status and help commands."""

from typing import TYPE_CHECKING

from .base import CommandResult, command, get_command_registry

if TYPE_CHECKING:
    from ..door import GarageDoor

# Order of categories in help output
_CATEGORY_ORDER = ["door", "info", "control"]


class InfoCommandsMixin:
    """Mixin providing info commands."""

    door: "GarageDoor"
    _interactive_mode: bool

    def get_help(self) -> str:
        """Build help text grouped by category."""
        seen = set()
        by_category: dict[str, list] = {}
        for info in get_command_registry().values():
            if info.name in seen:
                continue
            seen.add(info.name)
            if info.interactive_only and not self._interactive_mode:
                continue
            by_category.setdefault(info.category, []).append(info)

        categories = _CATEGORY_ORDER + sorted(
            c for c in by_category if c not in _CATEGORY_ORDER
        )
        lines = ["Commands:"]
        for category in categories:
            if category not in by_category:
                continue
            lines.append(f"  {category.capitalize()}:")
            for info in sorted(by_category[category], key=lambda i: i.name):
                usage = f" {info.usage}" if info.usage else ""
                aliases = f" ({', '.join(info.aliases)})" if info.aliases else ""
                lines.append(f"    {info.name}{usage}{aliases} - {info.description}")
        return "\n".join(lines)

    @command("status", ["state", "info", "v"], "Show current door state", category="info")
    def status(self) -> CommandResult:
        """Show current door state."""
        door = self.door
        state = door.controller.state
        timing = door.timing
        data = {
            "height": state.height_feet,
            "description": door.describe_height(),
            "motion_state": door.motion_state.value,
            "is_moving": state.is_moving,
            "last_direction_up": state.last_direction_up,
            "pulses": door.controller.pulse_count,
            "timing": timing.to_dict(),
        }
        lines = [
            "Current State:",
            f"  Door: {door.describe_height()}",
            f"  Height: {state.height_feet:.4f} of {timing.door_height} feet",
            f"  Controller: {door.motion_state.value}",
            f"  Motor: {'running' if state.is_moving else 'stopped'}",
            f"  Opener direction: {'up' if state.last_direction_up else 'down'}",
            f"  Pulses issued: {door.controller.pulse_count}",
            f"  Open rate: {timing.open_rate:.4f} ft/s",
            f"  Close rate: {timing.close_rate:.4f} ft/s",
            f"  Bounce-back: {'enabled' if timing.bounce_back_enabled else 'disabled'}",
        ]
        return CommandResult(True, "\n".join(lines), data)

    @command("help", ["?"], "Show available commands", category="info")
    def help(self) -> CommandResult:
        """Show help for all commands."""
        return CommandResult(True, self.get_help())
