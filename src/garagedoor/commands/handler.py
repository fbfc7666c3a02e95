# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Command handler that combines all command mixins."""

import asyncio
import logging
from typing import TYPE_CHECKING, Callable, Optional

from .base import ArgSpec, CommandInfo, CommandResult, get_command_registry, parse_arg
from .control import ControlCommandsMixin
from .door import DoorCommandsMixin
from .info import InfoCommandsMixin

if TYPE_CHECKING:
    from ..door import GarageDoor

logger = logging.getLogger(__name__)

# In the console, these end the program just like shutdown
_CLI_EXIT_ALIASES = ["exit", "q", "quit"]


class CommandHandler(
    DoorCommandsMixin,
    InfoCommandsMixin,
    ControlCommandsMixin,
):
    """Handles commands for a garage door.

    Provides a unified interface for driving the door from the interactive
    console or the control port.

    Commands can be invoked:
    - Via execute() with a command string
    - Directly as methods (e.g., handler.up(2.5), handler.status())
    """

    def __init__(
        self,
        door: "GarageDoor",
        stop_callback: Callable[[], None],
    ):
        """Initialize the command handler.

        Args:
            door: The garage door to drive
            stop_callback: Function to call to shut the service down
        """
        self.door = door
        self.stop_callback = stop_callback
        self._interactive_mode = False  # Set by cli.py for interactive sessions
        self._cli_mode = False  # Set by cli.py for the console (vs ctl/daemon)

    def set_interactive_mode(self, enabled: bool):
        """Set whether the handler is operating in interactive mode.

        When interactive mode is disabled, commands marked with
        interactive_only=True are reported as unknown.
        """
        self._interactive_mode = enabled

    def set_cli_mode(self, enabled: bool):
        """Set whether the handler is running in the console.

        In the console, exit/q/quit become aliases for shutdown and the
        separate exit command is hidden.
        """
        self._cli_mode = enabled

        _command_registry = get_command_registry()
        shutdown_info: CommandInfo = self.shutdown._command_info
        exit_info: CommandInfo = self.exit_ctl._command_info

        if enabled:
            for alias in _CLI_EXIT_ALIASES:
                _command_registry[alias] = shutdown_info
                if alias not in shutdown_info.aliases:
                    shutdown_info.aliases.append(alias)
        else:
            shutdown_info.aliases = [
                a for a in shutdown_info.aliases if a not in _CLI_EXIT_ALIASES
            ]
            for alias in _CLI_EXIT_ALIASES:
                if _command_registry.get(alias) is shutdown_info:
                    del _command_registry[alias]
            _command_registry[exit_info.name] = exit_info
            for alias in exit_info.aliases:
                _command_registry.setdefault(alias, exit_info)

    async def execute(self, command_str: str) -> CommandResult:
        """Execute a command string and return the result.

        Args:
            command_str: The command string to execute (e.g., "up 2.5", "stop")

        Returns:
            CommandResult with success status and message
        """
        _command_registry = get_command_registry()

        parts = command_str.split()
        if not parts:
            return CommandResult(False, "Empty command")

        cmd = parts[0].lower()
        unknown = CommandResult(
            False, f"Unknown command: {cmd}. Type 'help' for commands."
        )

        if cmd not in _command_registry:
            return unknown

        info: CommandInfo = _command_registry[cmd]
        if info.interactive_only and not self._interactive_mode:
            return unknown
        # The daemon control port has neither mode set
        if info.local_only and not self._cli_mode and not self._interactive_mode:
            return unknown

        if info.handler is None:
            return CommandResult(False, f"No handler for: {cmd}")
        handler = getattr(self, info.handler.__name__)

        remaining = parts[1:]
        if info.args and remaining and remaining[0].lower() in ("help", "?"):
            return CommandResult(True, self._get_arg_help(info))

        parsed_args, error = self._parse_args(remaining, info.args, info.name)
        if error:
            return error

        try:
            result = handler(*parsed_args)
            if asyncio.iscoroutine(result):
                result = await result
        except Exception as e:
            logger.debug(f"Command '{command_str}' failed", exc_info=True)
            return CommandResult(False, f"Error: {e}")

        return result

    def _get_arg_help(self, info: CommandInfo) -> str:
        lines = [f"{info.name} {info.usage or ''}".rstrip(), f"  {info.description}"]
        for spec in info.args:
            lines.append(f"  {spec.name}: {spec.description}")
        return "\n".join(lines)

    def _parse_args(
        self,
        parts: list[str],
        arg_specs: list[ArgSpec],
        cmd_name: str,
    ) -> tuple[list, Optional[CommandResult]]:
        """Parse argument parts according to ArgSpec definitions.

        Returns:
            (parsed_args, error) - error is None on success
        """
        parsed = []
        usage = " ".join(spec.generate_usage() for spec in arg_specs)

        if len(parts) > len(arg_specs):
            return [], CommandResult(
                False, f"Too many arguments\nUsage: {cmd_name} {usage}".rstrip()
            )

        for i, spec in enumerate(arg_specs):
            if i < len(parts):
                value, error = parse_arg(parts[i], spec)
                if error:
                    return [], CommandResult(
                        False, f"{error}\nUsage: {cmd_name} {usage}"
                    )
                parsed.append(value)
            elif spec.required:
                return [], CommandResult(
                    False,
                    f"Missing required argument: {spec.name}\nUsage: {cmd_name} {usage}",
                )
            else:
                parsed.append(spec.default)

        return parsed, None
