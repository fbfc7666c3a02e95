# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Base infrastructure for command handling.

This module provides the core types, the @command decorator, and the
argument parsing used by all command handlers.
"""

import functools
from dataclasses import dataclass, field
from typing import Any, Callable, Optional


@dataclass
class CommandResult:
    """Result of executing a command."""

    success: bool
    message: str
    data: Optional[dict] = None


@dataclass
class ArgSpec:
    """Definition of a command argument.

    Attributes:
        name: Argument name for error messages and usage
        arg_type: Type of argument (string, float, bool_toggle, choice)
        required: Whether the argument is required
        default: Default value when not provided
        choices: Valid choices for "choice" type
        description: Help text describing this argument
        min_value: Minimum value for float type
        max_value: Maximum value for float type
    """

    name: str
    arg_type: str  # "string", "float", "bool_toggle", "choice"
    required: bool = True
    default: Any = None
    choices: Optional[list[str]] = None
    description: str = ""
    min_value: Optional[float] = None
    max_value: Optional[float] = None

    def generate_usage(self) -> str:
        """Generate usage string for this argument."""
        if self.arg_type == "choice" and self.choices:
            inner = "|".join(self.choices)
        elif self.arg_type == "bool_toggle":
            inner = "on|off"
        else:
            inner = self.name

        if self.required:
            return f"<{inner}>"
        else:
            return f"[{inner}]"


# Standard bool toggle values
_BOOL_TRUE = ("on", "true", "1", "yes")
_BOOL_FALSE = ("off", "false", "0", "no")


def parse_arg(value: str, spec: ArgSpec) -> tuple[Any, Optional[str]]:
    """Parse and validate an argument value.

    Returns:
        (parsed_value, error_message) - error_message is None on success
    """
    if spec.arg_type == "string":
        return value, None

    elif spec.arg_type == "float":
        try:
            parsed = float(value)
        except ValueError:
            return None, f"'{value}' is not a valid number"
        if parsed != parsed:
            return None, f"'{value}' is not a valid number"
        if spec.min_value is not None and parsed < spec.min_value:
            return None, f"'{value}' is below minimum ({spec.min_value})"
        if spec.max_value is not None and parsed > spec.max_value:
            return None, f"'{value}' is above maximum ({spec.max_value})"
        return parsed, None

    elif spec.arg_type == "bool_toggle":
        v = value.lower()
        if v in _BOOL_TRUE:
            return True, None
        elif v in _BOOL_FALSE:
            return False, None
        else:
            return None, f"'{value}' is not valid. Use on/off"

    elif spec.arg_type == "choice":
        v = value.lower()
        for c in spec.choices or []:
            if c.lower() == v:
                return c, None
        choices_str = ", ".join(spec.choices) if spec.choices else "none"
        return None, f"'{value}' is not valid. Choose from: {choices_str}"

    else:
        return value, None


@dataclass
class CommandInfo:
    """Metadata about a registered command."""

    name: str
    aliases: list[str] = field(default_factory=list)
    description: str = ""
    usage: Optional[str] = None
    handler: Optional[Callable] = None
    args: list[ArgSpec] = field(default_factory=list)
    category: str = "misc"
    interactive_only: bool = False  # Only works in the interactive console
    local_only: bool = False  # Handled locally by ctl, never sent to the control port

    def generate_usage(self) -> str:
        """Generate usage string from args."""
        return " ".join(arg.generate_usage() for arg in self.args)


# Registry of commands (populated by decorator)
_command_registry: dict[str, CommandInfo] = {}


def get_command_registry() -> dict[str, CommandInfo]:
    """Get the global command registry."""
    return _command_registry


def get_canonical_command(line: str) -> Optional[str]:
    """Replace a command alias with its full name (u 3 -> up 3).

    Returns the canonical command string if an alias was replaced,
    or None if no replacement is needed.
    """
    parts = line.split()
    if not parts:
        return None

    cmd = parts[0].lower()
    if cmd not in _command_registry:
        return None

    info = _command_registry[cmd]
    if info.name == cmd:
        return None
    parts[0] = info.name
    return " ".join(parts)


def command(
    name: str,
    aliases: Optional[list[str]] = None,
    description: str = "",
    usage: Optional[str] = None,
    category: str = "misc",
    args: Optional[list[ArgSpec]] = None,
    interactive_only: bool = False,
    local_only: bool = False,
):
    """Decorator to register a method as a command.

    Args:
        name: Primary command name
        aliases: Alternative names/shortcuts for the command
        description: Help text for the command
        usage: Usage string - auto-generated from args if not provided
        category: Category for grouping in help output
        args: List of ArgSpec for argument parsing
        interactive_only: If True, command only works in interactive mode
        local_only: If True, command is handled locally by ctl
    """

    def decorator(func: Callable) -> Callable:
        info = CommandInfo(
            name=name,
            aliases=aliases or [],
            description=description,
            usage=usage,
            handler=func,
            args=args or [],
            category=category,
            interactive_only=interactive_only,
            local_only=local_only,
        )

        if info.usage is None:
            info.usage = info.generate_usage() or None

        # Register under primary name and all aliases
        _command_registry[name] = info
        for alias in info.aliases:
            _command_registry[alias] = info

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            return func(*args, **kwargs)

        wrapper._command_info = info
        return wrapper

    return decorator
