# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Unified command handler for the garage door service.

This module provides a command dispatcher that can be used by:
- The interactive console
- Control port connections
- Direct Python API calls

The command handler is split into category-specific mixins:
- DoorCommandsMixin: Door operations (up, down, to, stop, light)
- InfoCommandsMixin: Status and help
- ControlCommandsMixin: Service control (shutdown, debug)
"""

from .base import (
    ArgSpec,
    CommandInfo,
    CommandResult,
    command,
    get_canonical_command,
    get_command_registry,
    parse_arg,
)
from .handler import CommandHandler

__all__ = [
    "ArgSpec",
    "CommandHandler",
    "CommandInfo",
    "CommandResult",
    "command",
    "get_canonical_command",
    "get_command_registry",
    "parse_arg",
]
