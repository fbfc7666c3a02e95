# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Exceptions raised by the garage door controller."""


class GarageDoorError(Exception):
    """Base class for all garage door errors."""


class InvalidRequest(GarageDoorError, ValueError):
    """A movement request was malformed.

    Raised before the state machine is entered, so door state is never
    touched by a rejected request.
    """


class HardwareWriteFailure(GarageDoorError):
    """Writing the actuation pin failed.

    The tracked height and direction are left at their last-known values.
    The pulse is not retried, since a retried pulse could toggle the opener
    twice and corrupt the model.
    """


class DoorBusyError(GarageDoorError):
    """A movement request arrived while another one is still in flight."""


class MovementCancelled(GarageDoorError):
    """The movement was interrupted by an emergency stop."""
