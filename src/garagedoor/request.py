# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Movement requests accepted by the motion controller."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Union

from .const import MOVE_DOWN, MOVE_TO, MOVE_UP, VALID_MOVEMENTS
from .exceptions import InvalidRequest


@dataclass(frozen=True)
class AbsoluteHeight:
    """Move to a height in feet."""

    target: float


@dataclass(frozen=True)
class RelativeUp:
    """Move up by a distance in feet, or all the way when distance is None."""

    distance: Optional[float] = None


@dataclass(frozen=True)
class RelativeDown:
    """Move down by a distance in feet, or all the way when distance is None."""

    distance: Optional[float] = None


MovementRequest = Union[AbsoluteHeight, RelativeUp, RelativeDown]


def parse_request(kind: str, amount: Optional[float] = None) -> MovementRequest:
    """Build a MovementRequest from a movement kind and amount.

    Args:
        kind: "to", "up" or "down".
        amount: Absolute height for "to" (None means 0); relative distance
            for "up"/"down" (None means to the limit).

    Raises:
        InvalidRequest: For an unknown kind, or a negative or non-finite
            amount.
    """
    if not isinstance(kind, str) or kind.lower() not in VALID_MOVEMENTS:
        raise InvalidRequest(f'invalid movement type "{kind}"')
    kind = kind.lower()

    if amount is not None:
        try:
            amount = float(amount)
        except (TypeError, ValueError) as e:
            raise InvalidRequest(f'invalid distance "{amount}"') from e
        if not math.isfinite(amount):
            raise InvalidRequest(f'invalid distance "{amount}"')

    if kind == MOVE_TO:
        # No height means the floor
        return AbsoluteHeight(amount if amount is not None else 0.0)

    if amount is not None and amount < 0:
        raise InvalidRequest(f'invalid distance "{amount}"')
    if kind == MOVE_UP:
        return RelativeUp(amount)
    return RelativeDown(amount)


def describe_request(request: MovementRequest) -> str:
    """Short text form of a request, for logs and command replies."""
    if isinstance(request, AbsoluteHeight):
        return f"{MOVE_TO} {request.target}"
    kind = MOVE_UP if isinstance(request, RelativeUp) else MOVE_DOWN
    if request.distance is None:
        return f"{kind} (to limit)"
    return f"{kind} {request.distance}"
