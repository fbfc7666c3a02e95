# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Cancellable completion waits for door movements.

Each scheduled travel or bounce-back wait is a PendingTimer tracked by a
CancellationRegistry. The registry doubles as a cancellation token: once
cancel_all() has run, no wait scheduled before it can fire and no new wait
can be scheduled.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .exceptions import MovementCancelled

logger = logging.getLogger(__name__)


class PendingTimer:
    """Handle to one scheduled completion wait."""

    def __init__(self, delay: float, label: str = ""):
        self.delay = delay
        self.label = label
        self._task: Optional[asyncio.Task] = None

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def __repr__(self) -> str:
        return f"PendingTimer({self.label!r}, {self.delay:.3f}s)"


class CancellationRegistry:
    """Tracks outstanding completion waits so an emergency stop can drop them."""

    def __init__(self):
        self._timers: set[PendingTimer] = set()
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        """Whether cancel_all() has been called."""
        return self._cancelled

    @property
    def pending(self) -> list[PendingTimer]:
        return list(self._timers)

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise MovementCancelled("door movement was emergency stopped")

    async def wait(self, delay: float, label: str = "") -> None:
        """Wait ``delay`` seconds unless cancelled first.

        Raises:
            MovementCancelled: If the registry was cancelled before the wait
                started, while it was pending, or at the moment it fired.
        """
        self.raise_if_cancelled()

        timer = PendingTimer(delay, label)
        timer._task = asyncio.ensure_future(asyncio.sleep(max(0.0, delay)))
        self._timers.add(timer)
        logger.debug(f"Scheduled {timer}")
        try:
            await timer._task
        except asyncio.CancelledError:
            if self._cancelled:
                raise MovementCancelled(
                    f"{label or 'wait'} cancelled by emergency stop"
                ) from None
            # Caller's own task was cancelled; don't leave the sleep behind
            timer.cancel()
            raise
        finally:
            self._timers.discard(timer)

        # A stop may land in the same loop iteration the timer fires
        self.raise_if_cancelled()

    def cancel_all(self) -> int:
        """Cancel every pending wait and refuse new ones.

        Returns:
            The number of waits that were cancelled.
        """
        self._cancelled = True
        timers = list(self._timers)
        self._timers.clear()
        for timer in timers:
            timer.cancel()
        if timers:
            logger.debug(f"Cancelled {len(timers)} pending timer(s)")
        return len(timers)
