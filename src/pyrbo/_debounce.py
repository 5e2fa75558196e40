"""Single-slot trailing-edge debounce on the running asyncio loop."""

from __future__ import annotations

import asyncio
from collections.abc import Callable


class Debouncer:
    """Run *callback* once no trigger has arrived for *interval* seconds.

    Every :meth:`trigger` cancels the pending handle and schedules a new one
    at ``now + interval``, so at most one call is ever pending and it always
    fires a full interval after the most recent trigger.  Continuous
    triggering postpones the call indefinitely.
    """

    def __init__(
        self,
        interval: float,
        callback: Callable[[], object],
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._interval = interval
        self._callback = callback
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self._interval, self._fire)

    def cancel(self) -> bool:
        """Drop the pending call; returns whether one was pending."""
        handle = self._handle
        self._handle = None
        if handle is None:
            return False
        handle.cancel()
        return True

    def _fire(self) -> None:
        # Clear first so a trigger from inside the callback arms a new cycle.
        self._handle = None
        self._callback()
