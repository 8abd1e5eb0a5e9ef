"""Quiet-period trigger coalescing bursts of edits into one fetch cycle."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

log = getLogger(__name__)


class DebouncedTrigger:
    """Single restartable timer per session.

    ``restart`` replaces the pending timer handle, so at most one fire is ever
    scheduled. The callback runs on the event loop once no restart happened for
    ``delay_seconds``.
    """

    def __init__(self, callback: Callable[[], None], *, delay_seconds: float) -> None:
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be non-negative")
        self._callback = callback
        self._delay = delay_seconds
        self._handle: asyncio.TimerHandle | None = None
        self._fired = asyncio.Event()
        self._fired.set()
        self.fire_count = 0

    @property
    def delay_seconds(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def restart(self) -> None:
        """(Re)start the quiet period; requires a running event loop."""

        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._fired.clear()
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        if self._handle is None:
            return
        self._handle.cancel()
        self._handle = None
        self._fired.set()

    def flush(self) -> bool:
        """Fire now if a quiet period is pending; return whether it fired."""

        if self._handle is None:
            return False
        self._handle.cancel()
        self._fire()
        return True

    async def wait_fired(self) -> None:
        await self._fired.wait()

    def _fire(self) -> None:
        self._handle = None
        self.fire_count += 1
        log.debug("Debounce elapsed after %.3fs; firing", self._delay)
        try:
            self._callback()
        finally:
            self._fired.set()
