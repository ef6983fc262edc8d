"""
Async debounce helper.

Debouncer.schedule() (re)arms a timer on the running event loop; the
callback runs once the timer survives a full quiet interval. Every new
schedule() cancels the previous timer, so a burst of N calls produces a
single callback invocation after the last one.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

log = logging.getLogger(__name__)


class Debouncer:
    def __init__(self, delay: float, callback: Callable[[], Awaitable[None]]) -> None:
        self._delay = delay
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        """True while a timer is armed and has not fired yet."""
        return self._handle is not None

    def schedule(self) -> None:
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._task = asyncio.ensure_future(self._run())

    async def _run(self) -> None:
        try:
            await self._callback()
        except Exception:
            log.exception("Debounced callback failed")

    async def flush(self) -> None:
        """Run a pending callback now and wait for any in-flight run to finish."""
        if self._task is not None and not self._task.done():
            await self._task
        if self._handle is not None:
            self.cancel()
            await self._run()
