"""Timer-backed coalescing of persistence writes.

Edits call :meth:`CoalescingWriter.schedule`; the writer runs the write
coroutine at a bounded rate, with at most one write in flight.  Edits
arriving while a write is in flight cause one follow-up write once it
completes.

Two strategies are supported:

* ``"throttle"`` -- a write starts at most once per *interval*.  A quiet
  writer fires on the next loop iteration; a busy one fires at the end of
  the current interval.
* ``"debounce"`` -- every edit restarts the timer, so the write happens
  once edits pause for *interval* seconds.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any


class CoalescingWriter:
    """Coalesce rapid :meth:`schedule` calls into single write invocations.

    Parameters
    ----------
    write:
        Coroutine function performing one write.  Its return value is
        handed back by :meth:`flush`.
    interval:
        Coalescing interval in seconds.
    strategy:
        ``"throttle"`` or ``"debounce"``.
    """

    def __init__(
        self,
        write: Callable[[], Awaitable[Any]],
        *,
        interval: float,
        strategy: str = "throttle",
    ) -> None:
        if strategy not in ("throttle", "debounce"):
            raise ValueError(f"strategy must be 'throttle' or 'debounce', got {strategy!r}")
        self._write = write
        self._interval = interval
        self._strategy = strategy
        self._handle: asyncio.TimerHandle | None = None
        self._task: asyncio.Task[Any] | None = None
        self._dirty = False
        self._closed = False
        self._last_started: float | None = None

    @property
    def pending(self) -> bool:
        """``True`` while changes are waiting for a write to start."""
        return self._dirty

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self) -> None:
        """Record that a write is needed and arm the timer."""
        if self._closed:
            return
        self._dirty = True
        loop = asyncio.get_running_loop()

        if self._strategy == "debounce":
            if self._handle is not None:
                self._handle.cancel()
            self._handle = loop.call_later(self._interval, self._fire)
            return

        if self._handle is not None:
            return
        delay = 0.0
        if self._last_started is not None:
            delay = max(0.0, self._last_started + self._interval - loop.time())
        self._handle = loop.call_later(delay, self._fire)

    def _fire(self) -> None:
        self._handle = None
        if self._closed or not self._dirty:
            return
        if self.in_flight:
            # _run reschedules once the current write completes.
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> Any:
        self._dirty = False
        self._last_started = asyncio.get_running_loop().time()
        try:
            return await self._write()
        finally:
            if self._dirty and not self._closed:
                self.schedule()

    async def flush(self) -> Any:
        """Run the pending write now and return its result.

        Waits for an in-flight write first.  Returns ``None`` if nothing
        was pending.
        """
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._task is not None and not self._task.done():
            await self._task
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if not self._dirty:
            return None
        self._task = asyncio.get_running_loop().create_task(self._run())
        return await self._task

    def cancel(self) -> None:
        """Stop scheduling writes.  An in-flight write is left to complete."""
        self._closed = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
