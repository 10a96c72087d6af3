"""Client-side request pacing for the HTTP store.

Requests are spaced ``1 / rate_rps`` seconds apart on the event loop's
clock, with up to *burst* requests let through back to back after a quiet
spell.  Each caller reserves its slot before sleeping, so concurrent
pollers and writers are admitted in arrival order without a lock.
"""

from __future__ import annotations

import asyncio


class RequestPacer:
    """Admit requests at a sustained rate with a bounded burst.

    Parameters
    ----------
    rate_rps:
        Sustained requests per second.
    burst:
        Requests admitted without delay after the pacer has been idle.
    """

    def __init__(self, rate_rps: float, burst: int = 10) -> None:
        if rate_rps <= 0:
            raise ValueError(f"rate_rps must be > 0, got {rate_rps}")
        if burst < 1:
            raise ValueError(f"burst must be >= 1, got {burst}")
        self.spacing = 1.0 / rate_rps
        self.burst = burst
        self._next_slot: float | None = None

    def reserve(self, now: float) -> float:
        """Book the next slot at *now* and return how long to wait for it."""
        slot = now if self._next_slot is None else max(self._next_slot, now)
        self._next_slot = slot + self.spacing
        return max(0.0, slot - (self.burst - 1) * self.spacing - now)

    async def wait(self) -> float:
        """Wait for this request's slot; returns the seconds waited."""
        delay = self.reserve(asyncio.get_running_loop().time())
        if delay > 0:
            await asyncio.sleep(delay)
        return delay
