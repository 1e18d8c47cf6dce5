"""
Per-provider-class request spacing.

Each provider class (general, ticketing, mapping) holds a single token: a
caller may proceed once `min_delay` has elapsed since the previous permitted
call of the same class. Callers of one class are serialized in arrival order
(asyncio.Lock wakes waiters FIFO), so nobody is dropped or starved.
"""
import asyncio
import time
from typing import Awaitable, Callable, Dict, Optional

from store_intelligence.utils.logger import log


class ProviderClass:
    """Rate-limit classes for upstream providers"""
    GENERAL = "general"
    TICKETING = "ticketing"
    MAPPING = "mapping"


DEFAULT_MIN_DELAYS: Dict[str, float] = {
    ProviderClass.GENERAL: 0.1,
    ProviderClass.TICKETING: 1.0,
    ProviderClass.MAPPING: 0.1,
}


class RateLimiter:
    """Single-token, per-class minimum-interval limiter"""

    def __init__(
        self,
        min_delays: Optional[Dict[str, float]] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.min_delays = {**DEFAULT_MIN_DELAYS, **(min_delays or {})}
        self._clock = clock
        self._sleep = sleep
        self._locks: Dict[str, asyncio.Lock] = {}
        self._last_call: Dict[str, float] = {}

    def _lock_for(self, provider_class: str) -> asyncio.Lock:
        lock = self._locks.get(provider_class)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[provider_class] = lock
        return lock

    async def wait(self, provider_class: str = ProviderClass.GENERAL) -> None:
        """
        Block until the class's minimum delay has elapsed since its last
        permitted call, then record now as the new last-call time.

        Unknown classes are spaced with the general delay.
        """
        min_delay = self.min_delays.get(provider_class, self.min_delays[ProviderClass.GENERAL])

        async with self._lock_for(provider_class):
            last = self._last_call.get(provider_class)
            if last is not None:
                remaining = min_delay - (self._clock() - last)
                if remaining > 0:
                    log.debug(f"Rate limiter holding {provider_class} call for {remaining:.3f}s")
                # The event loop may fire timers up to one clock tick early
                while remaining > 0:
                    await self._sleep(remaining)
                    remaining = min_delay - (self._clock() - last)
            self._last_call[provider_class] = self._clock()
