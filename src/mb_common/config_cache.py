"""Process-wide cached configuration with a TTL.

Lifecycle:
    load()         -> always calls the loader, stores (value, loaded_at)
    get_current()  -> cached value while younger than ttl, otherwise load()
    invalidate()   -> drop the cached value (admin edits)

The cache is an object, not a module-level variable, so tests can inject a
fake clock and control staleness without sleeping.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TtlConfigCache(Generic[T]):
    def __init__(
        self,
        loader: Callable[[], Awaitable[T]],
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        name: str = "config",
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._loader = loader
        self._ttl = ttl_seconds
        self._clock = clock
        self._name = name
        self._value: T | None = None
        self._loaded_at: float | None = None
        self._lock = asyncio.Lock()

    @property
    def loaded_at(self) -> float | None:
        return self._loaded_at

    def is_fresh(self) -> bool:
        if self._loaded_at is None:
            return False
        return (self._clock() - self._loaded_at) < self._ttl

    async def load(self) -> T:
        value = await self._loader()
        self._value = value
        self._loaded_at = self._clock()
        logger.info("Loaded %s into cache (ttl=%.0fs)", self._name, self._ttl)
        return value

    async def get_current(self) -> T:
        if self.is_fresh():
            return self._value  # type: ignore[return-value]
        async with self._lock:
            # Another waiter may have refreshed while we queued on the lock
            if self.is_fresh():
                return self._value  # type: ignore[return-value]
            return await self.load()

    def invalidate(self) -> None:
        self._value = None
        self._loaded_at = None
