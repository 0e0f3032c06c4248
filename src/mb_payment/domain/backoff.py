"""Exponential backoff policy for indexer lookups.

delay(attempt) = min(base * 2**attempt, cap), attempt counted from 0, with
optional proportional jitter. No sleep happens after the final attempt, so the
worst-case wait is sum(delay(i) for i in range(max_attempts - 1)).
"""

import random
from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass(frozen=True)
class BackoffPolicy:
    max_attempts: int = 5
    base_delay: float = 1.0
    max_delay: float = 16.0
    jitter: float = 0.0            # 0.1 = up to ±10%
    rand: Callable[[], float] = field(default=random.random, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be non-negative")
        if not (0.0 <= self.jitter < 1.0):
            raise ValueError("jitter must be in [0, 1)")

    def delay(self, attempt: int) -> float:
        raw = min(self.base_delay * (2**attempt), self.max_delay)
        if self.jitter:
            raw *= 1 + self.jitter * (2 * self.rand() - 1)
        return max(raw, 0.0)

    def schedule(self) -> list[float]:
        """Sleeps between attempts, without jitter."""
        return [
            min(self.base_delay * (2**i), self.max_delay)
            for i in range(self.max_attempts - 1)
        ]

    def max_total_wait(self) -> float:
        return sum(self.schedule()) * (1 + self.jitter)
