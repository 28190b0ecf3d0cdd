"""Delay policies between participant polls."""

import random
from dataclasses import dataclass, field
from typing import Protocol


class BackoffPolicy(Protocol):
    """Chooses the wait before the next scheduled poll."""

    def next_delay(self, interval_seconds: float, consecutive_errors: int) -> float:
        """Return the delay in seconds before the next poll."""


@dataclass
class FixedInterval(BackoffPolicy):
    """Poll on the fixed interval regardless of failures."""

    def next_delay(self, interval_seconds: float, consecutive_errors: int) -> float:
        return interval_seconds


@dataclass
class ExponentialBackoff(BackoffPolicy):
    """Grow the delay after consecutive failures, with optional jitter.

    The first retry waits ``retry_delay_seconds``; each further failure
    multiplies it by ``factor`` up to ``max_delay_seconds``. A healthy poller
    keeps the plain interval.
    """

    retry_delay_seconds: float = 5.0
    factor: float = 2.0
    max_delay_seconds: float = 300.0
    jitter_ratio: float = 0.0
    rng: random.Random = field(default_factory=random.Random)

    def next_delay(self, interval_seconds: float, consecutive_errors: int) -> float:
        if consecutive_errors <= 0:
            return interval_seconds
        delay = self.retry_delay_seconds * self.factor ** (consecutive_errors - 1)
        delay = min(delay, self.max_delay_seconds)
        if self.jitter_ratio > 0:
            delay += self.rng.uniform(0, self.jitter_ratio) * delay  # nosec B311
        return delay
