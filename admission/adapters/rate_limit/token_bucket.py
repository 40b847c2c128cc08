"""Token bucket rate limiters.

Notes:
- Self-contained: no external store, state lives in the limiter instance.
- Thread-safe: refill and decision run under one lock, so each ``allow()``
  is atomic end to end.
- Refill is lazy and continuous: tokens accrue in proportion to the time
  elapsed since the previous call, capped at ``capacity``.
"""

from __future__ import annotations

import math
import threading
import time
from typing import Callable

from admission.adapters.rate_limit.base import AbstractRateLimiter


class TokenBucketLimiter(AbstractRateLimiter):
    """Classic token bucket shared by all callers.

    The bucket starts full. An empty bucket refills to ``capacity`` over
    ``refill_period_seconds``; each admitted request consumes one token.

    Rounding:
        With ``fractional=True`` (default) partial tokens carry over between
        calls, so many rapid calls accrue exactly as much as one slow call.
        With ``fractional=False`` the token count is truncated to an integer
        after every refill; because the refill clock restarts on each call,
        sub-token remainders are lost and rapid callers can under-accrue.
    """

    def __init__(
        self,
        *,
        capacity: int,
        refill_period_seconds: float,
        fractional: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize a full bucket.

        Args:
            capacity: Maximum tokens held (0 denies everything).
            refill_period_seconds: Seconds for an empty bucket to refill completely.
            fractional: Carry partial tokens across calls instead of truncating.
            clock: Monotonic time source in seconds.

        Raises:
            ValueError: If capacity or refill_period_seconds are invalid.
        """
        if capacity < 0:
            raise ValueError("capacity must be >= 0")
        if refill_period_seconds <= 0:
            raise ValueError("refill_period_seconds must be > 0")

        self._capacity = capacity
        self._refill_period = refill_period_seconds
        self._fractional = fractional
        self._clock = clock
        self._lock = threading.Lock()
        self._tokens: float = float(capacity)
        self._last_refill = clock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def refill_period_seconds(self) -> float:
        return self._refill_period

    def idle_seconds(self, now: float) -> float:
        """Seconds between ``now`` and the last call to ``allow()``."""
        with self._lock:
            return now - self._last_refill

    @property
    def tokens(self) -> float:
        """Tokens available as of the last call (no refill is applied)."""
        with self._lock:
            return self._tokens

    def _refill_locked(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        accrued = elapsed * self._capacity / self._refill_period
        tokens = min(float(self._capacity), self._tokens + accrued)
        self._tokens = tokens if self._fractional else float(math.floor(tokens))
        self._last_refill = now

    def allow(self, identity: str | None = None) -> bool:
        """Take one token if available.

        Args:
            identity: Ignored; the bucket is shared by every caller.

        Returns:
            True if a token was consumed, False if the bucket is empty.
        """
        with self._lock:
            self._refill_locked()
            if self._tokens >= 1:
                self._tokens -= 1
                return True
            return False


class KeyedTokenBucketLimiter(AbstractRateLimiter):
    """One independent token bucket per identity.

    Buckets are created lazily on an identity's first request. A bucket left
    untouched for a full refill period is back at capacity, which is exactly
    the state of a new bucket, so such buckets are dropped. The sweep runs
    at most once per refill period, on the next lookup, so memory is bounded
    by the identities active within roughly two refill periods.
    """

    def __init__(
        self,
        *,
        capacity: int,
        refill_period_seconds: float,
        fractional: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity < 0:
            raise ValueError("capacity must be >= 0")
        if refill_period_seconds <= 0:
            raise ValueError("refill_period_seconds must be > 0")

        self._capacity = capacity
        self._refill_period = refill_period_seconds
        self._fractional = fractional
        self._clock = clock
        self._lock = threading.Lock()
        self._buckets: dict[str | None, TokenBucketLimiter] = {}
        self._last_sweep = clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)

    def _sweep_locked(self, now: float) -> None:
        idle = [
            identity
            for identity, bucket in self._buckets.items()
            if bucket.idle_seconds(now) >= self._refill_period
        ]
        for identity in idle:
            del self._buckets[identity]
        self._last_sweep = now

    def bucket_for(self, identity: str | None) -> TokenBucketLimiter:
        """Return the bucket for ``identity``, creating a full one if needed."""
        with self._lock:
            now = self._clock()
            if now - self._last_sweep >= self._refill_period:
                self._sweep_locked(now)

            bucket = self._buckets.get(identity)
            if bucket is None:
                bucket = TokenBucketLimiter(
                    capacity=self._capacity,
                    refill_period_seconds=self._refill_period,
                    fractional=self._fractional,
                    clock=self._clock,
                )
                self._buckets[identity] = bucket
            return bucket

    def allow(self, identity: str | None = None) -> bool:
        return self.bucket_for(identity).allow()
