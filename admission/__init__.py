"""Per-identity request admission control."""

from admission.adapters.rate_limit.base import AbstractRateLimiter
from admission.adapters.rate_limit.fixed_window import FixedWindowLimiter
from admission.adapters.rate_limit.token_bucket import (
    KeyedTokenBucketLimiter,
    TokenBucketLimiter,
)
from admission.adapters.store.base import AbstractCounterStore
from admission.adapters.store.in_memory import InMemoryCounterStore
from admission.core.errors import AppError, BackendUnavailableError, ValidationAppError

__all__ = [
    "AbstractCounterStore",
    "AbstractRateLimiter",
    "AppError",
    "BackendUnavailableError",
    "FixedWindowLimiter",
    "InMemoryCounterStore",
    "KeyedTokenBucketLimiter",
    "TokenBucketLimiter",
    "ValidationAppError",
]
