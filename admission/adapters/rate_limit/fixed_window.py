"""Store-backed fixed-window rate limiter.

Notes:
- All mutable state lives in the counter store; the limiter is safe to share
  between threads and holds no lock of its own.
- The default path reads the counter, then increments it in a second store
  call. Under heavy concurrency for one identity this can admit slightly more
  than ``limit`` requests per window. Pass ``atomic=True`` to use a single
  increment-and-compare instead.
- Fails closed: any exception raised by the store on the admission path
  denies the request.
"""

from __future__ import annotations

import logging

from admission.adapters.rate_limit.base import AbstractRateLimiter
from admission.adapters.store.base import AbstractCounterStore
from admission.core.errors import AppError
from admission.core.hashing import hash_identity

logger = logging.getLogger(__name__)

KEY_PREFIX = "rate_limit:"


class FixedWindowLimiter(AbstractRateLimiter):
    """Admit at most ``limit`` requests per identity in each window.

    A window opens with the first admitted request for an identity and lasts
    ``window_seconds``; once it expires the next request opens a fresh one
    with the count back at 1.
    """

    def __init__(
        self,
        store: AbstractCounterStore,
        *,
        limit: int,
        window_seconds: float,
        atomic: bool = False,
        key_prefix: str = KEY_PREFIX,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Counter store shared by every caller of this limiter.
            limit: Maximum admitted requests per window (0 denies everything).
            window_seconds: Window length in seconds.
            atomic: Decide with one ``incr_with_ttl`` call instead of get-then-incr.
            key_prefix: Namespace prepended to the identity to form the store key.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 0:
            raise ValueError("limit must be >= 0")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self._store = store
        self._limit = limit
        self._window_seconds = window_seconds
        self._atomic = atomic
        self._key_prefix = key_prefix

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    @property
    def store(self) -> AbstractCounterStore:
        return self._store

    def build_key(self, identity: str | None) -> str:
        """Return the store key holding the counter for ``identity``."""
        return f"{self._key_prefix}{identity or ''}"

    def allow(self, identity: str | None = None) -> bool:
        """Count the request against ``identity``'s window if there is room.

        Args:
            identity: Caller identifier, e.g. "127.0.0.1".

        Returns:
            True if admitted, False if the window is full or the store failed.
        """
        if self._limit == 0:
            return False

        key = self.build_key(identity)
        if self._atomic:
            return self._allow_atomic(key)

        try:
            current = self._store.get(key) or 0
        except Exception as exc:
            _log_backend_error(key, "get", exc)
            return False

        if current >= self._limit:
            _log_denied(key, current, self._limit)
            return False

        try:
            new_count = self._store.incr(key, 1)
        except Exception as exc:
            _log_backend_error(key, "incr", exc)
            return False

        if new_count == 1:
            # First hit of a fresh window: incr leaves it without a real expiry
            try:
                self._store.set(key, new_count, self._window_seconds)
            except Exception as exc:
                logger.warning(
                    "rate_limit.ttl_repair_failed",
                    extra={"key_hash": hash_identity(key), "error_code": _error_code(exc)},
                    exc_info=not isinstance(exc, AppError),
                )

        return True

    def _allow_atomic(self, key: str) -> bool:
        try:
            new_count = self._store.incr_with_ttl(key, 1, self._window_seconds)
        except Exception as exc:
            _log_backend_error(key, "incr_with_ttl", exc)
            return False

        if new_count > self._limit:
            _log_denied(key, new_count, self._limit)
            return False
        return True


def _error_code(exc: Exception) -> str:
    if isinstance(exc, AppError):
        return exc.code
    return type(exc).__name__


def _log_backend_error(key: str, operation: str, exc: Exception) -> None:
    # Tracebacks only for errors the backend did not wrap
    logger.warning(
        "rate_limit.backend_error",
        extra={
            "key_hash": hash_identity(key),
            "operation": operation,
            "error_code": _error_code(exc),
        },
        exc_info=not isinstance(exc, AppError),
    )


def _log_denied(key: str, count: int, limit: int) -> None:
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "rate_limit.denied",
            extra={"key_hash": hash_identity(key), "count": count, "limit": limit},
        )
