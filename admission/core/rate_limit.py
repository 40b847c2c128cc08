"""Limiter construction and the FastAPI admission dependency.

This module wires a configured limiter into an HTTP layer owned by the
caller.

Design goals:
- Minimal coupling: routes depend on a dependency function only.
- Swap-friendly: the algorithm and its store are chosen by settings.

Identity strategy:
- Per API key when the X-API-Key header is present.
- Otherwise fall back to the client IP.
"""

from __future__ import annotations

import logging
import math
from typing import Annotated

from fastapi import Header, HTTPException, Request, status

from admission.adapters.rate_limit.base import AbstractRateLimiter
from admission.adapters.rate_limit.fixed_window import FixedWindowLimiter
from admission.adapters.rate_limit.token_bucket import (
    KeyedTokenBucketLimiter,
    TokenBucketLimiter,
)
from admission.adapters.store.in_memory import InMemoryCounterStore
from admission.core.config import LimiterSettings, settings
from admission.core.errors import ValidationAppError
from admission.core.hashing import hash_identity

logger = logging.getLogger(__name__)


_limiter: AbstractRateLimiter | None = None
_limiter_config: LimiterSettings | None = None


def build_rate_limiter(limiter_settings: LimiterSettings) -> AbstractRateLimiter:
    """Build the limiter described by ``limiter_settings``.

    Args:
        limiter_settings: Resolved limiter settings.

    Returns:
        AbstractRateLimiter: A new limiter with fresh state.

    Raises:
        ValidationAppError: If the strategy is not recognised.
    """

    strategy = limiter_settings.strategy
    if strategy == "fixed_window":
        store = InMemoryCounterStore(shards=limiter_settings.store_shards)
        return FixedWindowLimiter(
            store,
            limit=limiter_settings.limit,
            window_seconds=limiter_settings.window_seconds,
            atomic=limiter_settings.atomic,
        )
    if strategy == "token_bucket":
        return TokenBucketLimiter(
            capacity=limiter_settings.capacity,
            refill_period_seconds=limiter_settings.refill_period_seconds,
            fractional=limiter_settings.fractional_tokens,
        )
    if strategy == "keyed_token_bucket":
        return KeyedTokenBucketLimiter(
            capacity=limiter_settings.capacity,
            refill_period_seconds=limiter_settings.refill_period_seconds,
            fractional=limiter_settings.fractional_tokens,
        )

    raise ValidationAppError(
        code="unknown_limiter_strategy",
        message=f"Unknown rate limiter strategy: {strategy!r}",
        details={
            "strategy": str(strategy),
            "hint": "Use fixed_window, token_bucket or keyed_token_bucket",
        },
    )


def get_rate_limiter() -> AbstractRateLimiter:
    """Return a process-wide rate limiter instance.

    The instance is cached in-module to preserve state across requests.
    If configuration changes (primarily in tests), the limiter is rebuilt.

    Returns:
        AbstractRateLimiter: Configured limiter instance.
    """

    global _limiter, _limiter_config

    config = settings.limiter
    if _limiter is None or _limiter_config != config:
        _limiter = build_rate_limiter(config)
        _limiter_config = config.model_copy()
        logger.info(
            "rate_limit.configured",
            extra={"strategy": config.strategy, "limiter": type(_limiter).__name__},
        )

    return _limiter


def reset_rate_limiter() -> None:
    """Drop the cached limiter so the next request builds a fresh one."""

    global _limiter, _limiter_config
    _limiter = None
    _limiter_config = None


def build_identity(request: Request, x_api_key: str | None) -> str:
    """Build the caller identity for the current request.

    Args:
        request: FastAPI request.
        x_api_key: API key value from the X-API-Key header.

    Returns:
        str: Namespaced identity.
    """

    if x_api_key:
        return f"api_key:{x_api_key}"

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


def _retry_after_seconds(limiter_settings: LimiterSettings) -> int:
    if limiter_settings.strategy == "fixed_window":
        period = limiter_settings.window_seconds
    elif limiter_settings.capacity > 0:
        # Time for one token to accrue
        period = limiter_settings.refill_period_seconds / limiter_settings.capacity
    else:
        period = limiter_settings.refill_period_seconds
    return max(1, int(math.ceil(period)))


async def enforce_rate_limit(
    request: Request,
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """FastAPI dependency enforcing admission control.

    When enabled, asks the configured limiter to admit the caller. Rejected
    callers get HTTP 429.

    Usage:
        @router.post("/work", dependencies=[Depends(enforce_rate_limit)])

    Args:
        request: FastAPI request.
        x_api_key: API key from X-API-Key header.

    Raises:
        HTTPException: 429 Too Many Requests when the request is rejected.
    """

    cfg = settings.limiter
    if not cfg.enabled:
        return

    limiter = get_rate_limiter()
    identity = build_identity(request, x_api_key)
    key_type = "api_key" if x_api_key else "ip"

    if limiter.allow(identity):
        logger.info(
            "rate_limit.allowed",
            extra={
                "key_type": key_type,
                "key_hash": hash_identity(identity),
                "strategy": cfg.strategy,
            },
        )
        return

    retry_after = _retry_after_seconds(cfg)
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_type": key_type,
            "key_hash": hash_identity(identity),
            "strategy": cfg.strategy,
            "retry_after_s": retry_after,
        },
    )

    headers: dict[str, str] = {}
    if cfg.include_headers:
        headers["Retry-After"] = str(retry_after)
        if cfg.strategy == "fixed_window":
            headers["X-RateLimit-Limit"] = str(cfg.limit)
        else:
            headers["X-RateLimit-Limit"] = str(cfg.capacity)

    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Rate limit exceeded. Try again later.",
        headers=headers or None,
    )
