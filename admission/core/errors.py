"""Admission control exception types.

Domain errors raised by stores and the limiter wiring. Limiters themselves
never raise these to callers: ``allow()`` always answers with a boolean.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability."""

    code: str
    message: str
    hint: str
    backend: str
    operation: str
    key: str
    strategy: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for admission control failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class BackendUnavailableError(AppError):
    """Raised when a counter store operation cannot be completed."""


class ValidationAppError(AppError):
    """Raised when limiter configuration is invalid."""
