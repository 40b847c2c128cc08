"""Rate limiter interfaces.

Callers (HTTP dependencies, RPC interceptors, workers) should depend on this
abstraction so the admission algorithm can be swapped by configuration.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractRateLimiter(ABC):
    """Interface for admission decisions."""

    @abstractmethod
    def allow(self, identity: str | None = None) -> bool:
        """Decide whether a request from ``identity`` may proceed.

        Args:
            identity: Caller identifier (e.g., IP address, namespaced API key).
                Limiters that are not keyed ignore it.

        Returns:
            True to admit the request, False to reject it.
        """
        raise NotImplementedError
