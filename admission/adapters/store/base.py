"""Counter store interface.

Limiters depend on this abstraction (not on a concrete backend), so the
in-memory store can be swapped for a networked cache such as Redis without
touching limiter code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractCounterStore(ABC):
    """Keyed integer counters with per-key expiry.

    Backends that talk to a remote service must raise
    ``BackendUnavailableError`` from ``set``/``incr`` when the service cannot
    be reached, rather than letting transport errors escape.
    """

    @abstractmethod
    def get(self, key: str) -> int | None:
        """Return the live count for ``key``.

        Args:
            key: Counter key.

        Returns:
            The current count, or None when the key is absent or expired.
            Expired entries are purged as a side effect.
        """
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: int, ttl: float) -> None:
        """Write ``value`` for ``key``, expiring ``ttl`` seconds from now.

        Replaces any previous entry for the key, including its expiry.

        Raises:
            BackendUnavailableError: If the backend rejected the write.
        """
        raise NotImplementedError

    @abstractmethod
    def incr(self, key: str, amount: int) -> int:
        """Atomically add ``amount`` to the counter and return the new value.

        A missing or expired counter restarts at ``amount`` with no usable
        expiry; the caller is expected to follow up with ``set`` to open the
        window.

        Raises:
            BackendUnavailableError: If the backend rejected the update.
        """
        raise NotImplementedError

    def incr_with_ttl(self, key: str, amount: int, ttl: float) -> int:
        """Increment and, when the counter (re)starts, expire it after ``ttl``.

        The default composes ``incr`` and ``set`` and is therefore not atomic:
        between the two calls a fresh counter has no real expiry. Backends
        that can do better (a lock, a Lua script, ``SET NX EX`` + ``INCR`` in a
        transaction) should override it.

        Raises:
            BackendUnavailableError: If either underlying call fails.
        """
        value = self.incr(key, amount)
        if value == amount:
            self.set(key, value, ttl)
        return value
