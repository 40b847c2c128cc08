"""In-memory counter store with lazy TTL expiry.

Notes:
- Per-process only: each worker process holds its own counters.
- Thread-safe: keys are spread over lock-striped shards, so operations on
  keys in different shards never wait on each other, while read-modify-write
  on a single key is atomic.
- No background sweeper: expired entries are dropped when next touched.
"""

from __future__ import annotations

import logging
import threading
import time
import zlib
from dataclasses import dataclass, field
from typing import Callable

from admission.adapters.store.base import AbstractCounterStore
from admission.core.hashing import hash_identity

logger = logging.getLogger(__name__)


@dataclass
class CounterEntry:
    """Counter value with its absolute expiry (clock seconds)."""

    value: int
    expires_at: float


@dataclass
class _Shard:
    lock: threading.Lock = field(default_factory=threading.Lock)
    entries: dict[str, CounterEntry] = field(default_factory=dict)


class InMemoryCounterStore(AbstractCounterStore):
    """Reference counter store backed by process memory.

    Attributes:
        shards: Number of lock stripes keys are partitioned over.
    """

    def __init__(
        self,
        *,
        shards: int = 16,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the store.

        Args:
            shards: Number of independently locked partitions.
            clock: Time source in seconds; must be monotonic for TTLs to hold.

        Raises:
            ValueError: If shards is invalid.
        """
        if shards < 1:
            raise ValueError("shards must be >= 1")

        self._shards = [_Shard() for _ in range(shards)]
        self._clock = clock
        self._expirations = 0
        self._stats_lock = threading.Lock()

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryCounterStore(shards={len(self._shards)}, entries={len(self)})"

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.entries)
        return total

    @property
    def shards(self) -> int:
        return len(self._shards)

    def _shard_for(self, key: str) -> _Shard:
        # crc32 rather than hash(): stable across processes and PYTHONHASHSEED
        return self._shards[zlib.crc32(key.encode()) % len(self._shards)]

    def _purge_locked(self, shard: _Shard, key: str) -> None:
        shard.entries.pop(key, None)
        with self._stats_lock:
            self._expirations += 1
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("store.expired", extra={"key_hash": hash_identity(key)})

    def get(self, key: str) -> int | None:
        shard = self._shard_for(key)
        with shard.lock:
            entry = shard.entries.get(key)
            if entry is None:
                return None
            if entry.expires_at > self._clock():
                return entry.value
            self._purge_locked(shard, key)
            return None

    def set(self, key: str, value: int, ttl: float) -> None:
        shard = self._shard_for(key)
        with shard.lock:
            shard.entries[key] = CounterEntry(value=value, expires_at=self._clock() + ttl)

    def incr(self, key: str, amount: int) -> int:
        shard = self._shard_for(key)
        with shard.lock:
            now = self._clock()
            entry = shard.entries.get(key)
            if entry is None:
                # Expires immediately until the caller opens the window with set()
                shard.entries[key] = CounterEntry(value=amount, expires_at=now)
                return amount
            if entry.expires_at <= now:
                entry.value = amount
            else:
                entry.value += amount
            return entry.value

    def incr_with_ttl(self, key: str, amount: int, ttl: float) -> int:
        shard = self._shard_for(key)
        with shard.lock:
            now = self._clock()
            entry = shard.entries.get(key)
            if entry is None or entry.expires_at <= now:
                shard.entries[key] = CounterEntry(value=amount, expires_at=now + ttl)
                return amount
            entry.value += amount
            return entry.value

    def clear(self) -> None:
        """Remove all counters and reset statistics."""

        for shard in self._shards:
            with shard.lock:
                shard.entries.clear()
        with self._stats_lock:
            self._expirations = 0

    def stats(self) -> dict[str, int]:
        """Return lightweight store metrics without exposing keys."""

        with self._stats_lock:
            expirations = self._expirations
        return {
            "shards": len(self._shards),
            "entries": len(self),
            "expirations": expirations,
        }
