"""Per-user cache of compiled memory context.

Entries are spread across independently locked TLRU caches (shards) so that
unrelated users never contend on one lock. There is no compare-and-swap
between get and put: an invalidation racing with a rebuild can leave one
stale value in place until it expires, which the TTL bounds.
"""

import logging
import threading
import time
from collections.abc import Callable
from typing import NamedTuple

from cachetools import TLRUCache

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0
DEFAULT_SHARDS = 16
DEFAULT_MAX_ENTRIES = 10_000


class _Entry(NamedTuple):
    context: str
    ttl: float


def _time_to_use(_key: str, entry: _Entry, now: float) -> float:
    return now + entry.ttl


class _Shard:
    __slots__ = ("entries", "lock")

    def __init__(self, maxsize: int, timer: Callable[[], float]) -> None:
        # TLRUCache is not thread-safe on its own
        self.entries: TLRUCache = TLRUCache(
            maxsize=maxsize, ttu=_time_to_use, timer=timer
        )
        self.lock = threading.Lock()


class ContextCache:
    """Thread-safe, TTL-bound map of user id to compiled memory context.

    An entry is served only while now < expires_at. Expiry is lazy: expired
    entries in a shard are evicted when that shard is next read or written.
    When a shard is full, the least recently used entry is dropped.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        shards: int = DEFAULT_SHARDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize cache.

        Args:
            ttl_seconds: Default lifetime of an entry.
            shards: Number of independently locked partitions.
            max_entries: Approximate capacity across all shards.
            clock: Monotonic time source, injectable for tests.
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if shards < 1:
            raise ValueError("shards must be at least 1")
        if max_entries < shards:
            raise ValueError("max_entries must be at least the number of shards")

        self._ttl = ttl_seconds
        per_shard = -(-max_entries // shards)
        self._shards = tuple(
            _Shard(per_shard, clock) for _ in range(shards)
        )

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def _shard(self, user_id: str) -> _Shard:
        return self._shards[hash(user_id) % len(self._shards)]

    def get(self, user_id: str) -> str | None:
        """Return the cached context, or None on a miss or expired entry."""
        shard = self._shard(user_id)
        with shard.lock:
            entry = shard.entries.get(user_id)
            if entry is not None:
                return entry.context
            expired = shard.entries.expire()

        if any(key == user_id for key, _ in expired):
            logger.debug("memory_context_cache_expired", extra={"user.id": user_id})
        return None

    def put(
        self, user_id: str, context: str, ttl_seconds: float | None = None
    ) -> None:
        """Store context for a user, replacing any existing entry.

        Args:
            user_id: Owner of the context.
            context: Compiled memory context.
            ttl_seconds: Lifetime of this entry; the cache default if omitted.
        """
        ttl = self._ttl if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            raise ValueError("ttl_seconds must be positive")
        shard = self._shard(user_id)
        with shard.lock:
            shard.entries[user_id] = _Entry(context, ttl)

    def invalidate(self, user_id: str) -> None:
        """Drop a user's entry; a no-op if there is none."""
        shard = self._shard(user_id)
        with shard.lock:
            shard.entries.pop(user_id, None)

    def clear(self) -> None:
        """Drop every entry."""
        for shard in self._shards:
            with shard.lock:
                shard.entries.clear()

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                shard.entries.expire()
                total += len(shard.entries)
        return total
