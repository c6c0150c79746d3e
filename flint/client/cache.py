"""
Tagged query cache.

Reads (accounts, dashboard, orders, ...) are cached under a key plus a set
of tags. A successful payment or trade emits a CacheInvalidation naming
the tags whose data it made stale; applying it drops those entries so the
next read refetches.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Hashable, Iterable, Optional

logger = logging.getLogger("flint.client.cache")

ACCOUNTS = "accounts"
DASHBOARD = "dashboard"
TRANSACTIONS = "transactions"
ORDERS = "orders"
POSITIONS = "positions"

PAYMENT_INVALIDATES = frozenset({ACCOUNTS, DASHBOARD, TRANSACTIONS})
TRADE_INVALIDATES = frozenset({ORDERS, POSITIONS, ACCOUNTS, DASHBOARD})


@dataclass(frozen=True)
class CacheInvalidation:
    """Emitted once per successful payment or trade."""

    tags: frozenset[str]
    reason: str = ""


@dataclass
class _Entry:
    value: Any
    tags: frozenset[str]
    stored_at: float = field(default=0.0)


class QueryCache:
    def __init__(self, ttl: Optional[float] = 60.0, clock: Callable[[], float] = time.monotonic):
        self._entries: dict[Hashable, _Entry] = {}
        self._ttl = ttl
        self._clock = clock

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def _fresh(self, entry: _Entry) -> bool:
        return self._ttl is None or self._clock() - entry.stored_at < self._ttl

    def get(self, key: Hashable) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not self._fresh(entry):
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: Hashable, value: Any, tags: Iterable[str] = ()) -> None:
        self._entries[key] = _Entry(value, frozenset(tags), self._clock())

    async def get_or_fetch(
        self,
        key: Hashable,
        fetch: Callable[[], Awaitable[Any]],
        tags: Iterable[str] = (),
    ) -> Any:
        cached = self.get(key)
        if cached is not None:
            return cached
        value = await fetch()
        self.set(key, value, tags)
        return value

    def invalidate(self, *tags: str) -> int:
        """Drop every entry carrying any of the tags. Returns how many were dropped."""
        wanted = set(tags)
        stale = [key for key, entry in self._entries.items() if entry.tags & wanted]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug("Invalidated %d cache entries for %s", len(stale), sorted(wanted))
        return len(stale)

    def apply(self, event: CacheInvalidation) -> int:
        return self.invalidate(*event.tags)

    def clear(self) -> None:
        self._entries.clear()
