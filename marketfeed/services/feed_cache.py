"""
Rendered-feed cache.

The feed pipeline never touches the cache itself; ``FeedService`` consults
it before reading the spreadsheet and stores the rendered document after.
Freshness is decided by an injected comparator so storage backends only
need to remember when a value was written.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Protocol

import structlog

logger = structlog.get_logger(__name__)

FreshnessCheck = Callable[[datetime, datetime], bool]
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CachedFeed:
    """A stored document and the moment it was written."""

    value: str
    stored_at: datetime


class FeedCache(Protocol):
    """Storage contract for rendered feed documents."""

    def get(self, key: str) -> Optional[CachedFeed]:
        ...

    def put(self, key: str, value: str) -> None:
        ...


def ttl_comparator(ttl_seconds: float) -> FreshnessCheck:
    """
    Build a freshness predicate for a fixed time-to-live.

    Args:
        ttl_seconds: Age limit; 0 or less means nothing is ever fresh

    Returns:
        ``is_fresh(stored_at, now)`` that is True while the entry is younger
        than the TTL
    """
    ttl = timedelta(seconds=ttl_seconds)

    def is_fresh(stored_at: datetime, now: datetime) -> bool:
        if ttl_seconds <= 0:
            return False
        return now - stored_at < ttl

    return is_fresh


class InMemoryFeedCache:
    """Process-local FeedCache. Entries live until overwritten."""

    def __init__(self, clock: Clock = utc_now):
        self._clock = clock
        self._entries: Dict[str, CachedFeed] = {}

    def get(self, key: str) -> Optional[CachedFeed]:
        return self._entries.get(key)

    def put(self, key: str, value: str) -> None:
        self._entries[key] = CachedFeed(value=value, stored_at=self._clock())
        logger.debug("feed_cache_stored", key=key, size_bytes=len(value.encode("utf-8")))

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
