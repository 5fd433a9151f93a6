"""
Tagged in-memory cache with a freshness window
"""
import logging
from dataclasses import dataclass, field
from time import monotonic
from typing import Any, Awaitable, Callable, Dict, Hashable, Iterable, Optional, Set

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass
class CacheEntry:
    value: Any
    stored_at: float
    ttl: float
    tags: Set[str] = field(default_factory=set)

    def is_fresh(self, now: float) -> bool:
        return now - self.stored_at < self.ttl


class TaggedCache:
    """
    Key/value cache where every entry carries a TTL and a set of tags.

    Entries older than their TTL are treated as misses. Invalidating a tag
    drops every entry that carries it, fresh or not, and discards the result
    of any fetch for that tag that was already in flight.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry] = {}
        # Bumped on invalidation; a fetch started under older versions is not stored
        self._tag_versions: Dict[str, int] = {}
        self._generation = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def get(self, key: Hashable, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default
        if not entry.is_fresh(self._clock()):
            del self._entries[key]
            return default
        return entry.value

    def _versions(self, tags: Iterable[str]) -> tuple:
        return (self._generation, tuple(self._tag_versions.get(tag, 0) for tag in tags))

    def set(self, key: Hashable, value: Any, tags: Iterable[str] = (), ttl: Optional[float] = None) -> None:
        self._entries[key] = CacheEntry(
            value=value,
            stored_at=self._clock(),
            ttl=self.ttl_seconds if ttl is None else ttl,
            tags=set(tags),
        )

    async def get_or_fetch(
        self,
        key: Hashable,
        fetcher: Callable[[], Awaitable[Any]],
        tags: Iterable[str] = (),
        ttl: Optional[float] = None,
    ) -> Any:
        """Return the cached value for key, calling fetcher on a miss"""
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            logger.debug(f"Cache hit for {key!r}")
            return value

        tags = list(tags)
        versions = self._versions(tags)
        logger.debug(f"Cache miss for {key!r}")
        value = await fetcher()
        if self._versions(tags) != versions:
            logger.debug(f"Not caching {key!r}: invalidated while fetching")
            return value
        self.set(key, value, tags=tags, ttl=ttl)
        return value

    def invalidate_tags(self, tags: Iterable[str]) -> int:
        """Drop every entry carrying any of the given tags. Returns the number dropped."""
        wanted = {tag.strip() for tag in tags if tag and tag.strip()}
        for tag in wanted:
            self._tag_versions[tag] = self._tag_versions.get(tag, 0) + 1
        stale = [key for key, entry in self._entries.items() if entry.tags & wanted]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.info(f"Invalidated {len(stale)} cache entries for tags {sorted(wanted)}")
        return len(stale)

    def invalidate_key(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._generation += 1
        self._entries.clear()
