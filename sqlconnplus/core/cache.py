"""Type-keyed caches for derived per-type metadata.

Values are computed outside the cache lock and published with ``setdefault`` under it, so
concurrent first access may compute a value more than once but every caller observes the
single published instance. Factories that raise publish nothing.
"""

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, Optional

from mypy_extensions import mypyc_attr
from typing_extensions import TypeVar

from sqlconnplus.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

__all__ = ("CacheStats", "TypeCache", "clear_all_caches", "get_cache", "get_cache_statistics")

CacheValueT = TypeVar("CacheValueT")

logger = get_logger("sqlconnplus.core.cache")


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time counters of a :class:`TypeCache`.

    Attributes:
        hits: Lookups answered from the cache.
        misses: Lookups that ran the factory.
        races: Computed values discarded because another thread published first.
    """

    hits: int = 0
    misses: int = 0
    races: int = 0

    @property
    def lookups(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Share of lookups answered from the cache, in percent."""
        return self.hits * 100 / self.lookups if self.lookups else 0.0


@mypyc_attr(allow_interpreted_subclasses=False)
class TypeCache(Generic[CacheValueT]):
    """Unbounded cache of values derived from a type, keyed by type identity.

    Args:
        name: Name used in logs and statistics.
    """

    __slots__ = ("_entries", "_hits", "_lock", "_misses", "_name", "_races")

    def __init__(self, name: str) -> None:
        self._name = name
        self._entries: dict[type, CacheValueT] = {}
        self._lock = threading.RLock()
        self._hits = self._misses = self._races = 0

    @property
    def name(self) -> str:
        return self._name

    def get(self, key: type) -> Optional[CacheValueT]:
        with self._lock:
            return self._entries.get(key)

    def get_or_create(self, key: type, factory: "Callable[[type], CacheValueT]") -> CacheValueT:
        """Return the cached value for ``key``, computing it with ``factory`` on first access.

        Args:
            key: The type the value is derived from.
            factory: Callable deriving the value from ``key``. Exceptions propagate and
                nothing is cached.

        Returns:
            The single published value for ``key``.
        """
        with self._lock:
            if key in self._entries:
                self._hits += 1
                return self._entries[key]
            self._misses += 1

        value = factory(key)

        with self._lock:
            published = self._entries.setdefault(key, value)
            if published is not value:
                self._races += 1
        if published is not value:
            logger.debug("Discarded concurrently computed %s entry for %s", self._name, key.__qualname__)
        return published

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = self._misses = self._races = 0

    def get_stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(hits=self._hits, misses=self._misses, races=self._races)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __repr__(self) -> str:
        return f"TypeCache(name={self._name!r}, size={len(self)}, stats={self.get_stats()!r})"


_caches: "dict[str, TypeCache[Any]]" = {}
_cache_lock = threading.Lock()


def get_cache(name: str) -> "TypeCache[Any]":
    """Get or create the named process-wide type cache.

    Returns:
        Singleton cache instance for ``name``
    """
    cache = _caches.get(name)
    if cache is None:
        with _cache_lock:
            cache = _caches.get(name)
            if cache is None:
                cache = _caches[name] = TypeCache(name)
    return cache


def clear_all_caches() -> None:
    """Clear all named cache instances."""
    with _cache_lock:
        caches = list(_caches.values())
    for cache in caches:
        cache.clear()


def get_cache_statistics() -> "dict[str, CacheStats]":
    with _cache_lock:
        return {name: cache.get_stats() for name, cache in _caches.items()}
