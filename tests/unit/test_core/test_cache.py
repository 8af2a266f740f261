"""Tests for the type-keyed caches."""

import threading

import pytest

from sqlconnplus.core.cache import CacheStats, TypeCache, clear_all_caches, get_cache, get_cache_statistics


class Alpha:
    pass


class Beta:
    pass


def test_get_or_create_computes_once() -> None:
    cache: TypeCache[str] = TypeCache("names")
    calls: list[type] = []

    def factory(key: type) -> str:
        calls.append(key)
        return key.__name__

    assert cache.get_or_create(Alpha, factory) == "Alpha"
    assert cache.get_or_create(Alpha, factory) == "Alpha"
    assert cache.get_or_create(Beta, factory) == "Beta"

    assert calls == [Alpha, Beta]
    assert len(cache) == 2
    assert Alpha in cache
    stats = cache.get_stats()
    assert (stats.hits, stats.misses) == (1, 2)
    assert stats.hit_rate == pytest.approx(100 / 3)


def test_failed_factories_are_not_cached() -> None:
    cache: TypeCache[str] = TypeCache("failing")
    attempts = []

    def factory(key: type) -> str:
        attempts.append(key)
        raise ValueError("boom")

    for _ in range(2):
        with pytest.raises(ValueError, match="boom"):
            cache.get_or_create(Alpha, factory)

    assert len(attempts) == 2
    assert Alpha not in cache
    assert cache.get(Alpha) is None


def test_concurrent_computation_publishes_first_value() -> None:
    """When two threads compute concurrently, both return the first published value."""
    cache: TypeCache[object] = TypeCache("racing")
    both_computing = threading.Barrier(2)
    results: list[object] = []

    def factory(key: type) -> object:
        both_computing.wait()
        return object()

    def worker() -> None:
        results.append(cache.get_or_create(Alpha, factory))

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results[0] is results[1]
    assert cache.get(Alpha) is results[0]
    assert cache.get_stats().races == 1


def test_named_caches_are_singletons() -> None:
    cache = get_cache("unit-test-cache")
    cache.get_or_create(Alpha, lambda key: 1)

    assert get_cache("unit-test-cache") is cache
    assert "unit-test-cache" in get_cache_statistics()

    clear_all_caches()
    assert len(cache) == 0
    assert cache.get_stats() == CacheStats()
    assert "TypeCache(name='unit-test-cache'" in repr(cache)
