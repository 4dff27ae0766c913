from sap_awards import cache as cache_module
from sap_awards.cache import (
    CATEGORIES_KEY,
    MemoryCache,
    RedisCache,
    cache_nominations,
    get_cached_nominations,
    invalidate_award_categories,
    invalidate_nominations,
    nominations_cache_key,
)


def test_memory_cache_round_trip():
    cache = MemoryCache()

    cache.set("k", {"a": [1, 2]}, ttl=60)

    assert cache.get("k") == {"a": [1, 2]}
    assert cache.get("missing") is None


def test_memory_cache_returns_copies():
    cache = MemoryCache()
    cache.set("k", {"items": [1]}, ttl=60)

    cache.get("k")["items"].append(2)

    assert cache.get("k") == {"items": [1]}


def test_memory_cache_expires(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr(cache_module.time, "monotonic", lambda: now[0])
    cache = MemoryCache()
    cache.set("k", "v", ttl=300)

    now[0] += 299
    assert cache.get("k") == "v"
    now[0] += 2
    assert cache.get("k") is None


def test_delete_pattern_only_touches_matching_keys():
    cache = MemoryCache()
    cache.set("nominations:all:approved", 1)
    cache.set("nominations:3:winner", 2)
    cache.set(CATEGORIES_KEY, 3)

    assert invalidate_nominations(cache) == 2
    assert cache.get(CATEGORIES_KEY) == 3

    invalidate_award_categories(cache)
    assert cache.get(CATEGORIES_KEY) is None


def test_nominations_cache_key_covers_every_filter():
    base = nominations_cache_key()
    variants = {
        nominations_cache_key(category=2),
        nominations_cache_key(status="winner"),
        nominations_cache_key(country="Kenya"),
        nominations_cache_key(page=2),
        nominations_cache_key(limit=50),
        nominations_cache_key(sort_by="createdAt"),
        nominations_cache_key(sort_order="asc"),
        nominations_cache_key(search="grace"),
    }

    assert base.startswith("nominations:")
    assert base not in variants
    assert len(variants) == 8


def test_nominations_helpers_round_trip():
    cache = MemoryCache()
    key = nominations_cache_key()

    cache_nominations(cache, key, {"nominations": []})

    assert get_cached_nominations(cache, key) == {"nominations": []}


def test_redis_cache_without_redis_behaves_as_miss(monkeypatch):
    monkeypatch.setattr(cache_module, "get_redis_client", lambda: None)
    cache = RedisCache()

    assert cache.set("k", 1) is False
    assert cache.get("k") is None
    assert cache.delete_pattern("nominations:*") == 0


def test_nominations_cache_key_separates_absent_and_literal_filters():
    base = nominations_cache_key()

    assert nominations_cache_key(search="all") != base
    assert nominations_cache_key(country="all") != base
    assert nominations_cache_key(category=0) != base
