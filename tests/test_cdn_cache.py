import pytest

from app.features.cdn.cache import CDNCache, asset_key, video_prefix


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


def test_get_miss_then_hit(clock):
    cdn = CDNCache(max_entries=3, default_ttl=60, clock=clock)
    assert cdn.get("a") is None

    cdn.cache("a", b"data", "text/plain")
    hit = cdn.get("a")

    assert hit.data == b"data"
    assert hit.content_type == "text/plain"
    assert (cdn.hits, cdn.misses) == (1, 1)


def test_full_cache_evicts_oldest_entry(clock):
    cdn = CDNCache(max_entries=2, clock=clock)
    cdn.cache("a", b"1", "x")
    clock.now = 1
    cdn.cache("b", b"2", "x")
    clock.now = 2
    cdn.cache("c", b"3", "x")

    assert "a" not in cdn
    assert "b" in cdn and "c" in cdn
    assert len(cdn) == 2
    assert cdn.evictions == 1


def test_recaching_existing_path_does_not_evict(clock):
    cdn = CDNCache(max_entries=2, clock=clock)
    cdn.cache("a", b"1", "x")
    clock.now = 1
    cdn.cache("b", b"2", "x")
    clock.now = 2
    cdn.cache("a", b"1-bis", "x")

    assert len(cdn) == 2
    assert cdn.evictions == 0
    assert cdn.get("a").data == b"1-bis"

    # "a" est maintenant le plus récent : "b" part en premier
    clock.now = 3
    cdn.cache("c", b"3", "x")
    assert "b" not in cdn
    assert "a" in cdn


def test_expired_entry_removed_on_get(clock):
    cdn = CDNCache(default_ttl=10, clock=clock)
    cdn.cache("a", b"1", "x")

    clock.now = 10
    assert cdn.get("a") is not None  # borne incluse

    clock.now = 10.5
    assert cdn.get("a") is None
    assert "a" not in cdn


def test_per_entry_ttl(clock):
    cdn = CDNCache(default_ttl=10, clock=clock)
    cdn.cache("short", b"1", "x", ttl=1)
    cdn.cache("long", b"2", "x")

    clock.now = 5
    assert cdn.get("short") is None
    assert cdn.get("long") is not None


def test_invalidate_and_prefix(clock):
    cdn = CDNCache(clock=clock)
    cdn.cache(asset_key(1, "hls"), b"1", "x")
    cdn.cache(asset_key(1, "thumbnail"), b"2", "x")
    cdn.cache(asset_key(10, "hls"), b"3", "x")

    assert cdn.invalidate(asset_key(1, "hls")) is True
    assert cdn.invalidate(asset_key(1, "hls")) is False
    assert cdn.invalidate_prefix(video_prefix(1)) == 1
    assert asset_key(10, "hls") in cdn


def test_stats_list_entries(clock):
    cdn = CDNCache(max_entries=5, clock=clock)
    cdn.cache("a", b"abc", "text/plain")
    cdn.get("a")
    cdn.get("a")
    cdn.get("missing")

    stats = cdn.get_stats()

    assert stats["size"] == 1
    assert stats["max_size"] == 5
    assert (stats["hits"], stats["misses"], stats["evictions"]) == (2, 1, 0)
    [entry] = stats["entries"]
    assert entry["path"] == "a"
    assert entry["hits"] == 2
    assert entry["bytes"] == 3


def test_clear(clock):
    cdn = CDNCache(clock=clock)
    cdn.cache("a", b"1", "x")
    cdn.clear()
    assert len(cdn) == 0


def test_max_entries_must_be_positive():
    with pytest.raises(ValueError):
        CDNCache(max_entries=0)
