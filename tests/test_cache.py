"""Unit tests for the TTL Cache Store."""
from datacore.cache import TTLCacheStore
from tests.fakes import FakeClock, fresh_cache


class TestTTLCacheStore:
    def test_miss_on_empty(self):
        cache, _ = fresh_cache()
        assert cache.get("raw:contacts") == (None, False)
        assert cache.peek("raw:contacts") == (None, False)

    def test_hit_within_ttl_miss_at_ttl(self):
        cache, clock = fresh_cache(ttl=30)
        cache.put("raw:contacts", [1, 2])

        clock.advance(29.9)
        assert cache.get("raw:contacts") == ([1, 2], True)

        clock.advance(0.1)
        value, hit = cache.get("raw:contacts")
        assert not hit
        assert value == [1, 2]

    def test_invalidate_keeps_value_for_stale_reads(self):
        cache, _ = fresh_cache()
        cache.put("raw:contacts", ["old"])

        cache.invalidate("raw:contacts")

        assert cache.get("raw:contacts")[1] is False
        assert cache.peek("raw:contacts") == (["old"], True)

    def test_invalidate_all_and_prefix(self):
        cache, _ = fresh_cache()
        cache.put("raw:contacts", 1)
        cache.put("sql:contacts", 2)
        cache.put("sql:companies", 3)

        cache.invalidate_prefix("sql:")
        assert cache.get("raw:contacts")[1] is True
        assert cache.get("sql:contacts")[1] is False
        assert cache.get("sql:companies")[1] is False

        cache.invalidate()
        assert cache.get("raw:contacts")[1] is False

    def test_last_write_moves_on_invalidation(self):
        wall = FakeClock(now=1_700_000_000.0)
        cache = TTLCacheStore(30, clock=FakeClock(), wall_clock=wall)
        before = cache.last_write

        wall.advance(5)
        cache.invalidate("anything")

        assert cache.last_write == before + 5000

    def test_per_key_ttl_override(self):
        cache, clock = fresh_cache(ttl=30)
        cache.set_ttl("raw:weeklyBusiness", 300)
        cache.put("raw:weeklyBusiness", "w")
        cache.put("raw:contacts", "c")

        clock.advance(60)
        assert cache.get("raw:weeklyBusiness")[1] is True
        assert cache.get("raw:contacts")[1] is False

        cache.set_ttl("raw:weeklyBusiness", None)
        assert cache.get("raw:weeklyBusiness")[1] is False

    def test_clear_drops_entries(self):
        cache, _ = fresh_cache()
        cache.put("raw:contacts", 1)
        cache.clear()
        assert cache.peek("raw:contacts") == (None, False)
