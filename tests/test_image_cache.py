"""
Image Cache Tests
Store/get/delete semantics, absolute TTL, sweeping and thread safety.
"""
import time
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from cotton_cloud.cache.image_cache import ImageCache
from tests.helpers import FakeClock


# ==================== STORE / GET ====================

class TestStoreAndGet:
    """Tests for staging and reading images."""

    def test_store_returns_128_bit_hex_id(self, cache):
        """Ids are 32 hex characters."""
        cache_id = cache.store(b"image-bytes", "image/png")

        assert len(cache_id) == 32
        int(cache_id, 16)

    def test_get_returns_payload_unchanged(self, cache, png_bytes):
        """get() returns exactly what was stored."""
        cache_id = cache.store(png_bytes, "image/png")

        entry = cache.get(cache_id)

        assert entry is not None
        assert entry.data == png_bytes
        assert entry.mime_type == "image/png"
        assert entry.cache_id == cache_id

    def test_get_unknown_id_returns_none(self, cache):
        assert cache.get("0" * 32) is None

    def test_get_does_not_refresh_age(self, cache, clock):
        """Reading an entry does not extend its lifetime."""
        cache_id = cache.store(b"x", "image/jpeg")

        clock.advance(minutes=20)
        assert cache.get(cache_id) is not None

        clock.advance(minutes=11)
        assert cache.get(cache_id) is None

    def test_count_tracks_live_entries(self, cache):
        ids = [cache.store(b"x", "image/png") for _ in range(3)]
        assert cache.count() == 3

        cache.delete(ids[0])
        assert cache.count() == 2


# ==================== DELETE ====================

class TestDelete:
    """Tests for explicit removal."""

    def test_delete_returns_true_exactly_once(self, cache):
        cache_id = cache.store(b"x", "image/png")

        assert cache.delete(cache_id) is True
        assert cache.delete(cache_id) is False
        assert cache.delete(cache_id) is False

    def test_get_after_delete_returns_none(self, cache):
        cache_id = cache.store(b"x", "image/png")
        cache.delete(cache_id)

        assert cache.get(cache_id) is None

    def test_delete_unknown_id_returns_false(self, cache):
        assert cache.delete("missing") is False

    def test_delete_expired_entry_returns_false(self, cache, clock):
        """An expired entry is already gone from the caller's point of view."""
        cache_id = cache.store(b"x", "image/png")
        clock.advance(minutes=31)

        assert cache.delete(cache_id) is False
        assert cache.count() == 0


# ==================== EXPIRY / SWEEP ====================

class TestSweep:
    """Tests for TTL eviction."""

    def test_sweep_removes_only_expired_entries(self, cache, clock):
        old_id = cache.store(b"old", "image/png")
        clock.advance(minutes=20)
        young_id = cache.store(b"young", "image/png")
        clock.advance(minutes=11)

        removed = cache.sweep()

        assert removed == 1
        assert cache.get(old_id) is None
        assert cache.get(young_id) is not None

    def test_entry_at_exact_ttl_is_still_live(self, cache, clock):
        """Expiry requires age strictly greater than the window."""
        cache_id = cache.store(b"x", "image/png")
        clock.advance(minutes=30)

        assert cache.sweep() == 0
        assert cache.get(cache_id) is not None

    def test_expired_entry_hidden_before_sweep(self, cache, clock):
        cache_id = cache.store(b"x", "image/png")
        clock.advance(minutes=45)

        assert cache.get(cache_id) is None

    def test_custom_ttl(self, clock):
        short = ImageCache(ttl_minutes=1, clock=clock, start_sweeper=False)
        cache_id = short.store(b"x", "image/png")
        clock.advance(seconds=61)

        assert short.sweep() == 1
        assert short.get(cache_id) is None

    def test_stats_report_entries_and_size(self, cache):
        cache.store(b"12345", "image/png")
        stats = cache.get_stats()

        assert stats["entries"] == 1
        assert stats["size_bytes"] == 5
        assert stats["ttl_minutes"] == 30
        assert stats["sweeper_running"] is False


# ==================== BACKGROUND SWEEPER ====================

class TestSweeperThread:
    """Tests for the background sweeper lifecycle."""

    def test_sweeper_evicts_expired_entries(self):
        clock = FakeClock()
        cache = ImageCache(sweep_interval_minutes=0.0005, clock=clock)  # ~30ms
        try:
            assert cache.is_running
            cache.store(b"x", "image/png")
            clock.advance(minutes=31)

            deadline = time.time() + 2.0
            while cache.count() and time.time() < deadline:
                time.sleep(0.01)

            assert cache.count() == 0
        finally:
            cache.stop()

    def test_stop_is_idempotent(self):
        cache = ImageCache(sweep_interval_minutes=0.0005)
        cache.stop()
        cache.stop()

        assert not cache.is_running

    def test_start_after_stop_restarts(self):
        cache = ImageCache(sweep_interval_minutes=0.0005)
        try:
            cache.stop()
            cache.start()
            assert cache.is_running
        finally:
            cache.stop()


# ==================== CONCURRENCY ====================

class TestConcurrency:
    """Tests for concurrent access."""

    def test_concurrent_stores_yield_distinct_ids(self, cache):
        """1000+ interleaved stores never collide."""
        with ThreadPoolExecutor(max_workers=16) as pool:
            ids = list(pool.map(lambda i: cache.store(str(i).encode(), "image/png"), range(1200)))

        assert len(set(ids)) == 1200
        assert cache.count() == 1200

    def test_operations_racing_sweeps_stay_consistent(self, clock):
        cache = ImageCache(clock=clock, start_sweeper=False)
        errors = []
        stop = threading.Event()

        def sweeper():
            while not stop.is_set():
                cache.sweep()

        def worker(n):
            try:
                for i in range(200):
                    payload = f"{n}-{i}".encode()
                    cache_id = cache.store(payload, "image/png")
                    entry = cache.get(cache_id)
                    if entry is not None and entry.data != payload:
                        errors.append("corrupted payload")
                    if i % 2:
                        cache.delete(cache_id)
            except Exception as e:
                errors.append(repr(e))

        sweep_thread = threading.Thread(target=sweeper)
        sweep_thread.start()
        try:
            with ThreadPoolExecutor(max_workers=8) as pool:
                list(pool.map(worker, range(8)))
        finally:
            stop.set()
            sweep_thread.join()

        assert errors == []
        assert cache.count() == 8 * 100


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
