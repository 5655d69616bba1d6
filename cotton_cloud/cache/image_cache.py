"""
Image Cache (v1.1.0)
In-memory staging of original images across cutout refine rounds.

A cutout session stores the pristine original once and hands the client an
opaque cache id. Refine rounds read the original back by id instead of
re-uploading it. Entries live for a fixed window from creation (no touch on
read) and a background sweeper thread evicts anything older than that.

Holding the id is the only access control, so ids are 128-bit random tokens.
"""
import time
import secrets
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


CACHE_ID_BYTES = 16  # 128 bits, hex-encoded to 32 chars
DEFAULT_TTL_MINUTES = 30
DEFAULT_SWEEP_MINUTES = 5


@dataclass(frozen=True)
class CacheEntry:
    """One staged original image."""
    cache_id: str
    data: bytes
    mime_type: str
    created_at: float

    def age_seconds(self, now: float) -> float:
        return now - self.created_at


class ImageCache:
    """
    Thread-safe TTL store for staged images.

    Usage:
        cache = ImageCache()              # sweeper starts immediately
        cache_id = cache.store(data, "image/png")
        entry = cache.get(cache_id)       # None once deleted or expired
        cache.delete(cache_id)
        cache.stop()                      # tests / shutdown only
    """

    def __init__(
        self,
        ttl_minutes: float = DEFAULT_TTL_MINUTES,
        sweep_interval_minutes: float = DEFAULT_SWEEP_MINUTES,
        clock: Callable[[], float] = time.monotonic,
        start_sweeper: bool = True,
    ):
        """
        Initialize the cache.

        Args:
            ttl_minutes: Absolute lifetime of an entry from creation
            sweep_interval_minutes: How often the sweeper wakes up
            clock: Monotonic time source (injectable for tests)
            start_sweeper: Start the background sweeper thread now
        """
        self.ttl_seconds = ttl_minutes * 60
        self.sweep_interval_seconds = sweep_interval_minutes * 60
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

        if start_sweeper:
            self.start()

    # ==================== PUBLIC API ====================

    def store(self, data: bytes, mime_type: str) -> str:
        """
        Stage an image and return its new cache id.

        Args:
            data: Raw image bytes
            mime_type: Media type of the image (e.g. image/jpeg)

        Returns:
            Random hex cache id
        """
        with self._lock:
            cache_id = secrets.token_hex(CACHE_ID_BYTES)
            while cache_id in self._entries:
                cache_id = secrets.token_hex(CACHE_ID_BYTES)

            self._entries[cache_id] = CacheEntry(
                cache_id=cache_id,
                data=data,
                mime_type=mime_type,
                created_at=self._clock(),
            )

        logger.info(f"Image cached: {cache_id[:8]}... ({len(data)} bytes)")
        return cache_id

    def get(self, cache_id: str) -> Optional[CacheEntry]:
        """
        Get a staged image if it exists and has not expired.

        Reading does not extend the entry's lifetime.
        """
        with self._lock:
            entry = self._entries.get(cache_id)
            if entry is None:
                return None

            if self._is_expired(entry, self._clock()):
                del self._entries[cache_id]
                logger.info(f"Image cache expired: {cache_id[:8]}...")
                return None

            return entry

    def delete(self, cache_id: str) -> bool:
        """
        Remove a staged image.

        Returns:
            True only if a live entry was removed by this call
        """
        with self._lock:
            entry = self._entries.pop(cache_id, None)
            if entry is None:
                return False
            removed = not self._is_expired(entry, self._clock())

        if removed:
            logger.info(f"Image cache cleared: {cache_id[:8]}...")
        return removed

    def count(self) -> int:
        """Number of entries currently held."""
        with self._lock:
            return len(self._entries)

    def sweep(self) -> int:
        """
        Remove all expired entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            expired = [
                cache_id for cache_id, entry in self._entries.items()
                if self._is_expired(entry, now)
            ]
            for cache_id in expired:
                del self._entries[cache_id]

        if expired:
            logger.info(f"Swept {len(expired)} expired image cache entries")

        return len(expired)

    def get_stats(self) -> dict:
        """Get cache statistics for the health endpoint."""
        with self._lock:
            entries = len(self._entries)
            size_bytes = sum(len(e.data) for e in self._entries.values())

        return {
            "type": "memory",
            "entries": entries,
            "size_bytes": size_bytes,
            "ttl_minutes": self.ttl_seconds / 60,
            "sweep_interval_minutes": self.sweep_interval_seconds / 60,
            "sweeper_running": self.is_running,
        }

    # ==================== SWEEPER ====================

    @property
    def is_running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def start(self):
        """Start the background sweeper thread (no-op if already running)."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop,
            name="image-cache-sweeper",
            daemon=True,
        )
        self._sweeper.start()
        logger.debug(
            f"Image cache sweeper started (every {self.sweep_interval_seconds:.0f}s, "
            f"ttl {self.ttl_seconds:.0f}s)"
        )

    def stop(self, timeout: float = 5.0):
        """Stop the sweeper thread. Safe to call more than once."""
        self._stop_event.set()
        sweeper = self._sweeper
        if sweeper is not None and sweeper is not threading.current_thread():
            sweeper.join(timeout)
        self._sweeper = None

    def _sweep_loop(self):
        while not self._stop_event.wait(self.sweep_interval_seconds):
            self.sweep()

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return entry.age_seconds(now) > self.ttl_seconds
