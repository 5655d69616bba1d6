import pytest

from cotton_cloud.cache.image_cache import ImageCache
from cotton_cloud.observability import reset_metrics
from tests.helpers import FakeClock, make_image_bytes, to_b64


@pytest.fixture(autouse=True)
def _isolate_observability(monkeypatch):
    """No request-log files during tests; fresh counters per test."""
    monkeypatch.setenv("COTTON_LOGGING_ENABLED", "false")
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def png_bytes():
    return make_image_bytes("blue", "PNG")


@pytest.fixture
def png_b64(png_bytes):
    return to_b64(png_bytes)


@pytest.fixture
def jpeg_b64():
    return to_b64(make_image_bytes("red", "JPEG"))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    """Cache without the sweeper thread; tests call sweep() directly."""
    image_cache = ImageCache(clock=clock, start_sweeper=False)
    yield image_cache
    image_cache.stop()
