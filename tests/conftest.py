"""Test configuration and fixtures.

The app reads DATABASE_URL at import time, so a temporary SQLite file is
configured before anything from house_tracker is imported.
"""

import atexit
import os
import sqlite3
import tempfile

import pytest

_test_db_fd, _test_db_path = tempfile.mkstemp(suffix=".db")
os.close(_test_db_fd)
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_test_db_path}"
os.environ["APP_DEBUG"] = "false"
atexit.register(lambda: os.unlink(_test_db_path) if os.path.exists(_test_db_path) else None)

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.exc import OperationalError  # noqa: E402

from house_tracker.api.deps import get_geocoder  # noqa: E402
from house_tracker.database import async_session  # noqa: E402
from house_tracker.main import app  # noqa: E402
from house_tracker.services.geocoding_service import (  # noqa: E402
    GeocodingProviderError,
    GeocodingService,
    RateLimiter,
    SqlGeocodeCache,
)

# Children before parents, foreign keys are enforced
_TABLES = ("ratings", "locations", "geocoding_cache", "properties", "criteria")


class FakeProvider:
    """Geocoding provider answering from a dict of normalized address -> coords."""

    def __init__(self, results=None, error=None, clock=None):
        self.results = dict(results or {})
        self.error = error
        self.clock = clock
        self.calls = []
        self.call_times = []

    async def lookup(self, address):
        self.calls.append(address)
        if self.clock is not None:
            self.call_times.append(self.clock())
        if self.error:
            raise GeocodingProviderError(self.error)
        return self.results.get(address)


class FakeCache:
    """In-memory geocode cache that records every access."""

    def __init__(self, entries=None, fail_reads=False, fail_writes=False):
        self.entries = dict(entries or {})
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.gets = []
        self.puts = []

    async def get(self, address):
        self.gets.append(address)
        if self.fail_reads:
            raise OperationalError("SELECT", {}, Exception("database is locked"))
        return self.entries.get(address)

    async def put(self, address, latitude, longitude):
        self.puts.append((address, latitude, longitude))
        if self.fail_writes:
            raise OperationalError("INSERT", {}, Exception("database is locked"))
        self.entries[address] = (latitude, longitude)


class FakeClock:
    """Monotonic clock that only moves when something sleeps on it."""

    def __init__(self, start=100.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def fake_cache():
    return FakeCache()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture(scope="session")
def _app_client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def client(_app_client, fake_provider):
    """API client on a clean database, geocoding through ``fake_provider``."""
    geocoder = GeocodingService(
        cache=SqlGeocodeCache(async_session),
        provider=fake_provider,
        rate_limiter=RateLimiter(min_interval=0),
    )
    app.dependency_overrides[get_geocoder] = lambda: geocoder
    yield _app_client
    app.dependency_overrides.clear()

    conn = sqlite3.connect(_test_db_path)
    for table in _TABLES:
        conn.execute(f"DELETE FROM {table}")
    conn.commit()
    conn.close()
