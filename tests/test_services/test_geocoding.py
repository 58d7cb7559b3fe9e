"""Tests for address resolution, the geocode cache and the rate limiter."""

import asyncio
from types import SimpleNamespace

import pytest
from geopy.exc import GeocoderServiceError, GeocoderTimedOut

from house_tracker.services.geocoding_service import (
    ADDRESS_NOT_FOUND,
    ADDRESS_REQUIRED,
    GeocodingProviderError,
    GeocodingService,
    NominatimProvider,
    RateLimiter,
    normalize_address,
)

DENVER = (39.7392, -104.9903)


@pytest.fixture
def limiter(fake_clock):
    return RateLimiter(min_interval=1.0, clock=fake_clock, sleep=fake_clock.sleep)


@pytest.fixture
def service(fake_cache, fake_provider, limiter):
    return GeocodingService(cache=fake_cache, provider=fake_provider, rate_limiter=limiter)


def _resolve(service, address):
    return asyncio.run(service.resolve_address(address))


class TestNormalizeAddress:
    def test_trims_and_lowercases(self):
        assert normalize_address("  123 Main St, Denver, CO  ") == "123 main st, denver, co"

    def test_inner_whitespace_kept(self):
        assert normalize_address("123  Main St") == "123  main st"


class TestRateLimiter:
    def test_first_call_does_not_wait(self, limiter, fake_clock):
        asyncio.run(limiter.wait())
        assert fake_clock.sleeps == []

    def test_back_to_back_calls_wait_full_interval(self, limiter, fake_clock):
        async def _twice():
            await limiter.wait()
            first = fake_clock()
            await limiter.wait()
            return first, fake_clock()

        first, second = asyncio.run(_twice())
        assert fake_clock.sleeps == [pytest.approx(1.0)]
        assert second - first >= 1.0

    def test_waits_only_the_remainder(self, limiter, fake_clock):
        async def _run():
            await limiter.wait()
            fake_clock.now += 0.4
            await limiter.wait()

        asyncio.run(_run())
        assert fake_clock.sleeps == [pytest.approx(0.6)]

    def test_no_wait_after_interval_elapsed(self, limiter, fake_clock):
        async def _run():
            await limiter.wait()
            fake_clock.now += 2.5
            await limiter.wait()

        asyncio.run(_run())
        assert fake_clock.sleeps == []


class TestResolveAddress:
    def test_empty_address_short_circuits(self, service, fake_cache, fake_provider):
        for address in ("", "   ", None):
            result = _resolve(service, address)
            assert result.success is False
            assert result.error == ADDRESS_REQUIRED
        assert fake_cache.gets == []
        assert fake_provider.calls == []

    def test_success_is_cached_under_normalized_key(self, service, fake_cache, fake_provider):
        fake_provider.results["123 main st, denver, co"] = DENVER
        result = _resolve(service, "  123 Main St, Denver, CO  ")
        assert result.success is True
        assert (result.latitude, result.longitude) == DENVER
        assert fake_provider.calls == ["123 main st, denver, co"]
        assert fake_cache.puts == [("123 main st, denver, co", *DENVER)]

    def test_differently_cased_inputs_share_cache_entry(self, service, fake_cache, fake_provider):
        fake_provider.results["123 main st, denver, co"] = DENVER
        _resolve(service, "  123 Main St, Denver, CO  ")
        result = _resolve(service, "123 main st, denver, co")
        assert result.success is True
        assert (result.latitude, result.longitude) == DENVER
        assert len(fake_provider.calls) == 1
        assert len(fake_cache.puts) == 1

    def test_cache_hit_skips_provider_and_rate_limit(self, service, fake_cache, fake_provider, fake_clock):
        fake_cache.entries["1600 pennsylvania ave"] = (38.8977, -77.0365)
        for _ in range(3):
            result = _resolve(service, "1600 Pennsylvania Ave")
            assert result.success is True
            assert result.latitude == 38.8977
        assert fake_provider.calls == []
        assert fake_clock.sleeps == []

    def test_not_found_is_not_cached(self, service, fake_cache, fake_provider):
        result = _resolve(service, "nowhere at all")
        assert result.success is False
        assert result.error == ADDRESS_NOT_FOUND
        assert fake_cache.puts == []

    def test_provider_error_reported_without_retry(self, service, fake_cache, fake_provider):
        fake_provider.error = "Service timed out"
        result = _resolve(service, "123 Main St")
        assert result.success is False
        assert result.error == "Service timed out"
        assert len(fake_provider.calls) == 1
        assert fake_cache.puts == []

    def test_misses_are_spaced_by_min_interval(self, service, fake_provider, fake_clock):
        fake_provider.clock = fake_clock
        fake_provider.results.update({"a st": DENVER, "b st": DENVER})

        async def _both():
            await service.resolve_address("A St")
            await service.resolve_address("B St")

        asyncio.run(_both())
        first, second = fake_provider.call_times
        assert second - first >= 1.0

    def test_cache_read_failure_treated_as_miss(self, service, fake_cache, fake_provider):
        fake_cache.fail_reads = True
        fake_provider.results["123 main st"] = DENVER
        result = _resolve(service, "123 Main St")
        assert result.success is True
        assert fake_provider.calls == ["123 main st"]

    def test_cache_write_failure_still_returns_coordinates(self, service, fake_cache, fake_provider):
        fake_cache.fail_writes = True
        fake_provider.results["123 main st"] = DENVER
        result = _resolve(service, "123 Main St")
        assert result.success is True
        assert (result.latitude, result.longitude) == DENVER


class TestNominatimProvider:
    @pytest.fixture
    def provider(self):
        return NominatimProvider(user_agent="house-tracker-tests", timeout=1)

    def test_top_match_coordinates(self, provider, monkeypatch):
        calls = []

        def _geocode(query, exactly_one=True):
            calls.append((query, exactly_one))
            return SimpleNamespace(latitude="39.7392", longitude="-104.9903")

        monkeypatch.setattr(provider.geocoder, "geocode", _geocode)
        assert asyncio.run(provider.lookup("denver")) == DENVER
        assert calls == [("denver", True)]

    def test_no_match(self, provider, monkeypatch):
        monkeypatch.setattr(provider.geocoder, "geocode", lambda query, exactly_one=True: None)
        assert asyncio.run(provider.lookup("nowhere")) is None

    @pytest.mark.parametrize("exc", [GeocoderServiceError("HTTP 503"), GeocoderTimedOut("timed out")])
    def test_geopy_errors_become_provider_errors(self, provider, monkeypatch, exc):
        def _geocode(query, exactly_one=True):
            raise exc

        monkeypatch.setattr(provider.geocoder, "geocode", _geocode)
        with pytest.raises(GeocodingProviderError, match=str(exc)):
            asyncio.run(provider.lookup("denver"))
