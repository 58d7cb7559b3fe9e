"""Geocoding service: address text to coordinates, with a permanent cache."""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

import structlog
from geopy.exc import GeopyError
from geopy.geocoders import Nominatim
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from house_tracker.config import settings
from house_tracker.models.geocode_cache import GeocodeCacheEntry

logger = structlog.get_logger()

ADDRESS_REQUIRED = "Address is required"
ADDRESS_NOT_FOUND = "Address not found. Please verify the address is correct."


@dataclass
class GeocodeResult:
    latitude: float
    longitude: float
    success: bool
    error: str | None = None

    @classmethod
    def failure(cls, error: str) -> "GeocodeResult":
        return cls(latitude=0.0, longitude=0.0, success=False, error=error)


class GeocodingProviderError(Exception):
    """The external geocoder could not be reached or rejected the request."""


def normalize_address(address: str) -> str:
    """Cache key for an address: surrounding whitespace trimmed, lower-cased."""
    return address.strip().lower()


class RateLimiter:
    """Enforces a minimum spacing between outbound calls.

    Holds the time of the previous call; ``wait()`` suspends the caller until
    ``min_interval`` seconds have passed since then.  Not a lock: two
    coroutines waiting at once can both proceed after the same delay.
    """

    def __init__(
        self,
        min_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_call: float | None = None

    async def wait(self) -> None:
        if self._last_call is not None:
            elapsed = self._clock() - self._last_call
            if elapsed < self.min_interval:
                await self._sleep(self.min_interval - elapsed)
        self._last_call = self._clock()


class GeocodeCache(Protocol):
    async def get(self, address: str) -> tuple[float, float] | None: ...

    async def put(self, address: str, latitude: float, longitude: float) -> None: ...


class GeocodingProvider(Protocol):
    async def lookup(self, address: str) -> tuple[float, float] | None: ...


class SqlGeocodeCache:
    """Geocode cache stored in the ``geocoding_cache`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, address: str) -> tuple[float, float] | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(GeocodeCacheEntry).where(GeocodeCacheEntry.address == address)
            )
            entry = result.scalar_one_or_none()
        if entry is None:
            return None
        return (float(entry.latitude), float(entry.longitude))

    async def put(self, address: str, latitude: float, longitude: float) -> None:
        async with self._session_factory() as session:
            session.add(
                GeocodeCacheEntry(address=address, latitude=latitude, longitude=longitude)
            )
            await session.commit()


class NominatimProvider:
    """Top-match lookups against OpenStreetMap Nominatim."""

    def __init__(self, user_agent: str, timeout: float = 10.0):
        self.geocoder = Nominatim(user_agent=user_agent, timeout=timeout)

    async def lookup(self, address: str) -> tuple[float, float] | None:
        try:
            # Run sync geocoder in thread pool
            location = await asyncio.to_thread(
                self.geocoder.geocode,
                address,
                exactly_one=True,
            )
        except GeopyError as e:
            raise GeocodingProviderError(str(e) or e.__class__.__name__) from e

        if location is None:
            return None
        return (float(location.latitude), float(location.longitude))


class GeocodingService:
    """Resolve free-text addresses through the cache, then the provider."""

    def __init__(
        self,
        cache: GeocodeCache,
        provider: GeocodingProvider,
        rate_limiter: RateLimiter | None = None,
    ):
        self.cache = cache
        self.provider = provider
        self.rate_limiter = rate_limiter or RateLimiter()

    async def resolve_address(self, raw_address: str | None) -> GeocodeResult:
        """
        Geocode a single address.

        Failures come back as ``GeocodeResult(success=False, error=...)``;
        nothing here raises.
        """
        if not raw_address or not raw_address.strip():
            return GeocodeResult.failure(ADDRESS_REQUIRED)

        address = normalize_address(raw_address)

        cached = await self._cache_get(address)
        if cached is not None:
            return GeocodeResult(latitude=cached[0], longitude=cached[1], success=True)

        await self.rate_limiter.wait()

        try:
            coords = await self.provider.lookup(address)
        except GeocodingProviderError as e:
            logger.warning("Geocoding error", address=address[:50], error=str(e))
            return GeocodeResult.failure(str(e))

        if coords is None:
            logger.warning("Geocoding returned no results", address=address[:50])
            return GeocodeResult.failure(ADDRESS_NOT_FOUND)

        latitude, longitude = coords
        await self._cache_put(address, latitude, longitude)
        logger.info("Geocoded address", address=address[:50], lat=latitude, lng=longitude)
        return GeocodeResult(latitude=latitude, longitude=longitude, success=True)

    async def _cache_get(self, address: str) -> tuple[float, float] | None:
        try:
            return await self.cache.get(address)
        except SQLAlchemyError as e:
            logger.warning("Geocode cache lookup failed", address=address[:50], error=str(e))
            return None

    async def _cache_put(self, address: str, latitude: float, longitude: float) -> None:
        try:
            await self.cache.put(address, latitude, longitude)
        except SQLAlchemyError as e:
            logger.warning("Geocode cache write failed", address=address[:50], error=str(e))


# Singleton instance
_geocoding_service: GeocodingService | None = None


def get_geocoding_service() -> GeocodingService:
    """Get or create the process-wide geocoding service (one shared rate limiter)."""
    global _geocoding_service
    if _geocoding_service is None:
        from house_tracker.database import async_session

        _geocoding_service = GeocodingService(
            cache=SqlGeocodeCache(async_session),
            provider=NominatimProvider(
                user_agent=settings.geocoder_user_agent,
                timeout=settings.geocoder_timeout,
            ),
            rate_limiter=RateLimiter(min_interval=settings.geocode_min_interval_seconds),
        )
    return _geocoding_service
