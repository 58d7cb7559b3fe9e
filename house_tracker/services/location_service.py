"""Location service - key places, saved only with resolved coordinates."""

from datetime import datetime, timezone

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from house_tracker.models.location import Location
from house_tracker.services.geocoding_service import GeocodeResult, GeocodingService

logger = structlog.get_logger()


class LocationGeocodeError(Exception):
    """The location's address could not be geocoded; nothing was saved."""

    def __init__(self, result: GeocodeResult):
        super().__init__(result.error or "Failed to geocode address")
        self.result = result


class LocationService:
    def __init__(self, session: AsyncSession, geocoder: GeocodingService):
        self.session = session
        self.geocoder = geocoder

    async def list_locations(self) -> list[Location]:
        result = await self.session.execute(
            select(Location).order_by(Location.created_at.desc())
        )
        return list(result.scalars().all())

    async def get(self, location_id: str) -> Location | None:
        return await self.session.get(Location, location_id)

    async def _geocode(self, address: str) -> GeocodeResult:
        result = await self.geocoder.resolve_address(address)
        if not result.success:
            raise LocationGeocodeError(result)
        return result

    async def create(self, name: str, address: str) -> Location:
        coords = await self._geocode(address)
        location = Location(
            name=name,
            address=address,
            latitude=coords.latitude,
            longitude=coords.longitude,
        )
        self.session.add(location)
        await self.session.flush()
        logger.info("Location created", location_id=location.id)
        return location

    async def update(self, location_id: str, name: str, address: str) -> Location | None:
        location = await self.get(location_id)
        if location is None:
            return None
        coords = await self._geocode(address)
        location.name = name
        location.address = address
        location.latitude = coords.latitude
        location.longitude = coords.longitude
        location.updated_at = datetime.now(timezone.utc)
        await self.session.flush()
        return location

    async def delete(self, location_id: str) -> bool:
        result = await self.session.execute(
            delete(Location).where(Location.id == location_id)
        )
        return result.rowcount > 0
