from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from house_tracker.database import get_db
from house_tracker.services.geocoding_service import GeocodingService, get_geocoding_service


async def get_session(
    db: AsyncSession = Depends(get_db),
) -> AsyncGenerator[AsyncSession, None]:
    yield db


def get_geocoder() -> GeocodingService:
    return get_geocoding_service()
