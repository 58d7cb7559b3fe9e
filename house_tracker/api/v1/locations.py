from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from house_tracker.api.deps import get_geocoder, get_session
from house_tracker.models.location import Location
from house_tracker.services.geocoding_service import GeocodingService
from house_tracker.services.location_service import LocationGeocodeError, LocationService

router = APIRouter()


class LocationRequest(BaseModel):
    name: str = Field(min_length=1)
    address: str


@router.get("")
async def list_locations(
    db: AsyncSession = Depends(get_session),
    geocoder: GeocodingService = Depends(get_geocoder),
):
    locations = await LocationService(db, geocoder).list_locations()
    return [_location_to_dict(loc) for loc in locations]


@router.post("", status_code=201)
async def create_location(
    req: LocationRequest,
    db: AsyncSession = Depends(get_session),
    geocoder: GeocodingService = Depends(get_geocoder),
):
    try:
        location = await LocationService(db, geocoder).create(req.name, req.address)
    except LocationGeocodeError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _location_to_dict(location)


@router.put("/{location_id}")
async def update_location(
    location_id: str,
    req: LocationRequest,
    db: AsyncSession = Depends(get_session),
    geocoder: GeocodingService = Depends(get_geocoder),
):
    try:
        location = await LocationService(db, geocoder).update(location_id, req.name, req.address)
    except LocationGeocodeError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if not location:
        raise HTTPException(status_code=404, detail="Location not found")
    return _location_to_dict(location)


@router.delete("/{location_id}", status_code=204)
async def delete_location(
    location_id: str,
    db: AsyncSession = Depends(get_session),
    geocoder: GeocodingService = Depends(get_geocoder),
):
    if not await LocationService(db, geocoder).delete(location_id):
        raise HTTPException(status_code=404, detail="Location not found")
    return Response(status_code=204)


def _location_to_dict(loc: Location) -> dict:
    return {
        "id": loc.id,
        "name": loc.name,
        "address": loc.address,
        "latitude": loc.latitude,
        "longitude": loc.longitude,
        "created_at": loc.created_at.isoformat() if loc.created_at else None,
        "updated_at": loc.updated_at.isoformat() if loc.updated_at else None,
    }
