from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from house_tracker.api.deps import get_geocoder, get_session
from house_tracker.models.property import Property
from house_tracker.services.geocoding_service import GeocodingService
from house_tracker.services.property_service import PropertyService

router = APIRouter()


class PropertyRequest(BaseModel):
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    neighborhood: str = ""
    price: float | None = None
    bedrooms: float | None = None
    bathrooms: float | None = None
    sqft: int | None = None
    date_viewed: date | None = None
    listing_url: str | None = None
    notes: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)


@router.get("")
async def list_properties(
    archived: bool = False,
    db: AsyncSession = Depends(get_session),
):
    properties = await PropertyService(db).list_properties(archived=archived)
    return [property_to_dict(p) for p in properties]


@router.post("", status_code=201)
async def create_property(req: PropertyRequest, db: AsyncSession = Depends(get_session)):
    prop = await PropertyService(db).create(req.model_dump())
    return property_to_dict(prop)


@router.get("/map")
async def properties_map(db: AsyncSession = Depends(get_session)):
    """Map markers for non-archived properties that have coordinates."""
    return await PropertyService(db).map_data()


@router.post("/geocode")
async def geocode_properties(
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_session),
    geocoder: GeocodingService = Depends(get_geocoder),
):
    """Geocode non-archived properties that are missing coordinates."""
    stats = await PropertyService(db, geocoder).geocode_missing(limit=limit)
    return stats


@router.get("/{property_id}")
async def get_property(property_id: str, db: AsyncSession = Depends(get_session)):
    prop = await PropertyService(db).get(property_id)
    if not prop:
        raise HTTPException(status_code=404, detail="Property not found")
    return property_to_dict(prop)


@router.put("/{property_id}")
async def update_property(
    property_id: str, req: PropertyRequest, db: AsyncSession = Depends(get_session)
):
    # Omitted fields keep their stored values (e.g. geocoded coordinates)
    prop = await PropertyService(db).update(property_id, req.model_dump(exclude_unset=True))
    if not prop:
        raise HTTPException(status_code=404, detail="Property not found")
    return property_to_dict(prop)


@router.post("/{property_id}/archive")
async def toggle_archive(property_id: str, db: AsyncSession = Depends(get_session)):
    """Archive an active property, or restore an archived one."""
    prop = await PropertyService(db).toggle_archived(property_id)
    if not prop:
        raise HTTPException(status_code=404, detail="Property not found")
    return property_to_dict(prop)


@router.post("/{property_id}/geocode")
async def geocode_property(
    property_id: str,
    db: AsyncSession = Depends(get_session),
    geocoder: GeocodingService = Depends(get_geocoder),
):
    service = PropertyService(db, geocoder)
    prop = await service.get(property_id)
    if not prop:
        raise HTTPException(status_code=404, detail="Property not found")

    result = await service.geocode(prop)
    if not result.success:
        raise HTTPException(status_code=422, detail=result.error)
    return property_to_dict(prop)


def property_to_dict(p: Property) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "address": p.address,
        "neighborhood": p.neighborhood,
        "price": float(p.price) if p.price is not None else None,
        "bedrooms": float(p.bedrooms) if p.bedrooms is not None else None,
        "bathrooms": float(p.bathrooms) if p.bathrooms is not None else None,
        "sqft": p.sqft,
        "date_viewed": p.date_viewed.isoformat() if p.date_viewed else None,
        "listing_url": p.listing_url,
        "notes": p.notes,
        "latitude": p.latitude,
        "longitude": p.longitude,
        "archived": p.archived,
        "created_at": p.created_at.isoformat() if p.created_at else None,
        "updated_at": p.updated_at.isoformat() if p.updated_at else None,
    }
