from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from house_tracker.api.deps import get_geocoder
from house_tracker.services.geocoding_service import GeocodingService

router = APIRouter()


class GeocodeRequest(BaseModel):
    address: str


@router.post("")
async def resolve_address(
    req: GeocodeRequest,
    geocoder: GeocodingService = Depends(get_geocoder),
):
    """Resolve an address to coordinates without saving anything but the cache entry."""
    result = await geocoder.resolve_address(req.address)
    if not result.success:
        raise HTTPException(status_code=422, detail=result.error)
    return asdict(result)
