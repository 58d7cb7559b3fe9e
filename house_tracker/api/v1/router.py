from fastapi import APIRouter

from house_tracker.api.v1 import criteria, geocode, locations, properties, ratings, reports

api_router = APIRouter()

api_router.include_router(criteria.router, prefix="/criteria", tags=["criteria"])
api_router.include_router(properties.router, prefix="/properties", tags=["properties"])
api_router.include_router(ratings.router, prefix="/properties", tags=["ratings"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(locations.router, prefix="/locations", tags=["locations"])
api_router.include_router(geocode.router, prefix="/geocode", tags=["geocode"])
