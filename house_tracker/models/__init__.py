from house_tracker.models.criterion import Criterion
from house_tracker.models.geocode_cache import GeocodeCacheEntry
from house_tracker.models.location import Location
from house_tracker.models.property import Property
from house_tracker.models.rating import Rating, RatingScore

__all__ = [
    "Criterion",
    "GeocodeCacheEntry",
    "Location",
    "Property",
    "Rating",
    "RatingScore",
]
