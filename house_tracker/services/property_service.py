"""Property service - candidate properties, archiving, coordinates and map data."""

from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from house_tracker.config import settings
from house_tracker.models.property import Property
from house_tracker.services.geocoding_service import (
    GeocodeResult,
    GeocodingService,
    normalize_address,
)

logger = structlog.get_logger()

# Fields a client may set directly on a property
EDITABLE_FIELDS = (
    "name",
    "address",
    "neighborhood",
    "price",
    "bedrooms",
    "bathrooms",
    "sqft",
    "date_viewed",
    "listing_url",
    "notes",
    "latitude",
    "longitude",
)
_TEXT_FIELDS = ("name", "address", "neighborhood")


class PropertyService:
    def __init__(self, session: AsyncSession, geocoder: GeocodingService | None = None):
        self.session = session
        self.geocoder = geocoder

    async def list_properties(self, archived: bool = False) -> list[Property]:
        result = await self.session.execute(
            select(Property)
            .where(Property.archived == archived)
            .order_by(Property.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_for_report(self) -> list[Property]:
        """Non-archived properties in a stable order (name, then id)."""
        result = await self.session.execute(
            select(Property)
            .where(Property.archived.is_(False))
            .order_by(Property.name, Property.id)
        )
        return list(result.scalars().all())

    async def get(self, property_id: str) -> Property | None:
        return await self.session.get(Property, property_id)

    async def create(self, data: dict[str, Any]) -> Property:
        prop = Property(archived=False)
        self._apply_fields(prop, data)
        self.session.add(prop)
        await self.session.flush()
        logger.info("Property created", property_id=prop.id)
        return prop

    async def update(self, property_id: str, data: dict[str, Any]) -> Property | None:
        prop = await self.get(property_id)
        if prop is None:
            return None
        moved = "address" in data and (
            normalize_address(data["address"]) != normalize_address(prop.address)
        )
        self._apply_fields(prop, data)
        # Coordinates belong to the old address unless the caller sent new ones
        if moved and "latitude" not in data and "longitude" not in data:
            prop.latitude = None
            prop.longitude = None
            prop.geocode_attempted_at = None
            logger.info("Property address changed, coordinates cleared", property_id=property_id)
        prop.updated_at = datetime.now(timezone.utc)
        await self.session.flush()
        return prop

    async def toggle_archived(self, property_id: str) -> Property | None:
        prop = await self.get(property_id)
        if prop is None:
            return None
        prop.archived = not prop.archived
        prop.updated_at = datetime.now(timezone.utc)
        await self.session.flush()
        logger.info("Property archive toggled", property_id=property_id, archived=prop.archived)
        return prop

    async def geocode(self, prop: Property) -> GeocodeResult:
        """Resolve the property's address and store the coordinates on success.

        On failure the record is left as it was.
        """
        if self.geocoder is None:
            raise RuntimeError("PropertyService was created without a geocoder")

        result = await self.geocoder.resolve_address(prop.address)
        if result.success:
            prop.latitude = result.latitude
            prop.longitude = result.longitude
            prop.updated_at = datetime.now(timezone.utc)
            await self.session.flush()
        return result

    async def geocode_missing(
        self, limit: int = 100, attempted: set[str] | None = None
    ) -> dict[str, int]:
        """
        Geocode non-archived properties that don't have coordinates yet.

        Properties never tried come first, then the ones whose last attempt
        is oldest, so addresses that keep failing do not block the rest.
        Ids in *attempted* are left out and every selected id is added to it.

        Returns stats dict with counts of success/failure/skipped. Each
        attempt is committed as it lands.
        """
        query = select(Property).where(
            Property.archived.is_(False),
            Property.latitude.is_(None),
        )
        if attempted:
            query = query.where(Property.id.notin_(attempted))
        result = await self.session.execute(
            query.order_by(
                Property.geocode_attempted_at.isnot(None),
                Property.geocode_attempted_at,
                Property.created_at,
                Property.id,
            ).limit(limit)
        )
        properties = result.scalars().all()

        stats = {"total": len(properties), "success": 0, "failed": 0, "skipped": 0}

        for prop in properties:
            if attempted is not None:
                attempted.add(prop.id)
            if not prop.address or not prop.address.strip():
                stats["skipped"] += 1
                continue

            outcome = await self.geocode(prop)
            prop.geocode_attempted_at = datetime.now(timezone.utc)
            await self.session.commit()
            if outcome.success:
                stats["success"] += 1
            else:
                stats["failed"] += 1

        logger.info("Batch geocoding complete", **stats)
        return stats

    async def map_data(self) -> dict[str, Any]:
        """GeoJSON for non-archived properties with coordinates, plus a map center."""
        result = await self.session.execute(
            select(Property).where(
                Property.archived.is_(False),
                Property.latitude.isnot(None),
                Property.longitude.isnot(None),
            )
        )
        properties = result.scalars().all()

        features = [
            {
                "type": "Feature",
                "geometry": {
                    "type": "Point",
                    "coordinates": [p.longitude, p.latitude],
                },
                "properties": {
                    "id": p.id,
                    "name": p.name,
                    "address": p.address,
                    "neighborhood": p.neighborhood,
                    "price": float(p.price) if p.price is not None else None,
                    "listing_url": p.listing_url,
                },
            }
            for p in properties
        ]

        if properties:
            center = [
                sum(p.latitude for p in properties) / len(properties),
                sum(p.longitude for p in properties) / len(properties),
            ]
        else:
            center = [settings.map_default_lat, settings.map_default_lng]

        return {
            "type": "FeatureCollection",
            "features": features,
            "center": center,
        }

    def _apply_fields(self, prop: Property, data: dict[str, Any]) -> None:
        for key in EDITABLE_FIELDS:
            if key in data:
                value = data[key]
                # Blank optional inputs are stored as NULL
                if value == "" and key not in _TEXT_FIELDS:
                    value = None
                setattr(prop, key, value)


async def geocode_all_missing(
    session_factory,
    geocoder: GeocodingService,
    batch_size: int = 50,
    on_batch=None,
) -> dict[str, int]:
    """Geocode every property missing coordinates, one session per batch.

    Each property is tried at most once per run. Stops when a batch comes
    back empty. *on_batch* is called with ``(batch_num, stats)`` after each
    batch.
    """
    attempted: set[str] = set()
    totals = {"batches": 0, "success": 0, "failed": 0, "skipped": 0}

    while True:
        async with session_factory() as session:
            stats = await PropertyService(session, geocoder).geocode_missing(
                limit=batch_size, attempted=attempted
            )
        if stats["total"] == 0:
            break

        totals["batches"] += 1
        for key in ("success", "failed", "skipped"):
            totals[key] += stats[key]
        if on_batch is not None:
            on_batch(totals["batches"], stats)

    return totals
