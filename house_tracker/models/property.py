import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Boolean, Date, DateTime, Float, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from house_tracker.database import Base


def _uuid_str() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Property(Base):
    __tablename__ = "properties"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid_str)
    name: Mapped[str] = mapped_column(String(200))

    # Location
    address: Mapped[str] = mapped_column(Text)
    neighborhood: Mapped[str] = mapped_column(String(200), default="")
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    # Last batch geocode attempt; unsuccessful rows go to the back of the next batch
    geocode_attempted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Listing details
    price: Mapped[float | None] = mapped_column(Numeric(12, 2), nullable=True)
    bedrooms: Mapped[float | None] = mapped_column(Numeric(4, 1), nullable=True)
    bathrooms: Mapped[float | None] = mapped_column(Numeric(4, 1), nullable=True)
    sqft: Mapped[int | None] = mapped_column(Integer, nullable=True)
    date_viewed: Mapped[date | None] = mapped_column(Date, nullable=True)
    listing_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Archived properties stay in the table but drop out of the map and reports
    archived: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, onupdate=_now
    )
