import uuid
from datetime import datetime, timezone
from enum import IntEnum

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, SmallInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from house_tracker.database import Base


class RatingScore(IntEnum):
    DOESNT_MEET = 1
    PARTIAL = 2
    MEETS = 3

    @property
    def label(self) -> str:
        return _SCORE_LABELS[self]


_SCORE_LABELS = {
    RatingScore.DOESNT_MEET: "Doesn't Meet",
    RatingScore.PARTIAL: "Partial",
    RatingScore.MEETS: "Meets",
}


def _uuid_str() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Rating(Base):
    __tablename__ = "ratings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid_str)
    property_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("properties.id", ondelete="CASCADE"), index=True
    )
    criterion_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("criteria.id", ondelete="CASCADE"), index=True
    )
    score: Mapped[int] = mapped_column(SmallInteger)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, onupdate=_now
    )

    __table_args__ = (
        Index("uq_ratings_property_criterion", property_id, criterion_id, unique=True),
        CheckConstraint("score IN (1, 2, 3)", name="score_valid"),
    )
