"""Rating service - per-property ratings with upsert-by-pair semantics."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from house_tracker.models.rating import Rating, RatingScore

logger = structlog.get_logger()


@dataclass
class RatingInput:
    criterion_id: str
    score: int
    notes: str | None = None


@dataclass
class SaveRatingsResult:
    saved: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class RatingService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_for_property(self, property_id: str) -> list[Rating]:
        result = await self.session.execute(
            select(Rating).where(Rating.property_id == property_id)
        )
        return list(result.scalars().all())

    async def list_all(self) -> list[Rating]:
        result = await self.session.execute(select(Rating))
        return list(result.scalars().all())

    async def upsert(
        self, property_id: str, criterion_id: str, score: int, notes: str | None = None
    ) -> Rating:
        """Create or overwrite the rating for one (property, criterion) pair."""
        score = RatingScore(score)  # ValueError outside 1-3

        result = await self.session.execute(
            select(Rating).where(
                Rating.property_id == property_id,
                Rating.criterion_id == criterion_id,
            )
        )
        rating = result.scalar_one_or_none()

        if rating is None:
            rating = Rating(
                property_id=property_id,
                criterion_id=criterion_id,
                score=int(score),
                notes=notes or None,
            )
            self.session.add(rating)
        else:
            rating.score = int(score)
            rating.notes = notes or None
            rating.updated_at = datetime.now(timezone.utc)

        await self.session.flush()
        return rating

    async def save_ratings(
        self, property_id: str, items: list[RatingInput]
    ) -> SaveRatingsResult:
        """Apply each rating as its own committed upsert.

        Not atomic: a failure rolls back only the failing item, and the
        upserts committed before it stay persisted.
        """
        outcome = SaveRatingsResult()

        for item in items:
            try:
                await self.upsert(property_id, item.criterion_id, item.score, item.notes)
                await self.session.commit()
            except (SQLAlchemyError, ValueError) as e:
                await self.session.rollback()
                logger.error(
                    "Error saving rating",
                    property_id=property_id,
                    criterion_id=item.criterion_id,
                    error=str(e),
                )
                outcome.failed[item.criterion_id] = str(e)
            else:
                outcome.saved.append(item.criterion_id)

        logger.info(
            "Ratings saved",
            property_id=property_id,
            saved=len(outcome.saved),
            failed=len(outcome.failed),
        )
        return outcome
