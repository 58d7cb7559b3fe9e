from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from house_tracker.api.deps import get_session
from house_tracker.models.rating import Rating, RatingScore
from house_tracker.services.property_service import PropertyService
from house_tracker.services.rating_service import RatingInput, RatingService

router = APIRouter()


class RatingRequest(BaseModel):
    criterion_id: str
    score: Literal[1, 2, 3]
    notes: str | None = None


class SaveRatingsRequest(BaseModel):
    ratings: list[RatingRequest]


@router.get("/{property_id}/ratings")
async def list_ratings(property_id: str, db: AsyncSession = Depends(get_session)):
    if not await PropertyService(db).get(property_id):
        raise HTTPException(status_code=404, detail="Property not found")
    ratings = await RatingService(db).list_for_property(property_id)
    return [rating_to_dict(r) for r in ratings]


@router.put("/{property_id}/ratings")
async def save_ratings(
    property_id: str, req: SaveRatingsRequest, db: AsyncSession = Depends(get_session)
):
    """Upsert a batch of ratings for one property.

    Each rating is saved on its own; the response lists what was saved and
    what failed. Failures do not undo ratings saved earlier in the batch.
    """
    if not await PropertyService(db).get(property_id):
        raise HTTPException(status_code=404, detail="Property not found")

    items = [RatingInput(r.criterion_id, r.score, r.notes) for r in req.ratings]
    outcome = await RatingService(db).save_ratings(property_id, items)
    return {
        "status": "saved" if outcome.ok else "partial",
        "saved": outcome.saved,
        "failed": [
            {"criterion_id": criterion_id, "error": error}
            for criterion_id, error in outcome.failed.items()
        ],
    }


def rating_to_dict(r: Rating) -> dict:
    return {
        "id": r.id,
        "property_id": r.property_id,
        "criterion_id": r.criterion_id,
        "score": r.score,
        "label": RatingScore(r.score).label,
        "notes": r.notes,
        "created_at": r.created_at.isoformat() if r.created_at else None,
        "updated_at": r.updated_at.isoformat() if r.updated_at else None,
    }
