from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from house_tracker.api.deps import get_session
from house_tracker.api.v1.properties import property_to_dict
from house_tracker.api.v1.ratings import rating_to_dict
from house_tracker.services.report_service import ReportService
from house_tracker.services.scoring import PropertyScore

router = APIRouter()


@router.get("")
async def get_report(
    view: Literal["tier1", "all"] = "tier1",
    sort_by: str = "total",
    db: AsyncSession = Depends(get_session),
):
    """Ranked comparison of all non-archived properties.

    ``view=tier1`` lists properties meeting every must-have, best
    nice-to-haves first. ``view=all`` ranks everything by total score, or
    by one criterion when ``sort_by`` is a criterion id.
    """
    report = await ReportService(db).build(view=view, sort_by=sort_by)

    message = None
    if not report.has_properties:
        message = "No properties to report on yet. Add and rate properties to see rankings."
    elif not report.has_ratings:
        message = "No ratings yet. Rate your properties to see the comparison report."

    return {
        "view": report.view,
        "sort_by": report.sort_by,
        "message": message,
        "items": [_score_to_dict(s) for s in report.scores],
    }


@router.get("/{property_id}")
async def get_property_score(property_id: str, db: AsyncSession = Depends(get_session)):
    score = await ReportService(db).score_property(property_id)
    if not score:
        raise HTTPException(status_code=404, detail="Property not found")
    return _score_to_dict(score)


def _score_to_dict(score: PropertyScore) -> dict:
    return {
        "property": property_to_dict(score.property),
        "must_have_score": score.must_have_score,
        "nice_to_have_score": score.nice_to_have_score,
        "total_score": score.total_score,
        "meets_all_must_haves": score.meets_all_must_haves,
        "ratings": [rating_to_dict(r) for r in score.ratings],
    }
