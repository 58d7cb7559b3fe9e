"""Loads the current data set and assembles ranked property reports."""

from sqlalchemy.ext.asyncio import AsyncSession

from house_tracker.services.criterion_service import CriterionService
from house_tracker.services.property_service import PropertyService
from house_tracker.services.rating_service import RatingService
from house_tracker.services.scoring import (
    SORT_BY_TOTAL,
    VIEW_TIER1,
    PropertyScore,
    Report,
    build_report,
    compute_score,
)


class ReportService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def build(self, view: str = VIEW_TIER1, sort_by: str = SORT_BY_TOTAL) -> Report:
        properties = await PropertyService(self.session).list_for_report()
        criteria = await CriterionService(self.session).list_criteria()
        ratings = await RatingService(self.session).list_all()
        return build_report(properties, criteria, ratings, view=view, sort_by=sort_by)

    async def score_property(self, property_id: str) -> PropertyScore | None:
        prop = await PropertyService(self.session).get(property_id)
        if prop is None:
            return None
        criteria = await CriterionService(self.session).list_criteria()
        ratings = await RatingService(self.session).list_for_property(property_id)
        return compute_score(prop, ratings, criteria)
