"""Criterion service - CRUD for the user's decision criteria."""

from datetime import datetime, timezone

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from house_tracker.models.criterion import CRITERION_TYPES, Criterion

logger = structlog.get_logger()


def _check_type(criterion_type: str) -> None:
    if criterion_type not in CRITERION_TYPES:
        raise ValueError(f"Criterion type must be one of {', '.join(CRITERION_TYPES)}")


class CriterionService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_criteria(self) -> list[Criterion]:
        result = await self.session.execute(
            select(Criterion).order_by(Criterion.type.desc(), Criterion.name)
        )
        return list(result.scalars().all())

    async def get(self, criterion_id: str) -> Criterion | None:
        return await self.session.get(Criterion, criterion_id)

    async def create(self, name: str, type: str, definition: str | None = None) -> Criterion:
        _check_type(type)
        criterion = Criterion(name=name, type=type, definition=definition or None)
        self.session.add(criterion)
        await self.session.flush()
        logger.info("Criterion created", criterion_id=criterion.id, type=type)
        return criterion

    async def update(
        self, criterion_id: str, name: str, type: str, definition: str | None = None
    ) -> Criterion | None:
        _check_type(type)
        criterion = await self.get(criterion_id)
        if criterion is None:
            return None
        criterion.name = name
        criterion.type = type
        criterion.definition = definition or None
        criterion.updated_at = datetime.now(timezone.utc)
        await self.session.flush()
        return criterion

    async def delete(self, criterion_id: str) -> bool:
        """Delete a criterion. Its ratings go with it (ON DELETE CASCADE)."""
        result = await self.session.execute(
            delete(Criterion).where(Criterion.id == criterion_id)
        )
        deleted = result.rowcount > 0
        if deleted:
            logger.info("Criterion deleted", criterion_id=criterion_id)
        return deleted
