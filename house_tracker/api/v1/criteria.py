from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from house_tracker.api.deps import get_session
from house_tracker.models.criterion import Criterion
from house_tracker.services.criterion_service import CriterionService

router = APIRouter()


class CriterionRequest(BaseModel):
    name: str = Field(min_length=1)
    type: Literal["must-have", "nice-to-have"]
    definition: str | None = None


@router.get("")
async def list_criteria(db: AsyncSession = Depends(get_session)):
    criteria = await CriterionService(db).list_criteria()
    return [criterion_to_dict(c) for c in criteria]


@router.post("", status_code=201)
async def create_criterion(req: CriterionRequest, db: AsyncSession = Depends(get_session)):
    criterion = await CriterionService(db).create(req.name, req.type, req.definition)
    return criterion_to_dict(criterion)


@router.get("/{criterion_id}")
async def get_criterion(criterion_id: str, db: AsyncSession = Depends(get_session)):
    criterion = await CriterionService(db).get(criterion_id)
    if not criterion:
        raise HTTPException(status_code=404, detail="Criterion not found")
    return criterion_to_dict(criterion)


@router.put("/{criterion_id}")
async def update_criterion(
    criterion_id: str, req: CriterionRequest, db: AsyncSession = Depends(get_session)
):
    criterion = await CriterionService(db).update(
        criterion_id, req.name, req.type, req.definition
    )
    if not criterion:
        raise HTTPException(status_code=404, detail="Criterion not found")
    return criterion_to_dict(criterion)


@router.delete("/{criterion_id}", status_code=204)
async def delete_criterion(criterion_id: str, db: AsyncSession = Depends(get_session)):
    """Delete a criterion together with every rating that references it."""
    if not await CriterionService(db).delete(criterion_id):
        raise HTTPException(status_code=404, detail="Criterion not found")
    return Response(status_code=204)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def criterion_to_dict(c: Criterion) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "type": c.type,
        "definition": c.definition,
        "created_at": _iso(c.created_at),
        "updated_at": _iso(c.updated_at),
    }
