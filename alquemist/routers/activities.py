from typing import Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from alquemist.core.auth import current_active_user, current_company_id
from alquemist.core.config import settings
from alquemist.core.scoping import get_area_or_404
from alquemist.db.database import get_async_session, Activity as ActivityModel
from alquemist.db.users import User
from alquemist.schemas.activities import ActivityCreate

router = APIRouter()


@router.get("/", response_model=Dict)
async def list_activities(
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    activity_type: Optional[str] = None,
    limit: int = Query(default=settings.default_page_limit, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    """Newest first."""
    filters = [ActivityModel.company_id == company_id]
    if entity_type:
        filters.append(ActivityModel.entity_type == entity_type)
    if entity_id:
        filters.append(ActivityModel.entity_id == entity_id)
    if activity_type:
        filters.append(ActivityModel.activity_type == activity_type)

    total = (await db.execute(select(func.count(ActivityModel.id)).where(*filters))).scalar_one()
    res = await db.execute(
        select(ActivityModel)
        .where(*filters)
        .order_by(ActivityModel.timestamp.desc())
        .limit(limit)
        .offset(offset)
    )
    return {"activities": [a.to_schema for a in res.scalars().all()], "total": total}


@router.get("/{activity_id}", response_model=Dict)
async def get_activity(
    activity_id: UUID,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(
        select(ActivityModel).where(ActivityModel.id == activity_id, ActivityModel.company_id == company_id)
    )
    activity = res.scalar_one_or_none()
    if not activity:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Activity not found")
    return activity.to_schema


@router.post("/", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def log_activity(
    payload: ActivityCreate,
    user: User = Depends(current_active_user),
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    for area_id in (payload.area_from, payload.area_to):
        if area_id is not None:
            await get_area_or_404(db, area_id, company_id)

    m = ActivityModel(company_id=company_id, performed_by=user.id, **payload.model_dump())
    db.add(m)
    await db.commit()
    return m.to_schema
