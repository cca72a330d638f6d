from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from alquemist.core.auth import current_company_id
from alquemist.core.scoping import get_area_or_404, get_facility_or_404
from alquemist.db.database import (
    get_async_session,
    utcnow,
    Area as AreaModel,
    InventoryLot as InventoryLotModel,
)
from alquemist.schemas.areas import AreaCreate, AreaRead, AreaUpdate

router = APIRouter()


@router.get("/", response_model=List[AreaRead])
async def list_areas(
    facility_id: UUID,
    status_filter: Optional[str] = Query(default=None, alias="status"),
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    await get_facility_or_404(db, facility_id, company_id)

    stmt = select(AreaModel).where(AreaModel.facility_id == facility_id)
    if status_filter:
        stmt = stmt.where(AreaModel.status == status_filter)
    res = await db.execute(stmt.order_by(func.lower(AreaModel.name).asc()))
    return [AreaRead(**a.to_schema) for a in res.scalars().all()]


@router.get("/{area_id}", response_model=AreaRead)
async def get_area(
    area_id: UUID,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    area = await get_area_or_404(db, area_id, company_id)
    return AreaRead(**area.to_schema)


@router.post("/", response_model=AreaRead, status_code=status.HTTP_201_CREATED)
async def create_area(
    payload: AreaCreate,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    await get_facility_or_404(db, payload.facility_id, company_id)

    m = AreaModel(**payload.model_dump())
    db.add(m)
    await db.commit()
    await db.refresh(m)
    return AreaRead(**m.to_schema)


@router.patch("/{area_id}", response_model=AreaRead)
async def update_area(
    area_id: UUID,
    payload: AreaUpdate,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    m = await get_area_or_404(db, area_id, company_id)

    data = payload.model_dump(exclude_unset=True)
    if data.get("name") is not None:
        m.name = data["name"]
    if data.get("area_type") is not None:
        m.area_type = data["area_type"]
    if "max_capacity" in data:
        m.max_capacity = data["max_capacity"]
    if data.get("current_occupancy") is not None:
        m.current_occupancy = data["current_occupancy"]
    if data.get("reserved_capacity") is not None:
        m.reserved_capacity = data["reserved_capacity"]
    if data.get("climate_controlled") is not None:
        m.climate_controlled = bool(data["climate_controlled"])
    if data.get("status") is not None:
        m.status = data["status"]
    if "notes" in data:
        m.notes = data["notes"]
    m.updated_at = utcnow()

    await db.commit()
    await db.refresh(m)
    return AreaRead(**m.to_schema)


@router.delete("/{area_id}", response_model=Dict)
async def remove_area(
    area_id: UUID,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    m = await get_area_or_404(db, area_id, company_id)

    stocked = (
        await db.execute(
            select(func.count(InventoryLotModel.id)).where(
                InventoryLotModel.area_id == area_id,
                InventoryLotModel.quantity_available > 0,
            )
        )
    ).scalar_one()
    if stocked:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Cannot remove an area that still holds inventory",
        )

    m.status = "inactive"
    m.updated_at = utcnow()
    await db.commit()
    return {"id": m.id, "status": m.status}
