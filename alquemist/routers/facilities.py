import logging
from typing import Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from alquemist.core.auth import current_company_id
from alquemist.core.config import settings
from alquemist.core.scoping import get_facility_or_404
from alquemist.db.database import (
    get_async_session,
    utcnow,
    Company as CompanyModel,
    Facility as FacilityModel,
)
from alquemist.schemas.facilities import FacilityCreate, FacilityRead, FacilityUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=Dict)
async def list_facilities(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    limit: int = Query(default=settings.default_page_limit, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    stmt = select(FacilityModel).where(FacilityModel.company_id == company_id)
    if status_filter:
        stmt = stmt.where(FacilityModel.status == status_filter)

    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()
    res = await db.execute(stmt.order_by(func.lower(FacilityModel.name).asc()).limit(limit).offset(offset))
    return {
        "facilities": [FacilityRead(**f.to_schema) for f in res.scalars().all()],
        "total": total,
    }


@router.get("/{facility_id}", response_model=FacilityRead)
async def get_facility(
    facility_id: UUID,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    facility = await get_facility_or_404(db, facility_id, company_id)
    return FacilityRead(**facility.to_schema)


@router.post("/", response_model=FacilityRead, status_code=status.HTTP_201_CREATED)
async def create_facility(
    payload: FacilityCreate,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    company = (await db.execute(select(CompanyModel).where(CompanyModel.id == company_id))).scalar_one_or_none()
    if not company:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")

    count = (
        await db.execute(
            select(func.count(FacilityModel.id)).where(
                FacilityModel.company_id == company_id,
                FacilityModel.status != "inactive",
            )
        )
    ).scalar_one()
    if count >= company.max_facilities:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Facility limit reached for plan '{company.subscription_plan}' ({company.max_facilities})",
        )

    existing = await db.execute(
        select(FacilityModel).where(FacilityModel.license_number == payload.license_number)
    )
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="License number already registered")

    m = FacilityModel(company_id=company_id, **payload.model_dump())
    db.add(m)
    await db.commit()
    await db.refresh(m)
    logger.info("Facility %s created for company %s", m.id, company_id)
    return FacilityRead(**m.to_schema)


@router.patch("/{facility_id}", response_model=FacilityRead)
async def update_facility(
    facility_id: UUID,
    payload: FacilityUpdate,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    m = await get_facility_or_404(db, facility_id, company_id)

    data = payload.model_dump(exclude_unset=True)
    if data.get("name") is not None:
        m.name = data["name"]
    if data.get("status") is not None:
        m.status = data["status"]
    for field in ("license_type", "facility_type", "address", "city", "total_area_m2"):
        if field in data:
            setattr(m, field, data[field])
    m.updated_at = utcnow()

    await db.commit()
    await db.refresh(m)
    return FacilityRead(**m.to_schema)


@router.delete("/{facility_id}", response_model=Dict)
async def remove_facility(
    facility_id: UUID,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    m = await get_facility_or_404(db, facility_id, company_id)
    m.status = "inactive"
    m.updated_at = utcnow()
    await db.commit()
    return {"id": m.id, "status": m.status}
