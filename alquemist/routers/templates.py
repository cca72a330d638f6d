import logging
import uuid
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from alquemist.core.auth import current_active_user, current_company_id
from alquemist.core.phases import chain, renumber, total_duration_days
from alquemist.db.database import (
    get_async_session,
    utcnow,
    ProductionTemplate as TemplateModel,
    TemplatePhase as PhaseModel,
)
from alquemist.db.users import User
from alquemist.schemas.templates import (
    PhaseCreate,
    PhaseReorder,
    PhaseUpdate,
    TemplateCreate,
    TemplateDuplicate,
    TemplateUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def _load_template(
    db: AsyncSession,
    template_id: UUID,
    company_id: UUID,
    allow_public: bool = False,
) -> TemplateModel:
    res = await db.execute(
        select(TemplateModel)
        .options(selectinload(TemplateModel.phases))
        .where(TemplateModel.id == template_id)
        .execution_options(populate_existing=True)
    )
    template = res.scalar_one_or_none()
    if not template or (template.company_id != company_id and not (allow_public and template.is_public)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
    return template


async def _load_phase(db: AsyncSession, phase_id: UUID, company_id: UUID) -> PhaseModel:
    res = await db.execute(
        select(PhaseModel)
        .join(TemplateModel, PhaseModel.template_id == TemplateModel.id)
        .where(PhaseModel.id == phase_id, TemplateModel.company_id == company_id)
    )
    phase = res.scalar_one_or_none()
    if not phase:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Phase not found")
    return phase


async def _template_phases(db: AsyncSession, template_id: UUID) -> List[PhaseModel]:
    res = await db.execute(
        select(PhaseModel).where(PhaseModel.template_id == template_id).order_by(PhaseModel.phase_order.asc())
    )
    return list(res.scalars().all())


async def _update_duration(db: AsyncSession, template_id: UUID) -> None:
    phases = await _template_phases(db, template_id)
    template = await db.get(TemplateModel, template_id)
    template.estimated_duration_days = total_duration_days(phases)
    template.updated_at = utcnow()


async def _check_previous_phase(db: AsyncSession, previous_phase_id: UUID, template_id: UUID) -> None:
    previous = await db.get(PhaseModel, previous_phase_id)
    if not previous:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Previous phase not found")
    if previous.template_id != template_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Previous phase belongs to a different template",
        )


@router.get("/", response_model=List[Dict])
async def list_templates(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    include_public: bool = False,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    """Own templates, plus other companies' public ones when ``include_public``."""
    owner = TemplateModel.company_id == company_id
    stmt = select(TemplateModel).options(selectinload(TemplateModel.phases))
    stmt = stmt.where(or_(owner, TemplateModel.is_public.is_(True)) if include_public else owner)
    if status_filter:
        stmt = stmt.where(TemplateModel.status == status_filter)

    res = await db.execute(stmt.order_by(func.lower(TemplateModel.name).asc()))
    return [t.to_schema for t in res.scalars().all()]


@router.get("/{template_id}", response_model=Dict)
async def get_template(
    template_id: UUID,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    template = await _load_template(db, template_id, company_id, allow_public=True)
    return template.to_schema


@router.post("/", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_template(
    payload: TemplateCreate,
    user: User = Depends(current_active_user),
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    template = TemplateModel(
        id=uuid.uuid4(),
        company_id=company_id,
        created_by=user.id,
        estimated_duration_days=0,
        usage_count=0,
        status="active",
        **payload.model_dump(),
    )
    db.add(template)
    await db.commit()

    template = await _load_template(db, template.id, company_id)
    return template.to_schema


@router.patch("/{template_id}", response_model=Dict)
async def update_template(
    template_id: UUID,
    payload: TemplateUpdate,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    template = await _load_template(db, template_id, company_id)

    data = payload.model_dump(exclude_unset=True)
    for field in ("name", "default_batch_size", "enable_individual_tracking", "is_public"):
        if data.get(field) is not None:
            setattr(template, field, data[field])
    for field in (
        "template_category",
        "production_method",
        "source_type",
        "description",
        "estimated_yield",
        "yield_unit",
        "difficulty_level",
        "estimated_cost",
    ):
        if field in data:
            setattr(template, field, data[field])
    template.updated_at = utcnow()

    await db.commit()
    template = await _load_template(db, template_id, company_id)
    return template.to_schema


@router.post("/{template_id}/duplicate", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def duplicate_template(
    template_id: UUID,
    payload: TemplateDuplicate,
    user: User = Depends(current_active_user),
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    """Copy a template and its phases. Usage statistics start over."""
    source = await _load_template(db, template_id, company_id, allow_public=True)

    now = utcnow()
    copy = TemplateModel(
        id=uuid.uuid4(),
        company_id=company_id,
        name=payload.name or f"{source.name} - Copy",
        template_category=source.template_category,
        production_method=source.production_method,
        source_type=source.source_type,
        default_batch_size=source.default_batch_size,
        enable_individual_tracking=source.enable_individual_tracking,
        description=source.description,
        estimated_duration_days=total_duration_days(source.phases),
        estimated_yield=source.estimated_yield,
        yield_unit=source.yield_unit,
        difficulty_level=source.difficulty_level,
        estimated_cost=source.estimated_cost,
        usage_count=0,
        is_public=False,
        created_by=user.id,
        status="active",
        created_at=now,
        updated_at=now,
    )
    db.add(copy)

    new_ids = {p.id: uuid.uuid4() for p in source.phases}
    copy.phases = [
        PhaseModel(
            id=new_ids[p.id],
            phase_name=p.phase_name,
            phase_order=p.phase_order,
            estimated_duration_days=p.estimated_duration_days,
            area_type=p.area_type,
            previous_phase_id=new_ids.get(p.previous_phase_id),
            required_conditions=dict(p.required_conditions or {}),
            completion_criteria=dict(p.completion_criteria or {}),
            required_equipment=list(p.required_equipment or []),
            required_materials=list(p.required_materials or []),
            description=p.description,
            created_at=now,
        )
        for p in source.phases
    ]

    await db.commit()
    logger.info("Template %s duplicated as %s", source.id, copy.id)
    copy = await _load_template(db, copy.id, company_id)
    return copy.to_schema


@router.post("/{template_id}/archive", response_model=Dict)
async def archive_template(
    template_id: UUID,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    template = await _load_template(db, template_id, company_id)
    template.status = "archived"
    template.updated_at = utcnow()
    await db.commit()
    return {"success": True, "message": "Template archived successfully"}


@router.post("/{template_id}/restore", response_model=Dict)
async def restore_template(
    template_id: UUID,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    template = await _load_template(db, template_id, company_id)
    template.status = "active"
    template.updated_at = utcnow()
    await db.commit()
    return {"success": True, "message": "Template restored successfully"}


@router.post("/{template_id}/phases", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def add_phase(
    template_id: UUID,
    payload: PhaseCreate,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    """Append a phase; the template's duration becomes the sum of its phases."""
    template = await _load_template(db, template_id, company_id)
    if payload.previous_phase_id is not None:
        await _check_previous_phase(db, payload.previous_phase_id, template_id)

    max_order = (
        await db.execute(
            select(func.coalesce(func.max(PhaseModel.phase_order), 0)).where(PhaseModel.template_id == template_id)
        )
    ).scalar_one()
    template.phases.append(PhaseModel(phase_order=max_order + 1, **payload.model_dump()))
    await db.flush()
    await _update_duration(db, template_id)

    await db.commit()
    template = await _load_template(db, template_id, company_id)
    return template.to_schema


@router.patch("/phases/{phase_id}", response_model=Dict)
async def update_phase(
    phase_id: UUID,
    payload: PhaseUpdate,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    phase = await _load_phase(db, phase_id, company_id)

    data = payload.model_dump(exclude_unset=True)
    if data.get("previous_phase_id") is not None:
        if data["previous_phase_id"] == phase.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A phase cannot precede itself")
        await _check_previous_phase(db, data["previous_phase_id"], phase.template_id)
    for field in (
        "phase_name",
        "estimated_duration_days",
        "area_type",
        "previous_phase_id",
        "required_conditions",
        "completion_criteria",
        "required_equipment",
        "required_materials",
    ):
        if data.get(field) is not None:
            setattr(phase, field, data[field])
    if "description" in data:
        phase.description = data["description"]

    if data.get("estimated_duration_days") is not None:
        await db.flush()
        await _update_duration(db, phase.template_id)

    await db.commit()
    template = await _load_template(db, phase.template_id, company_id)
    return template.to_schema


@router.delete("/phases/{phase_id}", response_model=Dict)
async def remove_phase(
    phase_id: UUID,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    """Remove a phase, close the gap in the order and recompute the duration."""
    phase = await _load_phase(db, phase_id, company_id)
    template_id = phase.template_id

    for p in await _template_phases(db, template_id):
        if p.previous_phase_id == phase.id:
            p.previous_phase_id = phase.previous_phase_id
    await db.delete(phase)
    await db.flush()

    renumber(await _template_phases(db, template_id))
    await _update_duration(db, template_id)

    await db.commit()
    template = await _load_template(db, template_id, company_id)
    return template.to_schema


@router.post("/{template_id}/phases/reorder", response_model=Dict)
async def reorder_phases(
    template_id: UUID,
    payload: PhaseReorder,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    await _load_template(db, template_id, company_id)
    phases = {p.id: p for p in await _template_phases(db, template_id)}

    if len(set(payload.phase_ids)) != len(payload.phase_ids):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Duplicate phase ids")
    for pid in payload.phase_ids:
        if pid not in phases:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Phase {pid} does not belong to this template",
            )
    if len(payload.phase_ids) != len(phases):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Every phase must be listed")

    chain([phases[pid] for pid in payload.phase_ids])

    await db.commit()
    template = await _load_template(db, template_id, company_id)
    return template.to_schema
