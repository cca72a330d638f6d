import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from alquemist.core.auth import current_company_id
from alquemist.core.scoping import get_supplier_or_404
from alquemist.db.database import get_async_session, utcnow, Supplier as SupplierModel
from alquemist.schemas.suppliers import SupplierCreate, SupplierRead, SupplierUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


async def _name_taken(db: AsyncSession, company_id: UUID, name: str, exclude_id: Optional[UUID] = None) -> bool:
    stmt = select(SupplierModel.id).where(
        SupplierModel.company_id == company_id,
        func.lower(SupplierModel.name) == name.lower(),
    )
    if exclude_id is not None:
        stmt = stmt.where(SupplierModel.id != exclude_id)
    return (await db.execute(stmt)).first() is not None


@router.get("/", response_model=List[SupplierRead])
async def list_suppliers(
    is_active: Optional[bool] = None,
    is_approved: Optional[bool] = None,
    product_category: Optional[str] = None,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    stmt = select(SupplierModel).where(SupplierModel.company_id == company_id)
    if is_active is not None:
        stmt = stmt.where(SupplierModel.is_active == is_active)
    if is_approved is not None:
        stmt = stmt.where(SupplierModel.is_approved == is_approved)

    res = await db.execute(stmt.order_by(func.lower(SupplierModel.name).asc()))
    items = res.scalars().all()
    # product_categories is a JSON list; filtered here so it works on every backend.
    if product_category:
        items = [s for s in items if product_category in (s.product_categories or [])]
    return [SupplierRead(**s.to_schema) for s in items]


@router.get("/{supplier_id}", response_model=SupplierRead)
async def get_supplier(
    supplier_id: UUID,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    supplier = await get_supplier_or_404(db, supplier_id, company_id)
    return SupplierRead(**supplier.to_schema)


@router.post("/", response_model=SupplierRead, status_code=status.HTTP_201_CREATED)
async def create_supplier(
    payload: SupplierCreate,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    if await _name_taken(db, company_id, payload.name):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Supplier already exists")

    # New suppliers wait for manual approval.
    m = SupplierModel(company_id=company_id, is_approved=False, is_active=True, **payload.model_dump())
    db.add(m)
    await db.commit()
    await db.refresh(m)
    logger.info("Supplier %s created for company %s", m.id, company_id)
    return SupplierRead(**m.to_schema)


@router.patch("/{supplier_id}", response_model=SupplierRead)
async def update_supplier(
    supplier_id: UUID,
    payload: SupplierUpdate,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    m = await get_supplier_or_404(db, supplier_id, company_id)

    data = payload.model_dump(exclude_unset=True)
    if data.get("name") is not None and data["name"].lower() != m.name.lower():
        if await _name_taken(db, company_id, data["name"], exclude_id=m.id):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Supplier already exists")
    for field in ("name", "product_categories", "crop_specialization", "is_approved", "is_active"):
        if data.get(field) is not None:
            setattr(m, field, data[field])
    for field in (
        "legal_name",
        "tax_id",
        "business_type",
        "primary_contact_name",
        "primary_contact_email",
        "primary_contact_phone",
        "address",
        "city",
        "rating",
        "delivery_reliability",
        "quality_score",
        "payment_terms",
        "notes",
    ):
        if field in data:
            setattr(m, field, data[field])
    m.updated_at = utcnow()

    await db.commit()
    await db.refresh(m)
    return SupplierRead(**m.to_schema)


@router.delete("/{supplier_id}", response_model=SupplierRead)
async def deactivate_supplier(
    supplier_id: UUID,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    """Suppliers are never deleted; lots keep pointing at them."""
    m = await get_supplier_or_404(db, supplier_id, company_id)
    m.is_active = False
    m.updated_at = utcnow()
    await db.commit()
    await db.refresh(m)
    return SupplierRead(**m.to_schema)
