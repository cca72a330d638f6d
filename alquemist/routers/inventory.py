import logging
import traceback
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from alquemist.core.auth import current_active_user, current_company_id
from alquemist.core.config import settings
from alquemist.core.ledger import ADJUSTMENT_TYPES, apply_movement
from alquemist.core.lots import sort_low_stock, stock_status, to_decimal
from alquemist.core.scoping import (
    get_area_or_404,
    get_facility_or_404,
    get_lot_or_404,
    get_product_or_404,
    get_supplier_or_404,
)
from alquemist.db.database import (
    get_async_session,
    utcnow,
    Area as AreaModel,
    Facility as FacilityModel,
    InventoryLot as InventoryLotModel,
    InventoryTransaction as InventoryTransactionModel,
    Product as ProductModel,
)
from alquemist.db.users import User
from alquemist.schemas.inventory import (
    InventoryLotCreate,
    InventoryLotUpdate,
    StockAdjustmentCreate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _lot_row(lot: InventoryLotModel, product: Optional[ProductModel], area: Optional[AreaModel]) -> dict:
    row = lot.to_schema
    row.update(
        {
            "product_name": product.name if product else None,
            "product_sku": product.sku if product else None,
            "product_category": product.category if product else None,
            "area_name": area.name if area else None,
            "facility_id": area.facility_id if area else None,
            "stock_status": stock_status(lot.quantity_available, lot.reorder_point, lot.maximum_stock_level),
        }
    )
    return row


def _company_lots_stmt(company_id: UUID):
    return (
        select(InventoryLotModel, ProductModel, AreaModel)
        .join(ProductModel, InventoryLotModel.product_id == ProductModel.id)
        .join(AreaModel, InventoryLotModel.area_id == AreaModel.id)
        .join(FacilityModel, AreaModel.facility_id == FacilityModel.id)
        .where(FacilityModel.company_id == company_id)
    )


async def _facility_lot_rows(
    db: AsyncSession,
    facility_id: UUID,
    company_id: UUID,
    category: Optional[str] = None,
    lot_status: Optional[str] = None,
    product_id: Optional[UUID] = None,
) -> List[dict]:
    stmt = _company_lots_stmt(company_id).where(AreaModel.facility_id == facility_id)
    if product_id:
        stmt = stmt.where(InventoryLotModel.product_id == product_id)
    if category:
        stmt = stmt.where(ProductModel.category == category)
    if lot_status:
        stmt = stmt.where(InventoryLotModel.lot_status == lot_status)

    res = await db.execute(stmt.order_by(InventoryLotModel.created_at.asc()))
    return [_lot_row(lot, product, area) for lot, product, area in res.all()]


@router.get("/", response_model=Dict)
async def list_lots(
    area_id: Optional[UUID] = None,
    product_id: Optional[UUID] = None,
    supplier_id: Optional[UUID] = None,
    lot_status: Optional[str] = None,
    limit: int = Query(default=settings.default_page_limit, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    stmt = _company_lots_stmt(company_id)
    if area_id:
        stmt = stmt.where(InventoryLotModel.area_id == area_id)
    if product_id:
        stmt = stmt.where(InventoryLotModel.product_id == product_id)
    if supplier_id:
        stmt = stmt.where(InventoryLotModel.supplier_id == supplier_id)
    if lot_status:
        stmt = stmt.where(InventoryLotModel.lot_status == lot_status)

    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()
    res = await db.execute(stmt.order_by(InventoryLotModel.created_at.asc()).limit(limit).offset(offset))
    return {
        "items": [_lot_row(lot, product, area) for lot, product, area in res.all()],
        "total": total,
    }


@router.get("/facility/{facility_id}", response_model=List[Dict])
async def list_facility_lots(
    facility_id: UUID,
    category: Optional[str] = None,
    status_filter: Optional[str] = Query(default=None, alias="status"),
    product_id: Optional[UUID] = None,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    """Lots stored in any area of the facility, with a computed ``stock_status``."""
    await get_facility_or_404(db, facility_id, company_id)
    return await _facility_lot_rows(db, facility_id, company_id, category, status_filter, product_id)


@router.get("/facility/{facility_id}/low-stock", response_model=List[Dict])
async def list_low_stock(
    facility_id: UUID,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    await get_facility_or_404(db, facility_id, company_id)
    rows = await _facility_lot_rows(db, facility_id, company_id)
    low = [r for r in rows if to_decimal(r["quantity_available"]) <= to_decimal(r["reorder_point"])]
    return sort_low_stock(low)


@router.get("/{lot_id}", response_model=Dict)
async def get_lot(
    lot_id: UUID,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(_company_lots_stmt(company_id).where(InventoryLotModel.id == lot_id))
    row = res.first()
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Inventory item not found")
    lot, product, area = row
    return _lot_row(lot, product, area)


@router.post("/", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_lot(
    payload: InventoryLotCreate,
    user: User = Depends(current_active_user),
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    """Receive a new lot. A non-zero opening quantity is recorded as an ``addition``."""
    product = await get_product_or_404(db, payload.product_id, company_id)
    area = await get_area_or_404(db, payload.area_id, company_id)
    if payload.supplier_id is not None:
        await get_supplier_or_404(db, payload.supplier_id, company_id)

    data = payload.model_dump()
    opening = to_decimal(data.pop("quantity_available"))
    lot = InventoryLotModel(quantity_available=0, quantity_reserved=0, quantity_committed=0, **data)
    db.add(lot)
    await db.flush()

    if opening > 0:
        apply_movement(
            db=db,
            lot=lot,
            transaction_type="addition",
            quantity=opening,
            performed_by=user.id,
            reason="Lot received",
            reference_type="receipt",
        )

    await db.commit()
    await db.refresh(lot)
    return _lot_row(lot, product, area)


@router.patch("/{lot_id}", response_model=Dict)
async def update_lot(
    lot_id: UUID,
    payload: InventoryLotUpdate,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    lot = await get_lot_or_404(db, lot_id, company_id)

    data = payload.model_dump(exclude_unset=True)
    if data.get("supplier_id") is not None:
        await get_supplier_or_404(db, data["supplier_id"], company_id)
    for field in (
        "supplier_id",
        "batch_number",
        "supplier_lot_number",
        "expiration_date",
        "cost_per_unit",
        "reorder_point",
        "maximum_stock_level",
        "notes",
    ):
        if field in data:
            setattr(lot, field, data[field])
    if data.get("lot_status") is not None:
        lot.lot_status = data["lot_status"]
    lot.updated_at = utcnow()

    await db.commit()
    await db.refresh(lot)
    return lot.to_schema


@router.post("/{lot_id}/adjust", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def adjust_stock(
    lot_id: UUID,
    payload: StockAdjustmentCreate,
    user: User = Depends(current_active_user),
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    """Add, consume, waste, transfer out or correct the stock of one lot."""
    if payload.adjustment_type not in ADJUSTMENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid adjustment type: {payload.adjustment_type}",
        )

    try:
        lot = await get_lot_or_404(db, lot_id, company_id)
        if payload.destination_area_id is not None:
            await get_area_or_404(db, payload.destination_area_id, company_id)

        tx = apply_movement(
            db=db,
            lot=lot,
            transaction_type=payload.adjustment_type,
            quantity=payload.quantity,
            performed_by=user.id,
            reason=payload.reason,
            reference_type=payload.reference_type,
            reference_id=payload.reference_id,
            destination_area_id=payload.destination_area_id,
            notes=payload.notes,
        )
        await db.commit()
        logger.info(
            "Stock %s on lot %s by user %s: %s",
            payload.adjustment_type, lot.id, user.id, float(tx.quantity_change),
        )
        return {
            "success": True,
            "new_stock": float(lot.quantity_available),
            "transaction": tx.to_schema,
            "message": "Stock adjusted successfully",
        }
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error("adjust_stock failed: %r\n%s", e, traceback.format_exc())
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to adjust stock: {e}",
        )


@router.delete("/{lot_id}", response_model=Dict)
async def remove_lot(
    lot_id: UUID,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    """Discontinue a lot that still holds stock; delete it otherwise."""
    lot = await get_lot_or_404(db, lot_id, company_id)

    if lot.has_stock:
        lot.lot_status = "discontinued"
        lot.updated_at = utcnow()
        await db.commit()
        return {
            "success": True,
            "deleted": False,
            "message": "Inventory item marked as discontinued (has stock)",
        }

    await db.delete(lot)
    await db.commit()
    return {"success": True, "deleted": True, "message": "Inventory item deleted successfully"}


@router.get("/{lot_id}/transactions", response_model=List[Dict])
async def get_transaction_history(
    lot_id: UUID,
    limit: int = Query(default=settings.default_page_limit, ge=1, le=500),
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    await get_lot_or_404(db, lot_id, company_id)

    res = await db.execute(
        select(InventoryTransactionModel, User)
        .outerjoin(User, InventoryTransactionModel.performed_by == User.id)
        .where(InventoryTransactionModel.inventory_item_id == lot_id)
        .order_by(InventoryTransactionModel.performed_at.desc())
        .limit(limit)
    )
    out = []
    for tx, performer in res.all():
        row = tx.to_schema
        row["performed_by_name"] = performer.display_name if performer else None
        out.append(row)
    return out


@router.get("/product/{product_id}/transactions", response_model=List[Dict])
async def get_product_transaction_history(
    product_id: UUID,
    limit: int = Query(default=100, ge=1, le=500),
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    """Movements across every lot of a product, newest first."""
    await get_product_or_404(db, product_id, company_id)

    res = await db.execute(
        select(InventoryTransactionModel, User, InventoryLotModel, AreaModel)
        .outerjoin(User, InventoryTransactionModel.performed_by == User.id)
        .outerjoin(InventoryLotModel, InventoryTransactionModel.inventory_item_id == InventoryLotModel.id)
        .outerjoin(AreaModel, InventoryLotModel.area_id == AreaModel.id)
        .where(InventoryTransactionModel.product_id == product_id)
        .order_by(InventoryTransactionModel.performed_at.desc())
        .limit(limit)
    )
    out = []
    for tx, performer, lot, area in res.all():
        row = tx.to_schema
        row["performed_by_name"] = performer.display_name if performer else None
        row["area_name"] = area.name if area else None
        row["batch_number"] = lot.batch_number if lot else None
        out.append(row)
    return out
