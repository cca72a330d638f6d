"""Write side of the inventory ledger.

Every change to a lot's ``quantity_available`` goes through
``apply_movement`` so the lot and its ``InventoryTransaction`` row are
written together in the caller's session. Nothing here commits.
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from alquemist.core.lots import quantize_qty, to_decimal
from alquemist.db.database import (
    utcnow,
    InventoryLot as InventoryLotModel,
    InventoryTransaction as InventoryTransactionModel,
)

logger = logging.getLogger(__name__)

DECREASING_TYPES = ("consumption", "waste", "transfer")
ADJUSTMENT_TYPES = ("addition",) + DECREASING_TYPES + ("correction",)


def apply_movement(
    *,
    db: AsyncSession,
    lot: InventoryLotModel,
    transaction_type: str,
    quantity,
    performed_by: Optional[UUID],
    reason: Optional[str] = None,
    reference_type: Optional[str] = None,
    reference_id: Optional[str] = None,
    destination_area_id: Optional[UUID] = None,
    notes: Optional[str] = None,
) -> InventoryTransactionModel:
    """Change ``lot`` by ``quantity`` according to ``transaction_type``.

    - addition: available += quantity
    - consumption/waste/transfer: available -= quantity; never below zero
    - correction: available = quantity (absolute)
    """
    qty = quantize_qty(quantity)
    before = to_decimal(lot.quantity_available)

    if transaction_type == "addition":
        after = before + qty
    elif transaction_type in DECREASING_TYPES:
        if before < qty:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Insufficient stock. Available: {float(before)}, Required: {float(qty)}",
            )
        after = before - qty
    elif transaction_type == "correction":
        after = qty
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid adjustment type: {transaction_type}",
        )

    now = utcnow()
    lot.quantity_available = after
    lot.last_movement_date = now
    lot.updated_at = now

    tx = InventoryTransactionModel(
        inventory_item_id=lot.id,
        product_id=lot.product_id,
        transaction_type=transaction_type,
        quantity_change=after - before,
        quantity_before=before,
        quantity_after=after,
        quantity_unit=lot.quantity_unit,
        reason=reason,
        reference_type=reference_type,
        reference_id=reference_id,
        destination_area_id=destination_area_id,
        performed_by=performed_by,
        performed_at=now,
        notes=notes,
    )
    db.add(tx)
    logger.debug(
        "Lot %s %s: %s -> %s", lot.id, transaction_type, before, after,
    )
    return tx


def consume(
    *,
    db: AsyncSession,
    lot: InventoryLotModel,
    quantity: Decimal,
    performed_by: Optional[UUID],
    reason: Optional[str] = None,
    reference_type: Optional[str] = None,
    reference_id: Optional[str] = None,
) -> InventoryTransactionModel:
    return apply_movement(
        db=db,
        lot=lot,
        transaction_type="consumption",
        quantity=quantity,
        performed_by=performed_by,
        reason=reason,
        reference_type=reference_type,
        reference_id=reference_id,
    )
