"""Tenant-scoped loaders shared by the routers.

Everything a company owns hangs off ``Facility.company_id``; areas and lots
are reached through their facility. Each loader raises 404 for rows that do
not exist *or* belong to another company, so foreign ids look missing.
"""

from typing import List
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from alquemist.db.database import (
    Area as AreaModel,
    Facility as FacilityModel,
    InventoryLot as InventoryLotModel,
    Product as ProductModel,
    Supplier as SupplierModel,
)


async def get_facility_or_404(db: AsyncSession, facility_id: UUID, company_id: UUID) -> FacilityModel:
    res = await db.execute(select(FacilityModel).where(FacilityModel.id == facility_id))
    facility = res.scalar_one_or_none()
    if not facility or facility.company_id != company_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Facility not found or access denied")
    return facility


async def get_area_or_404(db: AsyncSession, area_id: UUID, company_id: UUID) -> AreaModel:
    res = await db.execute(
        select(AreaModel)
        .join(FacilityModel, AreaModel.facility_id == FacilityModel.id)
        .where(AreaModel.id == area_id, FacilityModel.company_id == company_id)
    )
    area = res.scalar_one_or_none()
    if not area:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Area not found")
    return area


async def get_product_or_404(db: AsyncSession, product_id: UUID, company_id: UUID) -> ProductModel:
    res = await db.execute(select(ProductModel).where(ProductModel.id == product_id))
    product = res.scalar_one_or_none()
    if not product or product.company_id != company_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Product {product_id} not found")
    return product


async def get_supplier_or_404(db: AsyncSession, supplier_id: UUID, company_id: UUID) -> SupplierModel:
    res = await db.execute(select(SupplierModel).where(SupplierModel.id == supplier_id))
    supplier = res.scalar_one_or_none()
    if not supplier or supplier.company_id != company_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Supplier not found or access denied")
    return supplier


async def get_lot_or_404(db: AsyncSession, lot_id: UUID, company_id: UUID) -> InventoryLotModel:
    res = await db.execute(
        select(InventoryLotModel)
        .join(AreaModel, InventoryLotModel.area_id == AreaModel.id)
        .join(FacilityModel, AreaModel.facility_id == FacilityModel.id)
        .where(InventoryLotModel.id == lot_id, FacilityModel.company_id == company_id)
    )
    lot = res.scalar_one_or_none()
    if not lot:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Inventory item not found")
    return lot


async def facility_area_ids(db: AsyncSession, facility_id: UUID) -> List[UUID]:
    res = await db.execute(select(AreaModel.id).where(AreaModel.facility_id == facility_id))
    return list(res.scalars().all())
