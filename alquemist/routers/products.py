from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from alquemist.core.auth import current_company_id
from alquemist.core.lots import next_sku
from alquemist.core.scoping import get_product_or_404
from alquemist.db.database import (
    get_async_session,
    utcnow,
    InventoryLot as InventoryLotModel,
    Product as ProductModel,
    RecipeIngredient as RecipeIngredientModel,
)
from alquemist.schemas.products import ProductCreate, ProductRead, ProductUpdate

router = APIRouter()


async def _sku_taken(db: AsyncSession, company_id: UUID, sku: str, exclude_id: Optional[UUID] = None) -> bool:
    stmt = select(ProductModel.id).where(ProductModel.company_id == company_id, ProductModel.sku == sku)
    if exclude_id is not None:
        stmt = stmt.where(ProductModel.id != exclude_id)
    return (await db.execute(stmt)).first() is not None


@router.get("/", response_model=List[ProductRead])
async def list_products(
    category: Optional[str] = None,
    status_filter: Optional[str] = Query(default=None, alias="status"),
    q: Optional[str] = None,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    stmt = select(ProductModel).where(ProductModel.company_id == company_id)
    if category:
        stmt = stmt.where(ProductModel.category == category)
    if status_filter:
        stmt = stmt.where(ProductModel.status == status_filter)
    if q:
        qq = f"%{q.strip().lower()}%"
        stmt = stmt.where(or_(func.lower(ProductModel.name).like(qq), func.lower(ProductModel.sku).like(qq)))

    res = await db.execute(stmt.order_by(func.lower(ProductModel.name).asc()))
    return [ProductRead(**p.to_schema) for p in res.scalars().all()]


@router.get("/generate-sku", response_model=Dict)
async def generate_sku(
    category: str,
    prefix: Optional[str] = None,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    count = (
        await db.execute(
            select(func.count(ProductModel.id)).where(
                ProductModel.company_id == company_id,
                ProductModel.category == category,
            )
        )
    ).scalar_one()
    return {"sku": next_sku(category, int(count), prefix)}


@router.get("/{product_id}", response_model=ProductRead)
async def get_product(
    product_id: UUID,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    product = await get_product_or_404(db, product_id, company_id)
    return ProductRead(**product.to_schema)


@router.post("/", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductCreate,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    if await _sku_taken(db, company_id, payload.sku):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f'Product with SKU "{payload.sku}" already exists',
        )

    m = ProductModel(company_id=company_id, status="active", **payload.model_dump())
    db.add(m)
    await db.commit()
    await db.refresh(m)
    return ProductRead(**m.to_schema)


@router.patch("/{product_id}", response_model=ProductRead)
async def update_product(
    product_id: UUID,
    payload: ProductUpdate,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    m = await get_product_or_404(db, product_id, company_id)

    data = payload.model_dump(exclude_unset=True)
    if data.get("sku") is not None and data["sku"] != m.sku:
        if await _sku_taken(db, company_id, data["sku"], exclude_id=m.id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f'Product with SKU "{data["sku"]}" already exists',
            )
        m.sku = data["sku"]
    if data.get("name") is not None:
        m.name = data["name"]
    if "description" in data:
        m.description = data["description"]
    if data.get("category") is not None:
        m.category = data["category"]
    if "default_price" in data:
        m.default_price = data["default_price"]
    if data.get("status") is not None:
        m.status = data["status"]
    m.updated_at = utcnow()

    await db.commit()
    await db.refresh(m)
    return ProductRead(**m.to_schema)


@router.delete("/{product_id}", response_model=Dict)
async def remove_product(
    product_id: UUID,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    """Discontinue a product that has inventory history; delete it otherwise."""
    m = await get_product_or_404(db, product_id, company_id)

    lots = (
        await db.execute(select(InventoryLotModel).where(InventoryLotModel.product_id == product_id))
    ).scalars().all()

    if lots:
        m.status = "discontinued"
        m.updated_at = utcnow()
        await db.commit()
        if any(lot.has_stock for lot in lots):
            message = "Product marked as discontinued (has inventory)"
        else:
            message = "Product marked as discontinued (has history)"
        return {"success": True, "deleted": False, "message": message}

    used_in_recipes = (
        await db.execute(select(RecipeIngredientModel.id).where(RecipeIngredientModel.product_id == product_id))
    ).first()
    if used_in_recipes:
        m.status = "discontinued"
        m.updated_at = utcnow()
        await db.commit()
        return {"success": True, "deleted": False, "message": "Product marked as discontinued (used by recipes)"}

    await db.delete(m)
    await db.commit()
    return {"success": True, "deleted": True, "message": "Product deleted successfully"}
