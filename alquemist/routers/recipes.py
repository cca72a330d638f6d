import logging
import traceback
import uuid
from collections import OrderedDict
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from alquemist.core.auth import current_active_user, current_company_id
from alquemist.core.config import settings
from alquemist.core.ledger import apply_movement, consume
from alquemist.core.lots import plan_fifo, quantize_qty, to_decimal
from alquemist.core.scoping import facility_area_ids, get_area_or_404, get_facility_or_404
from alquemist.db.database import (
    get_async_session,
    utcnow,
    Activity as ActivityModel,
    InventoryLot as InventoryLotModel,
    Product as ProductModel,
    Recipe as RecipeModel,
    RecipeIngredient as RecipeIngredientModel,
)
from alquemist.db.users import User
from alquemist.schemas.recipes import (
    InventorySelection,
    RecipeCreate,
    RecipeExecuteRequest,
    RecipeIngredientIn,
    RecipeUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# (lot, quantity to draw, product name)
ConsumptionPlan = List[Tuple[InventoryLotModel, Decimal, str]]


def _fmt(x) -> str:
    """Render a quantity without trailing zeros: Decimal('10.000') -> '10'."""
    return format(to_decimal(x).normalize(), "f")


def _steps(steps: List[str]) -> List[dict]:
    return [{"step_number": i + 1, "description": s} for i, s in enumerate(steps)]


def _cost_per_unit(estimated_cost, output_quantity) -> Optional[Decimal]:
    if estimated_cost and output_quantity:
        return to_decimal(estimated_cost) / to_decimal(output_quantity)
    return None


async def _load_recipe(db: AsyncSession, recipe_id: UUID, company_id: UUID) -> RecipeModel:
    res = await db.execute(
        select(RecipeModel)
        .options(selectinload(RecipeModel.ingredients))
        .where(RecipeModel.id == recipe_id, RecipeModel.company_id == company_id)
        .execution_options(populate_existing=True)
    )
    recipe = res.scalar_one_or_none()
    if not recipe:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recipe not found")
    return recipe


async def _products_by_id(db: AsyncSession, product_ids, company_id: UUID) -> Dict[UUID, ProductModel]:
    ids = list(set(product_ids))
    if not ids:
        return {}
    res = await db.execute(
        select(ProductModel).where(ProductModel.id.in_(ids), ProductModel.company_id == company_id)
    )
    return {p.id: p for p in res.scalars().all()}


async def _validate_products(db: AsyncSession, product_ids, company_id: UUID) -> None:
    found = await _products_by_id(db, product_ids, company_id)
    for pid in product_ids:
        if pid not in found:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Product {pid} not found")


def _ingredient_models(ingredients: List[RecipeIngredientIn]) -> List[RecipeIngredientModel]:
    return [
        RecipeIngredientModel(product_id=i.product_id, quantity=i.quantity, unit=i.unit, sort_order=n)
        for n, i in enumerate(ingredients)
    ]


async def _recipe_out(db: AsyncSession, recipe: RecipeModel) -> dict:
    out = recipe.to_schema
    products = await _products_by_id(db, [ri.product_id for ri in recipe.ingredients], recipe.company_id)
    for ing in out["ingredients"]:
        product = products.get(ing["product_id"])
        ing["product_name"] = product.name if product else "Unknown Product"
        ing["product_sku"] = product.sku if product else None
    return out


async def _plan_selected(
    db: AsyncSession,
    product_id: UUID,
    product_name: str,
    required: Decimal,
    selections: List[InventorySelection],
    area_ids: List[UUID],
) -> ConsumptionPlan:
    lots: Dict[UUID, InventoryLotModel] = {}
    drawn: Dict[UUID, Decimal] = OrderedDict()
    selected = Decimal("0")

    for sel in selections:
        lot = lots.get(sel.inventory_item_id)
        if lot is None:
            res = await db.execute(
                select(InventoryLotModel)
                .where(InventoryLotModel.id == sel.inventory_item_id)
                .with_for_update()
            )
            lot = res.scalar_one_or_none()
            if not lot:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail=f"Inventory item {sel.inventory_item_id} not found",
                )
            lots[lot.id] = lot

        if lot.product_id != product_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Inventory item {lot.id} is not for product {product_name}",
            )
        if lot.area_id not in area_ids:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Inventory item {lot.id} is not stored in this facility",
            )

        qty = quantize_qty(sel.quantity)
        already = drawn.get(lot.id, Decimal("0"))
        if to_decimal(lot.quantity_available) < already + qty:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=(
                    f"Insufficient stock in selected inventory for {product_name}. "
                    f"Available: {_fmt(lot.quantity_available)}, Requested: {_fmt(already + qty)}"
                ),
            )
        drawn[lot.id] = already + qty
        selected += qty

    if selected < required:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=(
                f"Selected inventory for {product_name} is insufficient. "
                f"Required: {_fmt(required)}, Selected: {_fmt(selected)}"
            ),
        )
    if selected > required:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Selected inventory for {product_name} exceeds the requirement. "
                f"Required: {_fmt(required)}, Selected: {_fmt(selected)}"
            ),
        )
    return [(lots[lot_id], qty, product_name) for lot_id, qty in drawn.items()]


async def _plan_fifo(
    db: AsyncSession,
    product_id: UUID,
    product_name: str,
    required: Decimal,
    area_ids: List[UUID],
) -> ConsumptionPlan:
    lots: List[InventoryLotModel] = []
    if area_ids:
        res = await db.execute(
            select(InventoryLotModel)
            .where(
                InventoryLotModel.product_id == product_id,
                InventoryLotModel.area_id.in_(area_ids),
                InventoryLotModel.lot_status == "available",
                InventoryLotModel.quantity_available > 0,
            )
            .order_by(InventoryLotModel.created_at.asc())
            .with_for_update()
        )
        lots = list(res.scalars().all())

    allocations, remaining = plan_fifo(lots, required)
    if remaining > 0:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=(
                f"Insufficient stock for {product_name}. Required: {_fmt(required)}, "
                f"Available: {_fmt(required - remaining)}, Shortfall: {_fmt(remaining)}"
            ),
        )
    return [(lot, qty, product_name) for lot, qty in allocations]


@router.get("/", response_model=Dict)
async def list_recipes(
    recipe_type: Optional[str] = None,
    status_filter: Optional[str] = Query(default=None, alias="status"),
    limit: int = Query(default=settings.default_page_limit, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    filters = [RecipeModel.company_id == company_id]
    if recipe_type:
        filters.append(RecipeModel.recipe_type == recipe_type)
    if status_filter:
        filters.append(RecipeModel.status == status_filter)

    total = (await db.execute(select(func.count(RecipeModel.id)).where(*filters))).scalar_one()
    stmt = select(RecipeModel).options(selectinload(RecipeModel.ingredients)).where(*filters)
    res = await db.execute(stmt.order_by(RecipeModel.created_at.asc()).limit(limit).offset(offset))
    return {
        "recipes": [r.to_schema for r in res.scalars().all()],
        "total": total,
    }


@router.get("/{recipe_id}", response_model=Dict)
async def get_recipe(
    recipe_id: UUID,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    """Recipe with ingredient product names and SKUs."""
    recipe = await _load_recipe(db, recipe_id, company_id)
    return await _recipe_out(db, recipe)


@router.post("/", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_recipe(
    payload: RecipeCreate,
    user: User = Depends(current_active_user),
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    product_ids = [i.product_id for i in payload.ingredients]
    if payload.output_product_id is not None:
        product_ids.append(payload.output_product_id)
    await _validate_products(db, product_ids, company_id)

    recipe = RecipeModel(
        id=uuid.uuid4(),
        company_id=company_id,
        name=payload.name,
        description=payload.description,
        recipe_type=payload.recipe_type,
        output_quantity=payload.output_quantity,
        output_unit=payload.output_unit,
        output_product_id=payload.output_product_id,
        preparation_steps=_steps(payload.preparation_steps),
        application_method=payload.application_method,
        target_ph=payload.target_ph,
        target_ec=payload.target_ec,
        estimated_cost=payload.estimated_cost,
        cost_per_unit=_cost_per_unit(payload.estimated_cost, payload.output_quantity),
        times_used=0,
        created_by=user.id,
        status="active",
        ingredients=_ingredient_models(payload.ingredients),
    )
    db.add(recipe)
    await db.commit()

    recipe = await _load_recipe(db, recipe.id, company_id)
    return await _recipe_out(db, recipe)


@router.patch("/{recipe_id}", response_model=Dict)
async def update_recipe(
    recipe_id: UUID,
    payload: RecipeUpdate,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    recipe = await _load_recipe(db, recipe_id, company_id)
    data = payload.model_dump(exclude_unset=True)

    if payload.ingredients is not None:
        await _validate_products(db, [i.product_id for i in payload.ingredients], company_id)
        recipe.ingredients = _ingredient_models(payload.ingredients)
    if data.get("output_product_id") is not None:
        await _validate_products(db, [data["output_product_id"]], company_id)

    if data.get("name") is not None:
        recipe.name = data["name"]
    if data.get("recipe_type") is not None:
        recipe.recipe_type = data["recipe_type"]
    if data.get("status") is not None:
        recipe.status = data["status"]
    if data.get("preparation_steps") is not None:
        recipe.preparation_steps = _steps(data["preparation_steps"])
    for field in (
        "description",
        "output_quantity",
        "output_unit",
        "output_product_id",
        "application_method",
        "target_ph",
        "target_ec",
        "estimated_cost",
    ):
        if field in data:
            setattr(recipe, field, data[field])
    recipe.cost_per_unit = _cost_per_unit(recipe.estimated_cost, recipe.output_quantity)
    recipe.updated_at = utcnow()

    await db.commit()
    recipe = await _load_recipe(db, recipe_id, company_id)
    return await _recipe_out(db, recipe)


@router.post("/{recipe_id}/archive", response_model=Dict)
async def archive_recipe(
    recipe_id: UUID,
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    recipe = await _load_recipe(db, recipe_id, company_id)
    recipe.status = "archived"
    recipe.updated_at = utcnow()
    await db.commit()
    return {"success": True, "message": "Recipe archived successfully"}


@router.post("/{recipe_id}/execute", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def execute_recipe(
    recipe_id: UUID,
    payload: RecipeExecuteRequest,
    user: User = Depends(current_active_user),
    company_id: UUID = Depends(current_company_id),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Execute a recipe and consume the inventory it needs.

    - Required quantity per ingredient is `quantity * multiplier`.
    - Ingredients listed in `inventory_selections` draw from exactly those
      lots; the selections must add up to the requirement.
    - Other ingredients draw FIFO (oldest `received_date` first, undated
      lots first) from available lots in the facility's areas.
    - Every ingredient is planned before anything is written: either all
      deductions are applied or none are.
    """
    try:
        recipe = await _load_recipe(db, recipe_id, company_id)
        if recipe.status != "active":
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Cannot execute an inactive recipe")

        facility = await get_facility_or_404(db, payload.facility_id, company_id)
        area_ids = await facility_area_ids(db, facility.id)
        multiplier = to_decimal(payload.multiplier)

        # A product listed twice is planned once, for the combined quantity.
        required_by_product: Dict[UUID, Decimal] = OrderedDict()
        for ri in recipe.ingredients:
            required_by_product[ri.product_id] = (
                required_by_product.get(ri.product_id, Decimal("0")) + to_decimal(ri.quantity) * multiplier
            )
        products = await _products_by_id(db, required_by_product.keys(), company_id)

        # Requirements are planned at the stored scale.
        for product_id, required in required_by_product.items():
            required = quantize_qty(required)
            if required <= 0:
                product = products.get(product_id)
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Required quantity for {product.name if product else product_id} rounds to zero",
                )
            required_by_product[product_id] = required

        selections = payload.inventory_selections or []
        for sel in selections:
            if sel.product_id not in required_by_product:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Product {sel.product_id} is not an ingredient of this recipe",
                )

        plan: ConsumptionPlan = []
        for product_id, required in required_by_product.items():
            product = products.get(product_id)
            product_name = product.name if product else "Unknown"
            chosen = [s for s in selections if s.product_id == product_id]
            if chosen:
                plan.extend(await _plan_selected(db, product_id, product_name, required, chosen, area_ids))
            else:
                plan.extend(await _plan_fifo(db, product_id, product_name, required, area_ids))

        output_area_id: Optional[UUID] = None
        if payload.create_output:
            if not recipe.output_product_id or not recipe.output_quantity:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Recipe has no output product configured",
                )
            if payload.output_area_id is None:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="output_area_id is required")
            output_area = await get_area_or_404(db, payload.output_area_id, company_id)
            if output_area.facility_id != facility.id:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Output area does not belong to this facility",
                )
            output_area_id = output_area.id

        # Everything validated; apply.
        now = utcnow()
        activity_id = uuid.uuid4()
        reason = f"Recipe executed: {recipe.name}"
        consumed: List[dict] = []
        for lot, qty, product_name in plan:
            consume(
                db=db,
                lot=lot,
                quantity=qty,
                performed_by=user.id,
                reason=reason,
                reference_type="recipe_execution",
                reference_id=str(activity_id),
            )
            consumed.append(
                {
                    "product_id": str(lot.product_id),
                    "inventory_item_id": str(lot.id),
                    "quantity_consumed": float(qty),
                    "product_name": product_name,
                }
            )

        output_lot_id: Optional[UUID] = None
        if output_area_id is not None:
            output_lot = InventoryLotModel(
                id=uuid.uuid4(),
                product_id=recipe.output_product_id,
                area_id=output_area_id,
                quantity_available=0,
                quantity_reserved=0,
                quantity_committed=0,
                quantity_unit=recipe.output_unit or "units",
                received_date=now,
                source_type="production",
                source_recipe_id=recipe.id,
                lot_status="available",
            )
            db.add(output_lot)
            apply_movement(
                db=db,
                lot=output_lot,
                transaction_type="addition",
                quantity=quantize_qty(to_decimal(recipe.output_quantity) * multiplier),
                performed_by=user.id,
                reason=reason,
                reference_type="recipe_execution",
                reference_id=str(activity_id),
            )
            output_lot_id = output_lot.id

        recipe.times_used = (recipe.times_used or 0) + 1
        recipe.last_used_date = now
        recipe.updated_at = now

        db.add(
            ActivityModel(
                id=activity_id,
                company_id=company_id,
                entity_type="recipe",
                entity_id=str(recipe.id),
                activity_type="recipe_execution",
                performed_by=user.id,
                timestamp=now,
                materials_consumed=consumed,
                equipment_used=[],
                activity_metadata={
                    "facility_id": str(facility.id),
                    "multiplier": float(multiplier),
                    "output_inventory_item_id": str(output_lot_id) if output_lot_id else None,
                },
                notes=payload.notes,
                created_at=now,
            )
        )

        await db.commit()
        logger.info(
            "Recipe %s executed by user %s in facility %s: %d lot(s) consumed",
            recipe.id, user.id, facility.id, len(consumed),
        )
        return {
            "success": True,
            "message": f'Recipe "{recipe.name}" executed successfully',
            "consumed": consumed,
            "output_inventory_id": output_lot_id,
            "activity_id": activity_id,
            "statistics": {
                "ingredients_consumed": len(consumed),
                "total_times_used": recipe.times_used,
            },
        }

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error("execute_recipe failed: %r\n%s", e, traceback.format_exc())
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to execute recipe: {e}",
        )
