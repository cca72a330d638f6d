"""Pure inventory helpers: FIFO lot planning, stock status, occupancy, SKUs."""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

CATEGORY_SKU_PREFIXES = {
    "seed": "SEM",
    "nutrient": "NUT",
    "pesticide": "PES",
    "equipment": "EQP",
    "substrate": "SUS",
    "container": "CON",
    "tool": "HER",
    "clone": "CLO",
    "seedling": "PLT",
    "mother_plant": "MAD",
    "plant_material": "MAT",
    "other": "OTR",
}

# Matches the Numeric(14, 3) quantity columns.
QUANTITY_SCALE = Decimal("0.001")

# Low-stock report ordering: most urgent first.
_URGENCY = {"critical": 0, "out_of_stock": 1, "low": 2}


def to_decimal(x) -> Decimal:
    if x is None:
        return Decimal("0")
    if isinstance(x, Decimal):
        return x
    return Decimal(str(x))


def quantize_qty(x) -> Decimal:
    """Round to the scale quantities are stored with (3 decimal places)."""
    return to_decimal(x).quantize(QUANTITY_SCALE, rounding=ROUND_HALF_UP)


def _received_key(lot):
    # Lots with no received date count as the oldest.
    received = getattr(lot, "received_date", None)
    return (received is not None, received or datetime.min)


def fifo_order(lots: Iterable) -> list:
    """Oldest-received first. Stable, so ties keep the incoming order."""
    return sorted(lots, key=_received_key)


def plan_fifo(lots: Iterable, required: Decimal) -> Tuple[List[Tuple[object, Decimal]], Decimal]:
    """Greedily draw ``required`` from ``lots`` oldest first.

    Returns ``(allocations, remaining)`` where allocations is a list of
    ``(lot, quantity)`` and ``remaining`` is the unmet part (0 when the
    requirement is covered). Lots are not modified.
    """
    remaining = to_decimal(required)
    allocations: List[Tuple[object, Decimal]] = []
    for lot in fifo_order(lots):
        if remaining <= 0:
            break
        available = to_decimal(lot.quantity_available)
        if available <= 0:
            continue
        take = min(available, remaining)
        allocations.append((lot, take))
        remaining -= take
    return allocations, max(remaining, Decimal("0"))


def stock_status(
    quantity_available,
    reorder_point=None,
    maximum_stock_level=None,
) -> str:
    current = to_decimal(quantity_available)
    reorder = to_decimal(reorder_point)

    if current <= 0:
        return "out_of_stock"
    if current <= reorder * Decimal("0.5"):
        return "critical"
    if current <= reorder:
        return "low"
    if maximum_stock_level and current > to_decimal(maximum_stock_level):
        return "overstocked"
    return "adequate"


def sort_low_stock(rows: Sequence[dict]) -> list:
    return sorted(rows, key=lambda r: _URGENCY.get(r.get("stock_status"), len(_URGENCY)))


def occupancy_percentage(current_occupancy: Optional[int], max_capacity: Optional[int]) -> float:
    if not max_capacity or max_capacity <= 0:
        return 0.0
    return round((current_occupancy or 0) / max_capacity * 100, 1)


def next_sku(category: str, existing_count: int, prefix: Optional[str] = None) -> str:
    p = prefix or CATEGORY_SKU_PREFIXES.get(category) or "PRD"
    return f"{p}-{existing_count + 1:04d}"


def normalize_sku(sku: str) -> str:
    return (sku or "").strip().upper()
