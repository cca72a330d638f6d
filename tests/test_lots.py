from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

from alquemist.core.lots import (
    fifo_order,
    next_sku,
    normalize_sku,
    occupancy_percentage,
    plan_fifo,
    sort_low_stock,
    stock_status,
)


def _lot(name, qty, received=None):
    return SimpleNamespace(name=name, quantity_available=Decimal(str(qty)), received_date=received)


def test_fifo_order_puts_undated_lots_first_and_keeps_ties_stable():
    a = _lot("a", 1, datetime(2024, 1, 1))
    b = _lot("b", 1, datetime(2024, 2, 1))
    c = _lot("c", 1)
    d = _lot("d", 1, datetime(2024, 1, 1))
    assert [x.name for x in fifo_order([b, a, c, d])] == ["c", "a", "d", "b"]


def test_plan_fifo_draws_oldest_first():
    a = _lot("a", 4, datetime(2024, 1, 1))
    b = _lot("b", 8, datetime(2024, 2, 1))
    allocations, remaining = plan_fifo([b, a], Decimal("10"))
    assert [(lot.name, qty) for lot, qty in allocations] == [("a", Decimal("4")), ("b", Decimal("6"))]
    assert remaining == 0
    # planning never touches the lots
    assert a.quantity_available == Decimal("4")


def test_plan_fifo_reports_shortfall():
    allocations, remaining = plan_fifo([_lot("a", 3), _lot("b", 0)], Decimal("5"))
    assert [lot.name for lot, _ in allocations] == ["a"]
    assert remaining == Decimal("2")


def test_plan_fifo_stops_once_covered():
    allocations, _ = plan_fifo([_lot("a", 5, datetime(2024, 1, 1)), _lot("b", 5, datetime(2024, 3, 1))], 5)
    assert len(allocations) == 1


def test_stock_status_thresholds():
    assert stock_status(0, 10) == "out_of_stock"
    assert stock_status(5, 10) == "critical"
    assert stock_status(8, 10) == "low"
    assert stock_status(12, 10) == "adequate"
    assert stock_status(120, 10, 100) == "overstocked"
    assert stock_status(3, None) == "adequate"


def test_sort_low_stock_by_urgency():
    rows = [{"id": 1, "stock_status": "low"}, {"id": 2, "stock_status": "out_of_stock"}, {"id": 3, "stock_status": "critical"}]
    assert [r["id"] for r in sort_low_stock(rows)] == [3, 2, 1]


def test_occupancy_percentage():
    assert occupancy_percentage(50, 200) == 25.0
    assert occupancy_percentage(1, 3) == 33.3
    assert occupancy_percentage(10, None) == 0.0
    assert occupancy_percentage(10, 0) == 0.0


def test_sku_helpers():
    assert next_sku("nutrient", 2) == "NUT-0003"
    assert next_sku("unknown", 0) == "PRD-0001"
    assert next_sku("seed", 9, prefix="GEN") == "GEN-0010"
    assert normalize_sku("  nut-01 ") == "NUT-01"
