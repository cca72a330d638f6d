"""
Inventory ledger.

Models:
- InventoryLot (quantity of one product received into one area)
- InventoryTransaction (append-only per-lot movements: before/after/change)
"""
