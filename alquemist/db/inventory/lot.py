import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text, Uuid

from ..database import Base, utcnow


class InventoryLot(Base):
    __tablename__ = "inventory_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id = Column(Uuid, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    area_id = Column(Uuid, ForeignKey("areas.id", ondelete="RESTRICT"), nullable=False, index=True)

    quantity_available = Column(Numeric(14, 3), nullable=False, default=0)
    quantity_reserved = Column(Numeric(14, 3), nullable=False, default=0)
    quantity_committed = Column(Numeric(14, 3), nullable=False, default=0)
    quantity_unit = Column(String, nullable=False)  # kg/g/L/units

    batch_number = Column(String, nullable=True)
    supplier_lot_number = Column(String, nullable=True)

    received_date = Column(DateTime(timezone=True), nullable=True)
    expiration_date = Column(DateTime(timezone=True), nullable=True, index=True)

    cost_per_unit = Column(Numeric(14, 4), nullable=True)
    reorder_point = Column(Numeric(14, 3), nullable=True)
    maximum_stock_level = Column(Numeric(14, 3), nullable=True)

    # 'purchase' | 'production' | 'transfer'
    source_type = Column(String, nullable=True)
    source_recipe_id = Column(Uuid, ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True)
    supplier_id = Column(Uuid, ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True, index=True)

    # 'available' | 'reserved' | 'expired' | 'quarantine' | 'discontinued'
    lot_status = Column(String, nullable=False, default="available", index=True)
    last_movement_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    @property
    def has_stock(self) -> bool:
        return any(
            (q or 0) > 0
            for q in (self.quantity_available, self.quantity_reserved, self.quantity_committed)
        )

    @property
    def to_schema(self):
        def _f(x):
            return float(x) if x is not None else None

        return {
            "id": self.id,
            "product_id": self.product_id,
            "area_id": self.area_id,
            "quantity_available": _f(self.quantity_available),
            "quantity_reserved": _f(self.quantity_reserved),
            "quantity_committed": _f(self.quantity_committed),
            "quantity_unit": self.quantity_unit,
            "batch_number": self.batch_number,
            "supplier_lot_number": self.supplier_lot_number,
            "received_date": self.received_date,
            "expiration_date": self.expiration_date,
            "cost_per_unit": _f(self.cost_per_unit),
            "reorder_point": _f(self.reorder_point),
            "maximum_stock_level": _f(self.maximum_stock_level),
            "source_type": self.source_type,
            "source_recipe_id": self.source_recipe_id,
            "supplier_id": self.supplier_id,
            "lot_status": self.lot_status,
            "last_movement_date": self.last_movement_date,
            "notes": self.notes,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
