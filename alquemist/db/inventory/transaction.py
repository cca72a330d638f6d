import uuid

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text, Uuid

from ..database import Base, utcnow


class InventoryTransaction(Base):
    __tablename__ = "inventory_transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    inventory_item_id = Column(
        Uuid,
        ForeignKey("inventory_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = Column(Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)

    # 'addition' | 'consumption' | 'waste' | 'transfer' | 'correction'
    transaction_type = Column(String, nullable=False)
    quantity_change = Column(Numeric(14, 3), nullable=False)
    quantity_before = Column(Numeric(14, 3), nullable=False)
    quantity_after = Column(Numeric(14, 3), nullable=False)
    quantity_unit = Column(String, nullable=False)

    reason = Column(Text, nullable=True)
    reference_type = Column(String, nullable=True)  # activity/recipe_execution/transfer
    reference_id = Column(String, nullable=True)
    destination_area_id = Column(Uuid, ForeignKey("areas.id", ondelete="SET NULL"), nullable=True)

    performed_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    performed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    notes = Column(Text, nullable=True)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "inventory_item_id": self.inventory_item_id,
            "product_id": self.product_id,
            "transaction_type": self.transaction_type,
            "quantity_change": float(self.quantity_change),
            "quantity_before": float(self.quantity_before),
            "quantity_after": float(self.quantity_after),
            "quantity_unit": self.quantity_unit,
            "reason": self.reason,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "destination_area_id": self.destination_area_id,
            "performed_by": self.performed_by,
            "performed_at": self.performed_at,
            "notes": self.notes,
        }
