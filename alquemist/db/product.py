import uuid
from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text, UniqueConstraint, Uuid

from .database import Base, utcnow


class Product(Base):
    """Catalog entry (seed, nutrient, pesticide...) that inventory lots are stocked against."""
    __tablename__ = "products"
    __table_args__ = (UniqueConstraint("company_id", "sku", name="ux_products_company_sku"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    sku = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=False, index=True)

    default_price = Column(Numeric(14, 2), nullable=True)
    price_currency = Column(String, nullable=False, default="COP")

    # 'active' | 'discontinued'
    status = Column(String, nullable=False, default="active", index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "company_id": self.company_id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "default_price": float(self.default_price) if self.default_price is not None else None,
            "price_currency": self.price_currency,
            "status": self.status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
