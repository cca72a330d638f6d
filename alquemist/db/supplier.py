import uuid
from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Numeric, String, Text, Uuid

from .database import Base, utcnow


class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String, nullable=False, index=True)
    legal_name = Column(String, nullable=True)
    tax_id = Column(String, nullable=True)  # NIT
    business_type = Column(String, nullable=True)

    primary_contact_name = Column(String, nullable=True)
    primary_contact_email = Column(String, nullable=True)
    primary_contact_phone = Column(String, nullable=True)

    address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    country = Column(String, nullable=False, default="CO")

    # Product categories this supplier sells (same values as Product.category)
    product_categories = Column(JSON, nullable=False, default=list)
    crop_specialization = Column(JSON, nullable=False, default=list)

    rating = Column(Numeric(3, 2), nullable=True)  # 0-5
    delivery_reliability = Column(Numeric(5, 2), nullable=True)  # 0-100
    quality_score = Column(Numeric(5, 2), nullable=True)  # 0-100

    payment_terms = Column(String, nullable=True)
    currency = Column(String, nullable=False, default="COP")

    is_approved = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    @property
    def to_schema(self):
        def _f(x):
            return float(x) if x is not None else None

        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "legal_name": self.legal_name,
            "tax_id": self.tax_id,
            "business_type": self.business_type,
            "primary_contact_name": self.primary_contact_name,
            "primary_contact_email": self.primary_contact_email,
            "primary_contact_phone": self.primary_contact_phone,
            "address": self.address,
            "city": self.city,
            "country": self.country,
            "product_categories": list(self.product_categories or []),
            "crop_specialization": list(self.crop_specialization or []),
            "rating": _f(self.rating),
            "delivery_reliability": _f(self.delivery_reliability),
            "quality_score": _f(self.quality_score),
            "payment_terms": self.payment_terms,
            "currency": self.currency,
            "is_approved": bool(self.is_approved),
            "is_active": bool(self.is_active),
            "notes": self.notes,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
