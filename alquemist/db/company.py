import uuid
from sqlalchemy import Column, DateTime, Integer, String, Uuid

from .database import Base, utcnow


class Company(Base):
    """Tenant: owns facilities, products and recipes."""
    __tablename__ = "companies"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    legal_name = Column(String, nullable=True)
    tax_id = Column(String, nullable=True, index=True)
    company_type = Column(String, nullable=False, default="cultivation")
    country = Column(String, nullable=False, default="CO")
    default_currency = Column(String, nullable=False, default="COP")

    subscription_plan = Column(String, nullable=False, default="basic")
    max_facilities = Column(Integer, nullable=False, default=3)
    max_users = Column(Integer, nullable=False, default=10)

    # 'active' | 'suspended' | 'closed'
    status = Column(String, nullable=False, default="active", index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "legal_name": self.legal_name,
            "tax_id": self.tax_id,
            "company_type": self.company_type,
            "country": self.country,
            "default_currency": self.default_currency,
            "subscription_plan": self.subscription_plan,
            "max_facilities": self.max_facilities,
            "max_users": self.max_users,
            "status": self.status,
            "created_at": self.created_at,
        }
