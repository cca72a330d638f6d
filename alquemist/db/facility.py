import uuid
from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Uuid

from .database import Base, utcnow


class Facility(Base):
    """Licensed cultivation facility owned by a company."""
    __tablename__ = "facilities"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)

    license_number = Column(String, nullable=False, unique=True, index=True)
    license_type = Column(String, nullable=True)  # INVIMA/ICA/Municipal

    # 'indoor' | 'outdoor' | 'greenhouse' | 'mixed'
    facility_type = Column(String, nullable=True)
    address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    total_area_m2 = Column(Numeric(12, 2), nullable=True)

    # 'active' | 'inactive' | 'suspended'
    status = Column(String, nullable=False, default="active", index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "license_number": self.license_number,
            "license_type": self.license_type,
            "facility_type": self.facility_type,
            "address": self.address,
            "city": self.city,
            "total_area_m2": float(self.total_area_m2) if self.total_area_m2 is not None else None,
            "status": self.status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
