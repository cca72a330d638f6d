import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, Uuid

from alquemist.core.lots import occupancy_percentage
from .database import Base, utcnow


class Area(Base):
    __tablename__ = "areas"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    facility_id = Column(Uuid, ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)

    # 'propagation' | 'vegetative' | 'flowering' | 'drying' | 'storage' | 'processing'
    area_type = Column(String, nullable=False)

    max_capacity = Column(Integer, nullable=True)
    current_occupancy = Column(Integer, nullable=False, default=0)
    reserved_capacity = Column(Integer, nullable=False, default=0)
    climate_controlled = Column(Boolean, nullable=False, default=False)

    # 'active' | 'maintenance' | 'inactive'
    status = Column(String, nullable=False, default="active", index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "facility_id": self.facility_id,
            "name": self.name,
            "area_type": self.area_type,
            "max_capacity": self.max_capacity,
            "current_occupancy": self.current_occupancy,
            "reserved_capacity": self.reserved_capacity,
            "occupancy_percentage": occupancy_percentage(self.current_occupancy, self.max_capacity),
            "climate_controlled": bool(self.climate_controlled),
            "status": self.status,
            "notes": self.notes,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
