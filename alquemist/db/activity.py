import uuid

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text, Uuid, event
from sqlalchemy.orm import Session

from .database import Base, utcnow


class Activity(Base):
    """Append-only log of work performed on a batch, plant, area or recipe.

    Rows are written once. Updates and deletes through the ORM are rejected
    by ``_reject_activity_changes`` below.
    """
    __tablename__ = "activities"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=True, index=True)

    # 'batch' | 'plant' | 'area' | 'recipe' | 'inventory'
    entity_type = Column(String, nullable=False, index=True)
    entity_id = Column(String, nullable=False, index=True)
    activity_type = Column(String, nullable=False, index=True)
    performed_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    duration_minutes = Column(Integer, nullable=True)

    area_from = Column(Uuid, ForeignKey("areas.id", ondelete="SET NULL"), nullable=True)
    area_to = Column(Uuid, ForeignKey("areas.id", ondelete="SET NULL"), nullable=True)

    # [{"product_id", "inventory_item_id", "quantity_consumed", "product_name"}]
    materials_consumed = Column(JSON, nullable=False, default=list)
    equipment_used = Column(JSON, nullable=False, default=list)
    activity_metadata = Column(JSON, nullable=False, default=dict)

    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "activity_type": self.activity_type,
            "performed_by": self.performed_by,
            "timestamp": self.timestamp,
            "duration_minutes": self.duration_minutes,
            "area_from": self.area_from,
            "area_to": self.area_to,
            "materials_consumed": list(self.materials_consumed or []),
            "equipment_used": list(self.equipment_used or []),
            "activity_metadata": dict(self.activity_metadata or {}),
            "notes": self.notes,
            "created_at": self.created_at,
        }


class ActivityImmutableError(Exception):
    pass


@event.listens_for(Session, "before_flush")
def _reject_activity_changes(session, flush_context, instances):
    for obj in session.dirty:
        if isinstance(obj, Activity) and session.is_modified(obj):
            raise ActivityImmutableError(f"Activity {obj.id} is append-only and cannot be modified")
    for obj in session.deleted:
        if isinstance(obj, Activity):
            raise ActivityImmutableError(f"Activity {obj.id} is append-only and cannot be deleted")
