import uuid

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from .database import Base, utcnow


class ProductionTemplate(Base):
    """Reusable production plan: an ordered list of phases.

    ``estimated_duration_days`` is derived: the sum of its phases' durations.
    """
    __tablename__ = "production_templates"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)

    template_category = Column(String, nullable=True)  # seed-to-harvest/propagation
    production_method = Column(String, nullable=True)  # indoor/outdoor/greenhouse
    source_type = Column(String, nullable=True)  # seed/clone/tissue_culture

    default_batch_size = Column(Integer, nullable=False, default=50)
    enable_individual_tracking = Column(Boolean, nullable=False, default=False)

    description = Column(Text, nullable=True)
    estimated_duration_days = Column(Integer, nullable=False, default=0)
    estimated_yield = Column(Numeric(14, 3), nullable=True)
    yield_unit = Column(String, nullable=True)
    difficulty_level = Column(String, nullable=True)  # beginner/intermediate/advanced
    estimated_cost = Column(Numeric(14, 2), nullable=True)

    usage_count = Column(Integer, nullable=False, default=0)
    last_used_date = Column(DateTime(timezone=True), nullable=True)

    is_public = Column(Boolean, nullable=False, default=False, index=True)
    created_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    # 'active' | 'archived'
    status = Column(String, nullable=False, default="active", index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    phases = relationship(
        "TemplatePhase",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="TemplatePhase.phase_order",
    )

    @property
    def to_schema(self):
        """Serialize the template; phases must already be loaded."""
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "template_category": self.template_category,
            "production_method": self.production_method,
            "source_type": self.source_type,
            "default_batch_size": self.default_batch_size,
            "enable_individual_tracking": bool(self.enable_individual_tracking),
            "description": self.description,
            "estimated_duration_days": int(self.estimated_duration_days or 0),
            "estimated_yield": float(self.estimated_yield) if self.estimated_yield is not None else None,
            "yield_unit": self.yield_unit,
            "difficulty_level": self.difficulty_level,
            "estimated_cost": float(self.estimated_cost) if self.estimated_cost is not None else None,
            "usage_count": int(self.usage_count or 0),
            "last_used_date": self.last_used_date,
            "is_public": bool(self.is_public),
            "created_by": self.created_by,
            "status": self.status,
            "phases": [p.to_schema for p in self.phases],
            "phases_count": len(self.phases),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class TemplatePhase(Base):
    __tablename__ = "template_phases"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    template_id = Column(
        Uuid,
        ForeignKey("production_templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    phase_name = Column(String, nullable=False)
    phase_order = Column(Integer, nullable=False)
    estimated_duration_days = Column(Integer, nullable=False)
    area_type = Column(String, nullable=False)
    previous_phase_id = Column(Uuid, ForeignKey("template_phases.id", ondelete="SET NULL"), nullable=True)

    required_conditions = Column(JSON, nullable=False, default=dict)
    completion_criteria = Column(JSON, nullable=False, default=dict)
    required_equipment = Column(JSON, nullable=False, default=list)
    required_materials = Column(JSON, nullable=False, default=list)

    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    template = relationship("ProductionTemplate", back_populates="phases")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "template_id": self.template_id,
            "phase_name": self.phase_name,
            "phase_order": self.phase_order,
            "estimated_duration_days": self.estimated_duration_days,
            "area_type": self.area_type,
            "previous_phase_id": self.previous_phase_id,
            "required_conditions": dict(self.required_conditions or {}),
            "completion_criteria": dict(self.completion_criteria or {}),
            "required_equipment": list(self.required_equipment or []),
            "required_materials": list(self.required_materials or []),
            "description": self.description,
            "created_at": self.created_at,
        }
