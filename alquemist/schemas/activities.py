from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .common import strip_nullable, strip_required


class ActivityCreate(BaseModel):
    entity_type: str  # batch/plant/area/recipe/inventory
    entity_id: str
    activity_type: str
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    area_from: Optional[UUID] = None
    area_to: Optional[UUID] = None
    materials_consumed: List[Dict[str, Any]] = Field(default_factory=list)
    equipment_used: List[Dict[str, Any]] = Field(default_factory=list)
    notes: Optional[str] = None

    @field_validator("entity_type", "entity_id", "activity_type")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("notes")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_nullable(v)
