from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .common import strip_nullable, strip_optional, strip_required


AreaType = Literal["propagation", "vegetative", "flowering", "drying", "storage", "processing"]
AreaStatus = Literal["active", "maintenance", "inactive"]


class AreaCreate(BaseModel):
    facility_id: UUID
    name: str
    area_type: AreaType
    max_capacity: Optional[int] = Field(default=None, ge=0)
    current_occupancy: int = Field(default=0, ge=0)
    climate_controlled: bool = False
    status: AreaStatus = "active"
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("notes")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_nullable(v)


class AreaUpdate(BaseModel):
    name: Optional[str] = None
    area_type: Optional[AreaType] = None
    max_capacity: Optional[int] = Field(default=None, ge=0)
    current_occupancy: Optional[int] = Field(default=None, ge=0)
    reserved_capacity: Optional[int] = Field(default=None, ge=0)
    climate_controlled: Optional[bool] = None
    status: Optional[AreaStatus] = None
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v)


class AreaRead(BaseModel):
    id: UUID
    facility_id: UUID
    name: str
    area_type: str
    max_capacity: Optional[int] = None
    current_occupancy: int
    reserved_capacity: int
    occupancy_percentage: float
    climate_controlled: bool
    status: AreaStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
