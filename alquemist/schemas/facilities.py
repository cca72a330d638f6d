from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

from .common import strip_nullable, strip_optional, strip_required


FacilityStatus = Literal["active", "inactive", "suspended"]
FacilityType = Literal["indoor", "outdoor", "greenhouse", "mixed"]


class FacilityCreate(BaseModel):
    name: str
    license_number: str
    license_type: Optional[str] = None
    facility_type: Optional[FacilityType] = None
    address: Optional[str] = None
    city: Optional[str] = None
    total_area_m2: Optional[float] = None
    status: FacilityStatus = "active"

    @field_validator("name", "license_number")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("license_type", "address", "city")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_nullable(v)


class FacilityUpdate(BaseModel):
    name: Optional[str] = None
    license_type: Optional[str] = None
    facility_type: Optional[FacilityType] = None
    address: Optional[str] = None
    city: Optional[str] = None
    total_area_m2: Optional[float] = None
    status: Optional[FacilityStatus] = None

    @field_validator("name")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v)


class FacilityRead(BaseModel):
    id: UUID
    company_id: UUID
    name: str
    license_number: str
    license_type: Optional[str] = None
    facility_type: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    total_area_m2: Optional[float] = None
    status: FacilityStatus
    created_at: datetime
    updated_at: datetime
