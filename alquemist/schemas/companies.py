from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

from .common import strip_nullable, strip_required


CompanyStatus = Literal["active", "suspended", "closed"]


class CompanyCreate(BaseModel):
    name: str
    legal_name: Optional[str] = None
    tax_id: Optional[str] = None
    company_type: str = "cultivation"
    country: str = "CO"
    default_currency: str = "COP"

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("legal_name", "tax_id")
    @classmethod
    def _nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_nullable(v)

    @field_validator("country", "default_currency")
    @classmethod
    def _upper(cls, v: str) -> str:
        return strip_required(v).upper()


class CompanyRead(BaseModel):
    id: UUID
    name: str
    legal_name: Optional[str] = None
    tax_id: Optional[str] = None
    company_type: str
    country: str
    default_currency: str
    subscription_plan: str
    max_facilities: int
    max_users: int
    status: CompanyStatus
    created_at: datetime
