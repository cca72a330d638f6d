from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from .common import strip_nullable, strip_optional, strip_required
from .products import ProductCategory


class SupplierCreate(BaseModel):
    name: str
    product_categories: List[ProductCategory] = Field(min_length=1)
    legal_name: Optional[str] = None
    tax_id: Optional[str] = None
    business_type: Optional[str] = None
    primary_contact_name: Optional[str] = None
    primary_contact_email: Optional[EmailStr] = None
    primary_contact_phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: str = "CO"
    crop_specialization: List[str] = Field(default_factory=list)
    payment_terms: Optional[str] = None
    currency: str = "COP"
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)

    @field_validator(
        "legal_name",
        "tax_id",
        "business_type",
        "primary_contact_name",
        "primary_contact_phone",
        "address",
        "city",
        "payment_terms",
        "notes",
    )
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_nullable(v)

    @field_validator("country", "currency")
    @classmethod
    def _upper(cls, v: str) -> str:
        return strip_required(v).upper()


class SupplierUpdate(BaseModel):
    name: Optional[str] = None
    product_categories: Optional[List[ProductCategory]] = Field(default=None, min_length=1)
    legal_name: Optional[str] = None
    tax_id: Optional[str] = None
    business_type: Optional[str] = None
    primary_contact_name: Optional[str] = None
    primary_contact_email: Optional[EmailStr] = None
    primary_contact_phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    crop_specialization: Optional[List[str]] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    delivery_reliability: Optional[float] = Field(default=None, ge=0, le=100)
    quality_score: Optional[float] = Field(default=None, ge=0, le=100)
    payment_terms: Optional[str] = None
    is_approved: Optional[bool] = None
    is_active: Optional[bool] = None
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v)


class SupplierRead(BaseModel):
    id: UUID
    company_id: UUID
    name: str
    legal_name: Optional[str] = None
    tax_id: Optional[str] = None
    business_type: Optional[str] = None
    primary_contact_name: Optional[str] = None
    primary_contact_email: Optional[str] = None
    primary_contact_phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: str
    product_categories: List[str]
    crop_specialization: List[str]
    rating: Optional[float] = None
    delivery_reliability: Optional[float] = None
    quality_score: Optional[float] = None
    payment_terms: Optional[str] = None
    currency: str
    is_approved: bool
    is_active: bool
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
