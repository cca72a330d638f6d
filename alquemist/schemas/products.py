from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from alquemist.core.lots import normalize_sku
from .common import strip_nullable, strip_optional, strip_required


ProductCategory = Literal[
    "seed",
    "nutrient",
    "pesticide",
    "equipment",
    "substrate",
    "container",
    "tool",
    "clone",
    "seedling",
    "mother_plant",
    "plant_material",
    "other",
]
ProductStatus = Literal["active", "discontinued"]


class ProductCreate(BaseModel):
    sku: str
    name: str
    description: Optional[str] = None
    category: ProductCategory
    default_price: Optional[float] = Field(default=None, ge=0)
    price_currency: str = "COP"

    @field_validator("sku")
    @classmethod
    def _sku(cls, v: str) -> str:
        return normalize_sku(strip_required(v))

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("description")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_nullable(v)

    @field_validator("price_currency")
    @classmethod
    def _currency(cls, v: str) -> str:
        v = strip_required(v).upper()
        if len(v) != 3:
            raise ValueError("currency must be a 3-letter code (e.g. COP)")
        return v


class ProductUpdate(BaseModel):
    sku: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[ProductCategory] = None
    default_price: Optional[float] = Field(default=None, ge=0)
    status: Optional[ProductStatus] = None

    @field_validator("sku")
    @classmethod
    def _sku(cls, v: Optional[str]) -> Optional[str]:
        v = strip_optional(v)
        return normalize_sku(v) if v is not None else None

    @field_validator("name")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v)


class ProductRead(BaseModel):
    id: UUID
    company_id: UUID
    sku: str
    name: str
    description: Optional[str] = None
    category: str
    default_price: Optional[float] = None
    price_currency: str
    status: ProductStatus
    created_at: datetime
    updated_at: datetime
