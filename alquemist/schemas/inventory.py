from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .common import strip_nullable, strip_required


LotStatus = Literal["available", "reserved", "expired", "quarantine", "discontinued"]
SourceType = Literal["purchase", "production", "transfer"]


class InventoryLotCreate(BaseModel):
    product_id: UUID
    area_id: UUID
    supplier_id: Optional[UUID] = None
    quantity_available: float = Field(ge=0)
    quantity_unit: str

    batch_number: Optional[str] = None
    supplier_lot_number: Optional[str] = None
    received_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None

    cost_per_unit: Optional[float] = Field(default=None, ge=0)
    reorder_point: Optional[float] = Field(default=None, ge=0)
    maximum_stock_level: Optional[float] = Field(default=None, ge=0)
    source_type: Optional[SourceType] = "purchase"
    lot_status: LotStatus = "available"
    notes: Optional[str] = None

    @field_validator("quantity_unit")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("batch_number", "supplier_lot_number", "notes")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_nullable(v)


class InventoryLotUpdate(BaseModel):
    supplier_id: Optional[UUID] = None
    batch_number: Optional[str] = None
    supplier_lot_number: Optional[str] = None
    expiration_date: Optional[datetime] = None
    cost_per_unit: Optional[float] = Field(default=None, ge=0)
    reorder_point: Optional[float] = Field(default=None, ge=0)
    maximum_stock_level: Optional[float] = Field(default=None, ge=0)
    lot_status: Optional[LotStatus] = None
    notes: Optional[str] = None

    @field_validator("batch_number", "supplier_lot_number", "notes")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_nullable(v)


class StockAdjustmentCreate(BaseModel):
    # Not a Literal: unknown types are answered with a 400 naming the type.
    adjustment_type: str
    quantity: float = Field(ge=0)
    reason: str
    notes: Optional[str] = None
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    destination_area_id: Optional[UUID] = None

    @field_validator("adjustment_type")
    @classmethod
    def _type(cls, v: str) -> str:
        return (v or "").strip().lower()

    @field_validator("reason")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("notes", "reference_type", "reference_id")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_nullable(v)
