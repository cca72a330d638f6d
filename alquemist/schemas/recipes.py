from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .common import strip_nullable, strip_optional, strip_required


RecipeType = Literal["nutrient", "pesticide", "fertilizer", "other"]
RecipeStatus = Literal["active", "archived"]


class RecipeIngredientIn(BaseModel):
    product_id: UUID
    quantity: float = Field(gt=0)
    unit: str

    @field_validator("unit")
    @classmethod
    def _unit(cls, v: str) -> str:
        return strip_required(v)


class RecipeCreate(BaseModel):
    name: str
    description: Optional[str] = None
    recipe_type: RecipeType
    ingredients: List[RecipeIngredientIn] = Field(min_length=1)

    output_quantity: Optional[float] = Field(default=None, gt=0)
    output_unit: Optional[str] = None
    output_product_id: Optional[UUID] = None

    preparation_steps: List[str] = Field(default_factory=list)
    application_method: Optional[str] = None
    target_ph: Optional[float] = Field(default=None, ge=0, le=14)
    target_ec: Optional[float] = Field(default=None, ge=0)
    estimated_cost: Optional[float] = Field(default=None, ge=0)

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("description", "output_unit", "application_method")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_nullable(v)


class RecipeUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    recipe_type: Optional[RecipeType] = None
    ingredients: Optional[List[RecipeIngredientIn]] = Field(default=None, min_length=1)
    output_quantity: Optional[float] = Field(default=None, gt=0)
    output_unit: Optional[str] = None
    output_product_id: Optional[UUID] = None
    preparation_steps: Optional[List[str]] = None
    application_method: Optional[str] = None
    target_ph: Optional[float] = Field(default=None, ge=0, le=14)
    target_ec: Optional[float] = Field(default=None, ge=0)
    estimated_cost: Optional[float] = Field(default=None, ge=0)
    status: Optional[RecipeStatus] = None

    @field_validator("name")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v)


class InventorySelection(BaseModel):
    product_id: UUID
    inventory_item_id: UUID
    quantity: float = Field(gt=0)


class RecipeExecuteRequest(BaseModel):
    facility_id: UUID
    multiplier: float = Field(default=1, gt=0)
    notes: Optional[str] = None

    # When omitted for an ingredient, lots are picked FIFO (oldest first).
    inventory_selections: Optional[List[InventorySelection]] = None

    create_output: bool = False
    output_area_id: Optional[UUID] = None

    @field_validator("notes")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_nullable(v)
