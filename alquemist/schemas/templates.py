from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .areas import AreaType
from .common import strip_nullable, strip_optional, strip_required


TemplateStatus = Literal["active", "archived"]
DifficultyLevel = Literal["beginner", "intermediate", "advanced"]


class TemplateCreate(BaseModel):
    name: str
    template_category: Optional[str] = None
    production_method: Optional[str] = None
    source_type: Optional[str] = None
    default_batch_size: int = Field(default=50, ge=1)
    enable_individual_tracking: bool = False
    description: Optional[str] = None
    estimated_yield: Optional[float] = Field(default=None, ge=0)
    yield_unit: Optional[str] = None
    difficulty_level: Optional[DifficultyLevel] = None
    estimated_cost: Optional[float] = Field(default=None, ge=0)
    is_public: bool = False

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("template_category", "production_method", "source_type", "description", "yield_unit")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_nullable(v)


class TemplateUpdate(BaseModel):
    name: Optional[str] = None
    template_category: Optional[str] = None
    production_method: Optional[str] = None
    source_type: Optional[str] = None
    default_batch_size: Optional[int] = Field(default=None, ge=1)
    enable_individual_tracking: Optional[bool] = None
    description: Optional[str] = None
    estimated_yield: Optional[float] = Field(default=None, ge=0)
    yield_unit: Optional[str] = None
    difficulty_level: Optional[DifficultyLevel] = None
    estimated_cost: Optional[float] = Field(default=None, ge=0)
    is_public: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v)


class TemplateDuplicate(BaseModel):
    name: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_nullable(v)


class PhaseCreate(BaseModel):
    phase_name: str
    estimated_duration_days: int = Field(ge=0)
    area_type: AreaType
    previous_phase_id: Optional[UUID] = None
    required_conditions: Dict[str, Any] = Field(default_factory=dict)
    completion_criteria: Dict[str, Any] = Field(default_factory=dict)
    required_equipment: List[Any] = Field(default_factory=list)
    required_materials: List[Any] = Field(default_factory=list)
    description: Optional[str] = None

    @field_validator("phase_name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("description")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_nullable(v)


class PhaseUpdate(BaseModel):
    phase_name: Optional[str] = None
    estimated_duration_days: Optional[int] = Field(default=None, ge=0)
    area_type: Optional[AreaType] = None
    previous_phase_id: Optional[UUID] = None
    required_conditions: Optional[Dict[str, Any]] = None
    completion_criteria: Optional[Dict[str, Any]] = None
    required_equipment: Optional[List[Any]] = None
    required_materials: Optional[List[Any]] = None
    description: Optional[str] = None

    @field_validator("phase_name")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v)


class PhaseReorder(BaseModel):
    phase_ids: List[UUID] = Field(min_length=1)
