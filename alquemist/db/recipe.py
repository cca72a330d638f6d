import uuid

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from .database import Base, utcnow


class Recipe(Base):
    """Nutrient/pesticide/fertilizer mix; executing it consumes inventory lots."""
    __tablename__ = "recipes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    # 'nutrient' | 'pesticide' | 'fertilizer' | 'other'
    recipe_type = Column(String, nullable=False, index=True)

    output_quantity = Column(Numeric(12, 3), nullable=True)
    output_unit = Column(String, nullable=True)
    output_product_id = Column(Uuid, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)

    # [{"step_number": 1, "description": "..."}]
    preparation_steps = Column(JSON, nullable=False, default=list)
    application_method = Column(String, nullable=True)
    target_ph = Column(Numeric(4, 2), nullable=True)
    target_ec = Column(Numeric(6, 2), nullable=True)

    estimated_cost = Column(Numeric(14, 2), nullable=True)
    cost_per_unit = Column(Numeric(14, 4), nullable=True)
    times_used = Column(Integer, nullable=False, default=0)
    last_used_date = Column(DateTime(timezone=True), nullable=True)

    created_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    # 'active' | 'archived'
    status = Column(String, nullable=False, default="active", index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    ingredients = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.sort_order",
    )

    @property
    def to_schema(self):
        """Serialize the recipe; ingredients must already be loaded."""
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "description": self.description,
            "recipe_type": self.recipe_type,
            "ingredients": [ri.to_schema for ri in self.ingredients],
            "output_quantity": float(self.output_quantity) if self.output_quantity is not None else None,
            "output_unit": self.output_unit,
            "output_product_id": self.output_product_id,
            "preparation_steps": list(self.preparation_steps or []),
            "application_method": self.application_method,
            "target_ph": float(self.target_ph) if self.target_ph is not None else None,
            "target_ec": float(self.target_ec) if self.target_ec is not None else None,
            "estimated_cost": float(self.estimated_cost) if self.estimated_cost is not None else None,
            "cost_per_unit": float(self.cost_per_unit) if self.cost_per_unit is not None else None,
            "times_used": int(self.times_used or 0),
            "last_used_date": self.last_used_date,
            "created_by": self.created_by,
            "status": self.status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class RecipeIngredient(Base):
    __tablename__ = "recipe_ingredients"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    recipe_id = Column(Uuid, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Uuid, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)

    quantity = Column(Numeric(12, 3), nullable=False)
    unit = Column(String, nullable=False)  # 'kg', 'g', 'L', 'ml', 'units'
    sort_order = Column(Integer, nullable=False, default=0)

    recipe = relationship("Recipe", back_populates="ingredients")

    @property
    def to_schema(self):
        return {
            "product_id": self.product_id,
            "quantity": float(self.quantity),
            "unit": self.unit,
        }
