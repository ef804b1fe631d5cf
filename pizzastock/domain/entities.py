# pizzeria_stock/pizzastock/domain/entities.py
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

RECIPE_TYPES = ("pizza", "esfiha")


class StockStatus(str, Enum):
    CRITICAL = "critical"
    DANGER = "danger"
    WARNING = "warning"
    OK = "ok"


@dataclass(frozen=True)
class Ingredient:
    id: str
    name: str
    unit: str
    current_stock: float
    min_stock: float
    category: str = ""
    cost_per_unit: float = 0.0
    deleted_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "unit": self.unit,
            "current_stock": self.current_stock,
            "min_stock": self.min_stock,
            "category": self.category,
            "cost_per_unit": self.cost_per_unit,
        }


@dataclass(frozen=True)
class RecipeIngredient:
    """One row of a recipe: how much of an ingredient a single unit consumes."""
    ingredient_id: Optional[str]
    ingredient_name: Optional[str]
    quantity_needed: float
    current_stock: float | None = 0.0
    unit: str | None = None


@dataclass(frozen=True)
class Recipe:
    id: str
    name: str
    type: str
    ingredients: List[RecipeIngredient] = field(default_factory=list)
    capacity: Optional[int] = None
    deleted_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "capacity": self.capacity,
            "ingredients": [
                {
                    "ingredient_id": ri.ingredient_id,
                    "name": ri.ingredient_name,
                    "quantity_needed": ri.quantity_needed,
                    "current_stock": ri.current_stock,
                    "unit": ri.unit,
                }
                for ri in self.ingredients
            ],
        }


@dataclass(frozen=True)
class CapacityResult:
    capacity: int
    limiting_ingredient_name: Optional[str] = None
    limiting_ingredient_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "capacity": self.capacity,
            "limiting_ingredient": self.limiting_ingredient_name,
            "limiting_ingredient_id": self.limiting_ingredient_id,
        }


@dataclass(frozen=True)
class SaleCheck:
    valid: bool
    insufficient_ingredient: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"valid": self.valid}
        if self.insufficient_ingredient is not None:
            out["insufficient_ingredient"] = self.insufficient_ingredient
        if self.message is not None:
            out["message"] = self.message
        return out


@dataclass(frozen=True)
class ActionLog:
    action_type: str
    entity_type: str
    entity_name: str
    created_at: str
    entity_id: Optional[str] = None
    description: str = ""
    actor: str = "user"
