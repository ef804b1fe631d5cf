# pizzeria_stock/pizzastock/domain/repositories.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pizzastock.domain.entities import ActionLog, Ingredient, Recipe


class IngredientRepo(ABC):
    @abstractmethod
    def all(self, include_deleted: bool = False) -> List[Ingredient]: ...

    @abstractmethod
    def by_id(self, ingredient_id: str) -> Ingredient | None: ...

    @abstractmethod
    def create(self, name: str, unit: str = "un", min_stock: float = 0.0, category: str = "") -> Ingredient: ...

    @abstractmethod
    def update_field(self, ingredient_id: str, field: str, value: Any) -> bool: ...

    @abstractmethod
    def soft_delete(self, ingredient_id: str) -> bool: ...

    @abstractmethod
    def restore(self, ingredient_id: str) -> bool: ...

    @abstractmethod
    def deleted(self) -> List[Ingredient]: ...

    @abstractmethod
    def add_stock(self, ingredient_id: str, quantity: float) -> bool: ...

    @abstractmethod
    def deduct_stock(self, ingredient_id: str, quantity: float) -> bool: ...


class RecipeRepo(ABC):
    @abstractmethod
    def all(self) -> List[Recipe]: ...

    @abstractmethod
    def by_id(self, recipe_id: str) -> Recipe | None: ...

    @abstractmethod
    def create(self, name: str, type: str = "pizza") -> Recipe: ...

    @abstractmethod
    def update_field(self, recipe_id: str, field: str, value: Any) -> bool: ...

    @abstractmethod
    def soft_delete(self, recipe_id: str) -> bool: ...

    @abstractmethod
    def restore(self, recipe_id: str) -> bool: ...

    @abstractmethod
    def deleted(self) -> List[Recipe]: ...

    @abstractmethod
    def save_capacity(self, recipe_id: str, capacity: int) -> None: ...

    @abstractmethod
    def set_requirement(self, recipe_id: str, ingredient_id: str, quantity_needed: float) -> bool:
        """Add or update one requirement row; quantity_needed must be > 0."""

    @abstractmethod
    def remove_requirement(self, recipe_id: str, ingredient_id: str) -> bool: ...


class MovementRepo(ABC):
    @abstractmethod
    def add_entry(self, ingredient_id: str, quantity: float, unit_cost: Optional[float] = None) -> str: ...

    @abstractmethod
    def add_sale(self, recipe_id: str, product_type: str, product_name: str, quantity: int, revenue: float) -> str: ...

    @abstractmethod
    def recent_sales(self, limit: int = 20) -> List[Dict[str, Any]]: ...


class ActionLogRepo(ABC):
    @abstractmethod
    def log(
        self,
        action_type: str,
        entity_type: str,
        entity_name: str,
        entity_id: Optional[str] = None,
        description: str = "",
        actor: str = "user",
    ) -> None: ...

    @abstractmethod
    def recent(self, limit: int = 5) -> List[ActionLog]: ...
