from __future__ import annotations

import dataclasses
import itertools
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from pizzastock.core.config import AISettings
from pizzastock.domain.entities import ActionLog, Ingredient, Recipe, RecipeIngredient
from pizzastock.domain.repositories import ActionLogRepo, IngredientRepo, MovementRepo, RecipeRepo
from pizzastock.infrastructure.mongo_repositories import INGREDIENT_EDITABLE_FIELDS, RECIPE_EDITABLE_FIELDS, non_negative, positive
from pizzastock.services.ai_client import AIClient, AIProviderError


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ----------------------------
# In-memory repositories
# ----------------------------
class FakeIngredientRepo(IngredientRepo):
    def __init__(self) -> None:
        self.items: Dict[str, Ingredient] = {}
        self.fail_deduct_for: set = set()
        self._seq = itertools.count(100)

    def add(self, id: str, name: str, current_stock: float, min_stock: float, unit: str = "g", category: str = "") -> Ingredient:
        ing = Ingredient(id=id, name=name, unit=unit, current_stock=current_stock, min_stock=min_stock, category=category)
        self.items[id] = ing
        return ing

    def all(self, include_deleted: bool = False) -> List[Ingredient]:
        return sorted((i for i in self.items.values() if include_deleted or not i.deleted_at), key=lambda i: i.name)

    def by_id(self, ingredient_id: str) -> Ingredient | None:
        return self.items.get(ingredient_id)

    def create(self, name: str, unit: str = "un", min_stock: float = 0.0, category: str = "") -> Ingredient:
        if not (name or "").strip():
            raise ValueError("name is required")
        return self.add(f"i{next(self._seq)}", name.strip(), 0.0, non_negative(min_stock), unit=unit, category=category)

    def update_field(self, ingredient_id: str, field: str, value: Any) -> bool:
        if field not in INGREDIENT_EDITABLE_FIELDS:
            raise ValueError(f"Field not editable: {field}")
        ing = self.items.get(ingredient_id)
        if ing is None:
            return False
        self.items[ingredient_id] = dataclasses.replace(ing, **{field: INGREDIENT_EDITABLE_FIELDS[field](value)})
        return True

    def soft_delete(self, ingredient_id: str) -> bool:
        ing = self.items.get(ingredient_id)
        if ing is None or ing.deleted_at:
            return False
        self.items[ingredient_id] = dataclasses.replace(ing, deleted_at=_now())
        return True

    def restore(self, ingredient_id: str) -> bool:
        ing = self.items.get(ingredient_id)
        if ing is None or not ing.deleted_at:
            return False
        self.items[ingredient_id] = dataclasses.replace(ing, deleted_at=None)
        return True

    def deleted(self) -> List[Ingredient]:
        return [i for i in self.items.values() if i.deleted_at]

    def add_stock(self, ingredient_id: str, quantity: float) -> bool:
        ing = self.items.get(ingredient_id)
        if ing is None or ing.deleted_at:
            return False
        self.items[ingredient_id] = dataclasses.replace(ing, current_stock=ing.current_stock + quantity)
        return True

    def deduct_stock(self, ingredient_id: str, quantity: float) -> bool:
        ing = self.items.get(ingredient_id)
        if ing is None or ing.deleted_at or ingredient_id in self.fail_deduct_for or ing.current_stock < quantity:
            return False
        self.items[ingredient_id] = dataclasses.replace(ing, current_stock=ing.current_stock - quantity)
        return True


class FakeRecipeRepo(RecipeRepo):
    """Stores requirement rows as (ingredient_id, quantity) and joins current stock on read."""

    def __init__(self, ingredients: FakeIngredientRepo) -> None:
        self.ingredients = ingredients
        self.docs: Dict[str, Dict[str, Any]] = {}
        self.saved_capacities: List[Tuple[str, int]] = []
        self._seq = itertools.count(100)

    def add(self, id: str, name: str, rows: Sequence[Tuple[str, float]], type: str = "pizza", capacity: Optional[int] = None) -> Recipe:
        self.docs[id] = {"id": id, "name": name, "type": type, "rows": list(rows), "capacity": capacity, "deleted_at": None}
        return self._to_recipe(self.docs[id])

    def _to_recipe(self, doc: Dict[str, Any]) -> Recipe:
        rows = []
        for iid, qty in doc["rows"]:
            ing = self.ingredients.by_id(iid)
            if ing is not None and ing.deleted_at:
                ing = None
            rows.append(
                RecipeIngredient(
                    ingredient_id=iid,
                    ingredient_name=ing.name if ing else iid,
                    quantity_needed=qty,
                    current_stock=ing.current_stock if ing else 0.0,
                    unit=ing.unit if ing else None,
                )
            )
        return Recipe(
            id=doc["id"],
            name=doc["name"],
            type=doc["type"],
            ingredients=rows,
            capacity=doc["capacity"],
            deleted_at=doc["deleted_at"],
        )

    def all(self) -> List[Recipe]:
        docs = sorted((d for d in self.docs.values() if not d["deleted_at"]), key=lambda d: d["name"])
        return [self._to_recipe(d) for d in docs]

    def by_id(self, recipe_id: str) -> Recipe | None:
        doc = self.docs.get(recipe_id)
        return self._to_recipe(doc) if doc else None

    def create(self, name: str, type: str = "pizza") -> Recipe:
        if not (name or "").strip():
            raise ValueError("name is required")
        return self.add(f"r{next(self._seq)}", name.strip(), [], type=type, capacity=0)

    def update_field(self, recipe_id: str, field: str, value: Any) -> bool:
        if field not in RECIPE_EDITABLE_FIELDS:
            raise ValueError(f"Field not editable: {field}")
        doc = self.docs.get(recipe_id)
        if doc is None:
            return False
        doc[field] = RECIPE_EDITABLE_FIELDS[field](value)
        return True

    def soft_delete(self, recipe_id: str) -> bool:
        doc = self.docs.get(recipe_id)
        if doc is None or doc["deleted_at"]:
            return False
        doc["deleted_at"] = _now()
        return True

    def restore(self, recipe_id: str) -> bool:
        doc = self.docs.get(recipe_id)
        if doc is None or not doc["deleted_at"]:
            return False
        doc["deleted_at"] = None
        return True

    def deleted(self) -> List[Recipe]:
        return [self._to_recipe(d) for d in self.docs.values() if d["deleted_at"]]

    def save_capacity(self, recipe_id: str, capacity: int) -> None:
        self.saved_capacities.append((recipe_id, capacity))
        self.docs[recipe_id]["capacity"] = capacity

    def set_requirement(self, recipe_id: str, ingredient_id: str, quantity_needed: float) -> bool:
        qty = positive(quantity_needed)
        doc = self.docs.get(recipe_id)
        if doc is None:
            return False
        rows = [(iid, q) for iid, q in doc["rows"] if iid != ingredient_id]
        if len(rows) == len(doc["rows"]):
            rows.append((ingredient_id, qty))
        else:
            rows = [(iid, qty if iid == ingredient_id else q) for iid, q in doc["rows"]]
        doc["rows"] = rows
        return True

    def remove_requirement(self, recipe_id: str, ingredient_id: str) -> bool:
        doc = self.docs.get(recipe_id)
        if doc is None:
            return False
        rows = [(iid, q) for iid, q in doc["rows"] if iid != ingredient_id]
        changed = len(rows) != len(doc["rows"])
        doc["rows"] = rows
        return changed


class FakeMovementRepo(MovementRepo):
    def __init__(self) -> None:
        self.entries: List[Dict[str, Any]] = []
        self.sales: List[Dict[str, Any]] = []

    def add_entry(self, ingredient_id: str, quantity: float, unit_cost: Optional[float] = None) -> str:
        entry_id = f"e{len(self.entries) + 1}"
        self.entries.append({"id": entry_id, "ingredient_id": ingredient_id, "quantity": quantity, "unit_cost": unit_cost})
        return entry_id

    def add_sale(self, recipe_id: str, product_type: str, product_name: str, quantity: int, revenue: float) -> str:
        sale_id = f"s{len(self.sales) + 1}"
        self.sales.append(
            {
                "id": sale_id,
                "recipe_id": recipe_id,
                "product_type": product_type,
                "product_name": product_name,
                "quantity": quantity,
                "revenue": revenue,
                "created_at": _now(),
            }
        )
        return sale_id

    def recent_sales(self, limit: int = 20) -> List[Dict[str, Any]]:
        return list(reversed(self.sales))[:limit]


class FakeActionLogRepo(ActionLogRepo):
    def __init__(self) -> None:
        self.entries: List[ActionLog] = []

    def log(
        self,
        action_type: str,
        entity_type: str,
        entity_name: str,
        entity_id: Optional[str] = None,
        description: str = "",
        actor: str = "user",
    ) -> None:
        self.entries.append(
            ActionLog(
                action_type=action_type,
                entity_type=entity_type,
                entity_name=entity_name,
                created_at=_now(),
                entity_id=entity_id,
                description=description,
                actor=actor,
            )
        )

    def recent(self, limit: int = 5) -> List[ActionLog]:
        return list(reversed(self.entries))[:limit]


# ----------------------------
# LLM providers
# ----------------------------
class FakeProvider:
    """Replies from a script; an Exception instance in the script is raised instead."""

    def __init__(self, name: str, *replies: Any) -> None:
        self.name = name
        self.replies = list(replies)
        self.prompts: List[str] = []

    def complete(self, prompt: str, json_mode: bool = False) -> str:
        self.prompts.append(prompt)
        if not self.replies:
            raise AIProviderError(f"{self.name}: no scripted reply")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def make_ai(*providers: FakeProvider, fallback=None) -> AIClient:
    return AIClient(AISettings(), providers=list(providers), fallback=fallback)


# ----------------------------
# Fixtures
# ----------------------------
@pytest.fixture
def ingredient_repo() -> FakeIngredientRepo:
    repo = FakeIngredientRepo()
    repo.add("i1", "Massa", 1000, 200, unit="g", category="massa")
    repo.add("i2", "Mussarela", 300, 400, unit="g", category="queijo")
    repo.add("i3", "Calabresa", 0, 100, unit="g", category="carnes")
    repo.add("i4", "Molho de Tomate", 500, 100, unit="ml", category="molhos")
    return repo


@pytest.fixture
def recipe_repo(ingredient_repo: FakeIngredientRepo) -> FakeRecipeRepo:
    repo = FakeRecipeRepo(ingredient_repo)
    # Margherita: Massa 4x, Mussarela 3x, Molho 10x -> 3, limited by Mussarela
    repo.add("r1", "Margherita", [("i1", 250), ("i2", 100), ("i4", 50)])
    # Calabresa: no calabresa in stock -> 0
    repo.add("r2", "Calabresa", [("i1", 250), ("i3", 80)])
    return repo


@pytest.fixture
def movement_repo() -> FakeMovementRepo:
    return FakeMovementRepo()


@pytest.fixture
def action_logs() -> FakeActionLogRepo:
    return FakeActionLogRepo()
