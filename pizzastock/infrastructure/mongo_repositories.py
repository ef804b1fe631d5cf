# pizzeria_stock/pizzastock/infrastructure/mongo_repositories.py
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging
import math
from pymongo import DESCENDING, ReturnDocument
from pymongo.collection import Collection
from bson import ObjectId
from pizzastock.domain.entities import ActionLog, Ingredient, Recipe, RecipeIngredient
from pizzastock.domain.repositories import ActionLogRepo, IngredientRepo, MovementRepo, RecipeRepo

log = logging.getLogger("infra.mongo_repo")


def non_negative(value: Any) -> float:
    v = float(value)
    if not math.isfinite(v) or v < 0:
        raise ValueError(f"must be a non-negative number: {value!r}")
    return v


def positive(value: Any) -> float:
    v = float(value)
    if not math.isfinite(v) or v <= 0:
        raise ValueError(f"must be greater than zero: {value!r}")
    return v


INGREDIENT_EDITABLE_FIELDS = {"name": str, "unit": str, "min_stock": non_negative, "category": str, "cost_per_unit": non_negative}
RECIPE_EDITABLE_FIELDS = {"name": str, "type": str}

_ALIVE = {"deleted_at": None}


def _as_str_id(v: Any) -> str:
    if isinstance(v, ObjectId):
        return str(v)
    return str(v)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _id_filter(value: str) -> Dict[str, Any]:
    v = str(value)
    if ObjectId.is_valid(v):
        return {"$or": [{"_id": ObjectId(v)}, {"id": v}]}
    return {"id": v}


def _ref_values(value: str) -> List[Any]:
    # requirement rows may hold the ingredient id as a string or an ObjectId
    v = str(value)
    return [v, ObjectId(v)] if ObjectId.is_valid(v) else [v]


def _coerce(fields: Dict[str, type], field: str, value: Any) -> Any:
    if field not in fields:
        raise ValueError(f"Field not editable: {field}")
    try:
        return fields[field](value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid value for {field}: {value!r}") from e


class MongoIngredientRepository(IngredientRepo):
    """Ingredients live in one collection; deleted rows keep a deleted_at stamp (trash)."""

    def __init__(self, col: Collection) -> None:
        self._col = col

    def _parse_ingredient(self, doc: Dict[str, Any]) -> Ingredient:
        try:
            return Ingredient(
                id=_as_str_id(doc.get("id") or doc.get("_id")),
                name=(doc.get("name") or "").strip(),
                unit=str(doc.get("unit") or "un"),
                current_stock=float(doc.get("current_stock") or 0),
                min_stock=float(doc.get("min_stock") or 0),
                category=str(doc.get("category") or ""),
                cost_per_unit=float(doc.get("cost_per_unit") or 0),
                deleted_at=doc.get("deleted_at"),
            )
        except Exception as e:
            log.exception("Invalid ingredient document: %s", doc)
            raise ValueError(f"Invalid ingredient document: {e}") from e

    def all(self, include_deleted: bool = False) -> List[Ingredient]:
        query: Dict[str, Any] = {} if include_deleted else dict(_ALIVE)
        return [self._parse_ingredient(doc) for doc in self._col.find(query).sort("name", 1)]

    def by_id(self, ingredient_id: str) -> Ingredient | None:
        doc = self._col.find_one(_id_filter(ingredient_id))
        return self._parse_ingredient(doc) if doc else None

    def by_ids(self, ingredient_ids: List[str]) -> Dict[str, Ingredient]:
        """Live ingredients keyed by the ids asked for; one round trip, trashed rows left out."""
        wanted = [str(i) for i in dict.fromkeys(ingredient_ids)]
        if not wanted:
            return {}
        oids = [ObjectId(i) for i in wanted if ObjectId.is_valid(i)]
        query = {"$or": [{"_id": {"$in": oids}}, {"id": {"$in": wanted}}], **_ALIVE}
        found: Dict[str, Ingredient] = {}
        for doc in self._col.find(query):
            ing = self._parse_ingredient(doc)
            for key in (doc.get("_id"), doc.get("id")):
                if key is not None:
                    found[_as_str_id(key)] = ing
        return {i: found[i] for i in wanted if i in found}

    def create(self, name: str, unit: str = "un", min_stock: float = 0.0, category: str = "") -> Ingredient:
        name = (name or "").strip()
        if not name:
            raise ValueError("name is required")
        doc = {
            "name": name,
            "unit": unit,
            "current_stock": 0.0,
            "min_stock": non_negative(min_stock),
            "category": category,
            "cost_per_unit": 0.0,
            "deleted_at": None,
            "created_at": _now_iso(),
        }
        res = self._col.insert_one(doc)
        doc["_id"] = res.inserted_id
        log.info("ingredient created id=%s name=%s", res.inserted_id, name)
        return self._parse_ingredient(doc)

    def update_field(self, ingredient_id: str, field: str, value: Any) -> bool:
        coerced = _coerce(INGREDIENT_EDITABLE_FIELDS, field, value)
        res = self._col.update_one(_id_filter(ingredient_id), {"$set": {field: coerced}})
        return res.matched_count > 0

    def soft_delete(self, ingredient_id: str) -> bool:
        res = self._col.update_one({**_id_filter(ingredient_id), **_ALIVE}, {"$set": {"deleted_at": _now_iso()}})
        return res.modified_count > 0

    def restore(self, ingredient_id: str) -> bool:
        res = self._col.update_one(
            {**_id_filter(ingredient_id), "deleted_at": {"$ne": None}},
            {"$set": {"deleted_at": None}},
        )
        return res.modified_count > 0

    def deleted(self) -> List[Ingredient]:
        cursor = self._col.find({"deleted_at": {"$ne": None}}).sort("deleted_at", DESCENDING)
        return [self._parse_ingredient(doc) for doc in cursor]

    def add_stock(self, ingredient_id: str, quantity: float) -> bool:
        res = self._col.update_one({**_id_filter(ingredient_id), **_ALIVE}, {"$inc": {"current_stock": float(quantity)}})
        return res.matched_count > 0

    def deduct_stock(self, ingredient_id: str, quantity: float) -> bool:
        # Guarded $inc on live rows only: never drives stock negative, not transactional across ingredients.
        doc = self._col.find_one_and_update(
            {**_id_filter(ingredient_id), **_ALIVE, "current_stock": {"$gte": float(quantity)}},
            {"$inc": {"current_stock": -float(quantity)}},
            return_document=ReturnDocument.AFTER,
        )
        return doc is not None


class MongoRecipeRepository(RecipeRepo):
    """
    Recipes embed their requirement rows ({ingredient_id, quantity_needed});
    name, unit and current stock are joined from the ingredients collection on read.
    """

    def __init__(self, col: Collection, ingredients: MongoIngredientRepository) -> None:
        self._col = col
        self._ingredients = ingredients

    def _parse_recipe(self, doc: Dict[str, Any], stock: Dict[str, Ingredient]) -> Recipe:
        try:
            rows: List[RecipeIngredient] = []
            for ri in doc.get("ingredients") or []:
                iid = _as_str_id(ri.get("ingredient_id")) if ri.get("ingredient_id") is not None else None
                ing = stock.get(iid) if iid else None
                rows.append(
                    RecipeIngredient(
                        ingredient_id=iid,
                        ingredient_name=ing.name if ing else (ri.get("ingredient_name") or iid),
                        quantity_needed=float(ri.get("quantity_needed") or 0),
                        current_stock=ing.current_stock if ing else 0.0,
                        unit=ing.unit if ing else ri.get("unit"),
                    )
                )
            capacity = doc.get("capacity")
            return Recipe(
                id=_as_str_id(doc.get("id") or doc.get("_id")),
                name=(doc.get("name") or "").strip(),
                type=str(doc.get("type") or "pizza"),
                ingredients=rows,
                capacity=int(capacity) if capacity is not None else None,
                deleted_at=doc.get("deleted_at"),
            )
        except Exception as e:
            log.exception("Invalid recipe document: %s", doc)
            raise ValueError(f"Invalid recipe document: {e}") from e

    def _join(self, docs: List[Dict[str, Any]]) -> List[Recipe]:
        ids = [
            _as_str_id(ri.get("ingredient_id"))
            for d in docs
            for ri in (d.get("ingredients") or [])
            if ri.get("ingredient_id") is not None
        ]
        stock = self._ingredients.by_ids(ids)
        return [self._parse_recipe(d, stock) for d in docs]

    def all(self) -> List[Recipe]:
        docs = list(self._col.find(dict(_ALIVE)).sort("name", 1))
        if not docs:
            log.warning("MongoRecipeRepository: recipes collection is empty")
        return self._join(docs)

    def by_id(self, recipe_id: str) -> Recipe | None:
        doc = self._col.find_one(_id_filter(recipe_id))
        if not doc:
            return None
        return self._join([doc])[0]

    def create(self, name: str, type: str = "pizza") -> Recipe:
        name = (name or "").strip()
        if not name:
            raise ValueError("name is required")
        doc = {"name": name, "type": type, "ingredients": [], "capacity": 0, "deleted_at": None, "created_at": _now_iso()}
        res = self._col.insert_one(doc)
        doc["_id"] = res.inserted_id
        log.info("recipe created id=%s name=%s", res.inserted_id, name)
        return self._parse_recipe(doc, {})

    def update_field(self, recipe_id: str, field: str, value: Any) -> bool:
        coerced = _coerce(RECIPE_EDITABLE_FIELDS, field, value)
        res = self._col.update_one(_id_filter(recipe_id), {"$set": {field: coerced}})
        return res.matched_count > 0

    def soft_delete(self, recipe_id: str) -> bool:
        res = self._col.update_one({**_id_filter(recipe_id), **_ALIVE}, {"$set": {"deleted_at": _now_iso()}})
        return res.modified_count > 0

    def restore(self, recipe_id: str) -> bool:
        res = self._col.update_one(
            {**_id_filter(recipe_id), "deleted_at": {"$ne": None}},
            {"$set": {"deleted_at": None}},
        )
        return res.modified_count > 0

    def deleted(self) -> List[Recipe]:
        docs = list(self._col.find({"deleted_at": {"$ne": None}}).sort("deleted_at", DESCENDING))
        return self._join(docs)

    def save_capacity(self, recipe_id: str, capacity: int) -> None:
        self._col.update_one(_id_filter(recipe_id), {"$set": {"capacity": int(capacity)}})

    def set_requirement(self, recipe_id: str, ingredient_id: str, quantity_needed: float) -> bool:
        qty = positive(quantity_needed)
        refs = _ref_values(ingredient_id)
        res = self._col.update_one(
            {**_id_filter(recipe_id), "ingredients.ingredient_id": {"$in": refs}},
            {"$set": {"ingredients.$.quantity_needed": qty}},
        )
        if res.matched_count > 0:
            return True
        res = self._col.update_one(
            _id_filter(recipe_id),
            {"$push": {"ingredients": {"ingredient_id": str(ingredient_id), "quantity_needed": qty}}},
        )
        return res.matched_count > 0

    def remove_requirement(self, recipe_id: str, ingredient_id: str) -> bool:
        res = self._col.update_one(
            _id_filter(recipe_id),
            {"$pull": {"ingredients": {"ingredient_id": {"$in": _ref_values(ingredient_id)}}}},
        )
        return res.modified_count > 0


class MongoMovementRepository(MovementRepo):
    def __init__(self, entries: Collection, exits: Collection) -> None:
        self._entries = entries
        self._exits = exits

    def add_entry(self, ingredient_id: str, quantity: float, unit_cost: Optional[float] = None) -> str:
        res = self._entries.insert_one(
            {
                "ingredient_id": ingredient_id,
                "quantity": float(quantity),
                "unit_cost": unit_cost,
                "created_at": _now_iso(),
            }
        )
        return _as_str_id(res.inserted_id)

    def add_sale(self, recipe_id: str, product_type: str, product_name: str, quantity: int, revenue: float) -> str:
        res = self._exits.insert_one(
            {
                "recipe_id": recipe_id,
                "product_type": product_type,
                "product_name": product_name,
                "quantity": int(quantity),
                "revenue": float(revenue),
                "created_at": _now_iso(),
            }
        )
        return _as_str_id(res.inserted_id)

    def recent_sales(self, limit: int = 20) -> List[Dict[str, Any]]:
        cursor = self._exits.find({}).sort("created_at", DESCENDING).limit(limit)
        out: List[Dict[str, Any]] = []
        for doc in cursor:
            out.append(
                {
                    "id": _as_str_id(doc.get("_id")),
                    "product_type": doc.get("product_type"),
                    "product_name": doc.get("product_name"),
                    "quantity": int(doc.get("quantity") or 0),
                    "revenue": float(doc.get("revenue") or 0),
                    "created_at": doc.get("created_at"),
                }
            )
        return out


class MongoActionLogRepository(ActionLogRepo):
    """Operational timeline."""

    def __init__(self, col: Collection) -> None:
        self._col = col

    def log(
        self,
        action_type: str,
        entity_type: str,
        entity_name: str,
        entity_id: Optional[str] = None,
        description: str = "",
        actor: str = "user",
    ) -> None:
        self._col.insert_one(
            {
                "action_type": action_type,
                "entity_type": entity_type,
                "entity_name": entity_name,
                "entity_id": entity_id,
                "description": description,
                "actor": actor,
                "created_at": _now_iso(),
            }
        )

    def recent(self, limit: int = 5) -> List[ActionLog]:
        cursor = self._col.find({}).sort("created_at", DESCENDING).limit(limit)
        return [
            ActionLog(
                action_type=str(d.get("action_type") or ""),
                entity_type=str(d.get("entity_type") or ""),
                entity_name=str(d.get("entity_name") or ""),
                created_at=str(d.get("created_at") or ""),
                entity_id=d.get("entity_id"),
                description=str(d.get("description") or ""),
                actor=str(d.get("actor") or "user"),
            )
            for d in cursor
        ]
