# =========================
# FILE: pizzeria_stock/pizzastock/application/usecases.py
# =========================
from __future__ import annotations

import dataclasses
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from pizzastock.application import data_export
from pizzastock.domain.entities import RECIPE_TYPES, Ingredient, Recipe, SaleCheck
from pizzastock.domain.intents import EXPORT_FORMATS
from pizzastock.domain.repositories import ActionLogRepo, IngredientRepo, MovementRepo, RecipeRepo
from pizzastock.domain.stock_rules import (
    STATUS_SEVERITY,
    calculate_capacity,
    category_icon,
    classify_stock,
    sort_requirements,
    status_color,
    status_icon,
    stock_percentage,
    validate_sale,
)
from pizzastock.services.insights import InsightGenerator

log = logging.getLogger("app.usecases")


class SaleRejected(ValueError):
    """A sale that the current stock cannot cover."""

    def __init__(self, check: SaleCheck) -> None:
        super().__init__(check.message or "sale rejected")
        self.check = check


def _require_recipe(recipe_repo: RecipeRepo, recipe_id: str) -> Recipe:
    key = (recipe_id or "").strip()
    if not key:
        raise ValueError("recipe_id is required")
    recipe = recipe_repo.by_id(key)
    if recipe is None or recipe.deleted_at:
        raise LookupError(f"Recipe not found: {recipe_id}")
    return recipe


def _require_ingredient(ingredient_repo: IngredientRepo, ingredient_id: str) -> Ingredient:
    ing = ingredient_repo.by_id((ingredient_id or "").strip())
    if ing is None or ing.deleted_at:
        raise LookupError(f"Ingredient not found: {ingredient_id}")
    return ing


def with_capacity(recipe: Recipe) -> Recipe:
    result = calculate_capacity(sort_requirements(recipe.ingredients))
    return dataclasses.replace(recipe, capacity=result.capacity)


@dataclass(frozen=True)
class GetRecipeCapacity:
    recipe_repo: RecipeRepo

    def __call__(self, recipe_id: str) -> Dict[str, Any]:
        recipe = _require_recipe(self.recipe_repo, recipe_id)
        result = calculate_capacity(sort_requirements(recipe.ingredients))
        if recipe.capacity != result.capacity:
            self.recipe_repo.save_capacity(recipe.id, result.capacity)
        return {"recipe_id": recipe.id, "name": recipe.name, "type": recipe.type, **result.to_dict()}


@dataclass(frozen=True)
class ListRecipeCapacities:
    recipe_repo: RecipeRepo

    def __call__(self) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        for recipe in self.recipe_repo.all():
            result = calculate_capacity(sort_requirements(recipe.ingredients))
            if recipe.capacity != result.capacity:
                self.recipe_repo.save_capacity(recipe.id, result.capacity)
            out.append({"recipe_id": recipe.id, "name": recipe.name, "type": recipe.type, **result.to_dict()})
        return out


@dataclass(frozen=True)
class StockOverview:
    ingredient_repo: IngredientRepo

    def __call__(self) -> Dict[str, Any]:
        items: List[Dict[str, Any]] = []
        for ing in self.ingredient_repo.all():
            status = classify_stock(ing.current_stock, ing.min_stock)
            items.append(
                {
                    **ing.to_dict(),
                    "status": status.value,
                    "color": status_color(status),
                    "icon": status_icon(status),
                    "category_icon": category_icon(ing.category),
                    "percentage": stock_percentage(ing.current_stock, ing.min_stock),
                }
            )
        rank = {s.value: i for i, s in enumerate(STATUS_SEVERITY)}
        alerts = sorted(
            (x for x in items if x["status"] != "ok"),
            key=lambda x: (rank[x["status"]], x["percentage"], x["name"]),
        )
        return {"ingredients": items, "alerts": alerts}


@dataclass(frozen=True)
class ValidateSale:
    recipe_repo: RecipeRepo

    def __call__(self, recipe_id: str, quantity: int) -> SaleCheck:
        if int(quantity) <= 0:
            raise ValueError("quantity must be > 0")
        recipe = _require_recipe(self.recipe_repo, recipe_id)
        return validate_sale(recipe.ingredients, int(quantity))


@dataclass(frozen=True)
class RecordSale:
    """
    Validate, then deduct each ingredient and store the sale.

    Validation and deduction are separate steps; concurrent sales of the same
    ingredient can still race between them. Each deduction is guarded so stock
    never goes negative, and a failed guard rejects the sale.
    """
    recipe_repo: RecipeRepo
    ingredient_repo: IngredientRepo
    movement_repo: MovementRepo
    action_logs: ActionLogRepo

    def __call__(self, recipe_id: str, quantity: int, revenue: float = 0.0) -> Dict[str, Any]:
        if int(quantity) <= 0:
            raise ValueError("quantity must be > 0")
        if float(revenue) < 0:
            raise ValueError("revenue must be >= 0")
        recipe = _require_recipe(self.recipe_repo, recipe_id)

        check = validate_sale(recipe.ingredients, int(quantity))
        if not check.valid:
            log.info("sale rejected recipe=%s qty=%s: %s", recipe.id, quantity, check.message)
            raise SaleRejected(check)

        deducted: List[tuple] = []
        for ri in recipe.ingredients:
            required = float(ri.quantity_needed) * int(quantity)
            if required <= 0 or not ri.ingredient_id:
                continue
            if not self.ingredient_repo.deduct_stock(ri.ingredient_id, required):
                log.warning("stock changed during sale recipe=%s ingredient=%s", recipe.id, ri.ingredient_id)
                # put back what this sale already took
                for iid, qty in deducted:
                    if not self.ingredient_repo.add_stock(iid, qty):
                        log.error("sale rollback could not return %g to ingredient=%s recipe=%s", qty, iid, recipe.id)
                raise SaleRejected(
                    SaleCheck(
                        valid=False,
                        insufficient_ingredient=ri.ingredient_name,
                        message=f"Estoque de {ri.ingredient_name} alterado durante a venda",
                    )
                )
            deducted.append((ri.ingredient_id, required))

        sale_id = self.movement_repo.add_sale(recipe.id, recipe.type, recipe.name, int(quantity), float(revenue))
        self.action_logs.log("sale", "sale", recipe.name, entity_id=sale_id, description=f"{int(quantity)} un")
        log.info("sale recorded id=%s recipe=%s qty=%s", sale_id, recipe.id, quantity)
        return {"sale_id": sale_id, "recipe_id": recipe.id, "quantity": int(quantity), "revenue": float(revenue)}


@dataclass(frozen=True)
class RecordStockEntry:
    ingredient_repo: IngredientRepo
    movement_repo: MovementRepo
    action_logs: ActionLogRepo

    def __call__(self, ingredient_id: str, quantity: float, unit_cost: Optional[float] = None) -> Dict[str, Any]:
        if float(quantity) <= 0:
            raise ValueError("quantity must be > 0")
        ing = _require_ingredient(self.ingredient_repo, ingredient_id)

        self.ingredient_repo.add_stock(ing.id, float(quantity))
        entry_id = self.movement_repo.add_entry(ing.id, float(quantity), unit_cost)
        self.action_logs.log("stock_entry", "stock", ing.name, entity_id=ing.id, description=f"+{float(quantity):g} {ing.unit}")
        return {"entry_id": entry_id, "ingredient_id": ing.id, "quantity": float(quantity), "new_stock": ing.current_stock + float(quantity)}


@dataclass(frozen=True)
class SetRecipeIngredient:
    """Add an ingredient to a recipe or change how much of it one unit needs."""
    recipe_repo: RecipeRepo
    ingredient_repo: IngredientRepo
    action_logs: ActionLogRepo

    def __call__(self, recipe_id: str, ingredient_id: str, quantity_needed: float, actor: str = "user") -> Dict[str, Any]:
        qty = float(quantity_needed)
        if not math.isfinite(qty) or qty <= 0:
            raise ValueError("quantity_needed must be > 0")
        recipe = _require_recipe(self.recipe_repo, recipe_id)
        ing = _require_ingredient(self.ingredient_repo, ingredient_id)

        self.recipe_repo.set_requirement(recipe.id, ing.id, qty)
        self.action_logs.log(
            "edit", "recipe", recipe.name, entity_id=recipe.id,
            description=f"{ing.name}={qty:g} {ing.unit}", actor=actor,
        )
        log.info("requirement set recipe=%s ingredient=%s qty=%s", recipe.id, ing.id, qty)
        return {"ingredient_id": ing.id, "quantity_needed": qty, **GetRecipeCapacity(self.recipe_repo)(recipe.id)}


@dataclass(frozen=True)
class RemoveRecipeIngredient:
    recipe_repo: RecipeRepo
    action_logs: ActionLogRepo

    def __call__(self, recipe_id: str, ingredient_id: str, actor: str = "user") -> Dict[str, Any]:
        recipe = _require_recipe(self.recipe_repo, recipe_id)
        row = next((ri for ri in recipe.ingredients if ri.ingredient_id == ingredient_id), None)
        if row is None or not self.recipe_repo.remove_requirement(recipe.id, ingredient_id):
            raise LookupError(f"Ingredient {ingredient_id} is not part of recipe {recipe.name}")

        self.action_logs.log(
            "edit", "recipe", recipe.name, entity_id=recipe.id,
            description=f"-{row.ingredient_name}", actor=actor,
        )
        return {"ingredient_id": ingredient_id, **GetRecipeCapacity(self.recipe_repo)(recipe.id)}


def _empty_context(user: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "stock": {"total_ingredients": 0, "low_stock_count": 0, "out_of_stock_count": 0, "critical_items": []},
        "recipes": {"total": 0, "with_ingredients": 0, "without_stock": 0, "recent": []},
        "recent_activity": [],
        "user": {"id": user.get("id", ""), "email": user.get("email", ""), "role": user.get("role", "user")},
    }


@dataclass(frozen=True)
class BuildSystemContext:
    """Stock/recipe summary handed to the assistant prompt."""
    ingredient_repo: IngredientRepo
    recipe_repo: RecipeRepo
    action_logs: ActionLogRepo

    def __call__(self, user: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        user = user or {}
        try:
            ingredients = self.ingredient_repo.all()
            recipes = self.recipe_repo.all()
            activity = self.action_logs.recent(5)
        except Exception:
            log.exception("Error building system context")
            return _empty_context(user)

        ctx = _empty_context(user)
        ctx["stock"] = {
            "total_ingredients": len(ingredients),
            "low_stock_count": sum(1 for i in ingredients if i.current_stock <= i.min_stock),
            "out_of_stock_count": sum(1 for i in ingredients if i.current_stock <= 0),
            "critical_items": [
                {"name": i.name, "stock": i.current_stock, "unit": i.unit}
                for i in ingredients
                if i.current_stock <= 0
            ][:5],
        }
        ctx["recipes"] = {
            "total": len(recipes),
            "with_ingredients": sum(1 for r in recipes if r.ingredients),
            "without_stock": sum(1 for r in recipes if not validate_sale(r.ingredients, 1).valid),
            "recent": [{"id": r.id, "name": r.name, "type": r.type} for r in recipes[:3]],
        }
        ctx["recent_activity"] = [
            {
                "action_type": a.action_type,
                "entity_type": a.entity_type,
                "entity_name": a.entity_name,
                "created_at": a.created_at,
            }
            for a in activity
        ]
        return ctx


@dataclass(frozen=True)
class ImportRows:
    """
    Bulk create ingredients or recipes from uploaded rows; rows without a name are skipped.

    Recipe rows may carry the exported "ingredients" column (Massa=250g; Mussarela=100g);
    names are matched against live ingredients and unknown ones come back as warnings.
    """
    ingredient_repo: IngredientRepo
    recipe_repo: RecipeRepo
    action_logs: ActionLogRepo

    def __call__(self, entity: str, rows: List[Dict[str, Any]]) -> Dict[str, Any]:
        if entity not in ("ingredients", "recipes"):
            raise ValueError(f"Unsupported import entity: {entity}")

        created: List[str] = []
        skipped: List[Dict[str, Any]] = []
        warnings: List[Dict[str, Any]] = []
        by_name = {i.name.casefold(): i for i in self.ingredient_repo.all()} if entity == "recipes" else {}
        for idx, row in enumerate(rows, start=1):
            name = str(row.get("name") or "").strip()
            if not name:
                skipped.append({"row": idx, "reason": "missing name"})
                continue
            try:
                if entity == "ingredients":
                    item = self.ingredient_repo.create(
                        name,
                        unit=str(row.get("unit") or "un"),
                        min_stock=float(row.get("min_stock") or 0),
                        category=str(row.get("category") or ""),
                    )
                else:
                    rtype = str(row.get("type") or "pizza").strip().lower()
                    if rtype not in RECIPE_TYPES:
                        raise ValueError(f"unknown recipe type: {rtype}")
                    requirements = data_export.parse_requirements(row.get("ingredients"))
                    item = self.recipe_repo.create(name, type=rtype)
                    warnings += self._attach(idx, item.id, requirements, by_name)
            except ValueError as e:
                skipped.append({"row": idx, "reason": str(e)})
                continue
            created.append(item.id)

        self.action_logs.log("import", entity.rstrip("s"), f"{len(created)} registros", description=f"skipped={len(skipped)}")
        log.info("import entity=%s created=%d skipped=%d", entity, len(created), len(skipped))
        return {"created": len(created), "ids": created, "skipped": skipped, "warnings": warnings}

    def _attach(self, row_no: int, recipe_id: str, requirements: List[Tuple[str, float]], by_name: Dict[str, Ingredient]) -> List[Dict[str, Any]]:
        warnings: List[Dict[str, Any]] = []
        for ing_name, qty in requirements:
            ing = by_name.get(ing_name.casefold())
            if ing is None:
                warnings.append({"row": row_no, "reason": f"ingredient not found: {ing_name}"})
                continue
            try:
                self.recipe_repo.set_requirement(recipe_id, ing.id, qty)
            except ValueError as e:
                warnings.append({"row": row_no, "reason": f"{ing_name}: {e}"})
        return warnings


@dataclass(frozen=True)
class ExportData:
    ingredient_repo: IngredientRepo
    recipe_repo: RecipeRepo

    def __call__(self, entity: str, fmt: str = "csv") -> Dict[str, Any]:
        if fmt not in EXPORT_FORMATS:
            raise ValueError(f"Unsupported export format: {fmt}")
        if entity in ("recipe", "recipes"):
            rows = data_export.recipe_rows([with_capacity(r) for r in self.recipe_repo.all()])
            name = "recipes"
        elif entity in ("ingredient", "ingredients", "stock"):
            rows = data_export.ingredient_rows(self.ingredient_repo.all())
            name = "ingredients"
        else:
            raise ValueError(f"Unsupported export entity: {entity}")
        return {
            "format": fmt,
            "filename": f"{name}.{fmt}",
            "count": len(rows),
            "content": data_export.render(rows, fmt),
        }


@dataclass(frozen=True)
class GetInsights:
    ingredient_repo: IngredientRepo
    recipe_repo: RecipeRepo
    movement_repo: MovementRepo
    generator: InsightGenerator

    def __call__(self) -> List[Dict[str, Any]]:
        ingredients = self.ingredient_repo.all()
        recipes = [with_capacity(r) for r in self.recipe_repo.all()]
        sales = self.movement_repo.recent_sales(50)
        return [x.to_dict() for x in self.generator.generate(ingredients, sales, recipes)]
