# =========================
# FILE: pizzeria_stock/pizzastock/application/action_executor.py
# =========================
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pizzastock.application.response_composer import ResponseComposer, entity_pt
from pizzastock.application.usecases import (
    ExportData,
    ListRecipeCapacities,
    RemoveRecipeIngredient,
    SetRecipeIngredient,
    StockOverview,
)
from pizzastock.domain.intents import (
    CreateIntent,
    DeleteIntent,
    EditIntent,
    Entity,
    ExportIntent,
    ImportIntent,
    Intent,
    ListIntent,
    QueryIntent,
    RestoreIntent,
    UnrecognizedIntent,
)
from pizzastock.domain.repositories import ActionLogRepo, IngredientRepo, MovementRepo, RecipeRepo
from pizzastock.services.name_matcher import NameMatcher

log = logging.getLogger("app.action_executor")

_REQUIREMENT_FIELDS = ("ingredient", "ingrediente")
_REMOVE_WORDS = ("remove", "remover")


@dataclass
class ExecutionResult:
    reply: str
    data: Optional[Any] = None
    ok: bool = True


class ActionExecutor:
    """Runs a decoded intent against the repositories; every mutation lands on the timeline."""

    def __init__(
        self,
        ingredient_repo: IngredientRepo,
        recipe_repo: RecipeRepo,
        movement_repo: MovementRepo,
        action_logs: ActionLogRepo,
        composer: Optional[ResponseComposer] = None,
    ) -> None:
        self.ingredients = ingredient_repo
        self.recipes = recipe_repo
        self.movements = movement_repo
        self.action_logs = action_logs
        self.composer = composer or ResponseComposer()
        self._capacities = ListRecipeCapacities(recipe_repo)
        self._overview = StockOverview(ingredient_repo)
        self._exporter = ExportData(ingredient_repo, recipe_repo)
        self._set_requirement = SetRecipeIngredient(recipe_repo, ingredient_repo, action_logs)
        self._remove_requirement = RemoveRecipeIngredient(recipe_repo, action_logs)

    def execute(self, intent: Intent, actor: str = "user") -> ExecutionResult:
        log.info("execute action=%s actor=%s raw=%r", intent.action, actor, intent.raw_command)
        if isinstance(intent, UnrecognizedIntent):
            return ExecutionResult(self.composer.unrecognized(intent.reason), ok=False)
        if isinstance(intent, CreateIntent):
            return self._create(intent, actor)
        if isinstance(intent, EditIntent):
            return self._edit(intent, actor)
        if isinstance(intent, DeleteIntent):
            return self._delete(intent, actor)
        if isinstance(intent, RestoreIntent):
            return self._restore(intent, actor)
        if isinstance(intent, ListIntent):
            return self._list(intent)
        if isinstance(intent, QueryIntent):
            return self._query(intent)
        if isinstance(intent, ImportIntent):
            return ExecutionResult(
                "📁 Envie um arquivo CSV ou JSON para /import/ingredients ou /import/recipes "
                "(colunas: name, unit, min_stock, category | name, type, ingredients)."
            )
        if isinstance(intent, ExportIntent):
            return self._export(intent)
        return ExecutionResult(self.composer.unrecognized("ação desconhecida"), ok=False)

    # ----------------------------
    # Lookup
    # ----------------------------
    def _repo_for(self, entity: Entity):
        if entity == Entity.RECIPE:
            return self.recipes
        if entity == Entity.INGREDIENT:
            return self.ingredients
        return None

    def _resolve(self, entity: Entity, identifier: str, deleted: bool = False) -> Optional[Any]:
        repo = self._repo_for(entity)
        if repo is None or not identifier:
            return None
        item = repo.by_id(identifier)
        if item is not None and bool(item.deleted_at) == deleted:
            return item
        pool: Sequence[Any] = repo.deleted() if deleted else repo.all()
        match = NameMatcher([(x.name, x) for x in pool]).best(identifier)
        return match.item if match else None

    def _unsupported(self, intent: Intent) -> ExecutionResult:
        entity = getattr(intent, "entity", "")
        return ExecutionResult(
            f"⚠️ A ação \"{intent.action}\" não está disponível para {entity_pt(entity)}.",
            ok=False,
        )

    def _not_found(self, entity: Entity, identifier: str) -> ExecutionResult:
        return ExecutionResult(f"🔍 Não encontrei {entity_pt(entity)} \"{identifier}\".", ok=False)

    # ----------------------------
    # Mutations
    # ----------------------------
    def _create(self, intent: CreateIntent, actor: str) -> ExecutionResult:
        if intent.entity == Entity.RECIPE:
            item = self.recipes.create(intent.name)
        elif intent.entity == Entity.INGREDIENT:
            item = self.ingredients.create(intent.name)
        else:
            return self._unsupported(intent)
        self.action_logs.log("create", intent.entity.value, item.name, entity_id=item.id, actor=actor)
        return ExecutionResult(
            self.composer.done(f"{entity_pt(intent.entity).capitalize()} \"{item.name}\" criada(o)."),
            data=item.to_dict(),
        )

    def _edit(self, intent: EditIntent, actor: str) -> ExecutionResult:
        repo = self._repo_for(intent.entity)
        if repo is None:
            return self._unsupported(intent)
        if not intent.field or intent.value is None:
            return ExecutionResult("Informe o campo e o novo valor: /edit <tipo> <id> <campo> <valor>", ok=False)
        item = self._resolve(intent.entity, intent.identifier)
        if item is None:
            return self._not_found(intent.entity, intent.identifier)
        if intent.entity == Entity.RECIPE and intent.field.lower() in _REQUIREMENT_FIELDS:
            return self._edit_requirement(item, intent.value, actor)
        try:
            repo.update_field(item.id, intent.field, intent.value)
        except ValueError as e:
            return ExecutionResult(f"⚠️ {e}", ok=False)
        self.action_logs.log(
            "edit", intent.entity.value, item.name, entity_id=item.id,
            description=f"{intent.field}={intent.value}", actor=actor,
        )
        return ExecutionResult(self.composer.done(f"{item.name}: {intent.field} atualizado para {intent.value}."))

    def _edit_requirement(self, recipe: Any, value: str, actor: str) -> ExecutionResult:
        name, _, last = value.strip().rpartition(" ")
        if not name.strip():
            return ExecutionResult("Use: /edit recipe <id> ingredient <ingrediente> <quantidade|remover>", ok=False)
        ing = self._resolve(Entity.INGREDIENT, name.strip())
        if ing is None:
            return self._not_found(Entity.INGREDIENT, name.strip())
        try:
            if last.lower() in _REMOVE_WORDS:
                out = self._remove_requirement(recipe.id, ing.id, actor=actor)
                msg = f"{ing.name} removido(a) de {recipe.name}."
            else:
                out = self._set_requirement(recipe.id, ing.id, float(last.replace(",", ".")), actor=actor)
                msg = f"{recipe.name}: {ing.name} = {out['quantity_needed']:g} {ing.unit}."
        except (LookupError, ValueError) as e:
            return ExecutionResult(f"⚠️ {e}", ok=False)
        return ExecutionResult(self.composer.done(f"{msg} Capacidade: {out['capacity']}."), data=out)

    def _delete(self, intent: DeleteIntent, actor: str) -> ExecutionResult:
        repo = self._repo_for(intent.entity)
        if repo is None:
            return self._unsupported(intent)
        item = self._resolve(intent.entity, intent.identifier)
        if item is None:
            return self._not_found(intent.entity, intent.identifier)
        repo.soft_delete(item.id)
        self.action_logs.log("delete", intent.entity.value, item.name, entity_id=item.id, actor=actor)
        return ExecutionResult(self.composer.done(f"\"{item.name}\" foi movido para a lixeira."))

    def _restore(self, intent: RestoreIntent, actor: str) -> ExecutionResult:
        repo = self._repo_for(intent.entity)
        if repo is None:
            return self._unsupported(intent)
        if not intent.identifier:
            return self._trash_listing()
        item = self._resolve(intent.entity, intent.identifier, deleted=True)
        if item is None:
            return self._not_found(intent.entity, intent.identifier)
        repo.restore(item.id)
        self.action_logs.log("restore", intent.entity.value, item.name, entity_id=item.id, actor=actor)
        return ExecutionResult(self.composer.done(f"\"{item.name}\" foi restaurado."))

    # ----------------------------
    # Reads
    # ----------------------------
    def _trash_items(self) -> List[Dict[str, Any]]:
        items: List[Tuple[str, Any]] = [("recipe", r) for r in self.recipes.deleted()]
        items += [("ingredient", i) for i in self.ingredients.deleted()]
        return [
            {"item_type": kind, "id": x.id, "item_name": x.name, "deleted_at": x.deleted_at}
            for kind, x in items
        ]

    def _trash_listing(self) -> ExecutionResult:
        rows = self._trash_items()
        if not rows:
            return ExecutionResult("🗑️ A lixeira está vazia.", data=[])
        lines = [f"• [{entity_pt(r['item_type'])}] {r['item_name']} ({r['id']})" for r in rows]
        return ExecutionResult("🗑️ Lixeira:\n" + "\n".join(lines), data=rows)

    def _list(self, intent: ListIntent) -> ExecutionResult:
        if intent.entity == Entity.RECIPE:
            rows = self._capacities()
            return ExecutionResult(self.composer.capacity_lines(rows), data=rows)
        if intent.entity in (Entity.INGREDIENT, Entity.STOCK):
            rows = self._overview()["ingredients"]
            return ExecutionResult(self.composer.stock_lines(rows), data=rows)
        if intent.entity == Entity.TRASH:
            return self._trash_listing()
        if intent.entity == Entity.CATEGORY:
            cats = sorted({i.category for i in self.ingredients.all() if i.category})
            reply = "🏷️ Categorias:\n" + "\n".join(f"• {c}" for c in cats) if cats else "Nenhuma categoria cadastrada."
            return ExecutionResult(reply, data=cats)
        if intent.entity == Entity.SALE:
            sales = self.movements.recent_sales(10)
            if not sales:
                return ExecutionResult("Nenhuma venda registrada.", data=[])
            lines = [f"• {s['product_name']}: {s['quantity']} un (R$ {s['revenue']:.2f})" for s in sales]
            return ExecutionResult("🧾 Últimas vendas:\n" + "\n".join(lines), data=sales)
        return self._unsupported(intent)

    def _query(self, intent: QueryIntent) -> ExecutionResult:
        if intent.topic == "help":
            return ExecutionResult(self.composer.help())
        if intent.entity == Entity.STOCK:
            overview = self._overview()
            if intent.topic == "alerts":
                return ExecutionResult(
                    self.composer.stock_lines(overview["alerts"], title="🚨 Alertas de estoque"),
                    data=overview["alerts"],
                )
            return ExecutionResult(self.composer.stock_lines(overview["ingredients"]), data=overview["ingredients"])
        if intent.entity == Entity.TRASH:
            rows = self._trash_items()
            return ExecutionResult(f"🗑️ {len(rows)} item(ns) na lixeira. Use /trash show para ver.", data={"count": len(rows)})
        return ExecutionResult(self.composer.help())

    def _export(self, intent: ExportIntent) -> ExecutionResult:
        if intent.entity not in (Entity.RECIPE, Entity.INGREDIENT, Entity.STOCK):
            return self._unsupported(intent)
        out = self._exporter(intent.entity.value, intent.format)
        if not out["count"]:
            return ExecutionResult("Nenhum dado para exportar.", data=None, ok=False)
        return ExecutionResult(
            f"📤 Exportação de {out['count']} registro(s) em {intent.format.upper()} pronta.",
            data=out,
        )
