from __future__ import annotations

import logging
import uvicorn
from fastapi import FastAPI
from pymongo import MongoClient
from dotenv import load_dotenv
load_dotenv()
from pizzastock.api.routes import router
from pizzastock.core.config import (
    AISettings,
    MONGO_URI,
    MONGO_DB,
    MONGO_INGREDIENTS_COL,
    MONGO_RECIPES_COL,
    MONGO_STOCK_ENTRIES_COL,
    MONGO_STOCK_EXITS_COL,
    MONGO_ACTION_LOGS_COL,
    SESSION_TTL_SECONDS,
)

from pizzastock.infrastructure.mongo_repositories import (
    MongoActionLogRepository,
    MongoIngredientRepository,
    MongoMovementRepository,
    MongoRecipeRepository,
)
from pizzastock.services.ai_client import AIClient
from pizzastock.services.insights import InsightGenerator
from pizzastock.application.usecases import (
    BuildSystemContext,
    ExportData,
    GetInsights,
    GetRecipeCapacity,
    ImportRows,
    ListRecipeCapacities,
    RecordSale,
    RecordStockEntry,
    RemoveRecipeIngredient,
    SetRecipeIngredient,
    StockOverview,
    ValidateSale,
)
from pizzastock.application.action_executor import ActionExecutor
from pizzastock.application.response_composer import ResponseComposer

from pizzastock.infrastructure.session_store import InMemorySessionStore
from pizzastock.application.rule_engine import RuleEngine
from pizzastock.application.dialogue_manager import DialogueManager

log = logging.getLogger("app")
app = FastAPI(title="Pizzeria Stock")
app.include_router(router)

_mongo_client: MongoClient | None = None


@app.on_event("startup")
def on_startup() -> None:
    global _mongo_client

    _mongo_client = MongoClient(MONGO_URI, serverSelectionTimeoutMS=3000)
    db = _mongo_client[MONGO_DB]
    ingredient_repo = MongoIngredientRepository(db[MONGO_INGREDIENTS_COL])
    recipe_repo = MongoRecipeRepository(db[MONGO_RECIPES_COL], ingredient_repo)
    movement_repo = MongoMovementRepository(db[MONGO_STOCK_ENTRIES_COL], db[MONGO_STOCK_EXITS_COL])
    action_logs = MongoActionLogRepository(db[MONGO_ACTION_LOGS_COL])

    composer = ResponseComposer()
    ai_client = AIClient(AISettings.from_env(), fallback=composer.fallback_for)

    context_uc = BuildSystemContext(ingredient_repo, recipe_repo, action_logs)
    executor = ActionExecutor(ingredient_repo, recipe_repo, movement_repo, action_logs, composer=composer)

    dialogue_manager = DialogueManager(
        sessions=InMemorySessionStore(ttl_seconds=SESSION_TTL_SECONDS),
        rule_engine=RuleEngine(),
        executor=executor,
        ai=ai_client,
        build_context=context_uc,
        composer=composer,
    )

    # DI for routes.py
    app.state.dialogue_manager = dialogue_manager
    app.state.capacity_uc = GetRecipeCapacity(recipe_repo)
    app.state.capacities_uc = ListRecipeCapacities(recipe_repo)
    app.state.set_requirement_uc = SetRecipeIngredient(recipe_repo, ingredient_repo, action_logs)
    app.state.remove_requirement_uc = RemoveRecipeIngredient(recipe_repo, action_logs)
    app.state.stock_overview_uc = StockOverview(ingredient_repo)
    app.state.insights_uc = GetInsights(ingredient_repo, recipe_repo, movement_repo, InsightGenerator(ai_client))
    app.state.validate_sale_uc = ValidateSale(recipe_repo)
    app.state.record_sale_uc = RecordSale(recipe_repo, ingredient_repo, movement_repo, action_logs)
    app.state.stock_entry_uc = RecordStockEntry(ingredient_repo, movement_repo, action_logs)
    app.state.export_uc = ExportData(ingredient_repo, recipe_repo)
    app.state.import_uc = ImportRows(ingredient_repo, recipe_repo, action_logs)

    log.info("Startup complete")


@app.on_event("shutdown")
def on_shutdown() -> None:
    global _mongo_client
    if _mongo_client:
        _mongo_client.close()
        _mongo_client = None


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8081, reload=False)
