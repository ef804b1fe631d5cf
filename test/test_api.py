import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from pizzastock.api.routes import router
from pizzastock.application.action_executor import ActionExecutor
from pizzastock.application.dialogue_manager import DialogueManager
from pizzastock.application.response_composer import ResponseComposer
from pizzastock.application.rule_engine import RuleEngine
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
from pizzastock.infrastructure.session_store import InMemorySessionStore
from pizzastock.services.insights import InsightGenerator

from conftest import make_ai


@pytest.fixture
def client(ingredient_repo, recipe_repo, movement_repo, action_logs):
    app = FastAPI()
    app.include_router(router)

    composer = ResponseComposer()
    ai = make_ai(fallback=composer.fallback_for)
    app.state.dialogue_manager = DialogueManager(
        sessions=InMemorySessionStore(),
        rule_engine=RuleEngine(),
        executor=ActionExecutor(ingredient_repo, recipe_repo, movement_repo, action_logs, composer=composer),
        ai=ai,
        build_context=BuildSystemContext(ingredient_repo, recipe_repo, action_logs),
        composer=composer,
    )
    app.state.capacity_uc = GetRecipeCapacity(recipe_repo)
    app.state.capacities_uc = ListRecipeCapacities(recipe_repo)
    app.state.set_requirement_uc = SetRecipeIngredient(recipe_repo, ingredient_repo, action_logs)
    app.state.remove_requirement_uc = RemoveRecipeIngredient(recipe_repo, action_logs)
    app.state.stock_overview_uc = StockOverview(ingredient_repo)
    app.state.insights_uc = GetInsights(ingredient_repo, recipe_repo, movement_repo, InsightGenerator(ai))
    app.state.validate_sale_uc = ValidateSale(recipe_repo)
    app.state.record_sale_uc = RecordSale(recipe_repo, ingredient_repo, movement_repo, action_logs)
    app.state.stock_entry_uc = RecordStockEntry(ingredient_repo, movement_repo, action_logs)
    app.state.export_uc = ExportData(ingredient_repo, recipe_repo)
    app.state.import_uc = ImportRows(ingredient_repo, recipe_repo, action_logs)
    return TestClient(app)


def test_chat_round_trip(client):
    r = client.post("/chat", json={"session_id": "abc", "text": "/create ingredient Rúcula"})
    assert r.status_code == 200
    body = r.json()
    assert body["session_id"] == "abc"
    assert body["context"]["awaiting_confirmation"] is True
    assert [a["command"] for a in body["actions"]] == ["execute", "cancel"]

    r = client.post("/chat", json={"session_id": "abc", "text": "execute"})
    assert r.json()["context"]["awaiting_confirmation"] is False


def test_chat_requires_text(client):
    assert client.post("/chat", json={"session_id": "abc", "text": "   "}).status_code == 400
    assert client.post("/chat", json={"session_id": "abc"}).status_code == 422


def test_capacity_endpoints(client):
    r = client.get("/recipes/r1/capacity")
    assert r.status_code == 200
    assert r.json()["capacity"] == 3
    assert r.json()["limiting_ingredient"] == "Mussarela"

    assert client.get("/recipes/missing/capacity").status_code == 404
    assert {row["recipe_id"] for row in client.get("/recipes/capacity").json()} == {"r1", "r2"}


def test_ingredient_status(client):
    body = client.get("/ingredients/status").json()
    assert len(body["ingredients"]) == 4
    assert body["alerts"][0]["name"] == "Calabresa"


def test_validate_and_record_sale(client, ingredient_repo):
    r = client.post("/sales/validate", json={"recipe_id": "r1", "quantity": 4})
    assert r.status_code == 200
    assert r.json()["valid"] is False
    assert r.json()["insufficient_ingredient"] == "Mussarela"

    r = client.post("/sales", json={"recipe_id": "r1", "quantity": 4})
    assert r.status_code == 400
    assert r.json()["detail"]["insufficient_ingredient"] == "Mussarela"

    r = client.post("/sales", json={"recipe_id": "r1", "quantity": 1, "revenue": 45})
    assert r.status_code == 201
    assert ingredient_repo.by_id("i2").current_stock == 200

    assert client.post("/sales", json={"recipe_id": "r1", "quantity": 0}).status_code == 422


def test_stock_entry(client):
    r = client.post("/stock-entries", json={"ingredient_id": "i3", "quantity": 500})
    assert r.status_code == 201
    assert r.json()["new_stock"] == 500
    assert client.post("/stock-entries", json={"ingredient_id": "zz", "quantity": 1}).status_code == 404


def test_export_and_import(client, ingredient_repo):
    r = client.get("/export/ingredients", params={"format": "csv"})
    assert r.status_code == 200
    assert r.json()["content"].startswith("id,name,unit,current_stock,min_stock,category,cost_per_unit,status")
    assert client.get("/export/sales").status_code == 400
    assert client.get("/export/recipes", params={"format": "xml"}).status_code == 422

    r = client.post("/import/ingredients", json={"content": "name,unit,min_stock\nAzeitona,g,50\n", "format": "csv"})
    assert r.status_code == 200
    assert r.json()["created"] == 1
    assert any(i.name == "Azeitona" for i in ingredient_repo.all())

    assert client.post("/import/ingredients", json={"content": "", "format": "csv"}).status_code == 400


def test_insights_without_llm(client):
    body = client.get("/insights").json()
    assert body["insights"][-1]["category"] == "optimization"


def test_missing_wiring_is_a_server_error():
    app = FastAPI()
    app.include_router(router)
    with pytest.raises(RuntimeError):
        TestClient(app).get("/ingredients/status")


def test_recipe_ingredient_endpoints(client, recipe_repo):
    client.post("/chat", json={"session_id": "x", "text": "/create recipe Napolitana"})
    client.post("/chat", json={"session_id": "x", "text": "sim"})
    [recipe] = [x for x in recipe_repo.all() if x.name == "Napolitana"]
    assert client.get(f"/recipes/{recipe.id}/capacity").json()["capacity"] == 0

    r = client.put(f"/recipes/{recipe.id}/ingredients/i1", json={"quantity_needed": 250})
    assert r.status_code == 200
    assert r.json()["capacity"] == 4
    assert client.get(f"/recipes/{recipe.id}/capacity").json()["capacity"] == 4

    r = client.post("/sales", json={"recipe_id": recipe.id, "quantity": 1})
    assert r.status_code == 201

    r = client.delete(f"/recipes/{recipe.id}/ingredients/i1")
    assert r.status_code == 200
    assert r.json()["capacity"] == 0
    assert client.delete(f"/recipes/{recipe.id}/ingredients/i1").status_code == 404


def test_recipe_ingredient_validation(client):
    assert client.put("/recipes/r1/ingredients/i1", json={"quantity_needed": 0}).status_code == 422
    assert client.put("/recipes/r1/ingredients/zz", json={"quantity_needed": 10}).status_code == 404
    assert client.put("/recipes/zz/ingredients/i1", json={"quantity_needed": 10}).status_code == 404
