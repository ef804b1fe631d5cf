import pytest

from pizzastock.application.action_executor import ActionExecutor
from pizzastock.application.command_parser import parse_command
from pizzastock.domain.intents import CreateIntent, Entity


@pytest.fixture
def executor(ingredient_repo, recipe_repo, movement_repo, action_logs):
    return ActionExecutor(ingredient_repo, recipe_repo, movement_repo, action_logs)


def run(executor, text, actor="user"):
    return executor.execute(parse_command(text), actor=actor)


def test_create_recipe_logs_timeline(executor, recipe_repo, action_logs):
    result = run(executor, "/create recipe Portuguesa", actor="ai")

    assert result.ok
    assert "Portuguesa" in result.reply
    assert any(r.name == "Portuguesa" for r in recipe_repo.all())
    entry = action_logs.entries[-1]
    assert (entry.action_type, entry.entity_type, entry.entity_name, entry.actor) == ("create", "recipe", "Portuguesa", "ai")


def test_create_unsupported_entity(executor):
    result = executor.execute(CreateIntent(entity=Entity.SALE, name="x"))
    assert not result.ok


def test_edit_resolves_by_fuzzy_name(executor, ingredient_repo):
    result = run(executor, "/edit ingredient mussarela min_stock 250")
    assert result.ok
    assert ingredient_repo.by_id("i2").min_stock == 250.0


def test_edit_rejects_non_editable_field(executor, ingredient_repo):
    result = run(executor, "/edit ingredient i1 current_stock 99999")
    assert not result.ok
    assert ingredient_repo.by_id("i1").current_stock == 1000


def test_edit_needs_field_and_value(executor):
    assert not run(executor, "/edit recipe r1").ok


def test_delete_then_restore_round_trip(executor, recipe_repo):
    assert run(executor, "/delete recipe Calabresa").ok
    assert [r.id for r in recipe_repo.all()] == ["r1"]

    trash = run(executor, "/trash show")
    assert trash.data[0]["item_name"] == "Calabresa"

    assert run(executor, "/restore recipe calabresa").ok
    assert {r.id for r in recipe_repo.all()} == {"r1", "r2"}


def test_restore_without_identifier_lists_trash(executor):
    result = run(executor, "/restore ingredient")
    assert result.ok
    assert result.data == []
    assert "vazia" in result.reply


def test_not_found(executor):
    result = run(executor, "/delete ingredient xyz")
    assert not result.ok
    assert "xyz" in result.reply


def test_list_recipes_shows_capacity(executor):
    result = run(executor, "/list recipes")
    assert "Margherita: 3 un (limitado por Mussarela)" in result.reply
    assert len(result.data) == 2


def test_stock_status_and_alerts(executor):
    status = run(executor, "/stock status")
    assert len(status.data) == 4

    alerts = run(executor, "/alerts stock")
    assert [a["name"] for a in alerts.data] == ["Calabresa", "Mussarela"]
    assert alerts.reply.startswith("🚨")


def test_categories_and_sales(executor, movement_repo):
    cats = run(executor, "/list categories")
    assert cats.data == ["carnes", "massa", "molhos", "queijo"]

    assert run(executor, "/list sales").data == []
    movement_repo.add_sale("r1", "pizza", "Margherita", 2, 90.0)
    assert "Margherita: 2 un (R$ 90.00)" in run(executor, "/list sales").reply


def test_help_import_and_trash_count(executor):
    assert "/create recipe" in run(executor, "/help").reply
    assert "/import/ingredients" in run(executor, "/import").reply
    assert run(executor, "/trash").data == {"count": 0}


def test_export_returns_file_payload(executor):
    result = run(executor, "/export ingredients json")
    assert result.ok
    assert result.data["filename"] == "ingredients.json"
    assert '"Mussarela"' in result.data["content"]


def test_unrecognized_is_reported(executor):
    result = run(executor, "/bogus")
    assert not result.ok
    assert "/help" in result.reply


def test_edit_recipe_ingredient_sets_quantity(executor, recipe_repo, action_logs):
    result = run(executor, "/edit recipe r1 ingredient Molho de Tomate 125")

    assert result.ok
    assert result.data["capacity"] == 3
    rows = {ri.ingredient_id: ri.quantity_needed for ri in recipe_repo.by_id("r1").ingredients}
    assert rows["i4"] == 125.0
    assert action_logs.entries[-1].description == "Molho de Tomate=125 ml"


def test_edit_recipe_ingredient_removes_row(executor, recipe_repo):
    result = run(executor, "/edit recipe r1 ingrediente mussarela remover")

    assert result.ok
    assert "Capacidade: 4" in result.reply
    assert "i2" not in {ri.ingredient_id for ri in recipe_repo.by_id("r1").ingredients}


@pytest.mark.parametrize(
    "text",
    [
        "/edit recipe r1 ingredient Massa 0",
        "/edit recipe r1 ingredient Massa muito",
        "/edit recipe r1 ingredient 40",
        "/edit recipe r2 ingredient Mussarela remover",
    ],
)
def test_edit_recipe_ingredient_rejects_bad_input(executor, recipe_repo, text):
    before = recipe_repo.by_id("r1").ingredients
    assert not run(executor, text).ok
    assert recipe_repo.by_id("r1").ingredients == before
