import ujson as json

from pizzastock.services.insights import InsightGenerator, fallback_insights

from conftest import FakeProvider, make_ai


def test_fallback_flags_low_stock_and_summarizes_sales(ingredient_repo):
    sales = [{"revenue": 45.5}, {"revenue": 30}]
    insights = fallback_insights(ingredient_repo.all(), sales)

    assert [i.category for i in insights] == ["alert", "sales", "optimization"]
    alert = insights[0]
    assert alert.priority == "high"
    assert "Mussarela" in alert.description and "Calabresa" in alert.description
    assert "Massa" not in alert.description
    assert "R$ 75.50" in insights[1].description


def test_fallback_with_nothing_to_report_still_gives_a_tip():
    insights = fallback_insights([], [])
    assert len(insights) == 1
    assert insights[0].category == "optimization"


def test_generator_without_llm_uses_fallback(ingredient_repo, recipe_repo):
    gen = InsightGenerator(make_ai())
    insights = gen.generate(ingredient_repo.all(), [], recipe_repo.all())
    assert insights[0].category == "alert"


def test_generator_coerces_llm_output(ingredient_repo, recipe_repo):
    payload = {
        "insights": [
            {"title": "Repor mussarela", "description": "Abaixo do mínimo.", "priority": "HIGH", "category": "alert"},
            {"title": "Sem descrição"},
            {"title": "Promoção", "description": "Calabresa parada.", "priority": "urgent", "category": "marketing"},
        ]
        + [{"title": f"Dica {n}", "description": "..."} for n in range(5)]
    }
    provider = FakeProvider("gemini", json.dumps(payload))
    insights = InsightGenerator(make_ai(provider)).generate(ingredient_repo.all(), [], recipe_repo.all())

    assert len(insights) == 5
    assert insights[0].priority == "high"
    assert insights[1].title == "Promoção"
    assert (insights[1].priority, insights[1].category) == ("medium", "inventory")
    assert "Margherita" in provider.prompts[0]


def test_generator_falls_back_on_unusable_llm_output(ingredient_repo, recipe_repo):
    provider = FakeProvider("gemini", '{"insights": "nenhum"}')
    insights = InsightGenerator(make_ai(provider)).generate(ingredient_repo.all(), [], recipe_repo.all())
    assert insights[-1].title == "Otimize suas compras"
