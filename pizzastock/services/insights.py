# pizzeria_stock/pizzastock/services/insights.py
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Sequence

import ujson as json

from pizzastock.domain.entities import Ingredient, Recipe
from pizzastock.services.ai_client import AIClient

log = logging.getLogger("services.insights")

PRIORITIES = ("high", "medium", "low")
CATEGORIES = ("inventory", "sales", "optimization", "alert")


@dataclass(frozen=True)
class Insight:
    title: str
    description: str
    priority: str
    category: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _coerce_insight(raw: Any) -> Insight | None:
    if not isinstance(raw, dict):
        return None
    title = str(raw.get("title") or "").strip()
    description = str(raw.get("description") or "").strip()
    if not title or not description:
        return None
    priority = str(raw.get("priority") or "medium").lower()
    category = str(raw.get("category") or "inventory").lower()
    return Insight(
        title=title,
        description=description,
        priority=priority if priority in PRIORITIES else "medium",
        category=category if category in CATEGORIES else "inventory",
    )


def fallback_insights(ingredients: Sequence[Ingredient], sales: Sequence[Dict[str, Any]]) -> List[Insight]:
    insights: List[Insight] = []

    low = [i for i in ingredients if i.current_stock < i.min_stock]
    if low:
        insights.append(
            Insight(
                title=f"{len(low)} ingrediente(s) com estoque baixo",
                description=(
                    "Os seguintes itens estão abaixo do mínimo: "
                    f"{', '.join(i.name for i in low)}. Reponha o quanto antes."
                ),
                priority="high",
                category="alert",
            )
        )

    if sales:
        revenue = sum(float(s.get("revenue") or 0) for s in sales)
        insights.append(
            Insight(
                title="Vendas em andamento",
                description=(
                    f"Registradas {len(sales)} vendas totalizando R$ {revenue:.2f}. "
                    "Continue monitorando o desempenho."
                ),
                priority="medium",
                category="sales",
            )
        )

    insights.append(
        Insight(
            title="Otimize suas compras",
            description=(
                "Analise o histórico de vendas para identificar padrões e comprar apenas "
                "o necessário, reduzindo desperdícios."
            ),
            priority="low",
            category="optimization",
        )
    )
    return insights


class InsightGenerator:
    """3-5 actionable stock/sales insights; deterministic fallback when no LLM answers."""

    def __init__(self, ai: AIClient) -> None:
        self.ai = ai

    def _prompt(self, ingredients: Sequence[Ingredient], sales: Sequence[Dict[str, Any]], recipes: Sequence[Recipe]) -> str:
        payload = {
            "ingredients": [i.to_dict() for i in ingredients],
            "sales": list(sales)[:20],
            "recipes": [{"name": r.name, "type": r.type, "capacity": r.capacity} for r in recipes],
        }
        return (
            "Você é um consultor especialista em gestão de pizzarias.\n"
            "Analise os dados abaixo e gere de 3 a 5 insights acionáveis em português.\n\n"
            f"DADOS:\n{json.dumps(payload, ensure_ascii=False)}\n\n"
            'Responda em JSON: {"insights": [{"title": "...", "description": "...", '
            '"priority": "high|medium|low", "category": "inventory|sales|optimization|alert"}]}'
        )

    def generate(
        self,
        ingredients: Sequence[Ingredient],
        sales: Sequence[Dict[str, Any]],
        recipes: Sequence[Recipe],
    ) -> List[Insight]:
        if not self.ai.available:
            return fallback_insights(ingredients, sales)

        data = self.ai.complete_json(self._prompt(ingredients, sales, recipes))
        raw = data.get("insights") if isinstance(data, dict) else None
        insights = [x for x in (_coerce_insight(r) for r in (raw or [])) if x is not None]
        if not insights:
            log.warning("LLM insights unusable; returning fallback insights")
            return fallback_insights(ingredients, sales)
        return insights[:5]
