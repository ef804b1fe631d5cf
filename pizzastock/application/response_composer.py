# pizzeria_stock/pizzastock/application/response_composer.py
from __future__ import annotations

import random
from typing import Any, Dict, List, Sequence

from pizzastock.application import response_templates as rt
from pizzastock.application.rule_engine import fallback_topic
from pizzastock.domain.intents import (
    CreateIntent,
    DeleteIntent,
    EditIntent,
    Intent,
    RestoreIntent,
)
from pizzastock.domain.stock_rules import format_unit

_ENTITY_PT = {
    "recipe": "receita",
    "ingredient": "ingrediente",
    "category": "categoria",
    "stock": "estoque",
    "sale": "venda",
    "trash": "lixeira",
}


def _pick(xs: List[str]) -> str:
    return random.choice(xs) if xs else ""


def entity_pt(entity: Any) -> str:
    value = getattr(entity, "value", entity)
    return _ENTITY_PT.get(str(value), str(value))


class ResponseComposer:
    """Chat replies: fixed facts, light wording variation."""

    def greet(self) -> str:
        return rt.greet_reply()

    def thanks(self) -> str:
        return rt.thanks_reply()

    def cancelled(self) -> str:
        return rt.cancelled_reply()

    def nothing_pending(self) -> str:
        return rt.nothing_pending_reply()

    def help(self) -> str:
        return rt.HELP_TEXT

    def fallback_for(self, text: str) -> str:
        return rt.FALLBACK_BY_TOPIC[fallback_topic(text)]

    def unrecognized(self, reason: str) -> str:
        return f"⚠️ Não consegui entender o comando ({reason}). Digite /help para ver os comandos."

    def confirm_prompt(self, intent: Intent) -> str:
        if isinstance(intent, CreateIntent):
            what = f"criar {entity_pt(intent.entity)} \"{intent.name}\""
        elif isinstance(intent, EditIntent):
            what = f"alterar {entity_pt(intent.entity)} \"{intent.identifier}\""
            if intent.field:
                what += f" ({intent.field} = {intent.value or ''})"
        elif isinstance(intent, DeleteIntent):
            what = f"mover {entity_pt(intent.entity)} \"{intent.identifier}\" para a lixeira"
        elif isinstance(intent, RestoreIntent):
            what = f"restaurar {entity_pt(intent.entity)} \"{intent.identifier}\" da lixeira"
        else:
            what = "executar esta ação"
        return f"Confirma {what}? Responda \"sim\" ou \"não\"."

    def done(self, message: str) -> str:
        return _pick([f"✅ {message}", f"✅ Pronto! {message}"])

    def capacity_lines(self, rows: Sequence[Dict[str, Any]]) -> str:
        if not rows:
            return "Nenhuma receita cadastrada."
        lines = []
        for r in rows:
            limit = f" (limitado por {r['limiting_ingredient']})" if r.get("limiting_ingredient") else ""
            lines.append(f"• {r['name']}: {r['capacity']} un{limit}")
        return "📖 Receitas:\n" + "\n".join(lines)

    def stock_lines(self, rows: Sequence[Dict[str, Any]], title: str = "📦 Estoque") -> str:
        if not rows:
            return f"{title}: nada a mostrar."
        lines = [f"{r['icon']} {r['name']}: {r['current_stock']:g} {format_unit(r['unit'])} ({r['percentage']}%)" for r in rows]
        return f"{title}:\n" + "\n".join(lines)
