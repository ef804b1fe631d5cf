# =========================
# FILE: pizzeria_stock/pizzastock/application/rule_engine.py
# =========================
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from pizzastock.infrastructure.session_store import SessionState

_RE_CONFIRM = re.compile(r"^\s*(sim|s|confirmar|confirmo|confirma|ok|yes|execute|executar)\s*[!.]?\s*$", re.IGNORECASE)
_RE_CANCEL = re.compile(r"^\s*(não|nao|n|cancelar|cancela|cancel|no)\s*[!.]?\s*$", re.IGNORECASE)

_RE_GREET = re.compile(r"\b(olá|ola|oi|bom\s*dia|boa\s*tarde|boa\s*noite|hello|hi|hey)\b", re.IGNORECASE)
_RE_THANKS = re.compile(r"\b(obrigad[oa]|valeu|thanks|thx)\b", re.IGNORECASE)

# keyword hints for the pattern-matching fallback reply
_RE_HINT_CREATE = re.compile(r"\b(criar|crie|nov[oa]|cadastrar)\b", re.IGNORECASE)
_RE_HINT_TRASH = re.compile(r"\b(lixeira|deletad[oa]s?|excluíd[oa]s?|excluid[oa]s?)\b", re.IGNORECASE)
_RE_HINT_IMPORT = re.compile(r"\b(importar|import)\b", re.IGNORECASE)
_RE_HINT_STOCK = re.compile(r"\b(estoque|stock)\b", re.IGNORECASE)
_RE_HINT_HELP = re.compile(r"\b(ajuda|help)\b", re.IGNORECASE)


@dataclass(frozen=True)
class RuleResult:
    action: str
    payload: Dict[str, Any]


class RuleEngine:
    def try_match(self, text: str, state: SessionState) -> Optional[RuleResult]:
        t = (text or "").strip()
        if not t:
            return None

        # Only meaningful while a command waits for confirmation
        if state.has_pending:
            if _RE_CONFIRM.match(t):
                return RuleResult("confirm", {})
            if _RE_CANCEL.match(t):
                return RuleResult("cancel", {})

        if t.startswith("/"):
            return None

        if _RE_GREET.search(t):
            return RuleResult("greet", {})
        if _RE_THANKS.search(t):
            return RuleResult("thanks", {})

        return None


def fallback_topic(text: str) -> str:
    t = text or ""
    if _RE_HINT_CREATE.search(t):
        return "create"
    if _RE_HINT_TRASH.search(t):
        return "trash"
    if _RE_HINT_IMPORT.search(t):
        return "import"
    if _RE_HINT_STOCK.search(t):
        return "stock"
    if _RE_HINT_HELP.search(t):
        return "help"
    return "general"
