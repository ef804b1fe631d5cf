# pizzeria_stock/pizzastock/domain/intents.py
"""
Assistant intents as a closed set of variants.

Both the slash-command parser and the LLM reply decoder produce one of these.
Text from either source is untrusted: anything that does not decode into a
well-formed variant becomes UnrecognizedIntent, never None.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union


class Entity(str, Enum):
    RECIPE = "recipe"
    INGREDIENT = "ingredient"
    CATEGORY = "category"
    STOCK = "stock"
    SALE = "sale"
    TRASH = "trash"


_ENTITY_ALIASES: Dict[str, Entity] = {
    "recipe": Entity.RECIPE,
    "recipes": Entity.RECIPE,
    "receita": Entity.RECIPE,
    "receitas": Entity.RECIPE,
    "ingredient": Entity.INGREDIENT,
    "ingredients": Entity.INGREDIENT,
    "ingrediente": Entity.INGREDIENT,
    "ingredientes": Entity.INGREDIENT,
    "category": Entity.CATEGORY,
    "categories": Entity.CATEGORY,
    "categoria": Entity.CATEGORY,
    "categorias": Entity.CATEGORY,
    "stock": Entity.STOCK,
    "estoque": Entity.STOCK,
    "sale": Entity.SALE,
    "sales": Entity.SALE,
    "venda": Entity.SALE,
    "vendas": Entity.SALE,
    "trash": Entity.TRASH,
    "lixeira": Entity.TRASH,
}


def parse_entity(raw: Any) -> Optional[Entity]:
    if isinstance(raw, Entity):
        return raw
    key = str(raw or "").strip().lower()
    return _ENTITY_ALIASES.get(key)


@dataclass(frozen=True)
class CreateIntent:
    entity: Entity
    name: str
    confidence: float = 0.95
    raw_command: str = ""
    action: str = "create"


@dataclass(frozen=True)
class EditIntent:
    entity: Entity
    identifier: str
    field: Optional[str] = None
    value: Optional[str] = None
    confidence: float = 0.9
    raw_command: str = ""
    action: str = "edit"


@dataclass(frozen=True)
class DeleteIntent:
    entity: Entity
    identifier: str
    confidence: float = 0.95
    raw_command: str = ""
    action: str = "delete"


@dataclass(frozen=True)
class RestoreIntent:
    entity: Entity
    identifier: str = ""
    confidence: float = 0.95
    raw_command: str = ""
    action: str = "restore"


@dataclass(frozen=True)
class ListIntent:
    entity: Entity = Entity.RECIPE
    confidence: float = 1.0
    raw_command: str = ""
    action: str = "list"


@dataclass(frozen=True)
class QueryIntent:
    entity: Entity
    topic: str = ""
    confidence: float = 1.0
    raw_command: str = ""
    action: str = "query"


@dataclass(frozen=True)
class ImportIntent:
    entity: Entity = Entity.RECIPE
    confidence: float = 1.0
    raw_command: str = ""
    action: str = "import"


@dataclass(frozen=True)
class ExportIntent:
    entity: Entity = Entity.RECIPE
    format: str = "csv"
    confidence: float = 1.0
    raw_command: str = ""
    action: str = "export"


@dataclass(frozen=True)
class UnrecognizedIntent:
    raw_command: str = ""
    reason: str = ""
    confidence: float = 0.0
    action: str = "unrecognized"


Intent = Union[
    CreateIntent,
    EditIntent,
    DeleteIntent,
    RestoreIntent,
    ListIntent,
    QueryIntent,
    ImportIntent,
    ExportIntent,
    UnrecognizedIntent,
]

_MUTATING = (CreateIntent, EditIntent, DeleteIntent, RestoreIntent)

EXPORT_FORMATS = ("csv", "json")


def is_mutating(intent: Intent) -> bool:
    return isinstance(intent, _MUTATING)


def intent_to_dict(intent: Intent) -> Dict[str, Any]:
    out = asdict(intent)
    if isinstance(out.get("entity"), Entity):
        out["entity"] = out["entity"].value
    return out


def _text(params: Mapping[str, Any], *keys: str) -> str:
    for k in keys:
        v = params.get(k)
        if v is not None and str(v).strip():
            return str(v).strip()
    return ""


def intent_from_payload(payload: Any, raw: str = "", confidence: float = 0.9) -> Intent:
    """Decode a loosely typed {action, entity, params} record (e.g. LLM JSON)."""
    if not isinstance(payload, Mapping):
        return UnrecognizedIntent(raw_command=raw, reason="payload is not an object")

    action = str(payload.get("action") or "").strip().lower()
    params = payload.get("params")
    if not isinstance(params, Mapping):
        params = {}

    entity = parse_entity(payload.get("entity"))
    if entity is None:
        if action in ("list", "import", "export") and not payload.get("entity"):
            entity = Entity.RECIPE
        else:
            return UnrecognizedIntent(raw_command=raw, reason=f"unknown entity: {payload.get('entity')!r}")

    if action == "create":
        name = _text(params, "name")
        if not name:
            return UnrecognizedIntent(raw_command=raw, reason="create requires a name")
        return CreateIntent(entity=entity, name=name, confidence=confidence, raw_command=raw)

    if action in ("edit", "update"):
        identifier = _text(params, "identifier", "id", "name")
        if not identifier:
            return UnrecognizedIntent(raw_command=raw, reason="edit requires an identifier")
        return EditIntent(
            entity=entity,
            identifier=identifier,
            field=_text(params, "field") or None,
            value=_text(params, "value") or None,
            confidence=confidence,
            raw_command=raw,
        )

    if action in ("delete", "remove"):
        identifier = _text(params, "identifier", "id", "name")
        if not identifier:
            return UnrecognizedIntent(raw_command=raw, reason="delete requires an identifier")
        return DeleteIntent(entity=entity, identifier=identifier, confidence=confidence, raw_command=raw)

    if action == "restore":
        return RestoreIntent(
            entity=entity,
            identifier=_text(params, "identifier", "id", "name"),
            confidence=confidence,
            raw_command=raw,
        )

    if action == "list":
        return ListIntent(entity=entity, confidence=confidence, raw_command=raw)

    if action == "query":
        return QueryIntent(
            entity=entity,
            topic=_text(params, "type", "topic", "subCommand", "sub_command"),
            confidence=confidence,
            raw_command=raw,
        )

    if action == "import":
        return ImportIntent(entity=entity, confidence=confidence, raw_command=raw)

    if action == "export":
        fmt = (_text(params, "format") or "csv").lower()
        if fmt not in EXPORT_FORMATS:
            return UnrecognizedIntent(raw_command=raw, reason=f"unsupported export format: {fmt}")
        return ExportIntent(entity=entity, format=fmt, confidence=confidence, raw_command=raw)

    return UnrecognizedIntent(raw_command=raw, reason=f"unknown action: {action!r}")
