# =========================
# FILE: pizzeria_stock/pizzastock/application/command_parser.py
# =========================
from __future__ import annotations

import re
from typing import Callable, Dict, List, Optional

from pizzastock.domain.intents import (
    EXPORT_FORMATS,
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
    parse_entity,
)

_RE_COMMAND = re.compile(r"^\s*/(\w+)\s*(.*)$", re.DOTALL)
_RE_WS = re.compile(r"\s+")


def parse_command(text: str) -> Optional[Intent]:
    """
    Parse a slash command such as "/create recipe Calabresa".

    Returns None for ordinary text (no leading slash); any slash command that
    cannot be understood comes back as UnrecognizedIntent with the reason.
    """
    m = _RE_COMMAND.match(text or "")
    if not m:
        return None

    raw = (text or "").strip()
    verb = m.group(1).lower()
    args = [a for a in _RE_WS.split(m.group(2).strip()) if a]

    handler = _HANDLERS.get(verb)
    if handler is None:
        return UnrecognizedIntent(raw_command=raw, reason=f"unknown command: /{verb}")
    return handler(args, raw)


def _entity_or_none(args: List[str]) -> Optional[Entity]:
    return parse_entity(args[0]) if args else None


def _create(args: List[str], raw: str) -> Intent:
    entity = _entity_or_none(args)
    name = " ".join(args[1:])
    if entity not in (Entity.RECIPE, Entity.INGREDIENT):
        return UnrecognizedIntent(raw_command=raw, reason="usage: /create recipe|ingredient <name>")
    if not name:
        return UnrecognizedIntent(raw_command=raw, reason="missing name")
    return CreateIntent(entity=entity, name=name, confidence=0.95, raw_command=raw)


def _edit(args: List[str], raw: str) -> Intent:
    entity = _entity_or_none(args)
    if entity is None or len(args) < 2:
        return UnrecognizedIntent(raw_command=raw, reason="usage: /edit <entity> <identifier> [field] [value]")
    return EditIntent(
        entity=entity,
        identifier=args[1],
        field=args[2] if len(args) > 2 else None,
        value=" ".join(args[3:]) or None,
        confidence=0.9,
        raw_command=raw,
    )


def _delete(args: List[str], raw: str) -> Intent:
    entity = _entity_or_none(args)
    identifier = " ".join(args[1:])
    if entity is None or not identifier:
        return UnrecognizedIntent(raw_command=raw, reason="usage: /delete <entity> <identifier>")
    return DeleteIntent(entity=entity, identifier=identifier, confidence=0.95, raw_command=raw)


def _restore(args: List[str], raw: str) -> Intent:
    entity = _entity_or_none(args)
    if entity is None:
        return UnrecognizedIntent(raw_command=raw, reason="usage: /restore <entity> [identifier]")
    return RestoreIntent(entity=entity, identifier=" ".join(args[1:]), confidence=0.95, raw_command=raw)


def _list(args: List[str], raw: str) -> Intent:
    if not args:
        return ListIntent(entity=Entity.RECIPE, raw_command=raw)
    entity = parse_entity(args[0])
    if entity is None:
        return UnrecognizedIntent(raw_command=raw, reason=f"unknown entity: {args[0]}")
    return ListIntent(entity=entity, raw_command=raw)


def _trash(args: List[str], raw: str) -> Intent:
    sub = args[0].lower() if args else ""
    if sub == "show":
        return ListIntent(entity=Entity.TRASH, raw_command=raw)
    return QueryIntent(entity=Entity.TRASH, topic=sub, confidence=0.8, raw_command=raw)


def _import(args: List[str], raw: str) -> Intent:
    return ImportIntent(entity=Entity.RECIPE, raw_command=raw)


def _export(args: List[str], raw: str) -> Intent:
    entity = parse_entity(args[0]) if args else Entity.RECIPE
    if entity is None:
        return UnrecognizedIntent(raw_command=raw, reason=f"unknown entity: {args[0]}")
    fmt = args[1].lower() if len(args) > 1 else "csv"
    if fmt not in EXPORT_FORMATS:
        return UnrecognizedIntent(raw_command=raw, reason=f"unsupported export format: {fmt}")
    return ExportIntent(entity=entity, format=fmt, raw_command=raw)


def _stock(args: List[str], raw: str) -> Intent:
    return QueryIntent(entity=Entity.STOCK, topic=(args[0].lower() if args else "status"), raw_command=raw)


def _alerts(args: List[str], raw: str) -> Intent:
    return QueryIntent(entity=Entity.STOCK, topic="alerts", raw_command=raw)


def _help(args: List[str], raw: str) -> Intent:
    return QueryIntent(entity=Entity.RECIPE, topic="help", raw_command=raw)


_HANDLERS: Dict[str, Callable[[List[str], str], Intent]] = {
    "create": _create,
    "edit": _edit,
    "update": _edit,
    "delete": _delete,
    "remove": _delete,
    "restore": _restore,
    "list": _list,
    "trash": _trash,
    "import": _import,
    "export": _export,
    "stock": _stock,
    "alerts": _alerts,
    "help": _help,
}
