# pizzeria_stock/pizzastock/application/data_export.py
from __future__ import annotations

import csv
import io
import re
from typing import Any, Dict, List, Sequence, Tuple

import ujson as json

from pizzastock.domain.entities import Ingredient, Recipe
from pizzastock.domain.stock_rules import classify_stock


def to_csv(rows: Sequence[Dict[str, Any]]) -> str:
    """Header comes from the first row's keys; None cells are written empty."""
    if not rows:
        return ""
    headers = list(rows[0].keys())
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=headers, extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({h: ("" if row.get(h) is None else row.get(h)) for h in headers})
    return buf.getvalue()


def to_json(rows: Sequence[Dict[str, Any]]) -> str:
    return json.dumps(list(rows), ensure_ascii=False, indent=2)


def ingredient_rows(ingredients: Sequence[Ingredient]) -> List[Dict[str, Any]]:
    return [
        {
            "id": i.id,
            "name": i.name,
            "unit": i.unit,
            "current_stock": i.current_stock,
            "min_stock": i.min_stock,
            "category": i.category,
            "cost_per_unit": i.cost_per_unit,
            "status": classify_stock(i.current_stock, i.min_stock).value,
        }
        for i in ingredients
    ]


def recipe_rows(recipes: Sequence[Recipe]) -> List[Dict[str, Any]]:
    return [
        {
            "id": r.id,
            "name": r.name,
            "type": r.type,
            "capacity": r.capacity,
            "ingredients": "; ".join(
                f"{ri.ingredient_name}={ri.quantity_needed:g}{ri.unit or ''}" for ri in r.ingredients
            ),
        }
        for r in recipes
    ]


_RE_REQUIREMENT = re.compile(r"^\s*(?P<name>[^=]+?)\s*=\s*(?P<qty>-?\d+(?:[.,]\d+)?)\s*\S*\s*$")


def parse_requirements(cell: Any) -> List[Tuple[str, float]]:
    """Read back the recipe "ingredients" column: "Massa=250g; Mussarela=100g"."""
    out: List[Tuple[str, float]] = []
    for part in str(cell or "").split(";"):
        if not part.strip():
            continue
        m = _RE_REQUIREMENT.match(part)
        if not m:
            raise ValueError(f"invalid ingredient entry: {part.strip()!r}")
        out.append((m.group("name"), float(m.group("qty").replace(",", "."))))
    return out


def render(rows: Sequence[Dict[str, Any]], fmt: str) -> str:
    if fmt == "json":
        return to_json(rows)
    if fmt == "csv":
        return to_csv(rows)
    raise ValueError(f"Unsupported export format: {fmt}")


def from_csv(text: str) -> List[Dict[str, str]]:
    rows = list(csv.DictReader(io.StringIO((text or "").strip())))
    if not rows:
        raise ValueError("Arquivo CSV vazio ou inválido")
    return [{(k or "").strip(): (v or "").strip() for k, v in row.items() if k is not None} for row in rows]


def from_json(text: str) -> List[Dict[str, Any]]:
    data = json.loads(text or "")
    if not isinstance(data, list) or not all(isinstance(x, dict) for x in data):
        raise ValueError("JSON deve ser uma lista de objetos")
    return data


def parse_upload(text: str, fmt: str) -> List[Dict[str, Any]]:
    if fmt == "json":
        return from_json(text)
    if fmt == "csv":
        return from_csv(text)
    raise ValueError(f"Unsupported import format: {fmt}")
