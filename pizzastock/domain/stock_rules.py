# =========================
# FILE: pizzeria_stock/pizzastock/domain/stock_rules.py
# =========================
"""
Pure stock rules: production capacity, stock status and sale sufficiency.

Nothing in here raises. Degenerate input (no requirements, zero quantities,
zero thresholds) resolves to a conservative documented value instead, since
the results drive UI affordances such as enabling the sale button.
"""
from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Sequence

from pizzastock.domain.entities import CapacityResult, RecipeIngredient, SaleCheck, StockStatus

_STATUS_COLORS: Dict[StockStatus, str] = {
    StockStatus.CRITICAL: "#ef4444",
    StockStatus.DANGER: "#f97316",
    StockStatus.WARNING: "#eab308",
    StockStatus.OK: "#22c55e",
}

_STATUS_ICONS: Dict[StockStatus, str] = {
    StockStatus.CRITICAL: "🔴",
    StockStatus.DANGER: "🟠",
    StockStatus.WARNING: "🟡",
    StockStatus.OK: "🟢",
}

_UNIT_ALIASES: Dict[str, str] = {
    "kg": "kg",
    "gramas": "g",
    "litros": "L",
    "ml": "ml",
    "unidades": "un",
}

_CATEGORY_ICONS: Dict[str, str] = {
    "massa": "🍞",
    "queijo": "🧀",
    "carnes": "🥩",
    "vegetais": "🥬",
    "molhos": "🍅",
    "temperos": "🧂",
}

# most severe first
STATUS_SEVERITY: List[StockStatus] = [
    StockStatus.CRITICAL,
    StockStatus.DANGER,
    StockStatus.WARNING,
    StockStatus.OK,
]


def _stock(value: Optional[float]) -> float:
    # missing, NaN and infinite values count as empty stock
    v = float(value or 0.0)
    return v if math.isfinite(v) else 0.0


# ----------------------------
# Capacity
# ----------------------------
def calculate_capacity(requirements: Iterable[RecipeIngredient]) -> CapacityResult:
    """
    Maximum whole recipe units producible from current stock, and the bottleneck.

    Requirements with quantity_needed <= 0 (or non-finite) do not constrain
    capacity and are skipped. If nothing constrains (empty input or everything
    skipped) the capacity is 0, never unbounded. On ties the first requirement
    scanned stays the limiting one.
    """
    best: Optional[int] = None
    limiting: Optional[RecipeIngredient] = None

    for ri in requirements or []:
        needed = _stock(ri.quantity_needed)
        if needed <= 0:
            continue
        ratio = _stock(ri.current_stock) / needed
        if not math.isfinite(ratio):
            continue
        possible = math.floor(ratio)
        if best is None or possible < best:
            best = possible
            limiting = ri

    if best is None or limiting is None:
        return CapacityResult(capacity=0)

    return CapacityResult(
        capacity=max(0, int(best)),
        limiting_ingredient_name=limiting.ingredient_name,
        limiting_ingredient_id=limiting.ingredient_id,
    )


def sort_requirements(requirements: Iterable[RecipeIngredient]) -> List[RecipeIngredient]:
    """Stable order (ingredient id, then name) so the first-wins tie-break is reproducible."""
    return sorted(
        requirements or [],
        key=lambda ri: (str(ri.ingredient_id or ""), str(ri.ingredient_name or "")),
    )


# ----------------------------
# Stock status
# ----------------------------
def classify_stock(current_stock: Optional[float], min_stock: Optional[float]) -> StockStatus:
    current = _stock(current_stock)
    minimum = _stock(min_stock)
    if current <= 0:
        return StockStatus.CRITICAL
    if current <= minimum * 0.5:
        return StockStatus.DANGER
    if current <= minimum:
        return StockStatus.WARNING
    return StockStatus.OK


def status_color(status: StockStatus) -> str:
    return _STATUS_COLORS[StockStatus(status)]


def status_icon(status: StockStatus) -> str:
    return _STATUS_ICONS[StockStatus(status)]


def stock_percentage(current_stock: Optional[float], min_stock: Optional[float]) -> int:
    minimum = _stock(min_stock)
    if minimum == 0:
        return 100
    pct = _stock(current_stock) / minimum * 100
    if not math.isfinite(pct):
        return 100
    # half rounds up (12.5 -> 13)
    return int(math.floor(pct + 0.5))


def format_unit(unit: str) -> str:
    return _UNIT_ALIASES.get(unit, unit)


def category_icon(category: Optional[str]) -> str:
    return _CATEGORY_ICONS.get((category or "").lower(), "📦")


# ----------------------------
# Sale validation
# ----------------------------
def _fmt_qty(x: float) -> str:
    return f"{x:g}"


def validate_sale(requirements: Sequence[RecipeIngredient], sale_quantity: int) -> SaleCheck:
    """
    Advisory check before recording a sale. Reports only the first ingredient
    (in list order) that cannot cover sale_quantity units.
    """
    if not requirements:
        return SaleCheck(valid=False, message="Receita não possui ingredientes cadastrados")

    for ri in requirements:
        required = _stock(ri.quantity_needed) * sale_quantity
        available = _stock(ri.current_stock)
        if available < required:
            unit = ri.unit or ""
            return SaleCheck(
                valid=False,
                insufficient_ingredient=ri.ingredient_name,
                message=(
                    f"Estoque insuficiente de {ri.ingredient_name} "
                    f"(disponível: {_fmt_qty(available)} {unit}, necessário: {_fmt_qty(required)} {unit})"
                ),
            )

    return SaleCheck(valid=True)
