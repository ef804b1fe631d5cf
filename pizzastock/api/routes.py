# pizzeria_stock/pizzastock/api/routes.py
from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from pizzastock.api.schemas import (
    CapacityResponse,
    ChatRequest,
    ChatResponse,
    ImportRequest,
    RecipeIngredientRequest,
    SaleRequest,
    SaleValidateRequest,
    SaleValidateResponse,
    StockEntryRequest,
)
from pizzastock.application.data_export import parse_upload
from pizzastock.application.usecases import SaleRejected

log = logging.getLogger("api.routes")
router = APIRouter()


# -------------------------
# Dependencies via app.state (wired in main.py on startup)
# -------------------------
def _state(request: Request, name: str) -> Any:
    obj = getattr(request.app.state, name, None)
    if obj is None:
        raise RuntimeError(f"{name} not initialized. Check app startup wiring.")
    return obj


def get_dialogue_manager(request: Request):
    return _state(request, "dialogue_manager")


def get_capacity_uc(request: Request):
    return _state(request, "capacity_uc")


def get_capacities_uc(request: Request):
    return _state(request, "capacities_uc")


def get_stock_overview_uc(request: Request):
    return _state(request, "stock_overview_uc")


def get_set_requirement_uc(request: Request):
    return _state(request, "set_requirement_uc")


def get_remove_requirement_uc(request: Request):
    return _state(request, "remove_requirement_uc")


def get_insights_uc(request: Request):
    return _state(request, "insights_uc")


def get_validate_sale_uc(request: Request):
    return _state(request, "validate_sale_uc")


def get_record_sale_uc(request: Request):
    return _state(request, "record_sale_uc")


def get_stock_entry_uc(request: Request):
    return _state(request, "stock_entry_uc")


def get_export_uc(request: Request):
    return _state(request, "export_uc")


def get_import_uc(request: Request):
    return _state(request, "import_uc")


def _run(name: str, fn, *args: Any, **kwargs: Any) -> Any:
    try:
        return fn(*args, **kwargs)
    except SaleRejected as e:
        raise HTTPException(status_code=400, detail=e.check.to_dict())
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        log.exception("Processing %s error", name)
        raise HTTPException(status_code=500, detail=str(e))


# -------------------------
# /chat (session context + commands + LLM fallback chain)
# -------------------------
@router.post("/chat", response_model=ChatResponse)
async def chat(req: ChatRequest, dm=Depends(get_dialogue_manager)) -> Any:
    if not req.session_id.strip():
        raise HTTPException(status_code=400, detail="session_id is required")
    if not req.text.strip():
        raise HTTPException(status_code=400, detail="text is required")

    try:
        user = {"id": req.user_id} if req.user_id else None
        out = await dm.handle(req.session_id, req.text, user=user)
        out.setdefault("session_id", req.session_id)
        out.setdefault("reply", "OK")
        return out
    except Exception as e:
        log.exception("Processing /chat error")
        raise HTTPException(status_code=500, detail=str(e))


# -------------------------
# Capacity / recipe ingredients / stock status
# -------------------------
@router.get("/recipes/capacity", response_model=List[CapacityResponse])
def list_capacities(uc=Depends(get_capacities_uc)) -> Any:
    return _run("/recipes/capacity", uc)


@router.get("/recipes/{recipe_id}/capacity", response_model=CapacityResponse)
def recipe_capacity(recipe_id: str, uc=Depends(get_capacity_uc)) -> Any:
    return _run("/recipes/{id}/capacity", uc, recipe_id)


@router.put("/recipes/{recipe_id}/ingredients/{ingredient_id}")
def set_recipe_ingredient(
    recipe_id: str,
    ingredient_id: str,
    req: RecipeIngredientRequest,
    uc=Depends(get_set_requirement_uc),
) -> Dict[str, Any]:
    return _run("/recipes/{id}/ingredients", uc, recipe_id, ingredient_id, req.quantity_needed)


@router.delete("/recipes/{recipe_id}/ingredients/{ingredient_id}")
def remove_recipe_ingredient(recipe_id: str, ingredient_id: str, uc=Depends(get_remove_requirement_uc)) -> Dict[str, Any]:
    return _run("/recipes/{id}/ingredients", uc, recipe_id, ingredient_id)


@router.get("/ingredients/status")
def ingredients_status(uc=Depends(get_stock_overview_uc)) -> Dict[str, Any]:
    return _run("/ingredients/status", uc)


@router.get("/insights")
def insights(uc=Depends(get_insights_uc)) -> Dict[str, Any]:
    return {"insights": _run("/insights", uc)}


# -------------------------
# Sales / stock entries
# -------------------------
@router.post("/sales/validate", response_model=SaleValidateResponse)
def validate_sale(req: SaleValidateRequest, uc=Depends(get_validate_sale_uc)) -> Any:
    return _run("/sales/validate", uc, req.recipe_id, req.quantity).to_dict()


@router.post("/sales", status_code=201)
def record_sale(req: SaleRequest, uc=Depends(get_record_sale_uc)) -> Dict[str, Any]:
    return _run("/sales", uc, req.recipe_id, req.quantity, req.revenue)


@router.post("/stock-entries", status_code=201)
def stock_entry(req: StockEntryRequest, uc=Depends(get_stock_entry_uc)) -> Dict[str, Any]:
    return _run("/stock-entries", uc, req.ingredient_id, req.quantity, req.unit_cost)


# -------------------------
# Import / export
# -------------------------
@router.get("/export/{entity}")
def export_data(
    entity: str,
    format: str = Query(default="csv", pattern="^(csv|json)$"),
    uc=Depends(get_export_uc),
) -> Dict[str, Any]:
    return _run("/export", uc, entity, format)


@router.post("/import/{entity}")
def import_data(entity: str, req: ImportRequest, uc=Depends(get_import_uc)) -> Dict[str, Any]:
    rows = _run("/import", parse_upload, req.content, req.format)
    return _run("/import", uc, entity, rows)
