# =========================
# FILE: pizzeria_stock/pizzastock/api/schemas.py
# =========================
from __future__ import annotations

from typing import Dict, List, Any, Optional
from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    session_id: str = Field(..., description="Client session id to keep context")
    text: str = Field(..., examples=["/create recipe Margherita"])
    user_id: Optional[str] = None


class ChatResponse(BaseModel):
    session_id: str
    reply: str
    intent: Optional[Dict[str, Any]] = None
    actions: List[Dict[str, Any]] = Field(default_factory=list)
    data: Optional[Any] = None
    source: str = "rule"
    context: Optional[Dict[str, Any]] = None


class CapacityResponse(BaseModel):
    recipe_id: str
    name: str
    type: str
    capacity: int = Field(ge=0)
    limiting_ingredient: Optional[str] = None
    limiting_ingredient_id: Optional[str] = None


class RecipeIngredientRequest(BaseModel):
    quantity_needed: float = Field(..., gt=0, description="Amount of the ingredient one recipe unit uses")


class SaleValidateRequest(BaseModel):
    recipe_id: str
    quantity: int = Field(..., ge=1)


class SaleValidateResponse(BaseModel):
    valid: bool
    insufficient_ingredient: Optional[str] = None
    message: Optional[str] = None


class SaleRequest(BaseModel):
    recipe_id: str
    quantity: int = Field(..., ge=1)
    revenue: float = Field(default=0.0, ge=0)


class StockEntryRequest(BaseModel):
    ingredient_id: str
    quantity: float = Field(..., gt=0)
    unit_cost: Optional[float] = Field(default=None, ge=0)


class ImportRequest(BaseModel):
    content: str = Field(..., description="Raw CSV or JSON text")
    format: str = Field(default="csv", pattern="^(csv|json)$")
