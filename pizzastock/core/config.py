# pizzeria_stock/pizzastock/core/config.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional
import os
import logging

# Mongo settings
MONGO_URI: str = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB: str = os.getenv("MONGO_DB", "pizzeria")
MONGO_INGREDIENTS_COL: str = os.getenv("MONGO_INGREDIENTS_COL", "ingredients")
MONGO_RECIPES_COL: str = os.getenv("MONGO_RECIPES_COL", "recipes")
MONGO_STOCK_ENTRIES_COL: str = os.getenv("MONGO_STOCK_ENTRIES_COL", "stock_entries")
MONGO_STOCK_EXITS_COL: str = os.getenv("MONGO_STOCK_EXITS_COL", "stock_exits")
MONGO_ACTION_LOGS_COL: str = os.getenv("MONGO_ACTION_LOGS_COL", "action_logs")

SESSION_TTL_SECONDS: int = int(os.getenv("SESSION_TTL_SECONDS", "1800"))

DEFAULT_AI_PROVIDERS = ("gemini", "openai")


@dataclass(frozen=True)
class AISettings:
    """Configuration handed to AIClient / InsightGenerator at startup."""
    gemini_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    providers: List[str] = field(default_factory=lambda: list(DEFAULT_AI_PROVIDERS))
    gemini_model: str = "gemini-1.5-flash"
    openai_model: str = "gpt-4o-mini"
    temperature: float = 0.7
    max_tokens: int = 500
    timeout_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> "AISettings":
        raw = os.getenv("AI_PROVIDERS", ",".join(DEFAULT_AI_PROVIDERS))
        providers = [p.strip().lower() for p in raw.split(",") if p.strip()]
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            providers=providers,
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-1.5-flash"),
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            temperature=float(os.getenv("AI_TEMPERATURE", "0.7")),
            max_tokens=int(os.getenv("AI_MAX_TOKENS", "500")),
            timeout_seconds=float(os.getenv("AI_TIMEOUT_SECONDS", "30")),
        )


# Global logging (module-level loggers inherit this)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
