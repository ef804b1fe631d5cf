# pizzeria_stock/pizzastock/services/ai_client.py
"""
Assistant chat over hosted LLMs with ordered provider fallback.

The client is built once at startup from AISettings and handed to whoever needs
it; providers without an API key are simply not constructed. When every
provider fails (or none is configured) the injected pattern-matching fallback
answers instead.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

import google.generativeai as genai
import ujson as json
from openai import OpenAI

from pizzastock.core.config import AISettings
from pizzastock.domain.intents import Intent, intent_from_payload

log = logging.getLogger("services.ai_client")

_RE_CODE_FENCE = re.compile(r"```(?:json)?\s*|```", re.IGNORECASE)

CONFIRM_ACTIONS: List[Dict[str, str]] = [
    {"label": "✅ Confirmar", "command": "execute", "type": "primary"},
    {"label": "❌ Cancelar", "command": "cancel", "type": "secondary"},
]

NOT_UNDERSTOOD = "🤖 Desculpe, não entendi. Pode reformular?"


class AIProviderError(RuntimeError):
    """Raised when a provider cannot produce a completion."""


@dataclass
class AIReply:
    message: str
    intent: Optional[Intent] = None
    actions: List[Dict[str, str]] = field(default_factory=list)
    source: str = "fallback"


# ----------------------------
# Providers
# ----------------------------
class GeminiProvider:
    name = "gemini"

    def __init__(self, api_key: str, model: str, temperature: float, max_tokens: int) -> None:
        if not api_key:
            raise AIProviderError("GEMINI_API_KEY is not configured.")
        genai.configure(api_key=api_key)
        self._model = genai.GenerativeModel(model_name=model)
        self._generation_config = {"temperature": temperature, "max_output_tokens": max_tokens}

    def complete(self, prompt: str, json_mode: bool = False) -> str:
        config = dict(self._generation_config)
        if json_mode:
            config["response_mime_type"] = "application/json"
        response = self._model.generate_content(prompt, generation_config=config)
        text = getattr(response, "text", "") or ""
        if not text.strip():
            raise AIProviderError("Gemini returned an empty response")
        return text


class OpenAIProvider:
    name = "openai"

    def __init__(self, api_key: str, model: str, temperature: float, max_tokens: int, timeout: float) -> None:
        if not api_key:
            raise AIProviderError("OPENAI_API_KEY is not configured.")
        self._client = OpenAI(api_key=api_key, timeout=timeout)
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens

    def complete(self, prompt: str, json_mode: bool = False) -> str:
        kwargs: Dict[str, Any] = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        completion = self._client.chat.completions.create(
            model=self._model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            **kwargs,
        )
        text = completion.choices[0].message.content or ""
        if not text.strip():
            raise AIProviderError("OpenAI returned an empty response")
        return text


def build_providers(settings: AISettings) -> List[Any]:
    providers: List[Any] = []
    for name in settings.providers:
        try:
            if name == "gemini" and settings.gemini_api_key:
                providers.append(
                    GeminiProvider(settings.gemini_api_key, settings.gemini_model, settings.temperature, settings.max_tokens)
                )
            elif name == "openai" and settings.openai_api_key:
                providers.append(
                    OpenAIProvider(
                        settings.openai_api_key,
                        settings.openai_model,
                        settings.temperature,
                        settings.max_tokens,
                        settings.timeout_seconds,
                    )
                )
            else:
                log.warning("AI provider %s skipped (unknown or missing API key)", name)
        except Exception:
            log.exception("AI provider %s failed to initialize", name)
    if not providers:
        log.warning("No AI provider available; assistant runs on pattern matching only")
    return providers


# ----------------------------
# Prompt & reply decoding
# ----------------------------
def build_prompt(message: str, context: Mapping[str, Any]) -> str:
    stock = context.get("stock") or {}
    recipes = context.get("recipes") or {}
    user = context.get("user") or {}
    activity = list(context.get("recent_activity") or [])[:3]

    activity_block = ""
    if activity:
        lines = "\n".join(f"- {a.get('action_type')} {a.get('entity_type')}: {a.get('entity_name')}" for a in activity)
        activity_block = f"\n📝 Últimas ações:\n{lines}\n"

    return f"""Você é um assistente operacional para o sistema de gestão de estoque de uma pizzaria.

CONTEXTO DO SISTEMA:
📊 Estoque:
- {stock.get('total_ingredients', 0)} ingredientes cadastrados
- {stock.get('low_stock_count', 0)} com estoque baixo
- {stock.get('out_of_stock_count', 0)} sem estoque

📖 Receitas:
- {recipes.get('total', 0)} receitas cadastradas
- {recipes.get('without_stock', 0)} receitas impossíveis de produzir agora

👤 Usuário: {user.get('email', '')} ({user.get('role', 'user')})
{activity_block}
MENSAGEM DO USUÁRIO:
"{message}"

Se for um comando executável, responda com JSON:
{{"type": "command", "action": "create|edit|delete|restore|import|export|query|list",
 "entity": "recipe|ingredient|category|stock|sale|trash", "params": {{}},
 (ingredientes de receita: action "edit", entity "recipe", params {{"identifier": "<receita>", "field": "ingredient", "value": "<ingrediente> <quantidade|remover>"}})
 "response": "Resposta amigável para o usuário"}}

Se for apenas uma conversa ou consulta, responda com JSON:
{{"type": "response", "response": "Sua resposta aqui"}}

RESPONDA APENAS COM O JSON, SEM MARKDOWN."""


def strip_code_fences(text: str) -> str:
    return _RE_CODE_FENCE.sub("", text or "").strip()


def parse_model_reply(text: str, original_message: str, source: str = "llm") -> AIReply:
    try:
        parsed = json.loads(strip_code_fences(text))
    except ValueError:
        return AIReply(message=(text or "").strip() or NOT_UNDERSTOOD, source=source)

    if not isinstance(parsed, dict):
        return AIReply(message=(text or "").strip() or NOT_UNDERSTOOD, source=source)

    if parsed.get("type") == "command":
        intent = intent_from_payload(parsed, raw=original_message, confidence=0.9)
        return AIReply(
            message=str(parsed.get("response") or "Comando identificado"),
            intent=intent,
            actions=list(CONFIRM_ACTIONS),
            source=source,
        )

    return AIReply(message=str(parsed.get("response") or text), source=source)


# ----------------------------
# Client
# ----------------------------
class AIClient:
    def __init__(
        self,
        settings: AISettings,
        providers: Optional[List[Any]] = None,
        fallback: Optional[Callable[[str], str]] = None,
    ) -> None:
        self.settings = settings
        self.providers = providers if providers is not None else build_providers(settings)
        self._fallback = fallback or (lambda _msg: NOT_UNDERSTOOD)

    @property
    def available(self) -> bool:
        return bool(self.providers)

    def complete_json(self, prompt: str) -> Optional[Any]:
        """First provider whose reply decodes as JSON wins; None if none does."""
        for provider in self.providers:
            try:
                return json.loads(strip_code_fences(provider.complete(prompt, json_mode=True)))
            except Exception as e:
                log.warning("AI provider %s failed: %s", provider.name, e)
        return None

    def chat(self, message: str, context: Mapping[str, Any]) -> AIReply:
        prompt = build_prompt(message, context)
        for provider in self.providers:
            try:
                text = provider.complete(prompt)
            except Exception as e:
                log.warning("AI provider %s failed, trying next: %s", provider.name, e)
                continue
            log.info("AI reply from %s (%d chars)", provider.name, len(text))
            return parse_model_reply(text, message, source=provider.name)

        log.info("All AI providers unavailable; using pattern matching fallback")
        return AIReply(message=self._fallback(message), source="fallback")
