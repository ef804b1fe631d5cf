# =========================
# FILE: pizzeria_stock/pizzastock/application/dialogue_manager.py
# =========================
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import anyio

from pizzastock.application.action_executor import ActionExecutor
from pizzastock.application.command_parser import parse_command
from pizzastock.application.response_composer import ResponseComposer
from pizzastock.application.rule_engine import RuleEngine, RuleResult
from pizzastock.application.usecases import BuildSystemContext
from pizzastock.domain.intents import Intent, UnrecognizedIntent, intent_to_dict, is_mutating
from pizzastock.infrastructure.session_store import InMemorySessionStore, SessionState
from pizzastock.services.ai_client import CONFIRM_ACTIONS, AIClient

log = logging.getLogger("app.dialogue_manager")


class DialogueManager:
    """
    Chat turn routing:
      1. rules (confirm/cancel a pending command, greetings)
      2. slash commands, parsed locally
      3. everything else goes to the LLM chain, which may also yield a command
    Mutating commands are never executed on the turn they arrive; they wait for "sim".
    """

    def __init__(
        self,
        sessions: InMemorySessionStore,
        rule_engine: RuleEngine,
        executor: ActionExecutor,
        ai: AIClient,
        build_context: BuildSystemContext,
        composer: Optional[ResponseComposer] = None,
    ) -> None:
        self.sessions = sessions
        self.rules = rule_engine
        self.executor = executor
        self.ai = ai
        self.build_context = build_context
        self.composer = composer or ResponseComposer()

    async def handle(self, session_id: str, text: str, user: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        st = self.sessions.get_or_create(session_id)
        if user and user.get("id"):
            st.user_id = str(user["id"])
        st.last_user_text = text
        st.remember("user", text)

        rule = self.rules.try_match(text, st)
        if rule:
            out = await self._handle_rule(rule, st)
        else:
            intent = parse_command(text)
            if intent is not None:
                out = await self._route_intent(intent, st, source="command", message=None)
            else:
                out = await self._ask_ai(text, st, user or {})

        st.remember("assistant", out.get("reply", ""))
        self.sessions.save(st)
        out["session_id"] = session_id
        out["context"] = self._context_view(st)
        return out

    async def _handle_rule(self, rule: RuleResult, st: SessionState) -> Dict[str, Any]:
        action = rule.action

        if action == "confirm":
            intent, source = st.take_pending()
            if intent is None:
                return self._out(self.composer.nothing_pending(), source="rule")
            result = await anyio.to_thread.run_sync(self.executor.execute, intent, "ai" if source != "command" else "user")
            return self._out(result.reply, intent=intent, data=result.data, source=source or "command")

        if action == "cancel":
            had_pending = st.has_pending
            st.clear_pending()
            reply = self.composer.cancelled() if had_pending else self.composer.nothing_pending()
            return self._out(reply, source="rule")

        if action == "greet":
            return self._out(self.composer.greet(), source="rule")
        if action == "thanks":
            return self._out(self.composer.thanks(), source="rule")

        return self._out(self.composer.fallback_for(st.last_user_text), source="rule")

    async def _route_intent(self, intent: Intent, st: SessionState, source: str, message: Optional[str]) -> Dict[str, Any]:
        # any new command replaces a command still waiting for confirmation
        st.clear_pending()
        prefix = f"{message}\n\n" if message else ""

        if isinstance(intent, UnrecognizedIntent):
            if source == "command":
                return self._out(self.composer.unrecognized(intent.reason), intent=intent, source=source)
            return self._out(message or self.composer.fallback_for(st.last_user_text), source=source)

        if is_mutating(intent):
            st.set_pending(intent, source)
            return self._out(
                prefix + self.composer.confirm_prompt(intent),
                intent=intent,
                actions=list(CONFIRM_ACTIONS),
                source=source,
            )

        result = await anyio.to_thread.run_sync(self.executor.execute, intent, "user" if source == "command" else "ai")
        return self._out(prefix + result.reply, intent=intent, data=result.data, source=source)

    async def _ask_ai(self, text: str, st: SessionState, user: Dict[str, Any]) -> Dict[str, Any]:
        context = await anyio.to_thread.run_sync(self.build_context, {"id": st.user_id, **user})
        reply = await anyio.to_thread.run_sync(self.ai.chat, text, context)
        log.info("ai reply source=%s intent=%s", reply.source, reply.intent.action if reply.intent else None)

        if reply.intent is not None:
            return await self._route_intent(reply.intent, st, source=reply.source, message=reply.message)
        return self._out(reply.message, source=reply.source)

    def _out(
        self,
        reply: str,
        intent: Optional[Intent] = None,
        actions: Optional[List[Dict[str, str]]] = None,
        data: Any = None,
        source: str = "rule",
    ) -> Dict[str, Any]:
        return {
            "reply": reply,
            "intent": intent_to_dict(intent) if intent is not None else None,
            "actions": actions or [],
            "data": data,
            "source": source,
        }

    def _context_view(self, st: SessionState) -> Dict[str, Any]:
        return {
            "awaiting_confirmation": st.has_pending,
            "pending_action": st.pending_intent.action if st.has_pending else None,
            "turns": len(st.history),
        }
