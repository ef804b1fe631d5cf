# =========================
# FILE: pizzeria_stock/pizzastock/infrastructure/session_store.py
# =========================
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pizzastock.domain.intents import Intent

log = logging.getLogger("infra.session_store")

MAX_HISTORY = 20
PENDING_TTL_SECONDS = 300
GC_INTERVAL_SECONDS = 60


@dataclass
class SessionState:
    session_id: str
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    user_id: str = ""
    last_user_text: str = ""
    history: List[Dict[str, Any]] = field(default_factory=list)

    # mutating command awaiting "sim"/"não"
    pending_intent: Optional[Intent] = None
    pending_source: str = ""
    pending_at: float = 0.0

    def remember(self, role: str, text: str) -> None:
        self.history.append({"role": role, "text": text, "at": time.time()})
        if len(self.history) > MAX_HISTORY:
            del self.history[: len(self.history) - MAX_HISTORY]

    @property
    def has_pending(self) -> bool:
        if self.pending_intent is None:
            return False
        if time.time() - self.pending_at > PENDING_TTL_SECONDS:
            log.info("pending %s expired session=%s", self.pending_intent.action, self.session_id)
            self.clear_pending()
            return False
        return True

    def set_pending(self, intent: Intent, source: str) -> None:
        self.pending_intent, self.pending_source, self.pending_at = intent, source, time.time()

    def take_pending(self) -> Tuple[Optional[Intent], str]:
        if not self.has_pending:
            return None, ""
        out = (self.pending_intent, self.pending_source)
        self.clear_pending()
        return out

    def clear_pending(self) -> None:
        self.pending_intent, self.pending_source, self.pending_at = None, "", 0.0


class InMemorySessionStore:
    """Process-local chat sessions; idle ones are swept at most once per GC_INTERVAL_SECONDS."""

    def __init__(self, ttl_seconds: int = 1800) -> None:
        self.ttl_seconds = ttl_seconds
        self._sessions: Dict[str, SessionState] = {}
        self._last_gc = 0.0

    def get_or_create(self, session_id: str) -> SessionState:
        self._maybe_gc()
        st = self._sessions.setdefault(session_id, SessionState(session_id=session_id))
        st.updated_at = time.time()
        return st

    def save(self, st: SessionState) -> None:
        st.updated_at = time.time()
        self._sessions[st.session_id] = st

    def drop(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        return len(self._sessions)

    def _maybe_gc(self) -> None:
        now = time.time()
        if now - self._last_gc < GC_INTERVAL_SECONDS:
            return
        self._last_gc = now
        stale = [sid for sid, st in self._sessions.items() if now - st.updated_at > self.ttl_seconds]
        for sid in stale:
            del self._sessions[sid]
        if stale:
            log.debug("expired %d chat sessions", len(stale))
