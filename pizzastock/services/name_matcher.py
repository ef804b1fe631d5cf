# pizzeria_stock/pizzastock/services/name_matcher.py
from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass
from typing import Generic, List, Optional, Sequence, Tuple, TypeVar

import numpy as np
from sklearn.feature_extraction.text import TfidfVectorizer

log = logging.getLogger("services.name_matcher")

_NON_ALNUM = re.compile(r"[^a-z0-9\s]+")

T = TypeVar("T")


# ----------------------------
# Normalization & tokenization
# ----------------------------
def normalize_text(text: str) -> str:
    """Lowercase, strip accents ("Muçarela" -> "mucarela") and punctuation."""
    text = (text or "").strip().lower()
    text = unicodedata.normalize("NFD", text)
    text = "".join(ch for ch in text if unicodedata.category(ch) != "Mn")
    text = _NON_ALNUM.sub(" ", text)
    text = re.sub(r"\s+", " ", text).strip()
    return text


def tokenize_norm(text: str) -> List[str]:
    return [t for t in normalize_text(text).split() if t]


@dataclass(frozen=True)
class NameMatch(Generic[T]):
    item: T
    score: float
    reason: str


class NameMatcher(Generic[T]):
    """
    Resolves a free-text identifier ("mussarela", "pizza calabresa") to a record.
    Signals:
      - exact / contains / token overlap on normalized names
      - fallback: char-ngrams TFIDF similarity
    """

    def __init__(self, items: Sequence[Tuple[str, T]], min_score: float = 1.0) -> None:
        self.items = list(items)
        self.min_score = min_score
        self._norm: List[str] = [normalize_text(name) for name, _ in self.items]
        self._tokens: List[set] = [set(tokenize_norm(name)) for name, _ in self.items]

        self._tfidf = TfidfVectorizer(analyzer="char_wb", ngram_range=(3, 5), min_df=1)
        self._X = None
        if any(self._norm):
            self._X = self._tfidf.fit_transform(self._norm)

    def best(self, query: str) -> Optional[NameMatch[T]]:
        cands = self.candidates(query, top_k=1)
        if not cands or cands[0].score < self.min_score:
            return None
        return cands[0]

    def candidates(self, query: str, top_k: int = 5) -> List[NameMatch[T]]:
        q_norm = normalize_text(query)
        if not q_norm or not self.items:
            return []
        q_toks = set(q_norm.split())

        scored: List[NameMatch[T]] = []
        for idx, (_, item) in enumerate(self.items):
            score, reason = self._score(q_norm, q_toks, idx)
            if score > 0:
                scored.append(NameMatch(item=item, score=score, reason=reason))

        if not scored:
            scored = self._tfidf_candidates(q_norm, top_k=top_k)

        # stable: equal scores keep insertion order
        scored.sort(key=lambda m: -m.score)
        return scored[:top_k]

    def _score(self, q_norm: str, q_toks: set, idx: int) -> Tuple[float, str]:
        name_norm = self._norm[idx]
        if not name_norm:
            return 0.0, "empty"
        if q_norm == name_norm:
            return 5.0, "exact"
        if q_norm in name_norm:
            return 4.0, "contains"
        inter = len(q_toks & self._tokens[idx])
        if inter == 0:
            return 0.0, "no_overlap"
        ratio = inter / max(1, len(q_toks | self._tokens[idx]))
        return 1.0 + 2.0 * ratio, f"token_overlap_{inter}"

    def _tfidf_candidates(self, q_norm: str, top_k: int) -> List[NameMatch[T]]:
        if self._X is None:
            return []
        q = self._tfidf.transform([q_norm])
        sims = (self._X @ q.T).toarray().ravel()
        idxs = np.argsort(-sims, kind="stable")[:top_k]
        out: List[NameMatch[T]] = []
        for i in idxs:
            sim = float(sims[int(i)])
            if sim <= 0:
                continue
            # rescale cosine to the same range as the lexical scores
            out.append(NameMatch(item=self.items[int(i)][1], score=3.0 * sim, reason="tfidf"))
        log.debug("tfidf fallback for %r -> %d candidates", q_norm, len(out))
        return out
