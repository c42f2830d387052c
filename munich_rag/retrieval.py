# munich_rag/retrieval.py
from __future__ import annotations
from dataclasses import dataclass
from typing import List, Set

from .config import Settings
from .intent import Intent
from .ports import Embedder, VectorIndex
from .schemas import Candidate, RankedCandidate


TYPE_BOOST = 0.08
GUIDE_BOOST = 0.03
GUIDE_TYPES = {"text", "text_chunk"}


def score_boost(candidate: Candidate, intent: Intent | str) -> float:
    """
    Weicher Themen-Prior, kein Filter: passende Treffer bekommen +0.08,
    bei "general" bekommen Guide-Chunks +0.03.
    """
    intent = Intent(intent)
    t = candidate.metadata.type.lower()
    if intent is Intent.DORM and t == "dorm":
        return TYPE_BOOST
    if intent is Intent.STUDY_PLACE and t == "study_place":
        return TYPE_BOOST
    if intent is Intent.GENERAL and t in GUIDE_TYPES:
        return GUIDE_BOOST
    return 0.0


def dedupe_key(candidate: Candidate) -> str:
    # (entity_type, entity_id) > name > section > id
    md = candidate.metadata
    if md.entity_type and md.entity_id:
        return f"{md.entity_type}:{md.entity_id}"
    if md.name:
        return f"name:{md.name}"
    if md.section:
        return f"section:{md.section}"
    return f"id:{candidate.id}"


def rank_and_dedupe(candidates: List[Candidate], intent: Intent | str, limit: int = 8) -> List[RankedCandidate]:
    """
    Boost -> stabil absteigend sortieren -> Duplikate und leere Texte raus -> max. `limit`.
    sorted() ist stabil, Gleichstände behalten also die Index-Reihenfolge.
    """
    ranked = sorted(
        (RankedCandidate(c, c.score + score_boost(c, intent)) for c in candidates),
        key=lambda r: r.boosted_score,
        reverse=True,
    )

    out: List[RankedCandidate] = []
    seen: Set[str] = set()
    for r in ranked:
        if len(out) >= limit:
            break
        key = dedupe_key(r.candidate)
        if key in seen:
            continue
        if not r.metadata.has_text:
            continue
        seen.add(key)
        out.append(r)
    return out


@dataclass
class RetrievalService:
    """
    Retrieval-Layer:
    - Query embedden (gleiches Modell + Dimension wie beim Upsert)
    - Single-Stage-Query gegen den Index, ohne Filter
    - Re-Ranking/Dedupe passiert clientseitig in rank_and_dedupe()
    """
    embedder: Embedder
    index: VectorIndex
    _settings: Settings

    # ---------- Public API ----------
    async def embed(self, query: str) -> List[float]:
        return await self.embedder.embed(query)

    async def retrieve(self, vector: List[float], top_k: int | None = None) -> List[Candidate]:
        top_k = top_k or self._settings.TOP_K
        return list(await self.index.query(vector, top_k))

    def rank(self, candidates: List[Candidate], intent: Intent | str) -> List[RankedCandidate]:
        return rank_and_dedupe(candidates, intent, limit=self._settings.MAX_SOURCES)
