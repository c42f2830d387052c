# munich_rag/schemas.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .text import strip_lone_surrogates


def _opt_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = strip_lone_surrogates(str(v)).strip()
    return s or None


# ---------- Knowledge-Base Records ----------
@dataclass(frozen=True)
class CandidateMetadata:
    """
    Metadaten eines Pinecone-Treffers (Schema vom Upsert).
    Pflicht ist nur `text`, alles andere optional. Titel/Typ werden über
    explizite Fallback-Ketten aufgelöst, nie über dynamischen Attributzugriff.
    """
    text: str = ""
    name: Optional[str] = None
    section: Optional[str] = None
    text_preview: Optional[str] = None
    entity_id: Optional[str] = None
    entity_type: Optional[str] = None
    kind: Optional[str] = None
    chunk_block: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Optional[Dict[str, Any]]) -> "CandidateMetadata":
        m = raw if isinstance(raw, dict) else {}
        return cls(
            text=strip_lone_surrogates(m.get("text")),
            name=_opt_str(m.get("name")),
            section=_opt_str(m.get("section")),
            text_preview=_opt_str(m.get("text_preview")),
            entity_id=_opt_str(m.get("entity_id")),
            entity_type=_opt_str(m.get("entity_type")),
            kind=_opt_str(m.get("kind")),
            chunk_block=_opt_str(m.get("chunk_block") or m.get("chunkBlock")),
        )

    @property
    def type(self) -> str:
        # entity_type > kind > "unknown"
        return self.entity_type or self.kind or "unknown"

    @property
    def title(self) -> str:
        # für die UI-Karten
        return self.name or self.section or self.chunk_block or "(result)"

    @property
    def context_title(self) -> str:
        # für den Kontextblock ans LLM
        return self.name or self.section or self.chunk_block or "(untitled)"

    @property
    def has_text(self) -> bool:
        return bool(self.text.strip())


@dataclass(frozen=True)
class Candidate:
    id: str
    score: float
    metadata: CandidateMetadata = field(default_factory=CandidateMetadata)

    @classmethod
    def from_match(cls, match: Dict[str, Any]) -> "Candidate":
        score = match.get("score")
        return cls(
            id=str(match.get("id") or ""),
            score=float(score) if score is not None else 0.0,
            metadata=CandidateMetadata.from_raw(match.get("metadata")),
        )


@dataclass(frozen=True)
class RankedCandidate:
    candidate: Candidate
    boosted_score: float

    @property
    def metadata(self) -> CandidateMetadata:
        return self.candidate.metadata

    @property
    def score(self) -> float:
        return self.candidate.score


# ---------- API Models ----------
class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class Match(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    score: float
    boosted_score: float = Field(alias="boostedScore")
    type: str
    title: str
    snippet: str
    label: str
    icon: str


class QueryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    answer: str
    matches: List[Match] = Field(default_factory=list)
    rewritten_question: str = Field(alias="rewrittenQuestion")
    intent: Optional[str] = None


@dataclass
class QueryResult:
    """Ergebnis eines Pipeline-Durchlaufs (vor der HTTP-Serialisierung)."""
    answer: str
    rewritten_question: str
    outcome: Literal["answered", "no_candidates", "no_usable_candidates"]
    intent: Optional[str] = None
    matches: List[Match] = field(default_factory=list)

    def to_response(self) -> Dict[str, Any]:
        resp = QueryResponse(
            answer=self.answer,
            matches=self.matches,
            rewritten_question=self.rewritten_question,
            intent=self.intent,
        )
        return resp.model_dump(by_alias=True, exclude_none=True)
