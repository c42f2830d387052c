from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from munich_rag.config import Settings
from munich_rag.schemas import Candidate, CandidateMetadata


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = dict(
        PINECONE_API_KEY="pc-test",
        PINECONE_HOST="munich-help-abc.svc.pinecone.io",
        PINECONE_INDEX="munich-help",
        OPENAI_API_KEY="sk-test",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


def cand(
    id: str,
    score: float,
    text: str = "some text",
    **meta: Any,
) -> Candidate:
    return Candidate(id=id, score=score, metadata=CandidateMetadata.from_raw({"text": text, **meta}))


class FakeLLM:
    """Gibt vorbereitete Antworten der Reihe nach zurück und merkt sich jeden Call."""

    def __init__(self, responses: Optional[List[str]] = None, error: Optional[Exception] = None) -> None:
        self.responses = list(responses or [])
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def complete(self, system: str, messages: List[Dict[str, str]], temperature: float) -> str:
        self.calls.append({"system": system, "messages": messages, "temperature": temperature})
        if self.error is not None:
            raise self.error
        return self.responses.pop(0) if self.responses else ""


class FakeEmbedder:
    def __init__(self, dim: int = 512, error: Optional[Exception] = None) -> None:
        self.dim = dim
        self.error = error
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return [0.1] * self.dim


class FakeIndex:
    def __init__(self, candidates: Optional[List[Candidate]] = None, error: Optional[Exception] = None) -> None:
        self.candidates = list(candidates or [])
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def query(self, vector: List[float], top_k: int) -> List[Candidate]:
        self.calls.append({"vector": vector, "top_k": top_k})
        if self.error is not None:
            raise self.error
        return list(self.candidates)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def study_candidates() -> List[Candidate]:
    return [
        cand("sp-1", 0.81, "Name: Bavarian State Library\nQuiet reading room, wifi, open Sundays 10-22.",
             entity_type="study_place", entity_id="bsb", name="Bavarian State Library"),
        cand("sp-2", 0.77, "Name: TUM Main Library\nOpen 24/7 during exams, sockets at every desk.",
             entity_type="study_place", entity_id="tum-lib", name="TUM Main Library"),
        cand("g-1", 0.75, "Most libraries close on public holidays.", kind="text_chunk", section="Libraries"),
    ]
