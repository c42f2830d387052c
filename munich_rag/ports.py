# munich_rag/ports.py
"""
Schmale Schnittstellen zu den externen Diensten.
ApplicationCore kennt nur diese Protokolle, keine Vendor-Clients.
"""
from __future__ import annotations
from typing import Dict, List, Protocol

from .schemas import Candidate


class LanguageModel(Protocol):
    async def complete(self, system: str, messages: List[Dict[str, str]], temperature: float) -> str:
        raise NotImplementedError


class Embedder(Protocol):
    async def embed(self, text: str) -> List[float]:
        raise NotImplementedError


class VectorIndex(Protocol):
    async def query(self, vector: List[float], top_k: int) -> List[Candidate]:
        raise NotImplementedError
