# munich_rag/vector_index.py
from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional
import httpx

from .config import Settings
from .errors import DependencyError
from .llm import parse_json_object, upstream_message
from .schemas import Candidate


@dataclass
class PineconeIndex:
    """
    Kapselt den Pinecone Data-Plane-Query (REST, POST {host}/query).
    Speichert keine Ranking-Logik, nur Query + Mapping auf Candidate.

    Namespace: entweder gebunden (namespace("x")) oder, wenn nichts gebunden
    ist, aus den Settings pro Call mitgeschickt. Semantisch identisch.
    """
    _settings: Settings
    transport: Optional[httpx.AsyncBaseTransport] = None
    bound_namespace: Optional[str] = None

    def __post_init__(self) -> None:
        self.client: Optional[httpx.AsyncClient] = None

    def namespace(self, name: str) -> "PineconeIndex":
        bound = replace(self, bound_namespace=name)
        bound.client = self.client
        return bound

    async def startup(self) -> None:
        if self.client is None:
            self.client = httpx.AsyncClient(
                base_url=self._settings.PINECONE_HOST,
                timeout=httpx.Timeout(self._settings.HTTP_TIMEOUT_SECONDS),
                transport=self.transport,
                headers={
                    "Api-Key": self._settings.PINECONE_API_KEY,
                    "X-Pinecone-API-Version": self._settings.PINECONE_API_VERSION,
                    "Content-Type": "application/json",
                },
            )

    async def shutdown(self) -> None:
        if self.client:
            await self.client.aclose()
            self.client = None

    def _namespace_for_call(self) -> str:
        return self.bound_namespace if self.bound_namespace is not None else self._settings.PINECONE_NAMESPACE

    async def query(self, vector: List[float], top_k: int) -> List[Candidate]:
        await self.startup()
        assert self.client is not None
        payload: Dict[str, Any] = {
            "vector": vector,
            "topK": top_k,
            "includeMetadata": True,
        }
        ns = self._namespace_for_call()
        if ns:
            payload["namespace"] = ns
        try:
            r = await self.client.post("/query", json=payload)
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DependencyError("vector_index", upstream_message(e.response)) from e
        except httpx.HTTPError as e:
            raise DependencyError("vector_index", f"{type(e).__name__}: {e}") from e
        body = parse_json_object("vector_index", r)

        matches = body.get("matches") or []
        if not isinstance(matches, list):
            raise DependencyError("vector_index", "malformed query response: matches is not a list")
        out: List[Candidate] = []
        for m in matches:
            if not isinstance(m, dict) or not isinstance(m.get("metadata") or {}, dict):
                raise DependencyError("vector_index", "malformed match in query response")
            try:
                out.append(Candidate.from_match(m))
            except (TypeError, ValueError) as e:
                raise DependencyError("vector_index", f"malformed match in query response: {e}") from e
        return out
