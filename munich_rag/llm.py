# munich_rag/llm.py
from __future__ import annotations
from typing import Any, Dict, List, Optional
import httpx

from .config import Settings
from .errors import DependencyError
from .text import strip_lone_surrogates


class LLMAdapter:
    """
    OpenAI-kompatibler Client für Chat-Completions und Embeddings.
    Ein langlebiger httpx.AsyncClient pro Prozess (startup/shutdown im lifespan).
    """

    def __init__(self, _settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._settings = _settings
        self._transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    async def startup(self) -> None:
        if self.client is None:
            limits = httpx.Limits(max_keepalive_connections=10, max_connections=20)
            self.client = httpx.AsyncClient(
                base_url=self._settings.LLM_BASE_URL,
                timeout=httpx.Timeout(self._settings.HTTP_TIMEOUT_SECONDS),
                limits=limits,
                transport=self._transport,
                headers={
                    "Authorization": f"Bearer {self._settings.OPENAI_API_KEY}",
                    "Content-Type": "application/json",
                },
            )

    async def shutdown(self) -> None:
        if self.client:
            await self.client.aclose()
            self.client = None

    async def _post(self, dependency: str, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        await self.startup()
        assert self.client is not None
        try:
            r = await self.client.post(path, json=payload)
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DependencyError(dependency, upstream_message(e.response)) from e
        except httpx.HTTPError as e:
            raise DependencyError(dependency, f"{type(e).__name__}: {e}") from e
        return parse_json_object(dependency, r)

    # ---------- Chat ----------
    async def complete(self, system: str, messages: List[Dict[str, str]], temperature: float) -> str:
        payload = {
            "model": self._settings.CHAT_MODEL,
            "temperature": temperature,
            "messages": [
                {"role": m["role"], "content": strip_lone_surrogates(m["content"])}
                for m in [{"role": "system", "content": system}, *messages]
            ],
        }
        obj = await self._post("llm", "/chat/completions", payload)
        return self._extract_content(obj)

    @staticmethod
    def _extract_content(obj: Dict[str, Any]) -> str:
        """choices[0].message.content, sonst ""."""
        choices = obj.get("choices") or []
        if not choices:
            return ""
        message = choices[0].get("message") or {}
        return strip_lone_surrogates(message.get("content")).strip()

    # ---------- Embeddings ----------
    async def embed(self, text: str) -> List[float]:
        payload = {
            "model": self._settings.EMBEDDING_MODEL,
            "dimensions": self._settings.EMBEDDING_DIM,
            "input": strip_lone_surrogates(text),
        }
        obj = await self._post("embedding", "/embeddings", payload)
        try:
            vec = [float(x) for x in obj["data"][0]["embedding"]]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise DependencyError("embedding", f"malformed embedding response: {e}") from e
        if len(vec) != self._settings.EMBEDDING_DIM:
            raise DependencyError(
                "embedding",
                f"embedding has {len(vec)} dims, index expects {self._settings.EMBEDDING_DIM}",
            )
        return vec


def upstream_message(response: httpx.Response) -> str:
    # OpenAI: {"error": {"message": ...}}, Pinecone: {"message": ...} oder {"error": {...}}
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str) and err:
            return err
        if body.get("message"):
            return str(body["message"])
    text = (response.text or "").strip()
    return f"HTTP {response.status_code}: {text[:300]}" if text else f"HTTP {response.status_code}"


def parse_json_object(dependency: str, response: httpx.Response) -> Dict[str, Any]:
    # nur Parse-Fehler der Antwort zählen als Upstream-Fehler
    try:
        body = response.json()
    except ValueError as e:
        raise DependencyError(dependency, f"invalid JSON from upstream: {e}") from e
    if not isinstance(body, dict):
        raise DependencyError(dependency, f"unexpected response body: {type(body).__name__}")
    return body
