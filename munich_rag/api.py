# munich_rag/api.py
from __future__ import annotations
from typing import Any, List, Optional
from contextlib import asynccontextmanager
import json
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, load_settings
from .core import ApplicationCore
from .errors import QueryValidationError, RAGError
from .llm import LLMAdapter
from .ports import Embedder, LanguageModel, VectorIndex
from .prompting import PromptBuilder
from .retrieval import RetrievalService
from .schemas import ChatMessage
from .text import strip_lone_surrogates
from .vector_index import PineconeIndex

err_log = logging.getLogger("munich_rag.errors")


# ---------- Validation ----------
def validate_messages(body: Any) -> List[ChatMessage]:
    """
    Erwartet {"messages": [{"role": "user"|"assistant", "content": "..."}, ...]}.
    Letzte Nachricht muss vom User sein und nicht leer.
    """
    messages = body.get("messages") if isinstance(body, dict) else None
    if not isinstance(messages, list) or not messages:
        raise QueryValidationError('Missing or invalid "messages" array in body')

    turns: List[ChatMessage] = []
    for i, m in enumerate(messages):
        if not isinstance(m, dict):
            raise QueryValidationError(f"messages[{i}] must be an object")
        role, content = m.get("role"), m.get("content")
        if role not in ("user", "assistant"):
            raise QueryValidationError(f'messages[{i}].role must be "user" or "assistant"')
        if not isinstance(content, str):
            raise QueryValidationError(f"messages[{i}].content must be a string")
        turns.append(ChatMessage(role=role, content=strip_lone_surrogates(content)))

    last = turns[-1]
    if last.role != "user" or not last.content.strip():
        raise QueryValidationError('The last message must be a user message with non-empty "content".')
    return turns


# ---------- App & DI ----------
def create_app(
    settings: Optional[Settings] = None,
    llm: Optional[LanguageModel] = None,
    embedder: Optional[Embedder] = None,
    index: Optional[VectorIndex] = None,
) -> FastAPI:
    """
    Baut die App. Settings werden einmal geladen (fehlende Werte -> ConfigurationError,
    bevor irgendein Request bedient wird). Externe Dienste sind injizierbar.
    """
    settings = settings or load_settings()

    adapter: Optional[LLMAdapter] = None
    if llm is None or embedder is None:
        adapter = LLMAdapter(settings)
    llm = llm or adapter
    embedder = embedder or adapter

    owned_index: Optional[PineconeIndex] = None
    if index is None:
        owned_index = PineconeIndex(settings)
        if settings.PINECONE_NAMESPACE:
            owned_index = owned_index.namespace(settings.PINECONE_NAMESPACE)
        index = owned_index

    retrieval = RetrievalService(embedder, index, settings)
    prompting = PromptBuilder(history_window=settings.HISTORY_WINDOW)
    core = ApplicationCore(retrieval, prompting, llm, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if adapter is not None:
            await adapter.startup()
        if owned_index is not None:
            await owned_index.startup()
        yield
        # Shutdown
        if adapter is not None:
            await adapter.shutdown()
        if owned_index is not None:
            await owned_index.shutdown()

    app = FastAPI(title="Munich Student Help RAG", version="0.3.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.core = core

    # ---------- Endpoints ----------
    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/query")
    async def query(request: Request):
        """
        POST /query
        Body:
          {"messages": [{"role": "user", "content": "Where can I study quietly on Sunday?"}]}
        Antwort (200):
          {"answer": "...", "matches": [...], "rewrittenQuestion": "...", "intent": "study_place"}
        Fehler: 400 {"error": ...} bei ungültigem Body, 500 {"error": ...} sonst.
        """
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = None

        try:
            turns = validate_messages(body)
        except QueryValidationError as e:
            err_log.info(json.dumps(e.to_log(), ensure_ascii=False))
            return JSONResponse({"error": e.message}, status_code=400)

        try:
            result = await core.answer(turns)
        except RAGError as e:
            return JSONResponse({"error": e.message}, status_code=500)
        except Exception as e:
            return JSONResponse({"error": str(e) or "Internal server error"}, status_code=500)

        return JSONResponse(result.to_response())

    return app
