# munich_rag/core.py
from __future__ import annotations
from typing import Dict, List, Optional
import json
import logging
import time

from .config import Settings
from .errors import RAGError
from .intent import Intent, classify_intent
from .ports import LanguageModel
from .projection import project_matches
from .prompting import PromptBuilder, REWRITE_SYSTEM
from .retrieval import RetrievalService
from .schemas import ChatMessage, QueryResult

log = logging.getLogger("metrics")
err_log = logging.getLogger("munich_rag.errors")

NO_CANDIDATES_ANSWER = "I couldn't find relevant information for that in the current knowledge base."
NO_USABLE_ANSWER = "I found related entries, but none had usable text to answer with."


class _Timer:
    """Sammelt Dauer pro Stage (ms) für die Metrics-Zeile."""

    def __init__(self) -> None:
        self.t0 = time.perf_counter()
        self._start: Optional[float] = None
        self.durations: Dict[str, Optional[float]] = {}

    def start(self) -> None:
        self._start = time.perf_counter()

    def stop(self, stage: str) -> None:
        if self._start is not None:
            self.durations[stage] = round((time.perf_counter() - self._start) * 1000.0, 2)
            self._start = None

    def total(self) -> float:
        return round((time.perf_counter() - self.t0) * 1000.0, 2)


class ApplicationCore:
    """
    Orchestrierung:
    Rewrite -> Embed -> Retrieve -> Rank/Dedupe -> Kontext -> Antwort (+ Match-Projektion).
    Strikt sequenziell, kein Retry, keine Teilantworten. Jeder Fehler beendet den Request.
    """

    def __init__(self, retrieval: RetrievalService, prompting: PromptBuilder, llm: LanguageModel, _settings: Settings) -> None:
        self.retrieval = retrieval
        self.prompting = prompting
        self.llm = llm
        self._settings = _settings

    # ---------- Stages ----------
    async def rewrite(self, turns: List[ChatMessage]) -> str:
        """Verlauf (letzte HISTORY_WINDOW Turns) -> eigenständige Suchfrage."""
        messages = self.prompting.build_rewrite_messages(turns)
        out = await self.llm.complete(REWRITE_SYSTEM, messages, temperature=self._settings.REWRITE_TEMPERATURE)
        out = (out or "").strip()
        # nie mit leerer Query weiterlaufen
        return out or turns[-1].content

    async def synthesize(self, question: str, intent: Intent | str, context: str) -> str:
        out = await self.llm.complete(
            self.prompting.answer_system(intent),
            self.prompting.build_answer_messages(question, context),
            temperature=self._settings.ANSWER_TEMPERATURE,
        )
        return (out or "").strip()

    # ---------- Pipeline ----------
    async def answer(self, turns: List[ChatMessage]) -> QueryResult:
        timer = _Timer()
        metrics: Dict = {"history_turns": len(turns)}
        try:
            result = await self._run(turns, timer, metrics)
        except Exception as e:
            self._log_error(e)
            self._log_metrics(timer, metrics, outcome="error", ok=False)
            raise
        self._log_metrics(timer, metrics, outcome=result.outcome, ok=True)
        return result

    async def _run(self, turns: List[ChatMessage], timer: _Timer, metrics: Dict) -> QueryResult:
        # 1) Rewrite
        timer.start()
        question = await self.rewrite(turns)
        timer.stop("rewrite")
        intent = classify_intent(question)
        metrics["intent"] = intent.value

        # 2) Embed
        timer.start()
        vector = await self.retrieval.embed(question)
        timer.stop("embed")

        # 3) Retrieve
        timer.start()
        candidates = await self.retrieval.retrieve(vector)
        timer.stop("retrieval")
        metrics["candidates"] = len(candidates)
        if not candidates:
            return QueryResult(answer=NO_CANDIDATES_ANSWER, rewritten_question=question, outcome="no_candidates")

        # 4) Rank + Dedupe
        timer.start()
        selected = self.retrieval.rank(candidates, intent)
        timer.stop("rank")
        metrics["selected"] = len(selected)
        if not selected:
            return QueryResult(answer=NO_USABLE_ANSWER, rewritten_question=question, outcome="no_usable_candidates")

        # 5) Kontext + Match-Projektion (beide hängen nur an `selected`)
        timer.start()
        context = self.prompting.build_context(selected)
        matches = project_matches(selected, self._settings.PREVIEW_CHARS)
        timer.stop("prompt_build")

        # 6) Antwort
        timer.start()
        answer = await self.synthesize(question, intent, context)
        timer.stop("llm")
        metrics["answer_chars"] = len(answer)

        return QueryResult(
            answer=answer,
            rewritten_question=question,
            outcome="answered",
            intent=intent.value,
            matches=matches,
        )

    # ---------- Logging ----------
    def _log_metrics(self, timer: _Timer, metrics: Dict, outcome: str, ok: bool) -> None:
        line = {
            "durations_ms": {**timer.durations, "total": timer.total()},
            "sizes": metrics,
            "outcome": outcome,
            "ok": ok,
        }
        log.info(json.dumps(line, ensure_ascii=False))

    @staticmethod
    def _log_error(e: Exception) -> None:
        if isinstance(e, RAGError):
            payload = e.to_log()
        else:
            payload = {"kind": "internal", "type": type(e).__name__, "message": str(e)}
        err_log.error(json.dumps(payload, ensure_ascii=False))
