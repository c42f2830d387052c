import json
import logging

import pytest

from munich_rag.core import NO_CANDIDATES_ANSWER, NO_USABLE_ANSWER, ApplicationCore
from munich_rag.errors import DependencyError
from munich_rag.prompting import REWRITE_SYSTEM, PromptBuilder
from munich_rag.retrieval import RetrievalService
from munich_rag.schemas import ChatMessage

from tests.conftest import FakeEmbedder, FakeIndex, FakeLLM, cand


def build_core(settings, llm, embedder=None, index=None):
    retrieval = RetrievalService(embedder or FakeEmbedder(), index or FakeIndex(), settings)
    return ApplicationCore(retrieval, PromptBuilder(settings.HISTORY_WINDOW), llm, settings)


def user(content):
    return ChatMessage(role="user", content=content)


def assistant(content):
    return ChatMessage(role="assistant", content=content)


class TestRewrite:
    @pytest.mark.asyncio
    async def test_follow_up_passes_history_window(self, settings):
        llm = FakeLLM(["Is the dorm under 450 EUR quiet?"])
        core = build_core(settings, llm)
        turns = [
            user("Suggest a dorm under €450"),
            assistant("Stusta has rooms from 320 EUR."),
            user("is it quiet?"),
        ]

        out = await core.rewrite(turns)

        assert out == "Is the dorm under 450 EUR quiet?"
        call = llm.calls[0]
        assert call["system"] == REWRITE_SYSTEM
        assert call["temperature"] == 0.0
        history = call["messages"][:-1]
        assert history == [{"role": t.role, "content": t.content} for t in turns]

    @pytest.mark.asyncio
    async def test_window_is_last_twelve_turns(self, settings):
        llm = FakeLLM(["q"])
        core = build_core(settings, llm)
        turns = [user(f"m{i}") if i % 2 == 0 else assistant(f"m{i}") for i in range(20)]

        await core.rewrite(turns)

        history = llm.calls[0]["messages"][:-1]
        assert [m["content"] for m in history] == [f"m{i}" for i in range(8, 20)]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", ["", "   ", None])
    async def test_empty_rewrite_falls_back_to_last_turn(self, settings, reply):
        llm = FakeLLM([reply])
        core = build_core(settings, llm)
        assert await core.rewrite([user("Where is the KVR?")]) == "Where is the KVR?"


class TestAnswer:
    @pytest.mark.asyncio
    async def test_answered(self, settings, study_candidates):
        llm = FakeLLM(["Where can I study quietly on Sunday in Munich?", "Try the Bavarian State Library."])
        embedder = FakeEmbedder()
        index = FakeIndex(study_candidates)
        core = build_core(settings, llm, embedder, index)

        result = await core.answer([user("Where can I study quietly on Sunday?")])

        assert result.outcome == "answered"
        assert result.answer == "Try the Bavarian State Library."
        assert result.intent == "study_place"
        assert result.rewritten_question == "Where can I study quietly on Sunday in Munich?"
        assert embedder.calls == ["Where can I study quietly on Sunday in Munich?"]
        assert [m.title for m in result.matches] == ["Bavarian State Library", "TUM Main Library", "Libraries"]

        synth = llm.calls[1]
        assert synth["temperature"] == 0.6
        assert "The user's intent is: study_place." in synth["system"]
        prompt = synth["messages"][0]["content"]
        assert prompt.startswith("Question:\nWhere can I study quietly on Sunday in Munich?\n\nContext:\n")
        assert "[Source 1] study_place: Bavarian State Library" in prompt

    @pytest.mark.asyncio
    async def test_no_candidates(self, settings):
        llm = FakeLLM(["q"])
        result = await build_core(settings, llm, index=FakeIndex([])).answer([user("anything?")])

        assert result.outcome == "no_candidates"
        assert result.answer == NO_CANDIDATES_ANSWER
        assert result.matches == []
        assert len(llm.calls) == 1

    @pytest.mark.asyncio
    async def test_no_usable_candidates(self, settings):
        llm = FakeLLM(["q"])
        index = FakeIndex([cand("a", 0.9, text=""), cand("b", 0.8, text="  ")])
        result = await build_core(settings, llm, index=index).answer([user("anything?")])

        assert result.outcome == "no_usable_candidates"
        assert result.answer == NO_USABLE_ANSWER
        assert result.matches == []
        assert len(llm.calls) == 1

    @pytest.mark.asyncio
    async def test_empty_synthesis_is_empty_answer(self, settings, study_candidates):
        llm = FakeLLM(["q", ""])
        result = await build_core(settings, llm, index=FakeIndex(study_candidates)).answer([user("library?")])
        assert result.outcome == "answered"
        assert result.answer == ""

    @pytest.mark.asyncio
    async def test_dependency_error_propagates_and_stops(self, settings, caplog):
        llm = FakeLLM(["q"])
        index = FakeIndex()
        embedder = FakeEmbedder(error=DependencyError("embedding", "quota exceeded"))
        core = build_core(settings, llm, embedder, index)

        with caplog.at_level(logging.INFO):
            with pytest.raises(DependencyError):
                await core.answer([user("dorm?")])

        assert index.calls == []
        errors = [json.loads(r.getMessage()) for r in caplog.records if r.name == "munich_rag.errors"]
        assert errors == [{"kind": "dependency", "type": "DependencyError", "message": "quota exceeded", "dependency": "embedding"}]
        metrics = [json.loads(r.getMessage()) for r in caplog.records if r.name == "metrics"]
        assert metrics[0]["outcome"] == "error"
        assert metrics[0]["ok"] is False

    @pytest.mark.asyncio
    async def test_metrics_line_per_request(self, settings, study_candidates, caplog):
        llm = FakeLLM(["quiet library", "answer"])
        core = build_core(settings, llm, index=FakeIndex(study_candidates))

        with caplog.at_level(logging.INFO, logger="metrics"):
            await core.answer([user("quiet library?")])

        lines = [json.loads(r.getMessage()) for r in caplog.records if r.name == "metrics"]
        assert len(lines) == 1
        line = lines[0]
        assert line["ok"] is True
        assert line["outcome"] == "answered"
        assert set(line["durations_ms"]) == {"rewrite", "embed", "retrieval", "rank", "prompt_build", "llm", "total"}
        assert line["sizes"]["candidates"] == 3
        assert line["sizes"]["selected"] == 3
        assert line["sizes"]["intent"] == "study_place"
