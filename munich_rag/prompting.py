# munich_rag/prompting.py
from __future__ import annotations
from typing import Dict, List

from .intent import Intent
from .schemas import ChatMessage, RankedCandidate
from .text import strip_lone_surrogates


REWRITE_SYSTEM = """\
You are a query rewriter for semantic search.
Rewrite the user's latest message into a fully standalone question.
Rules:
- Resolve pronouns and references using the conversation.
- Preserve the user's intent; do not add facts.
- Keep it short.
Output ONLY the rewritten question (no quotes, no commentary).
"""

REWRITE_INSTRUCTION = "Rewrite my latest message into a standalone question."

ANSWER_SYSTEM_TEMPLATE = """\
You are a helpful, friendly assistant inside a student-help website for Munich.
Answer conversationally (natural language), not by dumping raw chunks.
Use ONLY the provided context.
If the context does not contain enough information, say what is missing and ask ONE short follow-up question.
Do NOT mention Pinecone, embeddings, vectors, or retrieval.
When recommending places, include: name + 2-4 key reasons (hours, quiet, wifi, free, rent, distance, etc.) if present.
The user's intent is: {intent}.
"""

USER_TEMPLATE = """\
Question:
{question}

Context:
{context}"""

CONTEXT_SEPARATOR = "\n\n---\n\n"


class PromptBuilder:
    """
    Baut die Messages für Rewrite- und Antwort-Call sowie den Kontextblock
    aus den ausgewählten Treffern.
    """
    def __init__(self, history_window: int = 12) -> None:
        self.history_window = history_window

    def build_rewrite_messages(self, turns: List[ChatMessage]) -> List[Dict[str, str]]:
        history = [{"role": t.role, "content": t.content} for t in turns[-self.history_window:]]
        return [*history, {"role": "user", "content": REWRITE_INSTRUCTION}]

    def build_context(self, selected: List[RankedCandidate]) -> str:
        blocks: List[str] = []
        for i, r in enumerate(selected, start=1):
            md = r.metadata
            text = strip_lone_surrogates(md.text).strip()
            blocks.append(f"[Source {i}] {md.type}: {md.context_title}\n\n{text}")
        return CONTEXT_SEPARATOR.join(blocks)

    def answer_system(self, intent: Intent | str) -> str:
        return ANSWER_SYSTEM_TEMPLATE.format(intent=Intent(intent).value)

    def build_answer_messages(self, question: str, context: str) -> List[Dict[str, str]]:
        return [{"role": "user", "content": USER_TEMPLATE.format(question=question, context=context)}]
