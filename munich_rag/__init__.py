# munich_rag/__init__.py
"""
Paket für den Munich-Student-Help RAG-Service.
Struktur:
- config.py       : Konfiguration via Pydantic Settings (einmal beim Start)
- errors.py       : Fehler-Taxonomie (validation / dependency / configuration)
- text.py         : Surrogate-Bereinigung + Previews
- intent.py       : Intent-Klassifikation (dorm / study_place / general)
- schemas.py      : Candidate-Records + API-Modelle
- ports.py        : Protokolle für LLM, Embedder, Vektorindex
- llm.py          : LLMAdapter (Chat-Completions + Embeddings via httpx)
- vector_index.py : PineconeIndex (Query via httpx)
- retrieval.py    : RetrievalService (Embed, Query, Boost, Re-Ranking, Dedupe)
- prompting.py    : PromptBuilder (Rewrite-/Antwort-Prompt, Kontextblock)
- projection.py   : Treffer -> UI-Matches
- core.py         : ApplicationCore (Rewrite -> Retrieval -> Antwort)
- api.py          : FastAPI Endpoints (/health, /query)
"""
