# munich_rag/errors.py
"""
Fehler-Taxonomie der Pipeline.

- validation    : kaputter Request -> 400, keine externen Calls
- dependency    : Embedding/Pinecone/LLM schlägt fehl -> 500
- configuration : fehlende Settings -> fatal beim Start
"""
from __future__ import annotations
from typing import Dict, Optional


class RAGError(Exception):
    kind = "internal"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_log(self) -> Dict[str, Optional[str]]:
        return {"kind": self.kind, "type": type(self).__name__, "message": self.message}


class QueryValidationError(RAGError):
    kind = "validation"


class ConfigurationError(RAGError):
    kind = "configuration"


class DependencyError(RAGError):
    """Externer Dienst (embedding | vector_index | llm) hat versagt."""
    kind = "dependency"

    def __init__(self, dependency: str, message: str) -> None:
        super().__init__(message)
        self.dependency = dependency

    def to_log(self) -> Dict[str, Optional[str]]:
        out = super().to_log()
        out["dependency"] = self.dependency
        return out
