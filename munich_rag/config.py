# munich_rag/config.py
from __future__ import annotations
from typing import List

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


class Settings(BaseSettings):
    """
    Globale App-Einstellungen.

    Pflichtwerte kommen aus der Umgebung bzw. .env.
    Die Instanz wird genau einmal beim Prozessstart gebaut (load_settings)
    und per Injection an create_app() weitergereicht.
    """
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    # Pinecone (Vektorindex)
    PINECONE_API_KEY: str
    PINECONE_HOST: str
    PINECONE_INDEX: str
    PINECONE_NAMESPACE: str = ""
    PINECONE_API_VERSION: str = "2025-01"

    # LLM + Embeddings (OpenAI-kompatibel)
    OPENAI_API_KEY: str = Field(validation_alias=AliasChoices("OPENAI_API_KEY", "OPENAI_KEY"))
    LLM_BASE_URL: str = "https://api.openai.com/v1"
    CHAT_MODEL: str = "gpt-4o-mini"
    EMBEDDING_MODEL: str = "text-embedding-3-small"
    # muss zur Dimension beim Upsert passen
    EMBEDDING_DIM: int = 512

    # Retrieval/Ranking
    TOP_K: int = 18
    MAX_SOURCES: int = 8
    HISTORY_WINDOW: int = 12
    PREVIEW_CHARS: int = 220

    # Generierung
    REWRITE_TEMPERATURE: float = 0.0
    ANSWER_TEMPERATURE: float = 0.6

    # HTTP
    HTTP_TIMEOUT_SECONDS: float = 30.0
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    @field_validator("PINECONE_API_KEY", "PINECONE_HOST", "PINECONE_INDEX", "OPENAI_API_KEY", mode="after")
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("PINECONE_HOST", mode="after")
    def _normalize_host(cls, v: str) -> str:
        # "my-index-abc.svc.pinecone.io" -> "https://my-index-abc.svc.pinecone.io"
        u = v.rstrip("/")
        if not u.startswith(("http://", "https://")):
            u = "https://" + u
        return u

    @field_validator("LLM_BASE_URL", mode="after")
    def _strip_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("EMBEDDING_DIM", "TOP_K", "MAX_SOURCES", "HISTORY_WINDOW", "PREVIEW_CHARS", mode="after")
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be > 0")
        return v


def load_settings(**overrides) -> Settings:
    """
    Baut die Settings und wandelt Pydantic-Fehler in eine ConfigurationError
    mit allen fehlenden/ungültigen Feldern um (fatal beim Start).
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        problems: List[str] = []
        for err in e.errors():
            field = ".".join(str(p) for p in err.get("loc", ())) or "?"
            if err.get("type") == "missing":
                problems.append(f"{field} is not set")
            else:
                problems.append(f"{field}: {err.get('msg')}")
        raise ConfigurationError("Invalid configuration: " + "; ".join(problems)) from e

