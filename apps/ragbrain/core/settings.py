from __future__ import annotations

import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DB_PATH = Path(__file__).resolve().parents[1] / "ragbrain.db"


class LLMProvider(str, Enum):
    openai = "openai"
    ollama = "ollama"


class Settings(BaseSettings):
    """Unified application settings for ragbrain.

    Loads from env with support for repo ".env" files. Avoids manual load_dotenv().
    """

    _app_env = (os.getenv("APP_ENV") or "").strip().lower()
    _env_files = (
        []
        if _app_env in {"test", "ci"}
        else [
            str((Path(__file__).resolve().parents[1] / ".env")),  # apps/ragbrain/.env
            str((Path(__file__).resolve().parents[3] / ".env")),  # repo root .env
        ]
    )

    model_config = SettingsConfigDict(
        env_file=_env_files,
        case_sensitive=False,
        extra="ignore",
    )

    # --- App / Core ---
    app_env: str = Field(default="dev", alias="APP_ENV")
    app_name: str = Field(default="ragbrain", alias="APP_NAME")
    debug: bool = Field(default=False, alias="DEBUG")
    # Logging
    log_level: str | None = Field(default=None, alias="RAGBRAIN_LOG_LEVEL")
    log_level_fallback: str | None = Field(default=None, alias="LOG_LEVEL")

    # Shared credential checked by the API dependency. Unset disables the check (local dev).
    api_key: SecretStr | None = Field(default=None, alias="RAGBRAIN_API_KEY")
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")

    cors_allow_origins: list[str] = Field(default=["*"], alias="CORS_ALLOW_ORIGINS")

    # Database
    database_url: str = Field(
        default=f"sqlite:///{DEFAULT_DB_PATH}",
        alias="DATABASE_URL",
    )

    # OpenAI (also used by downstream libs)
    openai_api_key: SecretStr | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_base_url: Optional[str] = Field(default=None, alias="OPENAI_BASE_URL")
    openai_organization: Optional[str] = Field(default=None, alias="OPENAI_ORG")

    # LLM provider selection
    llm_provider: LLMProvider = Field(default=LLMProvider.openai, alias="RAGBRAIN_LLM_PROVIDER")
    llm_model: str = Field(default="gpt-4.1-mini", alias="RAGBRAIN_LLM_MODEL")
    llm_temperature: float = Field(default=0.2, alias="RAGBRAIN_LLM_TEMPERATURE")
    embedding_model: str = Field(
        default="text-embedding-3-small", alias="RAGBRAIN_EMBEDDING_MODEL"
    )

    # Ollama
    ollama_base_url: str = Field(
        default="http://localhost:11434", alias="RAGBRAIN_OLLAMA_BASE_URL"
    )
    ollama_chat_model: str = Field(default="llama3.2", alias="RAGBRAIN_OLLAMA_CHAT_MODEL")
    ollama_embed_model: str = Field(
        default="nomic-embed-text", alias="RAGBRAIN_OLLAMA_EMBED_MODEL"
    )

    # Conversation messages at rest (Fernet key). Unset stores plaintext.
    message_key: SecretStr | None = Field(default=None, alias="RAGBRAIN_MESSAGE_KEY")

    # Capture
    max_text_length: int = Field(default=50_000, alias="RAGBRAIN_MAX_TEXT_LENGTH", ge=1)

    # Enrichment worker
    enrichment_queue: str = Field(default="enrichment", alias="RAGBRAIN_ENRICHMENT_QUEUE")
    enrichment_max_retries: int = Field(
        default=5, alias="RAGBRAIN_ENRICHMENT_MAX_RETRIES", ge=0, le=20
    )
    enrichment_backoff_base_seconds: int = Field(
        default=30, alias="RAGBRAIN_ENRICHMENT_BACKOFF_BASE_SECONDS", ge=1
    )
    enrichment_backoff_max_seconds: int = Field(
        default=3600, alias="RAGBRAIN_ENRICHMENT_BACKOFF_MAX_SECONDS", ge=1
    )
    embedding_max_chars: int = Field(default=8192, alias="RAGBRAIN_EMBEDDING_MAX_CHARS", ge=1)
    conversation_index_debounce_ms: int = Field(
        default=10_000, alias="RAGBRAIN_CONVERSATION_INDEX_DEBOUNCE_MS", ge=0
    )

    # Ask / ranking
    ask_top_k: int = Field(default=5, alias="RAGBRAIN_ASK_TOP_K", ge=1, le=50)
    ask_min_citation_score: float = Field(
        default=0.3, alias="RAGBRAIN_ASK_MIN_CITATION_SCORE", ge=0.0
    )
    ask_conversation_hits: int = Field(
        default=3, alias="RAGBRAIN_ASK_CONVERSATION_HITS", ge=0, le=20
    )
    enable_llm_answers: bool = Field(default=True, alias="RAGBRAIN_ENABLE_LLM_ANSWERS")

    # Graph
    graph_min_similarity: float = Field(
        default=0.7, alias="RAGBRAIN_GRAPH_MIN_SIMILARITY", ge=0.0, le=1.0
    )
    graph_max_edges_per_node: int = Field(
        default=5, alias="RAGBRAIN_GRAPH_MAX_EDGES_PER_NODE", ge=1, le=50
    )
    enable_llm_theme_labels: bool = Field(
        default=False, alias="RAGBRAIN_ENABLE_LLM_THEME_LABELS"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


# Convenience singleton for modules expecting a module-level "settings"
settings = get_settings()
