"""Chat and embedding model construction.

Services import these lazily and fall back to heuristics when a provider is
unreachable, so clients are built with SDK retries disabled: retrying is the
enrichment task's job, with its own backoff.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Optional

from langchain_core.embeddings import Embeddings
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_ollama import ChatOllama, OllamaEmbeddings
from langchain_openai import ChatOpenAI, OpenAIEmbeddings

from .settings import LLMProvider, settings

REQUEST_TIMEOUT_SECONDS = 30


def _openai_client_options() -> dict[str, Any]:
    key = settings.openai_api_key
    return {
        "api_key": key.get_secret_value() if key else None,
        "base_url": settings.openai_base_url,
        "max_retries": 0,
    }


@lru_cache(maxsize=8)
def get_chat_model(
    provider: Optional[LLMProvider] = None,
    model: Optional[str] = None,
    temperature: Optional[float] = None,
) -> BaseChatModel:
    """Chat model for summaries, classification, answers and theme labels."""
    provider = provider or settings.llm_provider
    temperature = settings.llm_temperature if temperature is None else temperature

    if provider == LLMProvider.openai:
        return ChatOpenAI(
            model=model or settings.llm_model,
            temperature=temperature,
            organization=settings.openai_organization,
            timeout=REQUEST_TIMEOUT_SECONDS,
            **_openai_client_options(),
        )
    if provider == LLMProvider.ollama:
        return ChatOllama(
            model=model or settings.ollama_chat_model,
            temperature=temperature,
            base_url=settings.ollama_base_url,
        )
    raise ValueError(f"Unsupported provider: {provider}")


@lru_cache(maxsize=8)
def get_embedding_model(
    provider: Optional[LLMProvider] = None,
    model: Optional[str] = None,
) -> Embeddings:
    """Embedding model shared by enrichment (documents) and ask (queries)."""
    provider = provider or settings.llm_provider

    if provider == LLMProvider.openai:
        return OpenAIEmbeddings(
            model=model or settings.embedding_model,
            **_openai_client_options(),
        )
    if provider == LLMProvider.ollama:
        return OllamaEmbeddings(
            model=model or settings.ollama_embed_model,
            base_url=settings.ollama_base_url,
        )
    raise ValueError(f"Unsupported provider: {provider}")


__all__ = ["get_chat_model", "get_embedding_model"]
