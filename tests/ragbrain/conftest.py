from __future__ import annotations

from typing import Any, Iterator

import pytest
import ragbrain.models  # noqa: F401
from langchain_core.embeddings import Embeddings
from ragbrain.core.database import build_engine
from ragbrain.core.settings import settings
from ragbrain.services.bm25 import tokenize
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel

VOCABULARY = (
    "redis",
    "cache",
    "caching",
    "postgres",
    "database",
    "react",
    "frontend",
    "kubernetes",
    "deploy",
    "latency",
    "aurora",
    "borealis",
    "migration",
    "python",
    "typescript",
    "api",
)


class KeywordEmbeddings(Embeddings):
    """Bag-of-words over a fixed vocabulary: shared keywords mean similar vectors."""

    def __init__(self, vocabulary: tuple[str, ...] = VOCABULARY) -> None:
        self.vocabulary = vocabulary
        self.calls: list[str] = []

    def _vector(self, text: str) -> list[float]:
        tokens = tokenize(text)
        return [float(tokens.count(word)) for word in self.vocabulary]

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self._vector(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        self.calls.append(text)
        return self._vector(text)


class FailingEmbeddings(Embeddings):
    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        raise RuntimeError("embedding backend unavailable")

    def embed_query(self, text: str) -> list[float]:
        raise RuntimeError("embedding backend unavailable")


class FailingChatModel:
    """Stands in for a chat model whose provider is down."""

    def invoke(self, *_args: Any, **_kwargs: Any) -> Any:
        raise RuntimeError("model provider unavailable")


class DummyCeleryClient:
    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []

    def send_task(
        self,
        name: str,
        *,
        kwargs: dict[str, Any],
        queue: str,
        countdown: int | None = None,
    ) -> None:
        self.sent.append({"name": name, "kwargs": kwargs, "queue": queue, "countdown": countdown})


def make_engine() -> Engine:
    engine = build_engine("sqlite://", poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture(autouse=True)
def celery_client(monkeypatch: pytest.MonkeyPatch) -> DummyCeleryClient:
    dummy = DummyCeleryClient()
    monkeypatch.setattr("ragbrain.services.enrichment_queue.get_celery_client", lambda: dummy)
    return dummy


@pytest.fixture(autouse=True)
def _offline_models(monkeypatch: pytest.MonkeyPatch) -> None:
    # Answers and labels come from the extractive fallbacks unless a test opts in.
    monkeypatch.setattr(settings, "enable_llm_answers", False)
    monkeypatch.setattr(settings, "enable_llm_theme_labels", False)
    monkeypatch.setattr(settings, "api_key", None)
    monkeypatch.setattr(
        "ragbrain.core.llm_factory.get_embedding_model", lambda *a, **k: FailingEmbeddings()
    )
    monkeypatch.setattr(
        "ragbrain.core.llm_factory.get_chat_model", lambda *a, **k: FailingChatModel()
    )


@pytest.fixture
def engine() -> Engine:
    return make_engine()


@pytest.fixture
def session(engine: Engine) -> Iterator[Session]:
    with Session(engine) as s:
        yield s


@pytest.fixture
def embedder() -> KeywordEmbeddings:
    return KeywordEmbeddings()


@pytest.fixture
def failing_embedder() -> FailingEmbeddings:
    return FailingEmbeddings()


@pytest.fixture
def failing_chat_model() -> FailingChatModel:
    return FailingChatModel()
