import pytest
from ragbrain.core.settings import settings
from ragbrain.core.utils import now_ms
from ragbrain.models.sync import EnrichmentDeadLetter
from ragbrain.models.thought import Thought
from ragbrain.services.thought_service import ThoughtService
from ragbrain.tasks import enrichment as tasks
from sqlmodel import Session, select


class RetryRequested(Exception):
    pass


@pytest.fixture
def task_session(engine, monkeypatch):
    monkeypatch.setattr(tasks, "SessionLocal", lambda: Session(engine))
    return engine


@pytest.fixture
def retries(monkeypatch):
    calls: list[dict] = []

    def fake_retry(*, exc, countdown, max_retries):
        calls.append({"exc": exc, "countdown": countdown, "max_retries": max_retries})
        return RetryRequested()

    monkeypatch.setattr(tasks.enrich_item, "retry", fake_retry)
    return calls


def _run(item_id, enqueued_at, *, attempt=0):
    tasks.enrich_item.push_request(retries=attempt)
    try:
        return tasks.enrich_item.run(item_id=item_id, enqueued_at=enqueued_at)
    finally:
        tasks.enrich_item.pop_request()


def _capture(engine, text="redis cache"):
    with Session(engine) as session:
        return ThoughtService(session).capture(text=text).id


def test_enrich_item_applies(task_session, embedder, monkeypatch):
    monkeypatch.setattr("ragbrain.core.llm_factory.get_embedding_model", lambda *a, **k: embedder)
    thought_id = _capture(task_session)
    stamp = now_ms()

    result = _run(thought_id, stamp)

    assert result["status"] == "applied"
    with Session(task_session) as session:
        assert session.get(Thought, thought_id).derived_at == stamp


def test_upstream_failure_retries_with_backoff(task_session, retries):
    thought_id = _capture(task_session)

    with pytest.raises(RetryRequested):
        _run(thought_id, now_ms(), attempt=2)

    assert retries[0]["countdown"] == min(
        settings.enrichment_backoff_max_seconds, settings.enrichment_backoff_base_seconds * 4
    )
    assert retries[0]["max_retries"] == settings.enrichment_max_retries


def test_exhausted_retries_dead_letter(task_session, retries):
    thought_id = _capture(task_session)
    stamp = now_ms()

    result = _run(thought_id, stamp, attempt=settings.enrichment_max_retries)

    assert result["status"] == "dead_lettered"
    assert retries == []
    with Session(task_session) as session:
        entry = session.exec(select(EnrichmentDeadLetter)).one()
        assert entry.item_id == thought_id
        assert entry.enqueued_at == stamp
        assert entry.attempts == settings.enrichment_max_retries + 1
        assert session.get(Thought, thought_id).text == "redis cache"
