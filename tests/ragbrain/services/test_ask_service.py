from datetime import timedelta

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from ragbrain.core.exceptions import ValidationError
from ragbrain.core.settings import settings
from ragbrain.core.utils import now_ms, utcnow
from ragbrain.models.thought import Thought
from ragbrain.schemas.ask import Citation
from ragbrain.services.ask_service import (
    NO_RESULTS_ANSWER,
    AskService,
    confidence_for,
    fuse,
    recency_score,
    rewrite_query,
)
from ragbrain.services.conversation_service import ConversationService
from ragbrain.services.enrichment_service import EnrichmentService
from ragbrain.services.thought_service import ThoughtService

CLASSIFICATION = '{"tags": ["infra"], "category": "engineering"}'


def _capture_and_enrich(session, embedder, text, **kwargs):
    thought = ThoughtService(session).capture(text=text, **kwargs)
    chat = FakeListChatModel(responses=[CLASSIFICATION])
    EnrichmentService(session, embedder=embedder, chat_model=chat).enrich(thought.id, now_ms())
    return thought


def test_empty_query_is_rejected(session):
    with pytest.raises(ValidationError):
        AskService(session).ask("")
    with pytest.raises(ValidationError):
        AskService(session).ask("   ")
    with pytest.raises(ValidationError):
        AskService(session).ask("x" * 1001)
    with pytest.raises(ValidationError):
        AskService(session).ask("redis", time_window="someday")


def test_no_matches_returns_low_confidence(session, embedder):
    _capture_and_enrich(session, embedder, "kubernetes deploy checklist")

    result = AskService(session, embedder=embedder).ask("quantum chromodynamics")

    assert result.citations == []
    assert result.answer == NO_RESULTS_ANSWER
    assert result.confidence == pytest.approx(0.1)
    assert result.processing_time >= 0


def test_captured_tagged_thought_is_cited_after_enrichment(session, embedder):
    target = _capture_and_enrich(
        session, embedder, "Aurora borealis migration plan for the postgres cluster", tags=["infra"]
    )
    _capture_and_enrich(session, embedder, "React frontend typescript conventions")

    result = AskService(session, embedder=embedder).ask("aurora borealis migration")

    assert result.citations
    top = result.citations[0]
    assert top.id == target.id
    assert top.score >= 0.3
    assert "infra" in (top.tags or [])
    assert result.answer.startswith("Based on your notes: ")
    assert 0.1 < result.confidence <= 0.95


def test_hashtag_in_query_filters_by_tag(session, embedder):
    tagged = _capture_and_enrich(session, embedder, "redis cache warmup #ops")
    _capture_and_enrich(session, embedder, "redis cache eviction")

    result = AskService(session, embedder=embedder).ask("redis cache #ops")

    assert [c.id for c in result.citations] == [tagged.id]


def test_request_tags_prefilter_candidates(session, embedder):
    tagged = _capture_and_enrich(session, embedder, "redis cache warmup", tags=["ops"])
    _capture_and_enrich(session, embedder, "redis cache eviction")

    result = AskService(session, embedder=embedder).ask("redis cache", tags=["ops"])

    assert [c.id for c in result.citations] == [tagged.id]


def test_citations_are_ordered_by_descending_score(session, embedder):
    best = _capture_and_enrich(session, embedder, "redis cache latency")
    _capture_and_enrich(session, embedder, "redis")
    _capture_and_enrich(session, embedder, "redis cache")
    _capture_and_enrich(session, embedder, "kubernetes deploy")

    result = AskService(session, embedder=embedder).ask("redis cache latency")

    scores = [c.score for c in result.citations]
    assert len(scores) == 3
    assert scores == sorted(scores, reverse=True)
    assert result.citations[0].id == best.id


def test_equal_scores_put_newer_thought_first(session, embedder, monkeypatch):
    monkeypatch.setattr("ragbrain.services.ask_service.recency_score", lambda *a, **k: 1.0)
    newer = _capture_and_enrich(session, embedder, "postgres database")
    older = _capture_and_enrich(session, embedder, "postgres database")
    for thought, age in ((newer, timedelta(0)), (older, timedelta(days=1))):
        stored = session.get(Thought, thought.id)
        stored.created_at = utcnow() - age
        session.add(stored)
    session.commit()

    result = AskService(session, embedder=embedder).ask("postgres database")

    assert [c.id for c in result.citations] == [newer.id, older.id]
    assert result.citations[0].score == result.citations[1].score


def test_citations_capped_at_top_k(session, embedder, monkeypatch):
    monkeypatch.setattr(settings, "ask_top_k", 2)
    for text in ("redis cache", "redis cache latency", "redis caching", "redis cache api"):
        _capture_and_enrich(session, embedder, text)

    result = AskService(session, embedder=embedder).ask("redis cache")

    assert len(result.citations) == 2


def test_conversation_hits_leave_citations_unchanged(session, embedder):
    _capture_and_enrich(session, embedder, "redis cache latency budget")
    _capture_and_enrich(session, embedder, "redis eviction")

    before = AskService(session, embedder=embedder).ask("redis cache latency")
    ConversationService(session).create_conversation(
        title="redis cache latency", initial_message="redis cache latency review"
    )
    after = AskService(session, embedder=embedder).ask("redis cache latency")

    assert before.conversation_hits == []
    assert after.conversation_hits
    assert [c.id for c in after.citations] == [c.id for c in before.citations]
    assert [c.score for c in after.citations] == pytest.approx(
        [c.score for c in before.citations], abs=1e-3
    )


def test_keyword_only_when_query_embedding_fails(session, embedder, failing_embedder):
    target = _capture_and_enrich(session, embedder, "python migration to typescript")

    result = AskService(session, embedder=failing_embedder).ask("typescript migration")

    assert [c.id for c in result.citations] == [target.id]


def test_time_window_excludes_old_thoughts(session, embedder):
    old = _capture_and_enrich(session, embedder, "postgres database vacuum")
    stored = session.get(Thought, old.id)
    stored.created_at = utcnow() - timedelta(days=60)
    session.add(stored)
    session.commit()

    result = AskService(session, embedder=embedder).ask("postgres vacuum", time_window="week")

    assert result.citations == []


def test_llm_answer_used_when_enabled(session, embedder, monkeypatch):
    monkeypatch.setattr(settings, "enable_llm_answers", True)
    _capture_and_enrich(session, embedder, "redis cache sizing notes")
    chat = FakeListChatModel(responses=["Size the cache to the working set [1]."])

    result = AskService(session, embedder=embedder, chat_model=chat).ask("redis cache")

    assert result.answer == "Size the cache to the working set [1]."


def test_llm_failure_returns_extractive_answer(
    session, embedder, failing_chat_model, monkeypatch
):
    monkeypatch.setattr(settings, "enable_llm_answers", True)
    _capture_and_enrich(session, embedder, "redis cache sizing notes")

    result = AskService(session, embedder=embedder, chat_model=failing_chat_model).ask(
        "redis cache"
    )

    assert result.answer == "Based on your notes: redis cache sizing notes"


def test_rewrite_query_extracts_tags_and_expands_synonyms():
    rewritten = rewrite_query("why redis #infra")
    assert rewritten.tags == ["infra"]
    assert rewritten.text == "why redis"
    assert "rationale" in rewritten.expanded.split()


def test_scoring_helpers():
    now = utcnow()
    assert recency_score(now, now=now) == pytest.approx(1.0)
    assert recency_score(now - timedelta(days=30), now=now) == pytest.approx(0.3679, abs=1e-3)
    assert fuse(bm25_norm=1.0, vector=1.0, recency=1.0, decision=1.0) == pytest.approx(1.15)
    assert confidence_for([]) == 0.1
    cite = Citation(id="t_1", preview="p", score=1.2, created_at=now)
    assert confidence_for([cite]) == 0.95
