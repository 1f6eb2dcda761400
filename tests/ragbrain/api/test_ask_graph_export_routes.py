from __future__ import annotations

import pytest
from ragbrain.api.ask import router as ask_router
from ragbrain.api.export import router as export_router
from ragbrain.api.graph import router as graph_router
from ragbrain.api.thoughts import router as thoughts_router
from ragbrain.core.utils import now_ms
from ragbrain.services.enrichment_service import EnrichmentService
from sqlmodel import Session


@pytest.fixture
def client(api_client):
    return api_client(thoughts_router, ask_router, graph_router, export_router)


def test_ask_returns_citations(client):
    client.post("/thoughts", json={"text": "Kubernetes deploy runbook for staging"})

    resp = client.post("/ask", json={"query": "kubernetes deploy"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["citations"][0]["preview"] == "Kubernetes deploy runbook for staging"
    assert data["citations"][0]["createdAt"].endswith("Z")
    assert "processingTime" in data
    assert "conversationHits" in data


def test_ask_validation(client):
    assert client.post("/ask", json={"query": ""}).status_code == 400
    assert client.post("/ask", json={"query": "x", "timeWindow": "decade"}).status_code == 400


def test_graph_and_related(client, engine, embedder):
    ids = [
        client.post("/thoughts", json={"text": text}).json()["id"]
        for text in ("redis cache sizing", "redis cache eviction", "react frontend state")
    ]
    with Session(engine) as session:
        svc = EnrichmentService(session, embedder=embedder)
        for thought_id in ids:
            svc.enrich(thought_id, now_ms())

    graph = client.get("/graph", params={"minSimilarity": 0.5}).json()
    assert graph["metadata"]["totalNodes"] == 3
    assert {n["id"] for n in graph["nodes"]} == set(ids)
    assert all("clusterId" in n for n in graph["nodes"])

    related = client.get(f"/thoughts/{ids[0]}/related").json()
    assert related["thoughtId"] == ids[0]
    assert related["related"][0]["id"] == ids[1]


def test_graph_rejects_bad_month(client):
    resp = client.get("/graph", params={"month": "2024-13"})
    assert resp.status_code == 400


def test_export_round(client):
    thought_id = client.post("/thoughts", json={"text": "export me"}).json()["id"]

    full = client.get("/export").json()
    assert [t["id"] for t in full["thoughts"]] == [thought_id]
    assert isinstance(full["syncTimestamp"], int)

    client.delete(f"/thoughts/{thought_id}")
    later = client.get("/export", params={"since": full["syncTimestamp"]}).json()
    assert later["thoughts"] == []
    assert later["deleted"] == [thought_id]

    assert client.get("/export", params={"since": -5}).status_code == 400
