from __future__ import annotations

import pytest
from ragbrain.api.thoughts import router as thoughts_router


@pytest.fixture
def client(api_client):
    return api_client(thoughts_router)


def test_capture_returns_camel_case_and_enqueues(client, celery_client):
    resp = client.post(
        "/thoughts",
        json={"text": "Use Redis for caching #infra", "tags": ["Backend"], "context": {"repo": "api"}},
    )

    assert resp.status_code == 201
    data = resp.json()
    assert data["id"].startswith("t_")
    assert data["smartId"].startswith("t-use-redis-for-caching-")
    assert data["tags"] == ["backend", "infra"]
    assert data["createdAt"].endswith("Z")
    assert celery_client.sent[-1]["kwargs"]["item_id"] == data["id"]


def test_capture_validation_errors(client):
    assert client.post("/thoughts", json={"text": "   "}).status_code == 400
    assert client.post("/thoughts", json={}).status_code == 400
    resp = client.post("/thoughts", json={"text": "ok", "type": "poem"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "validation_error"


def test_get_update_delete(client):
    thought_id = client.post("/thoughts", json={"text": "first draft"}).json()["id"]

    fetched = client.get(f"/thoughts/{thought_id}").json()
    assert fetched["text"] == "first draft"
    assert fetched["enriched"] is False
    assert fetched["decisionScore"] == 0.0

    updated = client.put(f"/thoughts/{thought_id}", json={"text": "second draft", "type": "todo"})
    assert updated.status_code == 200
    assert updated.json()["type"] == "todo"
    assert updated.json()["text"] == "second draft"

    deleted = client.delete(f"/thoughts/{thought_id}")
    assert deleted.json() == {"id": thought_id, "deleted": True}
    assert client.get(f"/thoughts/{thought_id}").status_code == 404
    assert client.delete(f"/thoughts/{thought_id}").status_code == 404


def test_list_paginates(client):
    for text in ("one", "two", "three"):
        client.post("/thoughts", json={"text": text, "tags": ["batch"]})
    client.post("/thoughts", json={"text": "other"})

    first = client.get("/thoughts", params={"tag": "batch", "limit": 2}).json()
    assert len(first["thoughts"]) == 2
    assert first["hasMore"] is True

    second = client.get(
        "/thoughts", params={"tag": "batch", "limit": 2, "cursor": first["cursor"]}
    ).json()
    assert len(second["thoughts"]) == 1
    assert second["hasMore"] is False
    seen = {t["id"] for t in first["thoughts"]} | {t["id"] for t in second["thoughts"]}
    assert len(seen) == 3

    assert client.get("/thoughts", params={"limit": 0}).status_code == 400


def test_related_for_unknown_thought(client):
    assert client.get("/thoughts/t_missing/related").status_code == 404
