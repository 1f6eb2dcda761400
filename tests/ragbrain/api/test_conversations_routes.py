from __future__ import annotations

import pytest
from ragbrain.api.conversations import router as conversations_router
from ragbrain.api.thoughts import router as thoughts_router


@pytest.fixture
def client(api_client):
    return api_client(thoughts_router, conversations_router)


def test_create_and_converse(client):
    client.post("/thoughts", json={"text": "We picked postgres for the database"})

    created = client.post("/conversations", json={"title": "Storage"})
    assert created.status_code == 201
    conv = created.json()
    assert conv["title"] == "Storage"
    assert conv["messageCount"] == 0
    assert conv["messages"] == []

    sent = client.post(f"/conversations/{conv['id']}/messages", json={"content": "postgres database"})
    assert sent.status_code == 201
    exchange = sent.json()
    assert exchange["conversationId"] == conv["id"]
    assert exchange["userMessage"]["role"] == "user"
    assert exchange["assistantMessage"]["role"] == "assistant"
    assert exchange["assistantMessage"]["citations"][0]["preview"].startswith("We picked postgres")
    assert 0.0 <= exchange["confidence"] <= 1.0

    full = client.get(f"/conversations/{conv['id']}").json()
    assert full["messageCount"] == 2
    assert [m["role"] for m in full["messages"]] == ["user", "assistant"]


def test_create_with_initial_message(client):
    conv = client.post("/conversations", json={"initialMessage": "anything about redis?"}).json()
    assert conv["title"].startswith("Conversation ")
    assert conv["messageCount"] == 2


def test_update_archive_and_delete(client):
    conv_id = client.post("/conversations", json={"title": "x"}).json()["id"]

    renamed = client.put(f"/conversations/{conv_id}", json={"title": "renamed", "status": "archived"})
    assert renamed.json()["title"] == "renamed"
    assert renamed.json()["status"] == "archived"

    blocked = client.post(f"/conversations/{conv_id}/messages", json={"content": "hi"})
    assert blocked.status_code == 400

    listed = client.get("/conversations", params={"status": "archived"}).json()
    assert [c["id"] for c in listed["conversations"]] == [conv_id]

    assert client.delete(f"/conversations/{conv_id}").json() == {"id": conv_id, "deleted": True}
    assert client.get(f"/conversations/{conv_id}").status_code == 404


def test_put_rejects_unknown_status(client):
    conv_id = client.post("/conversations", json={}).json()["id"]
    resp = client.put(f"/conversations/{conv_id}", json={"status": "frozen"})
    assert resp.status_code == 400


def test_unknown_conversation(client):
    assert client.get("/conversations/conv_missing").status_code == 404
    resp = client.post("/conversations/conv_missing/messages", json={"content": "hi"})
    assert resp.status_code == 404
