from fastapi.testclient import TestClient
from ragbrain.main import app


def test_all_routers_are_registered():
    paths = {route.path for route in app.routes}
    for expected in (
        "/thoughts",
        "/thoughts/{thought_id}",
        "/thoughts/{thought_id}/related",
        "/conversations",
        "/conversations/{conversation_id}/messages",
        "/ask",
        "/graph",
        "/export",
        "/enrichment/dead-letters",
        "/enrichment/dead-letters/{dead_letter_id}/replay",
    ):
        assert expected in paths


def test_unknown_route_uses_error_envelope():
    resp = TestClient(app).get("/nope")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Not Found", "code": "http_exception"}
