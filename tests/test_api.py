"""
HTTP API tests for connection lifecycle, record browsing and search endpoints.
"""

import json

import pytest
from fastapi.testclient import TestClient

from faiss_viewer.api.main import app, get_manager
from tests.conftest import make_record


@pytest.fixture
def client(manager):
    """Test client wired to an isolated connection manager."""
    app.dependency_overrides[get_manager] = lambda: manager
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def chat_bundle(bundle_factory):
    records = [
        make_record("m0", [1.0, 0.0, 0.0], role="user", threadId="t1", content="hello there"),
        make_record("m1", [0.0, 1.0, 0.0], role="assistant", threadId="t1", content="general kenobi"),
        make_record("m2", [0.0, 0.0, 1.0], role="user", threadId="t2", content="another thread"),
        make_record("m3", [0.5, 0.5, 0.0], role="system", threadId="t2", content="x" * 300),
    ]
    return bundle_factory(records)


@pytest.fixture
def connected_client(client, chat_bundle):
    response = client.post("/connection", json={"path": str(chat_bundle)})
    assert response.status_code == 200
    return client


class TestHealthAndConnection:

    def test_health_when_disconnected(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["state"] == "disconnected"
        assert data["staged_files"] == 0

    def test_connect_returns_index_summary(self, client, chat_bundle):
        response = client.post("/connection", json={"path": str(chat_bundle)})

        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "connected"
        assert data["dimension"] == 3
        assert data["count"] == 4
        assert data["record_count"] == 4
        assert data["source_path"] == str(chat_bundle)
        assert data["last_error"] is None

    def test_connect_missing_file_is_404(self, client):
        response = client.post("/connection", json={"path": "/missing/file.json"})

        assert response.status_code == 404
        data = response.json()
        assert data["error"] == "NotFound"
        assert data["step"] == "parse"

        state = client.get("/connection").json()
        assert state["state"] == "error"
        assert "File not found" in state["last_error"]

    def test_connect_without_index_is_422(self, client, tmp_path):
        path = tmp_path / "no_index.json"
        path.write_text(json.dumps({"memories": []}), encoding="utf-8")

        response = client.post("/connection", json={"path": str(path)})

        assert response.status_code == 422
        assert response.json()["error"] == "MissingIndexPayload"

    def test_connect_with_corrupt_index_is_500(self, client, tmp_path):
        path = tmp_path / "corrupt.json"
        path.write_text(json.dumps({"index": "bm90LWFuLWluZGV4", "memories": []}), encoding="utf-8")

        response = client.post("/connection", json={"path": str(path)})

        assert response.status_code == 500
        assert response.json()["error"] == "EngineOpenFailed"

    def test_connect_empty_path_rejected(self, client):
        response = client.post("/connection", json={"path": "   "})

        assert response.status_code == 422

    def test_disconnect(self, connected_client):
        response = connected_client.delete("/connection")

        assert response.status_code == 200
        assert response.json()["state"] == "disconnected"
        assert connected_client.get("/records").json()["total"] == 0

    def test_refresh(self, connected_client):
        response = connected_client.post("/connection/refresh")

        assert response.status_code == 200
        assert response.json()["state"] == "connected"
        assert response.json()["count"] == 4


class TestRecords:

    def test_list_records_paged(self, connected_client):
        response = connected_client.get("/records", params={"offset": 1, "limit": 2})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 4
        assert [item["id"] for item in data["items"]] == ["m1", "m2"]
        assert data["items"][0]["vector_length"] == 3
        assert data["items"][0]["vector"] is None
        assert data["items"][0]["metadata"]["threadId"] == "t1"

    def test_filter_by_role_and_thread(self, connected_client):
        data = connected_client.get("/records", params={"role": "user", "thread_id": "t2"}).json()

        assert [item["id"] for item in data["items"]] == ["m2"]

    def test_search_term_matches_id_role_and_thread(self, connected_client):
        assert connected_client.get("/records", params={"q": "SYSTEM"}).json()["total"] == 1
        assert connected_client.get("/records", params={"q": "t1"}).json()["total"] == 2
        assert connected_client.get("/records", params={"q": "m3"}).json()["total"] == 1

    def test_invalid_paging_rejected(self, connected_client):
        assert connected_client.get("/records", params={"limit": 0}).status_code == 400
        assert connected_client.get("/records", params={"offset": -1}).status_code == 400

    def test_facets(self, connected_client):
        data = connected_client.get("/records/facets").json()

        assert data["roles"] == ["user", "assistant", "system"]
        assert data["thread_ids"] == ["t1", "t2"]

    def test_get_record_includes_vector(self, connected_client):
        response = connected_client.get("/records/m1")

        assert response.status_code == 200
        data = response.json()
        assert data["vector"] == [0.0, 1.0, 0.0]
        assert data["metadata"]["content"] == "general kenobi"

    def test_get_missing_record_is_404(self, connected_client):
        assert connected_client.get("/records/nope").status_code == 404


class TestSearch:

    def test_search_requires_connection(self, client):
        response = client.post("/search", json={"vector": [1.0, 0.0, 0.0], "k": 2})

        assert response.status_code == 409

    def test_search_returns_nearest_first(self, connected_client):
        response = connected_client.post("/search", json={"vector": [1.0, 0.0, 0.0], "k": 2})

        assert response.status_code == 200
        data = response.json()
        assert data["k"] == 2
        assert [hit["record"]["id"] for hit in data["results"]] == ["m0", "m3"]
        assert data["results"][0]["distance"] == pytest.approx(0.0)
        assert data["results"][0]["position"] == 0

    def test_search_dimension_mismatch_is_400(self, connected_client):
        response = connected_client.post("/search", json={"vector": [1.0, 0.0], "k": 2})

        assert response.status_code == 400
        assert response.json()["error"] == "EngineSearchFailed"
        assert connected_client.get("/connection").json()["state"] == "connected"

    @pytest.mark.parametrize("payload", [
        {"vector": [], "k": 2},
        {"vector": [1.0, 0.0, 0.0], "k": 0},
        {"vector": [1.0, 0.0, 0.0], "k": 100000},
    ])
    def test_search_validation(self, connected_client, payload):
        assert connected_client.post("/search", json=payload).status_code == 422


class TestErrorDocumentation:

    def test_viewer_errors_documented_with_error_model(self, client):
        schema = client.app.openapi()

        assert set(schema["components"]["schemas"]["ErrorResponse"]["properties"]) == {"error", "step", "message"}
        connect_responses = schema["paths"]["/connection"]["post"]["responses"]
        ref = connect_responses["404"]["content"]["application/json"]["schema"]["$ref"]
        assert ref.endswith("/ErrorResponse")
        assert "400" in schema["paths"]["/search"]["post"]["responses"]

    def test_error_body_matches_error_model(self, client):
        response = client.post("/connection", json={"path": "/missing/file.json"})

        assert set(response.json()) == {"error", "step", "message"}
        assert response.json()["message"].startswith("parse: File not found")
