"""Tests for the HTTP server routes and envelopes."""
from fastapi.testclient import TestClient

from foucault.server import create_app


class TestRoutes:
    """Tests for the success envelope of each kind of route."""

    def test_notebook_info(self, http_client):
        response = http_client.get("/notebook")
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "data": {"name": "test", "permissions": "read_write"},
        }

    def test_note_round_trip(self, http_client):
        response = http_client.post("/note/create", json={"name": "Kant", "body": "[[Hegel]]"})
        assert response.status_code == 200
        note_id = response.json()["data"]

        note = http_client.get("/note/load/id", params={"id": note_id}).json()["data"]
        assert note["name"] == "Kant"
        assert note["body"] == "[[Hegel]]"

        response = http_client.patch(
            "/note/update/content", json={"id": note_id, "body": "[[Fichte]]"}
        )
        assert response.json() == {"success": True, "data": None}
        outgoing = http_client.get("/note/links/outgoing", params={"id": note_id}).json()
        assert outgoing["data"] == ["Fichte"]

        http_client.patch("/note/update/name", json={"id": note_id, "name": "Immanuel"})
        by_name = http_client.get("/note/load/name", params={"name": "Immanuel"}).json()
        assert by_name["data"]["id"] == note_id

        assert http_client.delete("/note/delete", params={"id": note_id}).status_code == 200
        assert http_client.get("/note/list").json()["data"] == []

    def test_tag_routes(self, http_client):
        note_id = http_client.post("/note/create", json={"name": "Kant"}).json()["data"]
        tag = http_client.post("/tag/create", json={"name": "german"}).json()["data"]
        assert set(tag) == {"id", "name", "color"}

        pair = {"note_id": note_id, "tag_id": tag["id"]}
        assert http_client.post("/note/tag/add", json=pair).status_code == 200
        tagged = http_client.get("/note/search/tag", params={"id": tag["id"]}).json()["data"]
        assert tagged == [{"id": note_id, "name": "Kant", "tags": [tag]}]
        assert http_client.get("/note/tag/list", params={"id": note_id}).json()["data"] == [tag]

        http_client.patch("/tag/update/name", json={"id": tag["id"], "name": "deutsch"})
        found = http_client.get("/tag/search/name", params={"pattern": "deu"}).json()["data"]
        assert [t["name"] for t in found] == ["deutsch"]
        assert http_client.get("/tag/load/name", params={"name": "deutsch"}).json()["data"]["id"] == tag["id"]

        assert http_client.post("/note/tag/remove", json=pair).status_code == 200
        assert http_client.delete("/tag/delete", params={"id": tag["id"]}).status_code == 200
        assert http_client.get("/tag/list").json()["data"] == []

    def test_name_validation(self, http_client):
        http_client.post("/note/create", json={"name": "Kant"})
        response = http_client.get("/note/validate/name", params={"name": " Hegel "})
        assert response.json() == {"success": True, "data": "Hegel"}
        response = http_client.get("/note/validate/name", params={"name": "Kant"})
        assert response.status_code == 409
        assert response.json()["error"] == "DuplicateName"
        response = http_client.get("/note/validate/name", params={"name": "Kant]"})
        assert response.json()["code"] == "NOTE_NAME_EMPTY"
        response = http_client.get("/tag/validate/name", params={"name": ""})
        assert response.status_code == 422
        assert response.json()["code"] == "TAG_NAME_EMPTY"

    def test_metrics(self, http_client):
        http_client.get("/note/list")
        body = http_client.get("/metrics").json()
        assert body["success"] is True
        assert body["data"]["operations"]["list_notes"]["count"] == 1
        assert "uptime_seconds" in body["data"]["summary"]


class TestErrorEnvelopes:
    """Tests for error statuses and envelopes."""

    def test_not_found(self, http_client):
        response = http_client.get("/note/load/id", params={"id": 12})
        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "error": "NotFound",
            "code": "NOTE_NOT_FOUND",
            "message": "No note with ID 12 exists",
            "details": {"note_id": 12},
        }

    def test_duplicate(self, http_client):
        http_client.post("/note/create", json={"name": "Kant"})
        response = http_client.post("/note/create", json={"name": "Kant"})
        assert response.status_code == 409
        assert response.json()["error"] == "DuplicateName"

    def test_attachment_conflicts(self, http_client):
        note_id = http_client.post("/note/create", json={"name": "Kant"}).json()["data"]
        tag_id = http_client.post("/tag/create", json={"name": "t"}).json()["data"]["id"]
        pair = {"note_id": note_id, "tag_id": tag_id}
        http_client.post("/note/tag/add", json=pair)
        assert http_client.post("/note/tag/add", json=pair).json()["error"] == "AlreadyAttached"
        http_client.post("/note/tag/remove", json=pair)
        response = http_client.post("/note/tag/remove", json=pair)
        assert response.status_code == 409
        assert response.json()["error"] == "NotAttached"

    def test_invalid_body_is_malformed(self, http_client):
        response = http_client.post("/note/create", json={"body": "no name"})
        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Malformed"
        assert body["code"] == "REQUEST_MALFORMED"
        assert body["details"]["errors"]

    def test_non_numeric_id_is_malformed(self, http_client):
        response = http_client.get("/note/load/id", params={"id": "abc"})
        assert response.status_code == 422
        assert response.json()["error"] == "Malformed"

    def test_out_of_range_ids_are_malformed(self, http_client):
        response = http_client.get("/note/load/id", params={"id": 2**63})
        assert response.status_code == 422
        assert response.json()["code"] == "REQUEST_MALFORMED"
        response = http_client.post("/note/tag/add", json={"note_id": 0, "tag_id": 1})
        assert response.status_code == 422
        response = http_client.delete("/tag/delete", params={"id": 2**63})
        assert response.json()["error"] == "Malformed"

    def test_empty_name_is_malformed(self, http_client):
        response = http_client.post("/tag/create", json={"name": "   "})
        assert response.status_code == 422
        assert response.json()["code"] == "TAG_NAME_EMPTY"

    def test_read_only(self, read_only_service):
        with TestClient(create_app(read_only_service)) as client:
            assert client.get("/notebook").json()["data"]["permissions"] == "read_only"
            response = client.post("/note/create", json={"name": "New"})
            assert response.status_code == 403
            assert response.json()["error"] == "ReadOnly"
            assert client.get("/note/list").status_code == 200
