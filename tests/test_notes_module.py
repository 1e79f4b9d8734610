"""
Tests for the bundled notes resource handler.
"""
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from modules.notes import Note, NotesHandler
from resource_api.registry import HandlerLoader, ResourceAPI

NOTES_URL = "http://testserver/api/v1/notes"


@pytest.fixture
def notes_client(api):
    """Client for an API serving an unauthenticated notes handler."""
    api.register_resource_handler(NotesHandler(token=""))
    api.validate_rules()
    return TestClient(api.app)


@pytest.fixture
def secured_client(api):
    """Client for an API whose notes handler requires a bearer token."""
    api.register_resource_handler(NotesHandler(token="letmein"))
    return TestClient(api.app)


class TestNotesHandler:
    """Tests for NotesHandler over HTTP."""

    def test_create_applies_rules(self, notes_client):
        """Test aliased input, output-only fields and the createdAt key."""
        resp = notes_client.post(NOTES_URL, json={"title": "t", "text": "hello", "id": "forged"})

        assert resp.status_code == 201
        result = resp.json()["result"]
        assert result["text"] == "hello"
        assert result["title"] == "t"
        assert result["id"] != "forged"
        assert "createdAt" in result
        assert "body" not in result

    def test_read_update_delete(self, notes_client):
        """Test a note through its full lifecycle."""
        note_id = notes_client.post(NOTES_URL, json={"title": "t"}).json()["result"]["id"]

        assert notes_client.get(f"{NOTES_URL}/{note_id}").json()["result"]["title"] == "t"

        updated = notes_client.put(f"{NOTES_URL}/{note_id}", json={"text": "changed"})
        assert updated.status_code == 200
        assert updated.json()["result"]["text"] == "changed"

        assert notes_client.delete(f"{NOTES_URL}/{note_id}").status_code == 200
        missing = notes_client.get(f"{NOTES_URL}/{note_id}")
        assert missing.status_code == 500
        assert missing.json() == {"error": f"note {note_id} not found", "success": False}

    def test_unknown_note_message(self, notes_client):
        """Test missing notes report a plain message on every id route."""
        expected = {"error": "note nope not found", "success": False}

        assert notes_client.get(f"{NOTES_URL}/nope").json() == expected
        assert notes_client.put(f"{NOTES_URL}/nope", json={"title": "x"}).json() == expected
        assert notes_client.delete(f"{NOTES_URL}/nope").json() == expected

    def test_text_must_be_string(self, notes_client):
        """Test the declared type of the aliased field is enforced."""
        resp = notes_client.post(NOTES_URL, json={"text": 12})

        assert resp.status_code == 500
        assert resp.json()["error"] == "Type of field 'text' should be string"

    def test_list_pagination(self, notes_client):
        """Test offset cursors and the next link."""
        for i in range(3):
            notes_client.post(NOTES_URL, json={"title": str(i)})

        first = notes_client.get(f"{NOTES_URL}?limit=2").json()
        assert [n["title"] for n in first["result"]] == ["0", "1"]
        assert first["next"] == "http://testserver?next=2"

        second = notes_client.get(f"{NOTES_URL}?limit=2&next=2").json()
        assert [n["title"] for n in second["result"]] == ["2"]
        assert "next" not in second

    def test_requires_token(self, secured_client):
        """Test requests without the bearer token are rejected."""
        resp = secured_client.get(NOTES_URL)

        assert resp.status_code == 401
        assert resp.text == "Not authorized"

    def test_accepts_token(self, secured_client):
        """Test requests with the bearer token are served."""
        resp = secured_client.get(NOTES_URL, headers={"Authorization": "Bearer letmein"})

        assert resp.status_code == 200
        assert resp.json() == {"result": [], "success": True}

    def test_token_from_environment(self, monkeypatch):
        """Test NOTES_API_TOKEN is used when no token is given."""
        monkeypatch.setenv("NOTES_API_TOKEN", "envtoken")

        handler = NotesHandler()

        assert handler._token == "envtoken"

    def test_empty_resource(self):
        """Test the prototype is a Note."""
        assert isinstance(NotesHandler(token="").empty_resource(), Note)


class TestModulesDirectory:
    """Tests for loading the bundled modules directory."""

    def test_loads_notes(self, config_loader, monkeypatch):
        """Test the loader discovers the notes handler."""
        monkeypatch.delenv("NOTES_API_TOKEN", raising=False)
        api = ResourceAPI(config=config_loader)
        modules_dir = Path(__file__).resolve().parent.parent / "modules"

        count = HandlerLoader(api).load_from_directory(str(modules_dir))

        assert count == 1
        assert api.get_resource_names() == ["notes"]
        api.validate_rules()
