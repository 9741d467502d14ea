"""HTTP tests for the FastAPI application using TestClient."""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from iforgot.ai.classifier import ClaudeClassifier
from iforgot.api.core import create_note_with_analysis
from iforgot.config import DEMO_OWNER_ID
from iforgot.errors import ClassifierError, StoreError
from iforgot.voice.transcribe import Transcriber

from conftest import OWNER_ID, StubClassifier, make_judgment


def _create_category(client, name: str, owner_id: str = DEMO_OWNER_ID, **extra) -> dict:
    response = client.post("/api/categories", json={"name": name, "ownerId": owner_id, **extra})
    assert response.status_code == 200, response.text
    return response.json()


def test_health(make_client) -> None:
    response = make_client().get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Healthy"}


class TestCreateNote:
    """POST /api/notes"""

    def test_saves_note_when_classifier_unavailable(self, make_client) -> None:
        client = make_client()
        response = client.post("/api/notes", json={"content": "Remember the milk", "ownerId": DEMO_OWNER_ID})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["note"]["content"] == "Remember the milk"
        assert body["analysis"]["category"]["confidence"] == 0
        assert body["analysis"]["category"]["name"] == "Uncategorized"
        assert body["aiProcessingSkipped"] is True
        assert "ANTHROPIC_API_KEY" in body["warning"]
        assert body["category"] == {
            "autoAssigned": False,
            "requiresConfirmation": False,
            "suggestedAction": "none",
            "suggestedName": "Uncategorized",
            "confidence": 0.0,
        }

    def test_saves_note_when_classifier_fails(self, make_client) -> None:
        client = make_client(StubClassifier(error=ClassifierError("overloaded")))
        response = client.post("/api/notes", json={"content": "hello", "ownerId": DEMO_OWNER_ID})
        assert response.status_code == 200
        assert response.json()["analysis"]["category"]["name"] == "Uncategorized"

    def test_auto_assigns_confident_match_and_saves_tasks(self, make_client) -> None:
        classifier = StubClassifier(
            judgment=make_judgment("assign", "Work", 0.93, action_items=["Send the deck", "Book room"])
        )
        client = make_client(classifier)
        work = _create_category(client, "Work")

        response = client.post(
            "/api/notes", json={"content": "Send the deck and book a room", "ownerId": DEMO_OWNER_ID}
        )

        body = response.json()
        assert body["category"]["autoAssigned"] is True
        assert body["category"]["suggestedAction"] == "assign"
        assert body["note"]["category_id"] == work["categoryId"]
        assert body["note"]["category"]["name"] == "Work"
        assert sorted(t["description"] for t in body["note"]["tasks"]) == ["Book room", "Send the deck"]
        assert classifier.calls[0]["categories"] == ["Work"]

    def test_defers_low_confidence(self, make_client) -> None:
        client = make_client(StubClassifier(judgment=make_judgment("create", "Groceries", 0.6)))
        response = client.post("/api/notes", json={"content": "eggs, milk", "ownerId": DEMO_OWNER_ID})

        body = response.json()
        assert body["category"]["requiresConfirmation"] is True
        assert body["category"]["suggestedAction"] == "create"
        assert body["category"]["suggestedName"] == "Groceries"
        assert body["note"]["category_id"] is None
        assert body["aiProcessingSkipped"] is False
        assert body["warning"] is None

    def test_nan_confidence_from_claude_does_not_fail_request(self, make_client) -> None:
        reply = '{"category": {"action": "assign", "name": "Work", "confidence": NaN}}'
        mock_anthropic = MagicMock()
        mock_anthropic.messages.create.return_value = MagicMock(content=[MagicMock(type="text", text=reply)])
        with patch("iforgot.ai.classifier.anthropic.Anthropic", return_value=mock_anthropic):
            classifier = ClaudeClassifier(api_key="test-key")

        response = make_client(classifier).post("/api/notes", json={"content": "hello", "ownerId": DEMO_OWNER_ID})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["analysis"]["category"]["confidence"] == 0.5
        assert body["category"]["autoAssigned"] is False
        assert body["category"]["requiresConfirmation"] is True

    def test_accepts_front_end_field_names(self, make_client) -> None:
        response = make_client().post("/api/notes", json={"noteContent": "hi", "userId": DEMO_OWNER_ID})
        assert response.status_code == 200

    @pytest.mark.parametrize(
        "payload",
        [{"ownerId": DEMO_OWNER_ID}, {"content": "hi"}, {"content": "", "ownerId": DEMO_OWNER_ID}],
    )
    def test_missing_fields(self, make_client, payload: dict) -> None:
        response = make_client().post("/api/notes", json=payload)
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"].startswith("Missing required field")

    def test_unknown_owner(self, make_client) -> None:
        response = make_client().post("/api/notes", json={"content": "hi", "ownerId": "nobody"})
        assert response.status_code == 500
        assert "Database setup incomplete" in response.json()["error"]


class TestCreateNoteFlow:
    """create_note_with_analysis called directly against a store."""

    def test_task_failure_does_not_fail_request(self, store, monkeypatch, caplog) -> None:
        def broken_insert_tasks(*args, **kwargs):
            raise StoreError("tasks table is read-only")

        monkeypatch.setattr(store, "insert_tasks", broken_insert_tasks)
        classifier = StubClassifier(judgment=make_judgment("create", "Errands", 0.4, action_items=["Post letter"]))

        result = create_note_with_analysis(store, classifier, OWNER_ID, "post the letter")

        assert result.success is True
        assert result.note.tasks == []
        assert result.note.action_items == ["Post letter"]
        assert "tasks table is read-only" in caplog.text


class TestListAndUpdateNotes:
    """GET/PUT/DELETE /api/notes"""

    def test_list_notes_filter_and_repeatability(self, make_client) -> None:
        client = make_client()
        home = _create_category(client, "Home")
        first = client.post("/api/notes", json={"content": "fix the sink", "ownerId": DEMO_OWNER_ID}).json()
        client.post("/api/notes", json={"content": "read a book", "ownerId": DEMO_OWNER_ID})
        _create_category(client, "Home", noteId=first["note"]["id"])

        all_notes = client.get("/api/notes", params={"ownerId": DEMO_OWNER_ID}).json()
        again = client.get("/api/notes", params={"ownerId": DEMO_OWNER_ID}).json()
        assert all_notes["success"] is True
        assert len(all_notes["notes"]) == 2
        assert all_notes == again

        empty = client.get("/api/notes", params={"ownerId": DEMO_OWNER_ID, "categoryId": home["categoryId"]})
        assert empty.json()["notes"] == []

    def test_list_notes_requires_owner(self, make_client) -> None:
        response = make_client().get("/api/notes")
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_update_note(self, make_client) -> None:
        client = make_client()
        note = client.post("/api/notes", json={"content": "draft", "ownerId": DEMO_OWNER_ID}).json()["note"]

        response = client.put(
            "/api/notes", json={"noteId": note["id"], "content": "final", "ownerId": DEMO_OWNER_ID}
        )

        assert response.status_code == 200
        assert response.json()["note"]["content"] == "final"
        fetched = client.get(f"/api/notes/{note['id']}", params={"ownerId": DEMO_OWNER_ID}).json()
        assert fetched["note"]["content"] == "final"

    def test_update_note_of_other_owner(self, make_client) -> None:
        client = make_client()
        note = client.post("/api/notes", json={"content": "mine", "ownerId": DEMO_OWNER_ID}).json()["note"]
        response = client.put("/api/notes", json={"noteId": note["id"], "content": "x", "ownerId": "other"})
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Note not found"}

    def test_update_note_missing_note_id(self, make_client) -> None:
        response = make_client().put("/api/notes", json={"content": "x", "ownerId": DEMO_OWNER_ID})
        assert response.status_code == 400

    def test_delete_note(self, make_client) -> None:
        client = make_client()
        note = client.post("/api/notes", json={"content": "bye", "ownerId": DEMO_OWNER_ID}).json()["note"]

        response = client.delete(f"/api/notes/{note['id']}", params={"ownerId": DEMO_OWNER_ID})

        assert response.json() == {"success": True}
        missing = client.get(f"/api/notes/{note['id']}", params={"ownerId": DEMO_OWNER_ID})
        assert missing.status_code == 404


class TestCategories:
    """GET/POST /api/categories"""

    def test_create_category_only(self, make_client) -> None:
        client = make_client()
        body = _create_category(client, "Groceries")
        assert body["success"] is True
        assert body["category"]["name"] == "Groceries"
        assert body["category"]["user_id"] == DEMO_OWNER_ID
        assert body["message"] == "Category created successfully"

        listed = client.get("/api/categories", params={"ownerId": DEMO_OWNER_ID}).json()
        assert [c["name"] for c in listed["categories"]] == ["Groceries"]

    def test_create_and_assign(self, make_client) -> None:
        client = make_client()
        note = client.post("/api/notes", json={"content": "eggs", "ownerId": DEMO_OWNER_ID}).json()["note"]

        body = _create_category(client, "Groceries", noteId=note["id"])

        assert body["message"] == "Category created and assigned to note"
        fetched = client.get(f"/api/notes/{note['id']}", params={"ownerId": DEMO_OWNER_ID}).json()
        assert fetched["note"]["category_id"] == body["categoryId"]
        assert fetched["note"]["category"]["name"] == "Groceries"

    def test_create_and_assign_missing_note(self, make_client) -> None:
        client = make_client()
        response = client.post(
            "/api/categories", json={"categoryName": "Groceries", "userId": DEMO_OWNER_ID, "noteId": "nope"}
        )
        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Note not found"}

    def test_missing_name(self, make_client) -> None:
        response = make_client().post("/api/categories", json={"ownerId": DEMO_OWNER_ID})
        assert response.status_code == 400
        assert response.json()["error"].startswith("Missing required field")


class TestProcessNote:
    """/api/process-note"""

    def test_list_templates(self, make_client) -> None:
        body = make_client().get("/api/process-note").json()
        assert body["success"] is True
        assert "meetingNotes" in {t["key"] for t in body["templates"]}

    def test_analyse_with_template(self, make_client) -> None:
        classifier = StubClassifier(judgment=make_judgment("assign", "Meetings", 0.9, action_items=["Send notes"]))
        client = make_client(classifier)

        response = client.post(
            "/api/process-note",
            json={
                "noteContent": "Standup with @ana today #sprint",
                "existingCategories": ["Meetings"],
                "templateName": "meetingNotes",
                "options": {"detectMood": False},
            },
        )

        body = response.json()
        assert body["success"] is True
        assert body["data"]["category"]["name"] == "Meetings"
        assert body["aiProcessingSkipped"] is False
        assert body["insights"] == {
            "urgency": "high",
            "hashtags": ["sprint"],
            "mentions": ["ana"],
            "needsReview": False,
        }
        call = classifier.calls[0]
        assert "Extract key information from these meeting notes." in call["prompt"]
        assert call["detect_mood"] is False

    def test_analyse_with_custom_prompt(self, make_client) -> None:
        classifier = StubClassifier(judgment=make_judgment("create", "Exams", 0.7))
        client = make_client(classifier)

        response = client.post(
            "/api/process-note",
            json={
                "content": "Big exam tomorrow",
                "existingCategories": ["School"],
                "customPrompt": "Look for anxiety triggers",
                "userContext": "student",
            },
        )

        assert response.status_code == 200
        prompt = classifier.calls[0]["prompt"]
        assert prompt.startswith("Look for anxiety triggers")
        assert 'Note: "Big exam tomorrow"' in prompt
        assert "Existing categories: School" in prompt
        assert "Context: student" in prompt

    def test_unknown_template(self, make_client) -> None:
        response = make_client().post("/api/process-note", json={"content": "x", "templateName": "haiku"})
        assert response.status_code == 400
        assert response.json()["error"] == "Unknown template: haiku"

    def test_analyse_without_classifier(self, make_client) -> None:
        body = make_client().post("/api/process-note", json={"content": "x"}).json()
        assert body["aiProcessingSkipped"] is True
        assert body["data"]["category"]["confidence"] == 0


class TestSimpleNote:
    """/api/simple-note uses the configured demo owner."""

    def test_create_and_list(self, make_client) -> None:
        client = make_client()
        created = client.post("/api/simple-note", json={"content": "quick thought"}).json()
        assert created["note"]["user_id"] == DEMO_OWNER_ID

        listed = client.get("/api/simple-note").json()
        assert [n["content"] for n in listed["notes"]] == ["quick thought"]

    def test_requires_content(self, make_client) -> None:
        assert make_client().post("/api/simple-note", json={}).status_code == 400


class TestTranscribe:
    """POST /api/transcribe"""

    def test_requires_audio(self, make_client) -> None:
        response = make_client().post("/api/transcribe")
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "No audio file provided"}

    def test_no_provider_configured(self, make_client) -> None:
        response = make_client().post(
            "/api/transcribe", files={"audio": ("memo.webm", b"audio", "audio/webm")}
        )
        assert response.status_code == 500
        assert response.json()["error"] == "No transcription API key configured"

    def test_transcribes_upload(self, make_client) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"text": "water the plants"})

        transcriber = Transcriber(openai_api_key="oa-key", transport=httpx.MockTransport(handler))
        response = make_client(transcriber=transcriber).post(
            "/api/transcribe", files={"audio": ("memo.webm", b"audio", "audio/webm")}
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "text": "water the plants", "provider": "openai"}
