"""
Tests for the Work-OS HTTP API.

The chat orchestrator is swapped through app.dependency_overrides so no
request reaches a real chat provider.
"""
import pytest
from fastapi.testclient import TestClient

# These tests use TestClient which initializes the app (slow)
pytestmark = pytest.mark.slow

from api.dependencies import get_chat_orchestrator
from api.main import app
from api.services.chat_orchestrator import ChatOrchestrator
from api.services.llm_client import ChatClientError, ChatCompletion
from config.settings import settings


class FakeChatClient:
    def __init__(self, completion=None, error=None):
        self.completion = completion or ChatCompletion(content="Invoice drafted.")
        self.error = error
        self.calls = 0

    async def complete(self, messages, tools=None, tool_choice="auto"):
        self.calls += 1
        if self.error:
            raise self.error
        return self.completion


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def use_orchestrator():
    """Install an orchestrator for the duration of a test."""
    def install(orchestrator):
        app.dependency_overrides[get_chat_orchestrator] = lambda: orchestrator
        return orchestrator

    yield install
    app.dependency_overrides.pop(get_chat_orchestrator, None)


ACME_PAYLOAD = {
    "message": "do it",
    "history": [
        {"role": "user", "content": "let's fix the Acme invoice"},
        {"role": "assistant", "content": "Sure, what's the due date?"},
        {"role": "user", "content": "do it"},
    ],
}


class TestChatContextEndpoint:
    """Tests for POST /api/chat/context."""

    def test_returns_merged_context(self, client, use_orchestrator):
        use_orchestrator(ChatOrchestrator())
        response = client.post("/api/chat/context", json=ACME_PAYLOAD)

        assert response.status_code == 200
        data = response.json()
        assert "Last assistant question: Sure, what's the due date?" in data["text"]
        assert len(data["recent_turns"]) == 3
        assert data["routing"]["mode"] == "auto"
        assert data["force_decomposition"] is False
        assert data["tool_choice"] == "auto"

    def test_accepts_camel_case_notebook_fields(self, client, use_orchestrator):
        use_orchestrator(ChatOrchestrator())
        payload = {
            "message": "what did we decide before?",
            "history": [
                {"role": "user", "content": "Family dentist appointment", "notebookId": "personal"},
                {"role": "user", "content": "EHR rollout milestones", "notebookId": "work"},
            ],
            "routing": {"notebookId": "Work"},
        }
        response = client.post("/api/chat/context", json=payload)

        assert response.status_code == 200
        routing = response.json()["routing"]
        assert routing["mode"] == "specific"
        assert routing["requested_notebook_id"] == "work"
        assert routing["selected_notebook_ids"] == ["work"]

    def test_works_without_chat_provider(self, client, use_orchestrator):
        use_orchestrator(ChatOrchestrator(client=None))
        response = client.post("/api/chat/context", json={"message": "break this down"})

        assert response.status_code == 200
        assert response.json()["force_decomposition"] is True

    def test_missing_message(self, client):
        response = client.post("/api/chat/context", json={"history": []})

        assert response.status_code == 400
        assert response.json()["error"] == "Message is required"

    def test_empty_message(self, client, use_orchestrator):
        use_orchestrator(ChatOrchestrator())
        response = client.post("/api/chat/context", json={"message": "   "})

        assert response.status_code == 400
        assert response.json()["detail"] == "Message cannot be empty"

    def test_invalid_routing_mode(self, client):
        response = client.post("/api/chat/context", json={"message": "hi", "routing": {"mode": "random"}})

        assert response.status_code == 400
        assert response.json()["error"] == "Validation error"


class TestChatEndpoint:
    """Tests for POST /api/chat."""

    def test_returns_reply_and_context(self, client, use_orchestrator):
        fake = FakeChatClient()
        use_orchestrator(ChatOrchestrator(client=fake))

        response = client.post("/api/chat", json=ACME_PAYLOAD)

        assert response.status_code == 200
        data = response.json()
        assert data["content"] == "Invoice drafted."
        assert data["tool_calls"] == []
        assert data["context"]["routing"]["selected_notebook_ids"]
        assert fake.calls == 1

    def test_returns_tool_calls(self, client, use_orchestrator):
        tool_calls = [{"id": "call_1", "type": "function",
                       "function": {"name": "decompose_task", "arguments": "{}"}}]
        use_orchestrator(ChatOrchestrator(client=FakeChatClient(ChatCompletion(content="", tool_calls=tool_calls))))

        response = client.post("/api/chat", json={"message": "break down the Citrix rollout"})

        assert response.status_code == 200
        assert response.json()["tool_calls"] == tool_calls
        assert response.json()["context"]["tool_choice"]["function"]["name"] == "decompose_task"

    def test_provider_not_configured(self, client, use_orchestrator):
        use_orchestrator(ChatOrchestrator(client=None))
        response = client.post("/api/chat", json=ACME_PAYLOAD)

        assert response.status_code == 503

    def test_provider_failure(self, client, use_orchestrator):
        use_orchestrator(ChatOrchestrator(client=FakeChatClient(error=ChatClientError("boom"))))
        response = client.post("/api/chat", json=ACME_PAYLOAD)

        assert response.status_code == 502
        assert response.json()["detail"] == "Chat provider request failed"


class TestIngestionRouteEndpoint:
    """Tests for POST /api/ingestion/route."""

    def test_classifies_telegram_message(self, client):
        response = client.post("/api/ingestion/route", json={
            "content": "see you soon",
            "source": "telegram",
            "sourceMetadata": {"chatTitle": "Family chat"},
        })

        assert response.status_code == 200
        data = response.json()
        assert data["notebook_id"] == "personal"
        assert data["source"] == "telegram"
        assert data["routing"]["reason"] == "telegram_personal_hints"
        assert data["source_metadata"]["chatTitle"] == "Family chat"

    def test_explicit_notebook(self, client):
        response = client.post("/api/ingestion/route", json={"content": "anything", "notebookId": "Ops Notes"})

        assert response.status_code == 200
        assert response.json()["notebook_id"] == "ops-notes"
        assert response.json()["routing"]["explicit"] is True

    def test_missing_content(self, client):
        response = client.post("/api/ingestion/route", json={"source": "chat"})
        assert response.status_code == 400


class TestAvoidanceReportEndpoint:
    """Tests for POST /api/avoidance/report."""

    def test_report_and_summary(self, client):
        response = client.post("/api/avoidance/report", json={
            "stale_clients": [{"name": "Acme", "days_since_touch": 6}],
            "completed_tasks": [],
            "now": "2025-03-14T18:00:00Z",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["stale_clients"][0]["severity"] == "severe"
        assert [p["type"] for p in data["avoidance_patterns"]] == ["drain_avoidance"]
        assert data["overall_score"] == 35
        assert data["summary"].startswith("Stale clients: Acme (6d).")

    def test_rejects_negative_days(self, client):
        response = client.post("/api/avoidance/report", json={
            "stale_clients": [{"name": "Acme", "days_since_touch": -1}],
        })
        assert response.status_code == 400


class TestHealth:
    """Tests for GET /health."""

    def test_degraded_without_provider(self, client, monkeypatch):
        monkeypatch.setattr(settings, "openai_api_key", "")
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "degraded",
            "service": "work-os",
            "checks": {"chat_provider_configured": False},
        }

    def test_healthy_with_provider(self, client, monkeypatch):
        monkeypatch.setattr(settings, "openai_api_key", "sk-test")
        response = client.get("/health")

        assert response.json()["status"] == "healthy"
