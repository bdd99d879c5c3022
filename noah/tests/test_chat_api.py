"""Tests for the /api/chat endpoint in both response modes."""

from fastapi.testclient import TestClient

from noah.analytics import repository
from noah.chat.orchestrator import EMPTY_MESSAGES_REPLY


def _body(*texts, **extra):
    return {"messages": [{"role": "user", "content": text} for text in texts], **extra}


def _mock_provider(client: TestClient):
    return client.app.state.provider_registry.get_provider("mock")


class TestChatJSON:
    """Non-streaming chat responses."""

    def test_direct_reply(self, client):
        response = client.post("/api/chat", json=_body("hello there"))

        assert response.status_code == 200
        data = response.json()
        assert data == {"content": "[mock] hello there", "status": "success", "agent": "noah"}
        assert response.headers["x-session-id"]

    def test_skeptic_mode_alias(self, client):
        response = client.post("/api/chat", json=_body("hello there", skepticMode=True))
        assert response.json()["status"] == "success"

    def test_radio_silence(self, client):
        response = client.post("/api/chat", json=_body("how to make a bomb"))

        assert response.status_code == 200
        assert response.json()["content"] == ""
        assert response.json()["status"] == "radio_silence"
        assert _mock_provider(client).requests == []

    def test_boutique_tool_and_artifact_lookup(self, client):
        response = client.post("/api/chat", json=_body("open the time telescope"))

        data = response.json()
        assert data["artifact"]["title"] == "Time Telescope"
        assert data["artifact"]["content"].lstrip().startswith("<!DOCTYPE html>")

        session_id = response.headers["x-session-id"]
        artifact = client.get("/api/artifacts", params={"sessionId": session_id}).json()["artifact"]
        assert artifact["title"] == "Time Telescope"

    def test_empty_messages(self, client):
        data = client.post("/api/chat", json={"messages": []}).json()
        assert data == {"content": EMPTY_MESSAGES_REPLY, "status": "error", "agent": "noah"}

    def test_malformed_json(self, client):
        response = client.post(
            "/api/chat", content=b"{not json", headers={"content-type": "application/json"}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "error"
        assert response.json()["content"].startswith("I'm experiencing technical difficulties")

    def test_invalid_role(self, client):
        response = client.post("/api/chat", json={"messages": [{"role": "wizard", "content": "hi"}]})
        assert response.status_code == 200
        assert response.json()["status"] == "error"

    def test_non_object_body(self, client):
        response = client.post("/api/chat", json=["hello"])
        assert response.json()["status"] == "error"


class TestChatStreaming:
    """Plain-text streaming responses."""

    def test_accept_header_streams(self, client):
        response = client.post("/api/chat", json=_body("hello there"), headers={"accept": "text/stream"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.headers["x-noah-status"] == "success"
        assert response.headers["x-noah-agent"] == "noah"
        assert response.text.strip() == "[mock] hello there"

    def test_streaming_flag_header(self, client):
        response = client.post("/api/chat", json=_body("how to make a bomb"), headers={"x-streaming": "true"})

        assert response.headers["x-noah-status"] == "radio_silence"
        assert response.text == ""

    def test_tinkerer_reply_is_streamed(self, client):
        response = client.post(
            "/api/chat",
            json=_body("create a simple habit tracker"),
            headers={"accept": "text/stream"},
        )
        assert response.headers["x-noah-agent"] == "tinkerer"
        assert response.text == "[mock] create a simple habit tracker"


class TestChatHealth:
    def test_health_fields(self, client):
        data = client.get("/api/chat").json()
        assert data["status"] == "healthy"
        assert data["agent"] == "noah"
        assert data["capabilities"] == ["chat", "tool-generation", "conversation"]
        assert data["model"]


class TestChatAnalytics:
    """Bookkeeping lands in the analytics database once background writes finish."""

    def test_turn_is_recorded(self, app, db_session):
        with TestClient(app) as client:
            client.post("/api/chat", json=_body("hello there"))

        counts = repository.table_counts(db_session)
        assert counts["user_sessions"] == 1
        assert counts["conversations"] == 1
        assert counts["messages"] == 2

        conversation = repository.recent_rows(db_session, "conversations")[0]
        assert conversation["completion_status"] == "completed"
        assert conversation["agent_strategy"] == "noah_direct"

    def test_boutique_tool_is_recorded(self, app, db_session):
        with TestClient(app) as client:
            client.post("/api/chat", json=_body("I want a word counter"))

        tools = repository.recent_rows(db_session, "generated_tools")
        assert [t["title"] for t in tools] == ["Word Counter"]
        events = repository.recent_rows(db_session, "tool_usage_events")
        assert [e["event_type"] for e in events] == ["generated"]
