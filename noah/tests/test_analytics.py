"""Tests for analytics persistence, session fingerprints and the async service."""

import pytest

from noah.analytics import repository
from noah.analytics.service import AnalyticsService
from noah.analytics.session import (
    extract_browser_info,
    generate_session_fingerprint,
    is_valid_session_fingerprint,
)
from noah.core.exceptions import ValidationFailedError
from noah.db.models import Conversation, GeneratedTool, Message, ToolUsageEvent

CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)


class TestSessionFingerprint:
    def test_deterministic(self):
        first = generate_session_fingerprint(CHROME_UA, "10.0.0.1", "test")
        assert first == generate_session_fingerprint(CHROME_UA, "10.0.0.1", "test")
        assert is_valid_session_fingerprint(first)

    def test_inputs_change_the_fingerprint(self):
        base = generate_session_fingerprint(CHROME_UA, "10.0.0.1", "test")
        assert base != generate_session_fingerprint(CHROME_UA, "10.0.0.2", "test")
        assert base != generate_session_fingerprint(CHROME_UA, "10.0.0.1", "production")

    def test_missing_inputs(self):
        assert is_valid_session_fingerprint(generate_session_fingerprint(None, None))
        assert is_valid_session_fingerprint("session_xyz") is False

    @pytest.mark.parametrize(
        "user_agent, browser, platform, mobile",
        [
            (CHROME_UA, "chrome", "windows", False),
            ("Mozilla/5.0 (Windows NT 10.0) Chrome/120.0 Edg/120.0", "edge", "windows", False),
            ("Mozilla/5.0 (iPhone; CPU iPhone OS 17_0) Safari/604.1 Mobile", "safari", "ios", True),
            ("Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Firefox/121.0", "firefox", "linux", False),
            (None, "unknown", "unknown", False),
        ],
    )
    def test_browser_info(self, user_agent, browser, platform, mobile):
        info = extract_browser_info(user_agent)
        assert (info.browser, info.platform, info.mobile) == (browser, platform, mobile)


class TestMessageClassification:
    @pytest.mark.parametrize(
        "content, expected",
        [
            ("that's wrong", "challenge"),
            ("thanks, perfect", "feedback"),
            ("what time is it", "question"),
            ("build me a timer", "request"),
        ],
    )
    def test_user_messages(self, content, expected):
        assert repository.infer_message_type("user", content) == expected

    def test_assistant_messages(self):
        assert repository.infer_message_type("assistant", "x") == "response"
        assert repository.infer_message_type("assistant", "x", has_artifact=True) == "tool-generation"

    def test_engagement_level(self):
        assert repository.engagement_level(1) == "low"
        assert repository.engagement_level(4) == "medium"
        assert repository.engagement_level(12) == "high"


class TestRepository:
    """Repository functions against a real SQLite database."""

    def _session(self, db, fingerprint="session_" + "a" * 32):
        return repository.get_or_create_session(db, fingerprint, "test", CHROME_UA)

    def test_get_or_create_session_is_idempotent(self, db_session):
        first = self._session(db_session)
        assert self._session(db_session) == first
        assert repository.table_counts(db_session)["user_sessions"] == 1

    def test_conversation_sequence_increments(self, db_session):
        session_id = self._session(db_session)
        first = repository.create_conversation(db_session, session_id)
        second = repository.create_conversation(db_session, session_id, skeptic_mode=True)

        assert db_session.get(Conversation, first).conversation_sequence == 1
        conversation = db_session.get(Conversation, second)
        assert conversation.conversation_sequence == 2
        assert conversation.skeptic_mode_enabled is True

    def test_add_message_stores_metadata_only(self, db_session):
        session_id = self._session(db_session)
        conversation_id = repository.create_conversation(db_session, session_id)
        message_id = repository.add_message(
            db_session, conversation_id, session_id, 1, "user", "build me a timer please"
        )

        message = db_session.get(Message, message_id)
        assert message.word_count == 5
        assert message.content_length == len("build me a timer please")
        assert message.message_type == "request"

    def test_add_message_rejects_unknown_agent(self, db_session):
        session_id = self._session(db_session)
        conversation_id = repository.create_conversation(db_session, session_id)
        with pytest.raises(ValidationFailedError):
            repository.add_message(db_session, conversation_id, session_id, 1, "assistant", "x", agent_involved="bob")

    def test_generated_tool_writes_generated_event(self, db_session):
        session_id = self._session(db_session)
        conversation_id = repository.create_conversation(db_session, session_id)
        tool_id = repository.add_generated_tool(
            db_session, conversation_id, session_id, "Timer", "<html/>", "h" * 64, generation_agent="tinkerer"
        )

        assert db_session.get(GeneratedTool, tool_id).content_length == len("<html/>")
        events = db_session.query(ToolUsageEvent).filter_by(tool_id=tool_id).all()
        assert [e.event_type for e in events] == ["generated"]

    def test_tool_usage_event_validation(self, db_session):
        session_id = self._session(db_session)
        conversation_id = repository.create_conversation(db_session, session_id)
        tool_id = repository.add_generated_tool(db_session, conversation_id, session_id, "Timer", "<p/>", "h")

        assert repository.add_tool_usage_event(db_session, tool_id, session_id, "viewed", "same-session")
        with pytest.raises(ValidationFailedError):
            repository.add_tool_usage_event(db_session, tool_id, session_id, "liked")
        with pytest.raises(ValidationFailedError):
            repository.add_tool_usage_event(db_session, tool_id, session_id, "viewed", "elsewhere")
        with pytest.raises(ValidationFailedError):
            repository.add_tool_usage_event(db_session, "missing", session_id, "viewed")

    def test_update_conversation(self, db_session):
        session_id = self._session(db_session)
        conversation_id = repository.create_conversation(db_session, session_id)

        assert repository.update_conversation(
            db_session, conversation_id, completion_status="completed", agent_strategy="noah_direct", conversation_length=5
        )
        conversation = db_session.get(Conversation, conversation_id)
        assert conversation.completion_status == "completed"
        assert conversation.user_engagement_level == "medium"
        assert repository.update_conversation(db_session, "missing", completion_status="error") is False
        with pytest.raises(ValidationFailedError):
            repository.update_conversation(db_session, conversation_id, completion_status="paused")

    def test_recent_rows(self, db_session):
        self._session(db_session)
        rows = repository.recent_rows(db_session, "user_sessions", limit=500)
        assert len(rows) == 1
        assert rows[0]["environment"] == "test"
        assert isinstance(rows[0]["created_at"], str)

        with pytest.raises(ValidationFailedError):
            repository.recent_rows(db_session, "sqlite_master")

    def test_latest_artifact(self, db_session):
        session_id = self._session(db_session)
        conversation_id = repository.create_conversation(db_session, session_id)
        assert repository.latest_artifact(db_session, session_id) is None

        tool_id = repository.add_generated_tool(db_session, conversation_id, session_id, "Timer", "<p/>", "h")
        assert repository.latest_artifact(db_session, session_id) == {
            "id": tool_id,
            "title": "Timer",
            "content": "<p/>",
        }


class TestAnalyticsService:
    """Async wrapper: awaited lookups and fire-and-forget writes."""

    @pytest.mark.asyncio
    async def test_session_and_conversation(self, db_engine, db_session):
        service = AnalyticsService()
        session_id = await service.ensure_session(CHROME_UA, "127.0.0.1")
        conversation_id = await service.start_conversation(session_id)

        service.log_message(conversation_id, session_id, 1, "user", "hello there")
        await service.drain()

        assert service.pending_tasks == 0
        assert repository.table_counts(db_session)["messages"] == 1

    @pytest.mark.asyncio
    async def test_failures_become_none(self, db_engine):
        service = AnalyticsService()
        assert await service.start_conversation(None) is None
        service.log_tool_usage_event("missing-tool", "s1", "viewed")
        await service.drain()
        assert await service.health_check() is True
