"""Tests for response parsing and artifact bookkeeping."""

import json

from noah.artifacts import (
    ArtifactResult,
    ArtifactService,
    ConversationState,
    StructuredArtifact,
    StructuredResponseParser,
    summarize_for_chat,
)
from noah.artifacts.parser import infer_complexity
from noah.artifacts.service import SessionArtifactStore


class FakeAnalytics:
    def __init__(self):
        self.generated = []

    def log_generated_tool(self, conversation_id, session_id, **fields):
        self.generated.append((conversation_id, session_id, fields))


class TestStructuredResponseParser:
    """Parsing strategies in priority order."""

    def test_whole_reply_json(self):
        reply = json.dumps({
            "content": "Here you go",
            "responseType": "tool-generation",
            "confidence": 0.9,
            "artifact": {"title": "Timer", "content": "<div>timer</div>", "type": "utility"},
        })
        result = StructuredResponseParser.parse(reply, "tinkerer")

        assert result.success is True
        assert result.response.response_type == "tool-generation"
        assert result.response.agent_used == "tinkerer"
        assert result.response.artifact.title == "Timer"
        assert result.response.artifact.type == "utility"

    def test_invalid_artifact_is_dropped(self):
        reply = json.dumps({
            "content": "Here you go",
            "responseType": "conversation",
            "confidence": 0.5,
            "artifact": {"title": "  ", "content": "x"},
        })
        result = StructuredResponseParser.parse(reply)
        assert result.success is True
        assert result.response.artifact is None

    def test_fenced_json_block(self):
        payload = json.dumps({
            "content": "Done",
            "responseType": "tool-generation",
            "confidence": 0.8,
            "artifact": {"title": "Notes", "content": "<p>notes</p>"},
        })
        result = StructuredResponseParser.parse(f"Sure thing!\n```json\n{payload}\n```\nEnjoy.")
        assert result.response.artifact.title == "Notes"

    def test_legacy_title_tool_format(self):
        reply = "TITLE: Tip Calculator\nTOOL:\n<div>tip</div>\n\nREASONING: quick and small"
        result = StructuredResponseParser.parse(reply, "tinkerer")

        artifact = result.response.artifact
        assert result.response.response_type == "tool-generation"
        assert result.response.confidence == 0.7
        assert artifact.title == "Tip Calculator"
        assert artifact.content == "<div>tip</div>"
        assert artifact.type == "calculator"
        assert result.response.reasoning == "quick and small"

    def test_plain_text_is_conversation(self):
        result = StructuredResponseParser.parse("Just chatting, no tools here.")
        assert result.success is True
        assert result.response.response_type == "conversation"
        assert result.response.artifact is None
        assert result.response.content == "Just chatting, no tools here."

    def test_json_without_required_fields_falls_through(self):
        result = StructuredResponseParser.parse('{"hello": "world"}')
        assert result.response.response_type == "conversation"


class TestInferComplexity:
    def test_levels(self):
        assert infer_complexity("<p>hi</p>") == "simple"
        assert infer_complexity("x" * 600) == "moderate"
        assert infer_complexity("for (let i = 0; i < 3; i++) {}") == "complex"
        assert infer_complexity("async function go() {}") == "advanced"


class TestSummarizeForChat:
    def test_short_reply_gets_saved_note(self):
        summary = summarize_for_chat("One line", "Timer")
        assert summary.startswith("One line")
        assert 'saved to your toolbox as "Timer"' in summary

    def test_long_reply_is_truncated(self):
        text = "\n".join(f"line {i}" for i in range(10))
        summary = summarize_for_chat(text, "Timer")
        assert "line 4" in summary
        assert "line 5" not in summary
        assert "Check your toolbox" in summary


class TestSessionArtifactStore:
    def test_least_recently_used_is_evicted(self):
        store = SessionArtifactStore(max_sessions=2)
        store.put("a", ArtifactResult(has_artifact=True, title="A"))
        store.put("b", ArtifactResult(has_artifact=True, title="B"))
        store.get("a")
        store.put("c", ArtifactResult(has_artifact=True, title="C"))

        assert len(store) == 2
        assert store.get("b") is None
        assert store.get("a").title == "A"


class TestArtifactService:
    """Recording artifacts against sessions and analytics."""

    def test_workflow_without_artifact(self):
        service = ArtifactService(analytics=FakeAnalytics(), store=SessionArtifactStore())
        result = service.handle_artifact_workflow("plain reply", "hi", "s1")
        assert result.has_artifact is False
        assert result.reply == "plain reply"

    def test_workflow_keeps_chat_text_of_structured_reply(self):
        service = ArtifactService(analytics=FakeAnalytics(), store=SessionArtifactStore())
        reply = json.dumps({
            "content": "Here is your clock.",
            "responseType": "tool-generation",
            "confidence": 0.9,
            "artifact": {"title": "Clock", "content": "<div>clock</div>"},
        })

        result = service.handle_artifact_workflow(reply, "build a clock", "s1")

        assert result.has_artifact is True
        assert result.reply == "Here is your clock."

    def test_workflow_keeps_chat_text_of_structured_conversation(self):
        service = ArtifactService(analytics=FakeAnalytics(), store=SessionArtifactStore())
        reply = json.dumps({"content": "Just chatting.", "responseType": "conversation", "confidence": 0.8})

        result = service.handle_artifact_workflow(reply, "hi", "s1")

        assert result.has_artifact is False
        assert result.reply == "Just chatting."

    def test_workflow_records_tracked_artifact(self):
        analytics = FakeAnalytics()
        store = SessionArtifactStore()
        service = ArtifactService(analytics=analytics, store=store)
        state = ConversationState(session_id="s1", conversation_id="c1")

        result = service.handle_artifact_workflow(
            "TITLE: Clock\nTOOL:\n<div>clock</div>",
            "build a clock",
            "s1",
            conversation_state=state,
            agent="tinkerer",
            generation_time_ms=120,
        )

        assert result.has_artifact is True
        assert result.title == "Clock"
        assert store.get("s1") is result
        conversation_id, session_id, fields = analytics.generated[0]
        assert (conversation_id, session_id) == ("c1", "s1")
        assert fields["generation_agent"] == "tinkerer"
        assert fields["user_message_length"] == len("build a clock")
        assert len(fields["tool_hash"]) == 64

    def test_untracked_session_skips_analytics(self):
        analytics = FakeAnalytics()
        store = SessionArtifactStore()
        service = ArtifactService(analytics=analytics, store=store)

        service.record(
            StructuredArtifact(title="Clock", content="<div/>"),
            "build a clock",
            ConversationState(session_id="fingerprint"),
            "noah",
        )

        assert analytics.generated == []
        assert store.get("fingerprint").title == "Clock"
