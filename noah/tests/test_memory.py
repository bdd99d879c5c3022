"""Tests for memory extraction, prompt enrichment and the MCP memory service."""

import json

import pytest

from noah.memory import (
    ContextEnricher,
    MCPMemoryService,
    MemoryContext,
    MemoryEntity,
    ObservationExtractor,
    normalize_entity_type,
)
from noah.memory.service import (
    CHALLENGE_EVENT,
    CONVERSATION_THEME,
    TOOL_RESULT,
    TRUST_SIGNAL,
    USER_PREFERENCE,
    parse_entities,
)
from noah.providers.base import ChatMessage


def _user(*texts):
    return [ChatMessage(role="user", content=text) for text in texts]


class FakeMemoryBridge:
    def __init__(self, search_result="{}", fail=False):
        self.search_result = search_result
        self.fail = fail
        self.calls = []
        self.closed = False

    async def start(self):
        return None

    async def list_tools(self):
        return ["search_nodes", "create_entities"]

    async def call_tool(self, name, arguments):
        self.calls.append((name, arguments))
        if self.fail:
            raise RuntimeError("server went away")
        return self.search_result

    async def close(self):
        self.closed = True


class TestObservationExtractor:
    def test_topic_from_patterns(self):
        assert ObservationExtractor.extract_topic(_user("can you build a website for me")) == "web development"

    def test_topic_fallback_uses_long_words(self):
        assert ObservationExtractor.extract_topic(_user("gardening tomatoes season")) == (
            "general: gardening, tomatoes, season"
        )

    def test_no_user_messages(self):
        messages = [ChatMessage(role="assistant", content="hello")]
        assert ObservationExtractor.extract_topic(messages) is None
        assert ObservationExtractor.detect_challenge(messages) is False

    def test_challenge(self):
        assert ObservationExtractor.detect_challenge(_user("That's wrong, why?")) is True

    @pytest.mark.parametrize(
        "text, signal",
        [
            ("thanks, that's great", "positive"),
            ("this is useless", "negative"),
            ("thanks but that's wrong", None),
            ("ok", None),
        ],
    )
    def test_trust_signal(self, text, signal):
        assert ObservationExtractor.detect_trust_signal(_user(text)) == signal

    def test_preference(self):
        assert ObservationExtractor.detect_preference(_user("I prefer short answers")) == "concise responses"
        assert ObservationExtractor.detect_preference(_user("walk me through it")) == "step-by-step guidance"

    def test_extract_all_observations(self):
        observations = ObservationExtractor.extract_all_observations(
            _user("thanks! I prefer short answers"),
            artifact_generated=True,
            artifact_id="a1",
            artifact_title="Timer",
        )
        by_type = {o.entity_type: o for o in observations}

        assert set(by_type) == {CONVERSATION_THEME, TOOL_RESULT, TRUST_SIGNAL, USER_PREFERENCE}
        assert by_type[TOOL_RESULT].entity_name == "tool_a1"
        assert by_type[TOOL_RESULT].observation == "Created: Timer"
        assert by_type[USER_PREFERENCE].observation == "User prefers: concise responses"


class TestContextEnricher:
    """System prompt enrichment from memory entities."""

    def test_no_context_returns_base(self):
        assert ContextEnricher.enrich_system_prompt(None, "BASE") == "BASE"
        assert ContextEnricher.enrich_system_prompt(MemoryContext("s1", []), "BASE") == "BASE"

    def test_sections_are_appended(self):
        context = MemoryContext(
            "s1",
            [
                MemoryEntity("pref_1", USER_PREFERENCE, ["User prefers: concise responses"]),
                MemoryEntity("theme_1", CONVERSATION_THEME, ["Discussed: AI/ML"]),
                MemoryEntity("Budget Tool", TOOL_RESULT, ["Created: Budget Tool", "loved it"]),
                MemoryEntity("challenge_1", CHALLENGE_EVENT, []),
            ],
        )
        prompt = ContextEnricher.enrich_system_prompt(context, "BASE")

        assert prompt.startswith("BASE\n\n")
        assert "OBSERVED PREFERENCES:\n- pref_1: User prefers: concise responses" in prompt
        assert "RECENT TOPICS:\n- Discussed: AI/ML" in prompt
        assert "PREVIOUS TOOLS:\n- Budget Tool (loved it)" in prompt
        assert "- challenge_1: outcome unknown" in prompt
        assert "IMPORTANT BOUNDARIES" in prompt

    def test_trust_only_context_leaves_prompt_alone(self):
        context = MemoryContext("s1", [MemoryEntity("trust_1", TRUST_SIGNAL, ["Positive feedback received"])])
        assert ContextEnricher.enrich_system_prompt(context, "BASE") == "BASE"


class TestParseEntities:
    def test_entity_types_are_normalized(self):
        payload = json.dumps({
            "entities": [
                {"name": "a", "entityType": "preference", "observations": ["x"]},
                {"name": "b", "entityType": "unheard-of", "observations": []},
                {"name": "broken"},
            ]
        })
        entities = parse_entities(payload)
        assert [(e.name, e.entity_type) for e in entities] == [("a", USER_PREFERENCE), ("b", USER_PREFERENCE)]

    def test_non_json(self):
        assert parse_entities("not json") == []

    def test_normalize_known_alias(self):
        assert normalize_entity_type("tool") == TOOL_RESULT


class TestMCPMemoryService:
    """Best-effort memory calls."""

    @pytest.mark.asyncio
    async def test_disabled_service(self, tmp_path):
        service = MCPMemoryService(str(tmp_path / "memory.json"), bridge=FakeMemoryBridge(), enabled=False)
        await service.initialize()
        assert service.available is False
        assert await service.retrieve_session_context("s1") is None

    @pytest.mark.asyncio
    async def test_retrieve_session_context(self, tmp_path):
        payload = json.dumps({
            "entities": [{"name": "s1_pref", "entityType": "user_preference", "observations": ["brief"]}]
        })
        bridge = FakeMemoryBridge(search_result=payload)
        service = MCPMemoryService(str(tmp_path / "memory.json"), bridge=bridge)
        await service.initialize()

        context = await service.retrieve_session_context("s1")
        assert context.session_id == "s1"
        assert context.entities[0].observations == ["brief"]
        assert bridge.calls == [("search_nodes", {"query": "s1"})]

    @pytest.mark.asyncio
    async def test_store_observation(self, tmp_path):
        bridge = FakeMemoryBridge()
        service = MCPMemoryService(str(tmp_path / "memory.json"), bridge=bridge)
        await service.initialize()

        await service.store_observation("s1", "theme_1", "theme", "Discussed: AI/ML")
        name, arguments = bridge.calls[0]
        assert name == "create_entities"
        assert arguments["entities"][0] == {
            "name": "s1_theme_1",
            "entityType": CONVERSATION_THEME,
            "observations": ["Discussed: AI/ML"],
        }

    @pytest.mark.asyncio
    async def test_failures_are_swallowed(self, tmp_path):
        service = MCPMemoryService(str(tmp_path / "memory.json"), bridge=FakeMemoryBridge(fail=True))
        await service.initialize()

        assert await service.retrieve_session_context("s1") is None
        await service.store_observation("s1", "x", "theme", "y")

    @pytest.mark.asyncio
    async def test_shutdown(self, tmp_path):
        bridge = FakeMemoryBridge()
        service = MCPMemoryService(str(tmp_path / "memory.json"), bridge=bridge)
        await service.initialize()
        await service.shutdown()
        assert bridge.closed is True
        assert service.available is False
