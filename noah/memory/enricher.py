"""Append remembered user context to Noah's system prompt."""

from typing import List, Optional

from noah.agents.prompts import CHAT_SYSTEM_PROMPT
from noah.memory.service import (
    CHALLENGE_EVENT,
    CONVERSATION_THEME,
    TOOL_RESULT,
    USER_PREFERENCE,
    MemoryContext,
    MemoryEntity,
)

MAX_PREFERENCES = 5
MAX_TOPICS = 3
MAX_TOOLS = 2
MAX_CHALLENGES = 2

_RULE = "─" * 52

BOUNDARIES = """IMPORTANT BOUNDARIES:
- These are factual observations, NOT assumptions
- Use for relevance only, NEVER override your personality
- If context seems irrelevant, ignore it
- Never say "I remember..." - just naturally incorporate when helpful"""


def _of_type(entities: List[MemoryEntity], entity_type: str, limit: int) -> List[MemoryEntity]:
    return [entity for entity in entities if entity.entity_type == entity_type][:limit]


class ContextEnricher:
    """Memory is always appended after the base prompt, never prepended."""

    @classmethod
    def enrich_system_prompt(
        cls,
        memory_context: Optional[MemoryContext],
        base_prompt: str = CHAT_SYSTEM_PROMPT,
    ) -> str:
        if memory_context is None or not memory_context.entities:
            return base_prompt

        entities = memory_context.entities
        sections = []

        preferences = cls.format_preferences(entities)
        if preferences:
            sections.append(f"OBSERVED PREFERENCES:\n{preferences}")
        topics = cls.format_recent_topics(entities)
        if topics:
            sections.append(f"RECENT TOPICS:\n{topics}")
        tools = cls.format_previous_tools(entities)
        if tools:
            sections.append(f"PREVIOUS TOOLS:\n{tools}")
        challenges = cls.format_challenge_history(entities)
        if challenges:
            sections.append(f"CHALLENGE HISTORY:\n{challenges}")

        if not sections:
            return base_prompt

        body = "\n\n".join(sections)
        return (
            f"{base_prompt}\n\n{_RULE}\n"
            "USER CONTEXT (observed facts for continuity only)\n\n"
            f"{body}\n\n{BOUNDARIES}\n{_RULE}"
        )

    @staticmethod
    def format_preferences(entities: List[MemoryEntity]) -> str:
        return "\n".join(
            f"- {pref.name}: {'; '.join(pref.observations[:2])}"
            for pref in _of_type(entities, USER_PREFERENCE, MAX_PREFERENCES)
        )

    @staticmethod
    def format_recent_topics(entities: List[MemoryEntity]) -> str:
        return "\n".join(
            f"- {theme.observations[0] if theme.observations else theme.name}"
            for theme in _of_type(entities, CONVERSATION_THEME, MAX_TOPICS)
        )

    @staticmethod
    def format_previous_tools(entities: List[MemoryEntity]) -> str:
        lines = []
        for tool in _of_type(entities, TOOL_RESULT, MAX_TOOLS):
            feedback = f" ({tool.observations[1]})" if len(tool.observations) > 1 else ""
            lines.append(f"- {tool.name}{feedback}")
        return "\n".join(lines)

    @staticmethod
    def format_challenge_history(entities: List[MemoryEntity]) -> str:
        return "\n".join(
            f"- {challenge.name}: {challenge.observations[0] if challenge.observations else 'outcome unknown'}"
            for challenge in _of_type(entities, CHALLENGE_EVENT, MAX_CHALLENGES)
        )
