"""Heuristic observations worth remembering from a conversation."""

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from noah.core.time import now_ms
from noah.memory.service import (
    CHALLENGE_EVENT,
    CONVERSATION_THEME,
    TOOL_RESULT,
    TRUST_SIGNAL,
    USER_PREFERENCE,
)
from noah.providers.base import ChatMessage

TOPIC_PATTERNS = (
    (r"\b(build|create|make|generate|develop)\s+(a|an)?\s*(website|site|app|application|page|tool)", "web development"),
    (r"\b(database|data|sql|postgres|store|query)", "database management"),
    (r"\b(ai|artificial intelligence|machine learning|ml|llm|gpt|model)", "AI/ML"),
    (r"\b(api|endpoint|rest|graphql|integration)", "API integration"),
    (r"\b(deploy|deployment|publish|production|host)", "deployment"),
    (r"\b(auth|authentication|login|signup|user)", "authentication"),
    (r"\b(design|ui|ux|interface|frontend|style|css)", "UI/UX design"),
    (r"\b(bug|error|fix|issue|problem|debug)", "debugging"),
    (r"\b(test|testing|unit test|integration test)", "testing"),
    (r"\b(payment|stripe|checkout|billing)", "payments"),
)

CHALLENGE_PATTERNS = (
    r"\b(wrong|incorrect|disagree|not right|doesn't work|failed|error)",
    r"\b(why|how come|but|however|actually)",
    r"\b(sure about|certain|confident|prove|evidence)",
    r"\b(that's not|that doesn't|this doesn't|won't work)",
    r"\?.*\?",
)

POSITIVE_PATTERNS = (
    r"\b(thank|thanks|appreciate|helpful|great|awesome|perfect|excellent|love|nice)",
    r"\b(good job|well done|exactly|that's right|correct|works well)",
    r"\b(trust|believe|confident|reliable)",
)

NEGATIVE_PATTERNS = (
    r"\b(don't trust|unreliable|useless|terrible|awful|horrible|worst)",
    r"\b(waste of time|disappointed|frustrated|annoyed)",
    r"\b(lied|lying|wrong|misleading|fake)",
)

PREFERENCE_PATTERNS = (
    (r"\b(prefer|like|want)\s+(simple|brief|short|concise|quick)\s+(answer|response|explanation)", "concise responses"),
    (r"\b(prefer|like|want)\s+(detailed|thorough|complete|in-depth)\s+(answer|response|explanation)", "detailed explanations"),
    (r"\b(prefer|like|want)\s+(code|example|demo|sample)", "code examples"),
    (r"\b(don't|do not)\s+(use|include|add)\s+(emoji|emojis)", "no emojis"),
    (r"\b(step.by.step|walk me through|guide me)", "step-by-step guidance"),
    (r"\b(just|only)\s+(give|show|tell)\s+(me)?\s*(the)?\s*(code|answer|result)", "direct answers"),
)


@dataclass
class ExtractedObservation:
    entity_name: str
    entity_type: str
    observation: str


def _user_texts(messages: Sequence[ChatMessage], last: int) -> List[str]:
    return [m.content.lower() for m in messages if m.role == "user"][-last:]


def _matches(text: str, patterns: Sequence[str]) -> bool:
    return any(re.search(pattern, text, re.IGNORECASE) for pattern in patterns)


class ObservationExtractor:
    @staticmethod
    def extract_topic(messages: Sequence[ChatMessage]) -> Optional[str]:
        """Topic of the last three user messages, or None."""
        texts = _user_texts(messages, 3)
        if not texts:
            return None
        combined = " ".join(texts)
        for pattern, topic in TOPIC_PATTERNS:
            if re.search(pattern, combined, re.IGNORECASE):
                return topic
        words = [word for word in combined.split() if len(word) > 4]
        if words:
            return f"general: {', '.join(words[:3])}"
        return None

    @staticmethod
    def detect_challenge(messages: Sequence[ChatMessage]) -> bool:
        texts = _user_texts(messages, 1)
        return bool(texts) and _matches(texts[0], CHALLENGE_PATTERNS)

    @staticmethod
    def detect_trust_signal(messages: Sequence[ChatMessage]) -> Optional[str]:
        """``positive``, ``negative`` or None when absent or mixed."""
        texts = _user_texts(messages, 1)
        if not texts:
            return None
        positive = _matches(texts[0], POSITIVE_PATTERNS)
        negative = _matches(texts[0], NEGATIVE_PATTERNS)
        if positive and not negative:
            return "positive"
        if negative and not positive:
            return "negative"
        return None

    @staticmethod
    def detect_preference(messages: Sequence[ChatMessage]) -> Optional[str]:
        texts = _user_texts(messages, 1)
        if not texts:
            return None
        for pattern, preference in PREFERENCE_PATTERNS:
            if re.search(pattern, texts[0], re.IGNORECASE):
                return preference
        return None

    @classmethod
    def extract_all_observations(
        cls,
        messages: Sequence[ChatMessage],
        artifact_generated: bool = False,
        artifact_id: Optional[str] = None,
        artifact_title: Optional[str] = None,
    ) -> List[ExtractedObservation]:
        stamp = now_ms()
        observations = []

        topic = cls.extract_topic(messages)
        if topic:
            observations.append(
                ExtractedObservation(f"theme_{stamp}", CONVERSATION_THEME, f"Discussed: {topic}")
            )

        if artifact_generated and artifact_id and artifact_title:
            observations.append(
                ExtractedObservation(f"tool_{artifact_id}", TOOL_RESULT, f"Created: {artifact_title}")
            )

        if cls.detect_challenge(messages):
            observations.append(
                ExtractedObservation(
                    f"challenge_{stamp}", CHALLENGE_EVENT, "User questioned or challenged response"
                )
            )

        trust = cls.detect_trust_signal(messages)
        if trust:
            observations.append(
                ExtractedObservation(
                    f"trust_{stamp}",
                    TRUST_SIGNAL,
                    "Positive feedback received" if trust == "positive" else "Negative feedback received",
                )
            )

        preference = cls.detect_preference(messages)
        if preference:
            observations.append(
                ExtractedObservation(f"pref_{stamp}", USER_PREFERENCE, f"User prefers: {preference}")
            )

        return observations
