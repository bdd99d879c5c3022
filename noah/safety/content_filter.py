"""Intent-based content filter.

Every user message is matched against static pattern banks before any model
sees it. A match means radio silence: Noah produces no reply at all.
Categories are checked in a fixed order and the first match wins.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Pattern, Sequence, Tuple

from noah.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class SafetyContext:
    user_message: str
    conversation_history: List[str] = field(default_factory=list)
    session_id: Optional[str] = None


@dataclass
class SafetyCheckResult:
    is_allowed: bool
    confidence: float
    radio_silence: bool
    violation_type: Optional[str] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class PatternGroup:
    reason: str
    confidence: float
    patterns: Tuple[Pattern[str], ...]


def _group(reason: str, confidence: float, *patterns: str) -> PatternGroup:
    return PatternGroup(reason, confidence, tuple(re.compile(p) for p in patterns))


VIOLENCE = (
    _group(
        "Instructional content for violence/weapons", 0.95,
        r"how to (make|build|create|construct).*(bomb|weapon|explosive|gun)",
        r"teach me to (hurt|harm|kill|attack)",
        r"help me (hurt|harm|kill|attack|fight)",
        r"instructions for (making|building).*(weapon|bomb|explosive)",
        r"guide to (violence|fighting|hurting)",
    ),
    _group(
        "Planning violence against others", 0.90,
        r"i want to (hurt|harm|kill|attack)",
        r"i'm going to (hurt|harm|kill|attack)",
        r"planning to (hurt|harm|kill|attack)",
        r"help me plan.*attack",
        r"want to get revenge",
    ),
    _group(
        "Glorifying or encouraging violence", 0.85,
        r"violence is (good|great|awesome)",
        r"killing is (fun|easy|justified)",
        r"should (hurt|kill|attack).*people",
    ),
)

SELF_HARM = (
    _group(
        "Instructions for self-harm", 0.95,
        r"how to (cut|hurt|harm) myself",
        r"ways to (end|kill) myself",
        r"teach me to.*self.*harm",
        r"methods for.*suicide",
        r"help me (hurt|harm|kill) myself",
    ),
    _group(
        "Encouraging self-harm", 0.90,
        r"you should (hurt|kill) yourself",
        r"self.*harm is (good|justified)",
        r"suicide is the answer",
        r"you'd be better off dead",
    ),
)

CHILD_SAFETY = (
    _group(
        "Content endangering child safety", 0.95,
        r"how to.*approach.*child",
        r"ways to.*contact.*minors",
        r"help me.*meet.*kids",
        r"teach me.*groom",
        r"instructions.*child.*alone",
        r"help me.*approach.*kids",
        r"ways to.*approach.*kids",
        r"approach.*kids.*without.*parents",
        r"contact.*kids.*without.*parents",
        r"meet.*children.*without.*supervision",
    ),
    _group(
        "Inappropriate contact with minors", 0.90,
        r"want to.*meet.*child",
        r"looking for.*young.*kids",
        r"find.*children.*online",
        r"approach.*kids.*without.*knowing",
        r"ways to.*meet.*kids.*alone",
    ),
)

ILLEGAL_ACTIVITIES = (
    _group(
        "Instructions for illegal drug manufacturing", 0.95,
        r"how to (make|cook|manufacture).*(meth|cocaine|heroin|fentanyl)",
        r"teach me.*drug.*production",
        r"instructions.*illegal.*drugs",
        r"help me.*synthesize",
    ),
    _group(
        "Instructions for fraud or financial crimes", 0.95,
        r"how to.*steal.*identity",
        r"teach me.*credit card.*fraud",
        r"help me.*scam.*people",
        r"instructions.*fake.*documents",
        r"ways to.*launder.*money",
    ),
    _group(
        "Instructions for hacking or unauthorized access", 0.90,
        r"how to.*hack.*into",
        r"teach me.*break.*into.*system",
        r"help me.*steal.*data",
        r"instructions.*unauthorized.*access",
        r"ways to.*bypass.*security",
    ),
)

PRIVACY_VIOLATIONS = (
    _group(
        "Instructions for doxxing or privacy violations", 0.95,
        r"help me.*find.*personal.*information",
        r"how to.*doxx.*someone",
        r"teach me.*stalk",
        r"ways to.*track.*person",
        r"find.*someone's.*address",
    ),
    _group(
        "Instructions for unauthorized surveillance", 0.90,
        r"how to.*spy.*on",
        r"teach me.*monitor.*someone",
        r"help me.*watch.*without.*permission",
        r"instructions.*track.*location",
    ),
)

HATE_SPEECH = (
    _group(
        "Instructions for harassment or bullying", 0.95,
        r"how to.*bully",
        r"teach me.*harass",
        r"help me.*intimidate",
        r"ways to.*threaten",
        r"instructions.*make.*afraid",
    ),
    _group(
        "Organizing harassment campaigns", 0.90,
        r"help me.*organize.*campaign.*against",
        r"coordinate.*harassment",
        r"plan.*attack.*on.*group",
    ),
)

# Order matters: first category with a match decides the violation type.
CATEGORIES: Tuple[Tuple[str, Sequence[PatternGroup]], ...] = (
    ("violence", VIOLENCE),
    ("self-harm", SELF_HARM),
    ("child-safety", CHILD_SAFETY),
    ("illegal-activities", ILLEGAL_ACTIVITIES),
    ("privacy-violations", PRIVACY_VIOLATIONS),
    ("hate-speech", HATE_SPEECH),
)

BYPASS_PATTERNS = tuple(re.compile(p) for p in (
    r"it's for a (story|book|movie|novel)",
    r"writing (code|software)",
    r"academic research",
    r"just curious",
    r"testing your limits",
    r"hypothetically",
    r"for educational purposes",
    r"asking for a friend",
))

VIOLENCE_KEYWORDS = (
    "bomb", "weapon", "explosive", "gun", "knife", "attack",
    "kill", "hurt", "harm", "violence", "murder",
)

BYPASS_REASON = "Attempted bypass of violence restrictions"
BYPASS_CONFIDENCE = 0.80


def _first_match(text: str, groups: Sequence[PatternGroup]) -> Optional[PatternGroup]:
    for group in groups:
        if any(pattern.search(text) for pattern in group.patterns):
            return group
    return None


def is_violence_bypass(text: str) -> bool:
    """A framing excuse ("hypothetically", "for a story") around violent vocabulary."""
    lowered = text.lower()
    return (
        any(p.search(lowered) for p in BYPASS_PATTERNS)
        and any(k in lowered for k in VIOLENCE_KEYWORDS)
    )


class NoahContentFilter:
    """Static pattern-bank content filter."""

    @classmethod
    def check_content(cls, context: SafetyContext) -> SafetyCheckResult:
        lowered = context.user_message.lower()
        logger.info(
            "Safety check initiated",
            data={
                "message_length": len(context.user_message),
                "session_id": (context.session_id or "")[:8],
            },
        )

        for violation_type, groups in CATEGORIES:
            group = _first_match(lowered, groups)
            if group is not None:
                return cls._violation(violation_type, group.reason, group.confidence)
            if violation_type == "violence" and is_violence_bypass(lowered):
                return cls._violation(violation_type, BYPASS_REASON, BYPASS_CONFIDENCE)

        return SafetyCheckResult(is_allowed=True, confidence=0.95, radio_silence=False)

    @staticmethod
    def _violation(violation_type: str, reason: str, confidence: float) -> SafetyCheckResult:
        logger.warning(
            "Safety violation detected",
            data={"violation_type": violation_type, "reason": reason, "confidence": confidence},
        )
        return SafetyCheckResult(
            is_allowed=False,
            confidence=confidence,
            radio_silence=True,
            violation_type=violation_type,
            reason=reason,
        )

    @staticmethod
    def radio_silence_explanation(result: SafetyCheckResult) -> str:
        """Log-only description of why a message got no reply."""
        return (
            f"Radio silence triggered: {result.violation_type} violation detected "
            f"({result.reason}) with {round(result.confidence * 100)}% confidence"
        )
