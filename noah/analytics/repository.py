"""Analytics persistence.

Plain functions over a SQLAlchemy session. Callers own the session and its
lifetime; every write commits before returning.
"""

import re
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DBSession

from noah.analytics.session import extract_browser_info
from noah.core.exceptions import ValidationFailedError
from noah.core.logging import get_logger
from noah.core.time import utcnow
from noah.db.models import (
    Conversation,
    GeneratedTool,
    Message,
    ToolUsageEvent,
    UserSession,
    generate_id,
)

logger = get_logger(__name__)

TABLES = {
    "user_sessions": UserSession,
    "conversations": Conversation,
    "messages": Message,
    "generated_tools": GeneratedTool,
    "tool_usage_events": ToolUsageEvent,
}

COMPLETION_STATUSES = ("active", "completed", "abandoned", "error")
EVENT_TYPES = ("generated", "viewed", "interacted", "downloaded", "shared", "reused")
USAGE_CONTEXTS = ("same-session", "different-session", "recycled")
AGENTS = ("noah", "wanderer", "tinkerer")

MAX_SEQUENCE_ATTEMPTS = 3
MAX_RECENT_ROWS = 100

_QUESTION_START = re.compile(
    r"^(?:what|who|when|where|why|how|which|is|are|can|could|would|should|do|does|did)\b"
)
_REQUEST = re.compile(r"\b(?:build|create|make|generate|write|design|give me|show me|help me|please)\b")
_CHALLENGE = re.compile(r"\b(?:wrong|incorrect|not true|disagree|are you sure|that's not|prove)\b")
_FEEDBACK = re.compile(r"\b(?:thanks|thank you|great|perfect|awesome|love it|doesn't work|didn't work|broken)\b")


def count_words(content: str) -> int:
    return len(content.split())


def infer_message_type(role: str, content: str, has_artifact: bool = False) -> str:
    """Coarse label for a message, used only for analytics."""
    if role == "assistant":
        return "tool-generation" if has_artifact else "response"

    text = content.lower().strip()
    if _CHALLENGE.search(text):
        return "challenge"
    if _FEEDBACK.search(text):
        return "feedback"
    if text.endswith("?") or _QUESTION_START.match(text):
        return "question"
    if _REQUEST.search(text):
        return "request"
    return "question"


def engagement_level(message_count: int) -> str:
    if message_count >= 10:
        return "high"
    if message_count >= 4:
        return "medium"
    return "low"


def get_or_create_session(
    db: DBSession,
    fingerprint: str,
    environment: str,
    user_agent: Optional[str] = None,
) -> str:
    """Return the session id for a fingerprint, creating the row on first sight."""
    existing = db.execute(
        select(UserSession).where(UserSession.session_fingerprint == fingerprint)
    ).scalar_one_or_none()
    if existing is not None:
        existing.last_seen = utcnow()
        db.commit()
        return existing.id

    info = extract_browser_info(user_agent)
    session = UserSession(
        session_fingerprint=fingerprint,
        environment=environment,
        browser=info.browser,
        platform=info.platform,
        is_mobile=info.mobile,
    )
    db.add(session)
    try:
        db.commit()
    except IntegrityError:
        # Another request inserted the same fingerprint first
        db.rollback()
        existing = db.execute(
            select(UserSession).where(UserSession.session_fingerprint == fingerprint)
        ).scalar_one()
        return existing.id
    return session.id


def create_conversation(
    db: DBSession,
    session_id: str,
    skeptic_mode: bool = False,
    max_attempts: int = MAX_SEQUENCE_ATTEMPTS,
) -> str:
    """Insert a conversation with the next per-session sequence number.

    The unique (session_id, conversation_sequence) constraint rejects a
    concurrent duplicate; the read-then-insert is retried in a fresh
    transaction up to ``max_attempts`` times.
    """
    for attempt in range(1, max_attempts + 1):
        current = db.execute(
            select(func.max(Conversation.conversation_sequence)).where(
                Conversation.session_id == session_id
            )
        ).scalar()
        conversation = Conversation(
            session_id=session_id,
            conversation_sequence=(current or 0) + 1,
            skeptic_mode_enabled=skeptic_mode,
        )
        db.add(conversation)
        try:
            db.commit()
            return conversation.id
        except IntegrityError:
            db.rollback()
            logger.info(
                "Conversation sequence collision, retrying",
                data={"session_id": session_id, "attempt": attempt},
            )
    raise ValidationFailedError(
        f"Could not allocate a conversation sequence after {max_attempts} attempts"
    )


def add_message(
    db: DBSession,
    conversation_id: str,
    session_id: str,
    message_sequence: int,
    role: str,
    content: str,
    response_time_ms: Optional[int] = None,
    agent_involved: Optional[str] = None,
    has_artifact: bool = False,
) -> str:
    if agent_involved is not None and agent_involved not in AGENTS:
        raise ValidationFailedError(f"Unknown agent: {agent_involved}")
    message = Message(
        conversation_id=conversation_id,
        session_id=session_id,
        message_sequence=message_sequence,
        role=role,
        content_length=len(content),
        word_count=count_words(content),
        message_type=infer_message_type(role, content, has_artifact),
        response_time_ms=response_time_ms,
        agent_involved=agent_involved,
    )
    db.add(message)
    db.commit()
    return message.id


def add_generated_tool(
    db: DBSession,
    conversation_id: str,
    session_id: str,
    title: str,
    content: str,
    tool_hash: str,
    tool_type: Optional[str] = None,
    tool_category: Optional[str] = None,
    generation_time_ms: Optional[int] = None,
    generation_agent: Optional[str] = None,
    user_message_length: Optional[int] = None,
    message_id: Optional[str] = None,
    tool_id: Optional[str] = None,
) -> str:
    """Store a generated tool together with its ``generated`` usage event."""
    tool = GeneratedTool(
        id=tool_id or generate_id(),
        conversation_id=conversation_id,
        session_id=session_id,
        message_id=message_id,
        tool_hash=tool_hash,
        title=title[:255],
        content=content,
        content_length=len(content),
        tool_type=tool_type,
        tool_category=tool_category,
        generation_time_ms=generation_time_ms,
        generation_agent=generation_agent,
        user_message_length=user_message_length,
    )
    db.add(tool)
    db.add(
        ToolUsageEvent(
            tool_id=tool.id,
            session_id=session_id,
            event_type="generated",
            usage_context="same-session",
        )
    )
    db.commit()
    return tool.id


def add_tool_usage_event(
    db: DBSession,
    tool_id: str,
    session_id: str,
    event_type: str,
    usage_context: Optional[str] = None,
    interaction_duration_ms: Optional[int] = None,
) -> str:
    if event_type not in EVENT_TYPES:
        raise ValidationFailedError(f"Invalid event type: {event_type}")
    if usage_context is not None and usage_context not in USAGE_CONTEXTS:
        raise ValidationFailedError(f"Invalid usage context: {usage_context}")
    if db.get(GeneratedTool, tool_id) is None:
        raise ValidationFailedError(f"Unknown tool: {tool_id}")

    event = ToolUsageEvent(
        tool_id=tool_id,
        session_id=session_id,
        event_type=event_type,
        usage_context=usage_context,
        interaction_duration_ms=interaction_duration_ms,
    )
    db.add(event)
    db.commit()
    return event.id


def update_conversation(
    db: DBSession,
    conversation_id: str,
    completion_status: Optional[str] = None,
    agent_strategy: Optional[str] = None,
    conversation_length: Optional[int] = None,
    final_trust_level: Optional[int] = None,
) -> bool:
    """Update status fields. Returns False when the conversation does not exist."""
    if completion_status is not None and completion_status not in COMPLETION_STATUSES:
        raise ValidationFailedError(f"Invalid completion status: {completion_status}")

    conversation = db.get(Conversation, conversation_id)
    if conversation is None:
        return False

    if completion_status is not None:
        conversation.completion_status = completion_status
    if agent_strategy is not None:
        conversation.agent_strategy = agent_strategy
    if conversation_length is not None:
        conversation.conversation_length = conversation_length
        conversation.user_engagement_level = engagement_level(conversation_length)
    if final_trust_level is not None:
        conversation.final_trust_level = final_trust_level
    if conversation.created_at is not None:
        duration = utcnow() - conversation.created_at
        conversation.conversation_duration_ms = int(duration.total_seconds() * 1000)
    db.commit()
    return True


def table_counts(db: DBSession) -> Dict[str, int]:
    return {
        name: db.execute(select(func.count()).select_from(model)).scalar() or 0
        for name, model in TABLES.items()
    }


def _row_to_dict(row: Any) -> Dict[str, Any]:
    result = {}
    for column in row.__table__.columns:
        value = getattr(row, column.name)
        result[column.name] = value.isoformat() if hasattr(value, "isoformat") else value
    return result


def recent_rows(db: DBSession, table: str, limit: int = 20) -> List[Dict[str, Any]]:
    """Most recent rows of a whitelisted table, newest first."""
    model = TABLES.get(table)
    if model is None:
        raise ValidationFailedError(f"Invalid table name: {table}")
    limit = max(1, min(limit, MAX_RECENT_ROWS))
    rows = db.execute(
        select(model).order_by(model.created_at.desc()).limit(limit)
    ).scalars().all()
    return [_row_to_dict(row) for row in rows]


def latest_artifact(db: DBSession, session_id: str) -> Optional[Dict[str, str]]:
    tool = db.execute(
        select(GeneratedTool)
        .where(GeneratedTool.session_id == session_id)
        .order_by(GeneratedTool.created_at.desc())
        .limit(1)
    ).scalar_one_or_none()
    if tool is None:
        return None
    return {"id": tool.id, "title": tool.title, "content": tool.content or ""}
