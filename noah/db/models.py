"""SQLAlchemy models for conversation analytics."""

import secrets

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from noah.core.time import utcnow
from noah.db.database import Base


def generate_id() -> str:
    """Generate a unique ID."""
    return secrets.token_urlsafe(16)


class UserSession(Base):
    """Anonymous browser session, keyed by a fingerprint."""

    __tablename__ = "user_sessions"

    id = Column(String(32), primary_key=True, default=generate_id)
    session_fingerprint = Column(String(64), unique=True, index=True, nullable=False)
    environment = Column(String(32), nullable=False, default="development")
    browser = Column(String(32), nullable=True)
    platform = Column(String(32), nullable=True)
    is_mobile = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)
    last_seen = Column(DateTime, default=utcnow, onupdate=utcnow)

    conversations = relationship(
        "Conversation", back_populates="session", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<UserSession {self.session_fingerprint[:16]}...>"


class Conversation(Base):
    """One conversation within a session."""

    __tablename__ = "conversations"
    __table_args__ = (
        UniqueConstraint("session_id", "conversation_sequence", name="uq_conversation_sequence"),
    )

    id = Column(String(32), primary_key=True, default=generate_id)
    session_id = Column(
        String(32), ForeignKey("user_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    conversation_sequence = Column(Integer, nullable=False)
    initial_trust_level = Column(Integer, default=50)
    final_trust_level = Column(Integer, nullable=True)
    skeptic_mode_enabled = Column(Boolean, default=False)
    conversation_length = Column(Integer, default=0)
    conversation_duration_ms = Column(Integer, default=0)
    user_engagement_level = Column(String(16), default="low")
    # active | completed | abandoned | error
    completion_status = Column(String(16), default="active", nullable=False)
    agent_strategy = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    session = relationship("UserSession", back_populates="conversations")
    messages = relationship(
        "Message", back_populates="conversation", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Conversation {self.id[:8]}... #{self.conversation_sequence}>"


class Message(Base):
    """Message metadata. Message text itself is not stored."""

    __tablename__ = "messages"

    id = Column(String(32), primary_key=True, default=generate_id)
    conversation_id = Column(
        String(32), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    session_id = Column(String(32), ForeignKey("user_sessions.id", ondelete="CASCADE"), nullable=False)
    message_sequence = Column(Integer, nullable=False)
    role = Column(String(16), nullable=False)
    content_length = Column(Integer, default=0)
    word_count = Column(Integer, default=0)
    message_type = Column(String(32), nullable=True)
    response_time_ms = Column(Integer, nullable=True)
    agent_involved = Column(String(16), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    conversation = relationship("Conversation", back_populates="messages")

    def __repr__(self) -> str:
        return f"<Message {self.role} #{self.message_sequence}>"


class GeneratedTool(Base):
    """A tool artifact produced during a conversation."""

    __tablename__ = "generated_tools"

    id = Column(String(32), primary_key=True, default=generate_id)
    conversation_id = Column(
        String(32), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    session_id = Column(String(32), ForeignKey("user_sessions.id", ondelete="CASCADE"), nullable=False)
    message_id = Column(String(32), nullable=True)
    tool_hash = Column(String(64), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=True)
    content_length = Column(Integer, default=0)
    tool_type = Column(String(32), nullable=True)
    tool_category = Column(String(32), nullable=True)
    generation_time_ms = Column(Integer, nullable=True)
    generation_agent = Column(String(16), nullable=True)
    user_message_length = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    usage_events = relationship(
        "ToolUsageEvent", back_populates="tool", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_generated_tools_session_created", "session_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<GeneratedTool {self.title}>"


class ToolUsageEvent(Base):
    """An interaction with a generated tool."""

    __tablename__ = "tool_usage_events"

    id = Column(String(32), primary_key=True, default=generate_id)
    tool_id = Column(
        String(32), ForeignKey("generated_tools.id", ondelete="CASCADE"), nullable=False, index=True
    )
    session_id = Column(String(32), nullable=False)
    # generated | viewed | interacted | downloaded | shared | reused
    event_type = Column(String(16), nullable=False)
    usage_context = Column(String(32), nullable=True)
    interaction_duration_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    tool = relationship("GeneratedTool", back_populates="usage_events")

    def __repr__(self) -> str:
        return f"<ToolUsageEvent {self.event_type}>"
