"""Database module for the Noah backend."""

from noah.db.database import (
    Base,
    dispose_engine,
    get_db,
    get_engine,
    get_session_local,
    verify_database_connection,
)
from noah.db.models import (
    Conversation,
    GeneratedTool,
    Message,
    ToolUsageEvent,
    UserSession,
)

__all__ = [
    "Base",
    "get_db",
    "get_engine",
    "get_session_local",
    "dispose_engine",
    "verify_database_connection",
    "UserSession",
    "Conversation",
    "Message",
    "GeneratedTool",
    "ToolUsageEvent",
]
