"""Fire-and-forget analytics.

The chat path never waits on analytics writes and never fails because of
them. Session and conversation creation are awaited (their ids are needed
downstream) but return ``None`` instead of raising. Everything else is
scheduled as a tracked asyncio task that runs the blocking SQLAlchemy work in
a worker thread.
"""

import asyncio
from typing import Any, Callable, Dict, Optional, Set

from sqlalchemy.exc import SQLAlchemyError

from noah.analytics import repository
from noah.analytics.session import generate_session_fingerprint
from noah.config import get_settings
from noah.core.exceptions import NoahException
from noah.core.logging import get_logger
from noah.db.database import get_session_local

logger = get_logger(__name__)

_RECOVERABLE = (SQLAlchemyError, NoahException, OSError)


class AnalyticsService:
    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return get_settings().analytics_enabled

    def _run(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        db = get_session_local()()
        try:
            return fn(db, *args, **kwargs)
        finally:
            db.close()

    async def _call(self, operation: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run a repository function in a thread; log and return None on failure."""
        try:
            return await asyncio.to_thread(self._run, fn, *args, **kwargs)
        except _RECOVERABLE as exc:
            logger.warning(
                f"Analytics {operation} failed",
                data={"operation": operation, "error": str(exc)},
            )
            return None

    def _spawn(self, operation: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        if not self.enabled:
            return
        task = asyncio.create_task(self._call(operation, fn, *args, **kwargs))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every scheduled write. Used at shutdown and in tests."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def ensure_session(self, user_agent: Optional[str], client_ip: Optional[str]) -> Optional[str]:
        if not self.enabled:
            return None
        environment = get_settings().environment
        fingerprint = generate_session_fingerprint(user_agent, client_ip, environment)
        return await self._call(
            "ensure_session",
            repository.get_or_create_session,
            fingerprint,
            environment,
            user_agent,
        )

    async def start_conversation(self, session_id: Optional[str], skeptic_mode: bool = False) -> Optional[str]:
        if not self.enabled or not session_id:
            return None
        return await self._call(
            "start_conversation", repository.create_conversation, session_id, skeptic_mode
        )

    def log_message(
        self,
        conversation_id: Optional[str],
        session_id: Optional[str],
        message_sequence: int,
        role: str,
        content: str,
        response_time_ms: Optional[int] = None,
        agent_involved: Optional[str] = None,
        has_artifact: bool = False,
    ) -> None:
        if not conversation_id or not session_id:
            return
        self._spawn(
            "log_message",
            repository.add_message,
            conversation_id,
            session_id,
            message_sequence,
            role,
            content,
            response_time_ms=response_time_ms,
            agent_involved=agent_involved,
            has_artifact=has_artifact,
        )

    def log_generated_tool(
        self,
        conversation_id: Optional[str],
        session_id: Optional[str],
        tool_id: str,
        title: str,
        content: str,
        tool_hash: str,
        tool_type: Optional[str] = None,
        tool_category: Optional[str] = None,
        generation_time_ms: Optional[int] = None,
        generation_agent: Optional[str] = None,
        user_message_length: Optional[int] = None,
    ) -> None:
        if not conversation_id or not session_id:
            return
        self._spawn(
            "log_generated_tool",
            repository.add_generated_tool,
            conversation_id,
            session_id,
            title,
            content,
            tool_hash,
            tool_type=tool_type,
            tool_category=tool_category,
            generation_time_ms=generation_time_ms,
            generation_agent=generation_agent,
            user_message_length=user_message_length,
            tool_id=tool_id,
        )

    def log_tool_usage_event(
        self,
        tool_id: str,
        session_id: str,
        event_type: str,
        usage_context: Optional[str] = None,
        interaction_duration_ms: Optional[int] = None,
    ) -> None:
        self._spawn(
            "log_tool_usage_event",
            repository.add_tool_usage_event,
            tool_id,
            session_id,
            event_type,
            usage_context=usage_context,
            interaction_duration_ms=interaction_duration_ms,
        )

    def update_conversation_status(
        self,
        conversation_id: Optional[str],
        completion_status: str,
        agent_strategy: Optional[str] = None,
        conversation_length: Optional[int] = None,
    ) -> None:
        if not conversation_id:
            return
        self._spawn(
            "update_conversation_status",
            repository.update_conversation,
            conversation_id,
            completion_status=completion_status,
            agent_strategy=agent_strategy,
            conversation_length=conversation_length,
        )

    async def table_counts(self) -> Optional[Dict[str, int]]:
        return await self._call("table_counts", repository.table_counts)

    async def health_check(self) -> bool:
        counts = await self.table_counts()
        return counts is not None


analytics_service = AnalyticsService()
