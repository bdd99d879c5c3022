"""Artifact extraction and bookkeeping for assistant replies."""

import hashlib
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional

from noah.analytics.service import AnalyticsService, analytics_service
from noah.artifacts.parser import StructuredArtifact, StructuredResponseParser
from noah.core.logging import get_logger
from noah.db.models import generate_id

logger = get_logger(__name__)

SUMMARY_LINES = 5
MAX_TRACKED_SESSIONS = 500


@dataclass
class ConversationState:
    """Analytics identifiers for one chat request."""

    session_id: Optional[str] = None
    conversation_id: Optional[str] = None
    message_sequence: int = 0

    @property
    def tracked(self) -> bool:
        return bool(self.session_id and self.conversation_id)

    def next_sequence(self) -> int:
        self.message_sequence += 1
        return self.message_sequence


@dataclass
class ArtifactResult:
    has_artifact: bool
    title: Optional[str] = None
    content: Optional[str] = None
    tool_id: Optional[str] = None
    tool_type: Optional[str] = None
    category: Optional[str] = None
    # Chat-facing text of the reply, without any structured wrapper
    reply: Optional[str] = None


class SessionArtifactStore:
    """Latest artifact per session, bounded by least-recently-used eviction."""

    def __init__(self, max_sessions: int = MAX_TRACKED_SESSIONS):
        self.max_sessions = max_sessions
        self._items: "OrderedDict[str, ArtifactResult]" = OrderedDict()
        self._lock = threading.Lock()

    def put(self, session_id: str, artifact: ArtifactResult) -> None:
        with self._lock:
            self._items[session_id] = artifact
            self._items.move_to_end(session_id)
            while len(self._items) > self.max_sessions:
                self._items.popitem(last=False)

    def get(self, session_id: str) -> Optional[ArtifactResult]:
        with self._lock:
            artifact = self._items.get(session_id)
            if artifact is not None:
                self._items.move_to_end(session_id)
            return artifact

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        return len(self._items)


session_artifacts = SessionArtifactStore()


def tool_hash(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def summarize_for_chat(response_text: str, title: str) -> str:
    """Shorten a reply that carried an artifact; the full tool lives in the toolbox."""
    lines = response_text.split("\n")
    if len(lines) > SUMMARY_LINES:
        head = "\n".join(lines[:SUMMARY_LINES])
        return (
            f"{head}\n\n*I've created a tool for you! Check your toolbox for the complete "
            f"\"{title}\" with all the details.*"
        )
    return f"{response_text}\n\n*This tool has been saved to your toolbox as \"{title}\" for easy access.*"


class ArtifactService:
    def __init__(
        self,
        analytics: AnalyticsService = analytics_service,
        store: SessionArtifactStore = session_artifacts,
    ):
        self.analytics = analytics
        self.store = store

    def record(
        self,
        artifact: StructuredArtifact,
        user_message: str,
        state: ConversationState,
        agent: str,
        generation_time_ms: Optional[int] = None,
        reply: Optional[str] = None,
    ) -> ArtifactResult:
        """Remember an artifact for its session and log it to analytics."""
        result = ArtifactResult(
            has_artifact=True,
            title=artifact.title,
            content=artifact.content,
            tool_id=generate_id(),
            tool_type=artifact.type,
            category=artifact.category,
            reply=reply,
        )
        if state.session_id:
            self.store.put(state.session_id, result)

        if state.tracked:
            self.analytics.log_generated_tool(
                state.conversation_id,
                state.session_id,
                tool_id=result.tool_id,
                title=artifact.title,
                content=artifact.content,
                tool_hash=tool_hash(artifact.content),
                tool_type=artifact.type,
                tool_category=artifact.category,
                generation_time_ms=generation_time_ms,
                generation_agent=agent,
                user_message_length=len(user_message),
            )

        logger.info(
            "Artifact recorded",
            data={"title": artifact.title, "tool_type": artifact.type, "agent": agent},
        )
        return result

    def handle_artifact_workflow(
        self,
        content: str,
        user_message: str,
        session_id: Optional[str],
        conversation_state: Optional[ConversationState] = None,
        agent: str = "noah",
        generation_time_ms: Optional[int] = None,
    ) -> ArtifactResult:
        """Extract an artifact from an assistant reply, if there is one."""
        parsed = StructuredResponseParser.parse(content, agent)
        if not parsed.success or parsed.response is None:
            return ArtifactResult(has_artifact=False)
        if parsed.response.artifact is None:
            return ArtifactResult(has_artifact=False, reply=parsed.response.content)

        state = conversation_state or ConversationState(session_id=session_id)
        return self.record(
            parsed.response.artifact,
            user_message,
            state,
            agent,
            generation_time_ms,
            reply=parsed.response.content,
        )


artifact_service = ArtifactService()
