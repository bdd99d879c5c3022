"""Artifact parsing and tracking."""

from noah.artifacts.parser import (
    ParseResult,
    StructuredArtifact,
    StructuredResponse,
    StructuredResponseParser,
)
from noah.artifacts.service import (
    ArtifactResult,
    ArtifactService,
    ConversationState,
    artifact_service,
    session_artifacts,
    summarize_for_chat,
)

__all__ = [
    "ArtifactResult",
    "ArtifactService",
    "ConversationState",
    "ParseResult",
    "StructuredArtifact",
    "StructuredResponse",
    "StructuredResponseParser",
    "artifact_service",
    "session_artifacts",
    "summarize_for_chat",
]
