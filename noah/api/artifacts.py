"""Latest generated artifact per session."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from noah.analytics import repository
from noah.analytics.service import analytics_service
from noah.artifacts.service import session_artifacts
from noah.core.exceptions import ValidationFailedError
from noah.core.logging import get_logger
from noah.db import get_db

logger = get_logger(__name__)
router = APIRouter(prefix="/api/artifacts", tags=["artifacts"])


@router.get("")
async def latest_artifact(
    sessionId: Optional[str] = None,
    db: DBSession = Depends(get_db),
) -> Dict[str, Any]:
    """Artifacts still in process memory win; the analytics store is the fallback."""
    if not sessionId:
        raise ValidationFailedError("Session ID is required")

    cached = session_artifacts.get(sessionId)
    if cached is not None and cached.has_artifact:
        tool_id, title, content = cached.tool_id, cached.title, cached.content
    else:
        try:
            row = repository.latest_artifact(db, sessionId)
        except SQLAlchemyError as exc:
            logger.warning("Artifact lookup failed", data={"error": str(exc)})
            row = None
        if row is None:
            logger.debug("No artifact found for session")
            return {"artifact": None}
        tool_id, title, content = row["id"], row["title"], row["content"]

    if tool_id:
        analytics_service.log_tool_usage_event(tool_id, sessionId, "viewed", usage_context="same-session")
    logger.info("Artifact served", data={"title": title, "content_length": len(content or "")})
    return {"artifact": {"title": title, "content": content}}
