"""Analytics inspection and tool usage ingest."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session as DBSession

from noah.analytics import repository
from noah.core.logging import get_logger
from noah.db import get_db

logger = get_logger(__name__)
router = APIRouter(prefix="/api/database", tags=["analytics"])


class ToolUsageEventIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tool_id: str = Field(alias="toolId", min_length=1)
    session_id: str = Field(alias="sessionId", min_length=1)
    event_type: str = Field(alias="eventType")
    usage_context: Optional[str] = Field(default=None, alias="usageContext")
    interaction_duration_ms: Optional[int] = Field(default=None, alias="interactionDurationMs", ge=0)


@router.get("")
async def inspect_tables(
    table: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=repository.MAX_RECENT_ROWS),
    db: DBSession = Depends(get_db),
) -> Dict[str, Any]:
    """Row counts for every analytics table, or recent rows of one."""
    if table is None:
        return {"counts": repository.table_counts(db)}

    rows = repository.recent_rows(db, table, limit)
    return {"table": table, "data": rows, "count": len(rows)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def record_tool_usage(body: ToolUsageEventIn, db: DBSession = Depends(get_db)) -> Dict[str, Any]:
    event_id = repository.add_tool_usage_event(
        db,
        body.tool_id,
        body.session_id,
        body.event_type,
        usage_context=body.usage_context,
        interaction_duration_ms=body.interaction_duration_ms,
    )
    logger.info(
        "Tool usage event recorded",
        data={"tool_id": body.tool_id, "event_type": body.event_type},
    )
    return {"success": True, "id": event_id}
