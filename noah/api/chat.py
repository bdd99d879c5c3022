"""Chat API endpoints."""

from typing import Any, Dict, List

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from noah.chat.orchestrator import ChatInput, ChatOrchestrator, ChatResult, error_reply
from noah.config import TaskType, get_settings
from noah.core.exceptions import NoahException
from noah.core.logging import get_logger
from noah.core.middleware import get_client_ip
from noah.core.timeouts import with_timeout
from noah.providers.base import ChatMessage

logger = get_logger(__name__)
router = APIRouter(prefix="/api/chat", tags=["chat"])

CAPABILITIES = ["chat", "tool-generation", "conversation"]


class MessageIn(BaseModel):
    role: str = Field(pattern="^(user|assistant|system)$")
    content: str = ""


class ChatBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messages: List[MessageIn] = Field(default_factory=list)
    skeptic_mode: bool = Field(default=False, alias="skepticMode")


def wants_stream(request: Request) -> bool:
    accept = request.headers.get("accept", "")
    return "text/stream" in accept or request.headers.get("x-streaming", "").lower() == "true"


def _orchestrator(request: Request) -> ChatOrchestrator:
    return request.app.state.chat_orchestrator


async def _parse_body(request: Request) -> ChatBody:
    raw = await with_timeout(
        request.json(),
        get_settings().request_parse_timeout_seconds,
        operation="request parsing",
    )
    if not isinstance(raw, dict):
        raise ValueError("Request body must be a JSON object")
    return ChatBody.model_validate(raw)


def _json_result(result: ChatResult) -> JSONResponse:
    headers = {"X-Session-Id": result.session_id} if result.session_id else None
    return JSONResponse(content=result.to_dict(), headers=headers)


@router.post("")
async def chat(request: Request):
    """Answer a chat turn, streaming plain text when the client asks for it."""
    streaming = wants_stream(request)
    try:
        body = await _parse_body(request)
    except (NoahException, ValidationError, ValueError) as exc:
        logger.warning("Chat request could not be parsed", data={"error": str(exc)})
        return JSONResponse(content=ChatResult(content=error_reply(exc), status="error").to_dict())

    chat_input = ChatInput(
        messages=[ChatMessage(role=m.role, content=m.content) for m in body.messages],
        skeptic_mode=body.skeptic_mode,
        user_agent=request.headers.get("user-agent"),
        client_ip=get_client_ip(request),
    )
    logger.info(
        "Chat request received",
        data={"messages": len(chat_input.messages), "streaming": streaming, "skeptic_mode": body.skeptic_mode},
    )

    orchestrator = _orchestrator(request)
    if not streaming:
        return _json_result(await orchestrator.handle_chat(chat_input))

    stream = await orchestrator.stream_chat(chat_input)
    headers = {
        "X-Noah-Status": stream.status,
        "X-Noah-Agent": stream.agent,
        "Cache-Control": "no-cache",
    }
    if stream.session_id:
        headers["X-Session-Id"] = stream.session_id
    return StreamingResponse(stream.chunks, media_type="text/plain; charset=utf-8", headers=headers)


@router.get("")
async def chat_health(request: Request) -> Dict[str, Any]:
    registry = getattr(request.app.state, "provider_registry", None)
    model = registry.model_for(TaskType.DEFAULT) if registry is not None else None
    return {
        "status": "healthy",
        "agent": "noah",
        "capabilities": CAPABILITIES,
        "model": model,
        "avg_response_time": "2-5s",
    }
