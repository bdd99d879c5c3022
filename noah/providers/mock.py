"""Deterministic mock provider for CI and offline development."""

from collections.abc import AsyncIterator

from noah.providers.base import (
    BaseProvider,
    ChatChunk,
    ChatRequest,
    ChatResponse,
    ProviderType,
)


class MockProvider(BaseProvider):
    """Echoes the last user message. Records every request it receives."""

    provider_type = ProviderType.MOCK

    def __init__(self, reply: str | None = None):
        self.reply = reply
        self.requests: list[ChatRequest] = []

    def _text(self, request: ChatRequest) -> str:
        if self.reply is not None:
            return self.reply
        prompt = request.messages[-1].content if request.messages else ""
        return f"[mock] {prompt}".strip()

    async def chat_once(self, request: ChatRequest) -> ChatResponse:
        self.requests.append(request)
        return ChatResponse(
            content=self._text(request),
            model=request.model or "mock-model",
            finish_reason="stop",
            prompt_tokens=8,
            completion_tokens=8,
        )

    async def chat_stream(self, request: ChatRequest) -> AsyncIterator[ChatChunk]:
        self.requests.append(request)
        for token in self._text(request).split(" "):
            yield ChatChunk(content=f"{token} ", model=request.model)
        yield ChatChunk(content="", finish_reason="stop", model=request.model)
