"""Anthropic Messages API provider."""

from collections.abc import AsyncIterator
from typing import Any, Dict, List, Optional, Tuple

import httpx

from noah.core.exceptions import ProviderError
from noah.providers.base import ChatChunk, ChatRequest, ChatResponse, HTTPProvider, ProviderType
from noah.streaming.sse import iter_sse_data


def split_system(request: ChatRequest) -> Tuple[str, List[Dict[str, str]]]:
    """Separate system text from the turn list; the Messages API takes it apart."""
    system_parts = [request.system] if request.system else []
    turns: List[Dict[str, str]] = []
    for message in request.messages:
        if message.role == "system":
            system_parts.append(message.content)
        elif message.role in ("user", "assistant") and message.content:
            turns.append({"role": message.role, "content": message.content})
    return "\n\n".join(system_parts), turns


class AnthropicProvider(HTTPProvider):
    """Provider for the Messages API (``POST /v1/messages``)."""

    provider_type = ProviderType.ANTHROPIC

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.anthropic.com",
        api_version: str = "2023-06-01",
        timeout: float = 90,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(base_url, timeout=timeout, transport=transport)
        self.api_key = api_key
        self.api_version = api_version

    def default_headers(self) -> Dict[str, str]:
        headers = super().default_headers()
        headers.update({"x-api-key": self.api_key, "anthropic-version": self.api_version})
        return headers

    async def healthcheck(self) -> bool:
        return bool(self.api_key)

    def _payload(self, request: ChatRequest, stream: bool) -> Dict[str, Any]:
        system, turns = split_system(request)
        payload: Dict[str, Any] = {
            "model": request.model,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": turns,
            "stream": stream,
        }
        if system:
            payload["system"] = system
        if request.top_p is not None:
            payload["top_p"] = request.top_p
        if request.stop:
            payload["stop_sequences"] = request.stop
        return payload

    async def chat_once(self, request: ChatRequest) -> ChatResponse:
        """Send non-streaming chat request."""
        try:
            response = await self.client.post("/v1/messages", json=self._payload(request, False))
        except httpx.RequestError as exc:
            raise ProviderError(f"Anthropic request failed: {exc}", provider=self.provider_type.value) from exc
        if response.is_error:
            raise self.upstream_error(response.status_code, response.text)

        data = self.decode_json(response)
        text = "".join(
            block.get("text", "") for block in data.get("content", []) if block.get("type") == "text"
        )
        usage = data.get("usage", {})
        return ChatResponse(
            content=text,
            model=data.get("model", request.model),
            finish_reason=data.get("stop_reason"),
            prompt_tokens=usage.get("input_tokens"),
            completion_tokens=usage.get("output_tokens"),
        )

    async def chat_stream(self, request: ChatRequest) -> AsyncIterator[ChatChunk]:
        """Stream chat response."""
        try:
            async with self.client.stream(
                "POST", "/v1/messages", json=self._payload(request, True)
            ) as response:
                if response.status_code >= 400:
                    body = (await response.aread()).decode("utf-8", "replace")
                    raise self.upstream_error(response.status_code, body)
                async for event in iter_sse_data(response):
                    event_type = event.get("type")
                    if event_type == "content_block_delta":
                        delta = event.get("delta", {})
                        if delta.get("type") == "text_delta" and delta.get("text"):
                            yield ChatChunk(content=delta["text"], model=request.model)
                    elif event_type == "message_delta":
                        stop_reason = event.get("delta", {}).get("stop_reason")
                        if stop_reason:
                            yield ChatChunk(content="", finish_reason=stop_reason, model=request.model)
                    elif event_type == "message_stop":
                        break
                    elif event_type == "error":
                        raise ProviderError(
                            event.get("error", {}).get("message", "stream error"),
                            provider=self.provider_type.value,
                        )
        except httpx.RequestError as exc:
            raise ProviderError(f"Anthropic stream failed: {exc}", provider=self.provider_type.value) from exc


__all__ = ["AnthropicProvider", "split_system"]
