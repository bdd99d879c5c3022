"""OpenAI-compatible chat completions provider."""

from collections.abc import AsyncIterator
from typing import Any, Dict, Optional

import httpx

from noah.core.exceptions import ProviderError
from noah.providers.base import ChatChunk, ChatRequest, ChatResponse, HTTPProvider, ProviderType
from noah.streaming.sse import iter_sse_data


class OpenAICompatProvider(HTTPProvider):
    """Any endpoint implementing ``POST /chat/completions`` (OpenAI, OpenRouter, local servers)."""

    provider_type = ProviderType.OPENAI

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 90,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(base_url, timeout=timeout, transport=transport)
        self.api_key = api_key

    def default_headers(self) -> Dict[str, str]:
        headers = super().default_headers()
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def healthcheck(self) -> bool:
        try:
            response = await self.client.get("/models")
        except httpx.HTTPError:
            return False
        return response.status_code == 200

    @staticmethod
    def build_payload(request: ChatRequest, stream: bool) -> Dict[str, Any]:
        """System prompt goes first as a ``system`` role message."""
        system = [{"role": "system", "content": request.system}] if request.system else []
        payload: Dict[str, Any] = {
            "model": request.model,
            "messages": system + [{"role": m.role, "content": m.content} for m in request.messages],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
            "stream": stream,
        }
        if request.top_p is not None:
            payload["top_p"] = request.top_p
        if request.stop:
            payload["stop"] = request.stop
        return payload

    async def chat_once(self, request: ChatRequest) -> ChatResponse:
        try:
            response = await self.client.post("/chat/completions", json=self.build_payload(request, False))
        except httpx.RequestError as exc:
            raise ProviderError(f"Request failed: {exc}", provider=self.provider_type.value) from exc
        if response.is_error:
            raise self.upstream_error(response.status_code, response.text)

        data = self.decode_json(response)
        try:
            choice = data["choices"][0]
            content = choice["message"].get("content") or ""
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise ProviderError("Response has no choices", provider=self.provider_type.value) from exc
        usage = data.get("usage") or {}
        return ChatResponse(
            content=content,
            model=data.get("model", request.model),
            finish_reason=choice.get("finish_reason", "stop"),
            prompt_tokens=usage.get("prompt_tokens"),
            completion_tokens=usage.get("completion_tokens"),
        )

    async def chat_stream(self, request: ChatRequest) -> AsyncIterator[ChatChunk]:
        """Yield content deltas until ``[DONE]``."""
        payload = self.build_payload(request, True)
        try:
            async with self.client.stream("POST", "/chat/completions", json=payload) as response:
                if response.is_error:
                    body = (await response.aread()).decode("utf-8", "replace")
                    raise self.upstream_error(response.status_code, body)
                async for data in iter_sse_data(response):
                    for choice in data.get("choices") or []:
                        text = (choice.get("delta") or {}).get("content")
                        if text:
                            yield ChatChunk(
                                content=text,
                                finish_reason=choice.get("finish_reason"),
                                model=data.get("model"),
                            )
        except httpx.RequestError as exc:
            raise ProviderError(f"Stream failed: {exc}", provider=self.provider_type.value) from exc
