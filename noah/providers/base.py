"""Provider interface and shared request/response types."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

import httpx

from noah.core.exceptions import ProviderError


class ProviderType(str, Enum):
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    MOCK = "mock"


@dataclass
class ChatMessage:
    role: str
    content: str


@dataclass
class ChatRequest:
    """A single completion request. ``system`` is kept apart from ``messages``."""

    messages: List[ChatMessage]
    model: str
    system: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 1024
    top_p: Optional[float] = None
    stop: Optional[List[str]] = None


@dataclass
class ChatResponse:
    content: str
    model: str
    finish_reason: Optional[str] = "stop"
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None


@dataclass
class ChatChunk:
    content: str
    finish_reason: Optional[str] = None
    model: Optional[str] = None


class BaseProvider(ABC):
    """Async chat provider."""

    provider_type: ProviderType

    @abstractmethod
    async def chat_once(self, request: ChatRequest) -> ChatResponse:
        """Send a non-streaming request."""

    @abstractmethod
    def chat_stream(self, request: ChatRequest) -> AsyncIterator[ChatChunk]:
        """Stream the response as text deltas."""

    async def healthcheck(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None


class HTTPProvider(BaseProvider):
    """Provider speaking JSON over HTTP through one lazily created httpx client.

    ``transport`` replaces the network layer; tests pass ``httpx.MockTransport``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 90,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def default_headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self.default_headers(),
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    def upstream_error(self, status_code: int, body: str = "") -> ProviderError:
        detail = f": {body[:200]}" if body else ""
        return ProviderError(
            f"{self.provider_type.value} returned {status_code}{detail}",
            provider=self.provider_type.value,
        )

    def decode_json(self, response: httpx.Response) -> Dict:
        """JSON body of a successful reply; gateways sometimes answer 200 with HTML."""
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(
                f"{self.provider_type.value} returned a non-JSON body: {response.text[:200]}",
                provider=self.provider_type.value,
            ) from exc
        if not isinstance(data, dict):
            raise ProviderError(
                f"{self.provider_type.value} returned unexpected JSON", provider=self.provider_type.value
            )
        return data
