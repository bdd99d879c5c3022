"""Perplexity web search for questions that need current information."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from noah.core.exceptions import ConfigurationError, ProviderError
from noah.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class SearchResult:
    content: str
    citations: List[str] = field(default_factory=list)

    def with_sources(self) -> str:
        if not self.citations:
            return self.content
        sources = "\n".join(f"{i}. {url}" for i, url in enumerate(self.citations, 1))
        return f"{self.content}\n\n**Sources:**\n{sources}"


class PerplexitySearch:
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.perplexity.ai",
        model: str = "sonar",
        timeout: int = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ConfigurationError("PERPLEXITY_API_KEY is not configured")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )
        return self._client

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def search(self, query: str, system_prompt: Optional[str] = None) -> SearchResult:
        messages: List[Dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": query})

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": 0.2,
            "top_p": 0.9,
            "return_related_questions": False,
            "stream": False,
        }

        logger.info("Searching web via Perplexity", data={"query_length": len(query)})
        try:
            response = await self.client.post("/chat/completions", json=payload)
        except httpx.HTTPError as exc:
            raise ProviderError(f"Perplexity request failed: {exc}", provider="perplexity") from exc

        if response.status_code != 200:
            raise ProviderError(
                f"Perplexity API error: {response.status_code} - {response.text[:200]}",
                provider="perplexity",
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(
                f"Perplexity returned a non-JSON body: {response.text[:200]}", provider="perplexity"
            ) from exc
        if not isinstance(data, dict):
            raise ProviderError("Perplexity returned unexpected JSON", provider="perplexity")
        choices = data.get("choices") or [{}]
        content = (choices[0].get("message") or {}).get("content") or ""
        citations = [str(url) for url in data.get("citations") or []]

        logger.info(
            "Web search completed",
            data={"content_length": len(content), "citation_count": len(citations)},
        )
        return SearchResult(content=content, citations=citations)
