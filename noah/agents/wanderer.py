"""Wanderer: research specialist, optionally backed by live web search."""

from typing import Optional

from noah.agents.base import AgentCapability, AgentConfig, AgentRequest, AgentResponse, BaseAgent
from noah.agents.perplexity import PerplexitySearch
from noah.agents.prompts import WANDERER_PROMPT, WEB_SEARCH_PROMPT
from noah.config import TaskType
from noah.core.logging import get_logger
from noah.providers.base import BaseProvider

logger = get_logger(__name__)

CURRENT_INFO_KEYWORDS = (
    "current", "latest", "recent", "today", "now", "this year", "this month",
    "2024", "2025", "state of", "trends", "what is happening", "what's happening",
    "news", "updated", "status of", "currently",
)

WANDERER_CONFIG = AgentConfig(temperature=0.75, max_tokens=2500)


def requires_web_search(query: str) -> bool:
    lowered = query.lower()
    return any(keyword in lowered for keyword in CURRENT_INFO_KEYWORDS)


class WandererAgent(BaseAgent):
    id = "wanderer"
    name = "Wanderer - Research Specialist"
    task_type = TaskType.RESEARCH
    capabilities = [
        AgentCapability(
            name="deep-research",
            description="Researches a topic with web search when current information is needed",
            version="2.0.0",
        )
    ]

    def __init__(
        self,
        provider: BaseProvider,
        model: str,
        search: Optional[PerplexitySearch] = None,
        config: AgentConfig = WANDERER_CONFIG,
    ):
        super().__init__(provider, model, config)
        self.search = search
        if search is None:
            logger.info("Web search not configured; Wanderer will answer from model knowledge")

    def system_prompt(self) -> str:
        return WANDERER_PROMPT

    async def process_request(self, request: AgentRequest) -> AgentResponse:
        logger.info(
            "Wanderer processing research request",
            data={"request_id": request.id, "session_id": request.session_id},
        )
        try:
            if self.search is not None and requires_web_search(request.content):
                result = await self.search.search(request.content, WEB_SEARCH_PROMPT)
                return AgentResponse(
                    request_id=request.id,
                    agent_id=self.id,
                    content=result.with_sources(),
                    confidence=0.9,
                    reasoning="Research completed with live web search",
                    metadata={
                        "research_strategy": "web-search",
                        "citation_count": len(result.citations),
                    },
                )

            content = await self.generate(request.content)
            return AgentResponse(
                request_id=request.id,
                agent_id=self.id,
                content=content,
                confidence=0.8,
                reasoning="Research analysis completed",
                metadata={"research_strategy": "direct-analysis"},
            )
        except Exception as exc:
            logger.error("Wanderer research failed", data={"error": str(exc)})
            return self.basic_response(request, exc)
