"""Tinkerer: builds self-contained HTML tools."""

from typing import Optional

from noah.agents.base import AgentCapability, AgentConfig, AgentRequest, AgentResponse, BaseAgent
from noah.agents.prompts import TINKERER_PROMPT
from noah.config import TaskType
from noah.core.logging import get_logger

logger = get_logger(__name__)

TINKERER_CONFIG = AgentConfig(temperature=0.3, max_tokens=4000)


def build_prompt(message: str, research: Optional[str] = None) -> str:
    """The build request, with Wanderer's findings attached when chaining."""
    if research:
        return f"{message}\n\nResearch Context:\n{research}"
    return message


class TinkererAgent(BaseAgent):
    id = "tinkerer"
    name = "Tinkerer - Technical Implementation"
    task_type = TaskType.DEEPBUILD
    capabilities = [
        AgentCapability(
            name="technical-implementation",
            description="Creates complete, working single-file web tools",
            version="2.0.0",
        )
    ]

    def __init__(self, provider, model: str, config: AgentConfig = TINKERER_CONFIG):
        super().__init__(provider, model, config)

    def system_prompt(self) -> str:
        return TINKERER_PROMPT

    async def process_request(self, request: AgentRequest) -> AgentResponse:
        logger.info(
            "Tinkerer processing implementation request",
            data={"request_id": request.id, "content_length": len(request.content)},
        )
        try:
            content = await self.generate(request.content)
        except Exception as exc:
            logger.error("Tinkerer processing failed", data={"error": str(exc)})
            return self.basic_response(request, exc)

        return AgentResponse(
            request_id=request.id,
            agent_id=self.id,
            content=content,
            confidence=0.9,
            reasoning="Technical implementation completed",
            metadata={"implementation_strategy": "direct-build"},
        )
