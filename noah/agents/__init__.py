"""Research and build agents."""

from noah.agents.base import AgentRequest, AgentResponse, BaseAgent
from noah.agents.registry import AgentRegistry
from noah.agents.tinkerer import TinkererAgent, build_prompt
from noah.agents.wanderer import WandererAgent, requires_web_search

__all__ = [
    "AgentRegistry",
    "AgentRequest",
    "AgentResponse",
    "BaseAgent",
    "TinkererAgent",
    "WandererAgent",
    "build_prompt",
    "requires_web_search",
]
