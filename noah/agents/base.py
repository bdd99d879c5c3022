"""Agent interface.

An agent is one LLM call behind a fixed system prompt. ``process_request``
never raises; any failure is answered with ``basic_response`` so the
caller can decide whether to fall back.
"""

import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from noah.config import TaskType
from noah.core.time import utcnow
from noah.providers.base import BaseProvider, ChatMessage, ChatRequest

BASIC_RESPONSE = "I'm experiencing technical difficulties. Let me try a different approach."


@dataclass
class AgentCapability:
    name: str
    description: str
    version: str = "1.0.0"


@dataclass
class AgentConfig:
    temperature: float = 0.7
    max_tokens: int = 1024


@dataclass
class AgentRequest:
    content: str
    session_id: Optional[str] = None
    id: str = field(default_factory=lambda: f"req_{secrets.token_hex(6)}")
    timestamp: datetime = field(default_factory=utcnow)


@dataclass
class AgentResponse:
    request_id: str
    agent_id: str
    content: str
    confidence: float
    reasoning: str
    timestamp: datetime = field(default_factory=utcnow)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def failed(self) -> bool:
        return bool(self.metadata.get("error"))


class BaseAgent(ABC):
    id: str
    name: str
    task_type: TaskType = TaskType.DEFAULT
    capabilities: List[AgentCapability] = []

    def __init__(self, provider: BaseProvider, model: str, config: AgentConfig):
        self.provider = provider
        self.model = model
        self.config = config

    @abstractmethod
    async def process_request(self, request: AgentRequest) -> AgentResponse:
        """Handle one request."""

    def system_prompt(self) -> str:
        names = ", ".join(capability.name for capability in self.capabilities)
        return f"You are {self.name}, an AI agent with these capabilities: {names}."

    async def generate(self, content: str) -> str:
        """Single completion with this agent's prompt, model and sampling settings."""
        response = await self.provider.chat_once(
            ChatRequest(
                messages=[ChatMessage(role="user", content=content)],
                model=self.model,
                system=self.system_prompt(),
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
        )
        return response.content

    def basic_response(self, request: AgentRequest, error: Optional[BaseException] = None) -> AgentResponse:
        return AgentResponse(
            request_id=request.id,
            agent_id=self.id,
            content=BASIC_RESPONSE,
            confidence=0.3,
            reasoning=str(error) if error else "Unknown error",
            metadata={"error": True},
        )
