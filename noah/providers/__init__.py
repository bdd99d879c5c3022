"""LLM provider adapters."""

from noah.providers.base import (
    BaseProvider,
    ChatChunk,
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ProviderType,
)
from noah.providers.registry import ProviderRegistry

__all__ = [
    "BaseProvider",
    "ChatChunk",
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "ProviderRegistry",
    "ProviderType",
]
