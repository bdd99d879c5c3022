"""Chat orchestration."""

from noah.chat.orchestrator import ChatInput, ChatOrchestrator, ChatResult, ChatStream

__all__ = ["ChatInput", "ChatOrchestrator", "ChatResult", "ChatStream"]
