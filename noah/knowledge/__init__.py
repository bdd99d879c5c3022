"""Component knowledge for retrieval-augmented prompts."""

from noah.knowledge.service import KnowledgeResult, KnowledgeService

__all__ = ["KnowledgeResult", "KnowledgeService"]
