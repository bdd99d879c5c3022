"""Component knowledge lookup for retrieval-augmented prompts.

An in-memory catalogue scored by token overlap. It is seeded with the
boutique tools and can be extended at runtime with ``add_component``.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from noah.agents.prompts import CHAT_SYSTEM_PROMPT, rag_system_prompt
from noah.core.logging import get_logger
from noah.tools.renderer import catalogue

logger = get_logger(__name__)

_TOKEN = re.compile(r"[a-z0-9]+")
STOPWORDS = frozenset(
    "a an and are as at be but by can do for from have how i in is it me my of on or please "
    "should so that the this to was what when where which who why will with you your".split()
)


def tokenize(text: str) -> Set[str]:
    return {token for token in _TOKEN.findall(text.lower()) if token not in STOPWORDS and len(token) > 1}


@dataclass
class KnowledgeItem:
    id: str
    content: str
    category: str = "component"
    source: str = "catalogue"
    tokens: Set[str] = field(default_factory=set, repr=False)


@dataclass
class KnowledgeResult:
    item: KnowledgeItem
    relevance: float


class KnowledgeService:
    def __init__(self, context_limit: int = 3, relevance_threshold: float = 0.25):
        self.context_limit = context_limit
        self.relevance_threshold = relevance_threshold
        self._items: Dict[str, KnowledgeItem] = {}
        for tool in catalogue():
            self.add_component(tool.name, f"{tool.title}: {tool.description}", category="boutique-tool")

    def add_component(self, component_id: str, content: str, category: str = "component", source: str = "catalogue") -> None:
        self._items[component_id] = KnowledgeItem(
            id=component_id,
            content=content,
            category=category,
            source=source,
            tokens=tokenize(content),
        )

    def __len__(self) -> int:
        return len(self._items)

    def search(
        self,
        query: str,
        max_results: Optional[int] = None,
        min_relevance: Optional[float] = None,
    ) -> List[KnowledgeResult]:
        """Best matches first. Relevance is the share of query tokens found in the item."""
        limit = self.context_limit if max_results is None else max_results
        threshold = self.relevance_threshold if min_relevance is None else min_relevance
        try:
            query_tokens = tokenize(query)
            if not query_tokens:
                return []
            scored = []
            for item in self._items.values():
                overlap = len(query_tokens & item.tokens)
                if not overlap:
                    continue
                relevance = overlap / len(query_tokens)
                if relevance >= threshold:
                    scored.append(KnowledgeResult(item=item, relevance=relevance))
            scored.sort(key=lambda result: result.relevance, reverse=True)
            return scored[:limit]
        except (TypeError, AttributeError) as exc:
            logger.error("Knowledge search failed", data={"error": str(exc)})
            return []

    def build_rag_system_prompt(self, query: str, base_prompt: str = CHAT_SYSTEM_PROMPT) -> str:
        results = self.search(query)
        if results:
            logger.info(
                "Knowledge context added to prompt",
                data={"components": [r.item.id for r in results]},
            )
        return rag_system_prompt([r.item.content for r in results], base_prompt)
