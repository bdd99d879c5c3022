"""Process-wide Wanderer and Tinkerer instances, created on first use."""

import asyncio
from typing import Optional, Tuple

from noah.agents.perplexity import PerplexitySearch
from noah.agents.tinkerer import TinkererAgent
from noah.agents.wanderer import WandererAgent
from noah.config import Settings, TaskType
from noah.core.logging import get_logger
from noah.providers.registry import ProviderRegistry

logger = get_logger(__name__)


class AgentRegistry:
    """Builds both agents once per process.

    Construction is guarded by an ``asyncio.Lock`` so concurrent first
    requests share one initialisation. A failed initialisation leaves the
    cache empty and the next request tries again.
    """

    def __init__(self, providers: ProviderRegistry, settings: Settings):
        self.providers = providers
        self.settings = settings
        self._wanderer: Optional[WandererAgent] = None
        self._tinkerer: Optional[TinkererAgent] = None
        self._search: Optional[PerplexitySearch] = None
        self._lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._wanderer is not None and self._tinkerer is not None

    async def ensure_initialized(self) -> Tuple[WandererAgent, TinkererAgent]:
        if self.initialized:
            return self._wanderer, self._tinkerer

        async with self._lock:
            if self.initialized:
                return self._wanderer, self._tinkerer
            try:
                logger.info("Initializing agents")
                research_provider, research_model = self.providers.for_task(TaskType.RESEARCH)
                build_provider, build_model = self.providers.for_task(TaskType.DEEPBUILD)

                if self.settings.perplexity_api_key and not self.settings.is_mock_mode:
                    self._search = PerplexitySearch(
                        api_key=self.settings.perplexity_api_key,
                        base_url=self.settings.perplexity_base_url,
                        model=self.settings.perplexity_model,
                    )

                self._wanderer = WandererAgent(research_provider, research_model, search=self._search)
                self._tinkerer = TinkererAgent(build_provider, build_model)
                logger.info(
                    "Agents initialized",
                    data={"research_model": research_model, "build_model": build_model},
                )
            except Exception:
                logger.error("Agent initialization failed")
                self._wanderer = None
                self._tinkerer = None
                self._search = None
                raise
        return self._wanderer, self._tinkerer

    async def wanderer(self) -> WandererAgent:
        wanderer, _ = await self.ensure_initialized()
        return wanderer

    async def tinkerer(self) -> TinkererAgent:
        _, tinkerer = await self.ensure_initialized()
        return tinkerer

    async def aclose(self) -> None:
        if self._search is not None:
            await self._search.aclose()
        self._wanderer = None
        self._tinkerer = None
        self._search = None
