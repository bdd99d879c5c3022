"""Provider registry: maps task types to configured provider instances."""

from typing import Dict, List, Optional, Tuple

from noah.config import Settings, TaskType
from noah.core.exceptions import ConfigurationError
from noah.core.logging import get_logger
from noah.providers.base import BaseProvider, ProviderType

logger = get_logger(__name__)


class ProviderRegistry:
    """Registry for managing AI providers."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.providers: Dict[str, BaseProvider] = {}

        if settings.is_mock_mode:
            from noah.providers.mock import MockProvider

            self.providers[ProviderType.MOCK.value] = MockProvider()
            logger.info("Initialized deterministic mock provider (PROVIDER_MODE=mock)")

    def _create_provider(self, name: str) -> BaseProvider:
        from noah.providers.anthropic import AnthropicProvider
        from noah.providers.openai_compat import OpenAICompatProvider

        timeout = self.settings.provider_timeout_seconds
        if name == ProviderType.ANTHROPIC.value:
            return AnthropicProvider(
                api_key=self.settings.anthropic_api_key,
                base_url=self.settings.anthropic_base_url,
                api_version=self.settings.anthropic_version,
                timeout=timeout,
            )
        if name == ProviderType.OPENAI.value:
            return OpenAICompatProvider(
                base_url=self.settings.openai_base_url,
                api_key=self.settings.openai_api_key,
                timeout=timeout,
            )
        raise ConfigurationError(f"Unknown LLM provider: {name}")

    def get_provider(self, name: str) -> BaseProvider:
        """Get (creating on first use) a provider by name."""
        if self.settings.is_mock_mode:
            return self.providers[ProviderType.MOCK.value]
        if name not in self.providers:
            self.providers[name] = self._create_provider(name)
            logger.info(f"Initialized provider: {name}")
        return self.providers[name]

    def for_task(self, task_type: TaskType | str = TaskType.DEFAULT) -> Tuple[BaseProvider, str]:
        """Resolve ``(provider, model_id)`` for a task type."""
        config = self.settings.llm_config(task_type)
        return self.get_provider(config.provider), config.model

    def model_for(self, task_type: TaskType | str = TaskType.DEFAULT) -> Optional[str]:
        try:
            return self.settings.llm_config(task_type).model
        except ConfigurationError:
            return None

    def list_providers(self) -> List[str]:
        return list(self.providers.keys())

    async def healthcheck_all(self) -> Dict[str, bool]:
        """Check health of all instantiated providers."""
        results = {}
        for name, provider in self.providers.items():
            try:
                results[name] = await provider.healthcheck()
            except Exception as e:
                logger.warning(f"Healthcheck failed for {name}: {e}")
                results[name] = False
        return results

    async def aclose(self) -> None:
        """Close all providers."""
        for name, provider in self.providers.items():
            try:
                await provider.aclose()
            except Exception as e:
                logger.warning(f"Error closing provider {name}: {e}")
