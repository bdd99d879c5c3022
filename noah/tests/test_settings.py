"""Tests for settings resolution, validation and deadline helpers."""

import asyncio

import pytest
from pydantic import ValidationError

from noah.config import Settings, TaskType
from noah.config.settings import DEFAULT_MODEL_ID, DEFAULT_PROVIDER
from noah.core.exceptions import ConfigurationError, OperationTimeoutError
from noah.core.timeouts import with_timeout

LLM_VARS = (
    "LLM",
    "MODEL_ID",
    "LLM_DEFAULT",
    "LLM_DEFAULT_ID",
    "LLM_RESEARCH",
    "LLM_RESEARCH_ID",
    "LLM_DEEPBUILD",
    "LLM_DEEPBUILD_ID",
)


@pytest.fixture
def clean_llm_env(monkeypatch):
    for name in LLM_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestLLMConfig:
    """Provider and model lookup chain per task type."""

    def test_defaults(self, clean_llm_env):
        config = Settings().llm_config()
        assert config.provider == DEFAULT_PROVIDER
        assert config.model == DEFAULT_MODEL_ID

    def test_default_task_overrides_global(self, clean_llm_env):
        clean_llm_env.setenv("LLM", "anthropic")
        clean_llm_env.setenv("LLM_DEFAULT", "OpenAI")
        clean_llm_env.setenv("LLM_DEFAULT_ID", "gpt-4o-mini")

        config = Settings().llm_config(TaskType.RESEARCH)
        assert config.provider == "openai"
        assert config.model == "gpt-4o-mini"

    def test_task_specific_wins(self, clean_llm_env):
        clean_llm_env.setenv("LLM_DEFAULT", "openai")
        clean_llm_env.setenv("LLM_DEEPBUILD", "anthropic")
        clean_llm_env.setenv("LLM_DEEPBUILD_ID", "claude-opus")

        settings = Settings()
        assert settings.llm_config("deepbuild").provider == "anthropic"
        assert settings.llm_config("deepbuild").model == "claude-opus"
        assert settings.llm_config("default").provider == "openai"

    def test_blank_provider_is_an_error(self, clean_llm_env):
        clean_llm_env.setenv("LLM", "  ")
        with pytest.raises(ConfigurationError):
            Settings().llm_config()

    def test_unknown_task(self, clean_llm_env):
        with pytest.raises(ValueError):
            Settings().llm_config("poetry")


class TestSettingsValidation:
    def test_invalid_environment(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "moon")
        with pytest.raises(ValidationError):
            Settings()

    def test_invalid_log_level(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "chatty")
        with pytest.raises(ValidationError):
            Settings()

    def test_lock_threshold_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("SAFETY_LOCK_THRESHOLD", "0")
        with pytest.raises(ValidationError):
            Settings()

    def test_rag_defaults_to_production_only(self, monkeypatch):
        monkeypatch.delenv("RAG_ENABLED", raising=False)
        monkeypatch.setenv("ENVIRONMENT", "production")
        assert Settings().rag_enabled is True
        monkeypatch.setenv("ENVIRONMENT", "development")
        assert Settings().rag_enabled is False

    def test_list_properties(self, monkeypatch):
        monkeypatch.setenv("ALLOWED_HOSTS", "a.com, b.com,,")
        monkeypatch.setenv("CORS_ORIGINS", "")
        settings = Settings()
        assert settings.allowed_hosts_list == ["a.com", "b.com"]
        assert settings.cors_origins_list == []

    def test_mock_mode(self, monkeypatch):
        monkeypatch.setenv("PROVIDER_MODE", " Mock ")
        assert Settings().is_mock_mode is True


class TestWithTimeout:
    @pytest.mark.asyncio
    async def test_result_is_returned(self):
        async def quick():
            return 42

        assert await with_timeout(quick(), 1.0, "quick") == 42

    @pytest.mark.asyncio
    async def test_deadline_raises_and_cancels(self):
        cancelled = asyncio.Event()

        async def slow():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        with pytest.raises(OperationTimeoutError) as exc_info:
            await with_timeout(slow(), 0.01, "wanderer")

        assert "wanderer" in str(exc_info.value)
        assert cancelled.is_set()
