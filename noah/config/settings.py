"""Noah configuration, read from the environment and an optional `.env` file."""

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from noah.core.exceptions import ConfigurationError

DEFAULT_PROVIDER = "anthropic"
DEFAULT_MODEL_ID = "claude-sonnet-4-5-20250929"
LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
ENVIRONMENTS = frozenset({"development", "staging", "production", "test"})


def _default_database_url() -> str:
    """SQLite file under `noah/data/`, next to the package sources."""
    return f"sqlite:///{Path(__file__).resolve().parent.parent / 'data' / 'noah.db'}"


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


class TaskType(str, Enum):
    """Kinds of LLM work, each independently routable to a provider/model."""

    DEFAULT = "default"
    RESEARCH = "research"
    DEEPBUILD = "deepbuild"


@dataclass(frozen=True)
class LLMConfig:
    """Resolved provider + model for one task type."""

    provider: str
    model: str


class Settings(BaseSettings):
    """Every tunable of the backend. Field names map to upper-case env vars."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    environment: str = Field(default="development")
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)
    debug: bool = Field(default=False)
    allowed_hosts: str = Field(
        default="localhost,127.0.0.1",
        description="Comma-separated allowed Host headers.",
    )
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)
    cors_origins: str = Field(default="http://localhost:3000")
    max_request_bytes: int = Field(default=1048576)

    # Database
    database_url: str = Field(default_factory=_default_database_url)
    analytics_enabled: bool = Field(default=True)

    # LLM selection. Lookup chain per task: LLM_<TASK> -> LLM_DEFAULT -> LLM
    # and LLM_<TASK>_ID -> LLM_DEFAULT_ID -> MODEL_ID.
    llm: str = Field(default=DEFAULT_PROVIDER)
    model_id: str = Field(default=DEFAULT_MODEL_ID)
    llm_default: str = Field(default="")
    llm_default_id: str = Field(default="")
    llm_research: str = Field(default="")
    llm_research_id: str = Field(default="")
    llm_deepbuild: str = Field(default="")
    llm_deepbuild_id: str = Field(default="")

    # Providers
    # "mock" swaps every provider for a deterministic offline one.
    provider_mode: str = Field(default="")
    provider_timeout_seconds: int = Field(default=90)
    readiness_check_providers: bool = Field(default=False)
    anthropic_api_key: str = Field(default="")
    anthropic_base_url: str = Field(default="https://api.anthropic.com")
    anthropic_version: str = Field(default="2023-06-01")
    openai_api_key: str = Field(default="")
    openai_base_url: str = Field(default="https://api.openai.com/v1")
    perplexity_api_key: str = Field(default="")
    perplexity_base_url: str = Field(default="https://api.perplexity.ai")
    perplexity_model: str = Field(default="sonar")

    # Agent timeouts (seconds)
    noah_timeout_seconds: float = Field(default=45.0)
    wanderer_timeout_seconds: float = Field(default=30.0)
    tinkerer_timeout_seconds: float = Field(default=60.0)
    request_parse_timeout_seconds: float = Field(default=2.0)

    # Knowledge / RAG. None means "on in production only".
    rag_enabled: Optional[bool] = Field(default=None)
    rag_context_limit: int = Field(default=3)
    rag_relevance_threshold: float = Field(default=0.25)

    # MCP child processes
    mcp_filesystem_enabled: bool = Field(default=True)
    mcp_filesystem_command: str = Field(default="npx")
    mcp_filesystem_package: str = Field(default="@modelcontextprotocol/server-filesystem")
    filesystem_root: str = Field(default=".")
    mcp_memory_enabled: bool = Field(default=True)
    mcp_memory_command: str = Field(default="npx")
    mcp_memory_package: str = Field(default="@modelcontextprotocol/server-memory")
    memory_file_path: str = Field(default="noah-memory-data/memory.json")

    # Safety
    safety_lock_threshold: int = Field(default=3)

    # Static media (intro video)
    media_dir: str = Field(default="./public")

    @property
    def allowed_hosts_list(self) -> List[str]:
        return _split_csv(self.allowed_hosts)

    @property
    def cors_origins_list(self) -> List[str]:
        return _split_csv(self.cors_origins)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_test(self) -> bool:
        return self.environment == "test"

    @property
    def is_mock_mode(self) -> bool:
        return self.provider_mode.strip().lower() == "mock"

    @property
    def docs_url(self) -> str | None:
        """Interactive API docs are served everywhere except production."""
        return None if self.is_production else "/docs"

    def llm_config(self, task_type: TaskType | str = TaskType.DEFAULT) -> LLMConfig:
        """Resolve the provider and model for a task type.

        Task-specific variables win over LLM_DEFAULT/LLM_DEFAULT_ID, which win
        over the global LLM/MODEL_ID pair.

        Raises:
            ConfigurationError: if no provider or no model can be resolved
        """
        task = TaskType(task_type).value
        provider = (
            getattr(self, f"llm_{task}", "")
            or self.llm_default
            or self.llm
        ).strip().lower()
        model = (
            getattr(self, f"llm_{task}_id", "")
            or self.llm_default_id
            or self.model_id
        ).strip()

        if not provider:
            raise ConfigurationError(
                f"No LLM provider configured for task '{task}'. "
                f"Set LLM_{task.upper()}, LLM_DEFAULT or LLM."
            )
        if not model:
            raise ConfigurationError(
                f"No model configured for task '{task}'. "
                f"Set LLM_{task.upper()}_ID, LLM_DEFAULT_ID or MODEL_ID."
            )
        return LLMConfig(provider=provider, model=model)

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {sorted(LOG_LEVELS)}, got {value!r}")
        return level

    @field_validator("environment")
    @classmethod
    def check_environment(cls, value: str) -> str:
        environment = (value or "").strip().lower()
        if environment not in ENVIRONMENTS:
            raise ValueError(f"ENVIRONMENT must be one of {sorted(ENVIRONMENTS)}, got {value!r}")
        return environment

    @model_validator(mode="after")
    def resolve_defaults(self) -> "Settings":
        if self.rag_enabled is None:
            self.rag_enabled = self.is_production
        if not (0.0 <= self.rag_relevance_threshold <= 1.0):
            raise ValueError("RAG_RELEVANCE_THRESHOLD must be between 0 and 1")
        if self.safety_lock_threshold < 1:
            raise ValueError("SAFETY_LOCK_THRESHOLD must be at least 1")
        return self


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings; tests call `get_settings.cache_clear()` after changing env."""
    return Settings()
