"""Environment-bound configuration objects.

This module provides Pydantic BaseSettings-based configuration loading from .env files.
All settings classes automatically load from environment variables with support for
multiple alias names (e.g., MODEL_BASIC_* and MODEL_BASE_* both work).

Example:
    from agentOrchestrator.config.settings import get_settings

    settings = get_settings()  # Cached singleton
    max_runs = settings.orchestrator.max_concurrent
    router_model = settings.models.base
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


load_dotenv()


DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant working as part of a multi-agent runtime. "
    "Complete the task you are given and reply with the final result only."
)


class ModelRoutingSettings(BaseSettings):
    """Vendor-neutral model identifiers and credentials.

    Two slots are used by the orchestrator:
    - base: cheap/fast model used for routing calls (MODEL_BASE, MODEL_BASE_ID, MODEL_BASIC_ID)
    - chat: default model for agent and spawn calls (MODEL_CHAT, MODEL_CHAT_ID)

    Each model slot has three fields: id, api_key, base_url.
    """

    base: str = Field(
        default="base-quick",
        validation_alias=AliasChoices("MODEL_BASE", "MODEL_BASE_ID", "MODEL_BASIC_ID"),
    )
    base_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_BASE_API_KEY", "MODEL_BASIC_API_KEY"),
    )
    base_base_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_BASE_URL", "MODEL_BASIC_BASE_URL"),
    )

    chat: str = Field(
        default="chat-mid",
        validation_alias=AliasChoices("MODEL_CHAT", "MODEL_CHAT_ID"),
    )
    chat_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_CHAT_API_KEY", "MODEL_DEFAULT_CHAT_API_KEY"),
    )
    chat_base_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_CHAT_URL", "MODEL_CHAT_BASE_URL"),
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class OrchestratorSettings(BaseSettings):
    """Run admission and bookkeeping limits.

    - max_concurrent: active (pending/running) runs admitted at once (default: 8)
    - max_depth: deepest nesting of orchestrate-inside-orchestrate (default: 2)
    - archive_after_seconds: terminal runs older than this are swept (default: 3600)
    - routing_max_tokens: output budget of the auto-route call (default: 50)
    """

    max_concurrent: int = Field(
        default=8,
        ge=1,
        le=100,
        validation_alias=AliasChoices("ORCHESTRATOR_MAX_CONCURRENT", "MAX_CONCURRENT_RUNS"),
    )
    max_depth: int = Field(default=2, ge=0, le=10, alias="ORCHESTRATOR_MAX_DEPTH")
    archive_after_seconds: int = Field(
        default=3600, ge=1, alias="ORCHESTRATOR_ARCHIVE_AFTER_SECONDS"
    )
    routing_max_tokens: int = Field(default=50, ge=1, le=1000, alias="ORCHESTRATOR_ROUTING_MAX_TOKENS")
    task_preview_chars: int = Field(default=80, ge=10, alias="ORCHESTRATOR_TASK_PREVIEW_CHARS")
    result_preview_chars: int = Field(default=120, ge=10, alias="ORCHESTRATOR_RESULT_PREVIEW_CHARS")
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT, alias="ORCHESTRATOR_SYSTEM_PROMPT")

    # Optional agents.yaml; empty means start with an empty catalog
    agents_file: Optional[str] = Field(default=None, alias="ORCHESTRATOR_AGENTS_FILE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class ObservabilitySettings(BaseSettings):
    """Tracing and logging configuration.

    Controls observability features:
    - LangSmith tracing (LANGCHAIN_TRACING_V2, LANGCHAIN_PROJECT, etc.)
    - Logging settings (LOG_LEVEL, LOG_DIR)
    """

    langsmith_project: Optional[str] = Field(default=None, alias="LANGCHAIN_PROJECT")
    langsmith_api_key: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("LANGCHAIN_API_KEY", "LANGSMITH_API_KEY")
    )
    langsmith_endpoint: Optional[str] = Field(default=None, alias="LANGCHAIN_ENDPOINT")
    tracing_enabled: bool = Field(default=False, alias="LANGCHAIN_TRACING_V2")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_dir: str = Field(default="logs", alias="LOG_DIR")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class Settings(BaseSettings):
    """Root application settings loaded from .env file.

    Hierarchical structure containing three nested settings groups:
    - models: Model routing and API credentials (ModelRoutingSettings)
    - orchestrator: Run limits and prompt defaults (OrchestratorSettings)
    - observability: Tracing and logging (ObservabilitySettings)

    Use get_settings() to obtain a cached singleton instance.
    """

    environment: str = Field(default="dev", alias="APP_ENV")
    models: ModelRoutingSettings = Field(default_factory=ModelRoutingSettings)
    orchestrator: OrchestratorSettings = Field(default_factory=OrchestratorSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
        case_sensitive=False,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton Settings instance.

    Returns:
        Settings: Cached application settings instance
    """
    return Settings()
