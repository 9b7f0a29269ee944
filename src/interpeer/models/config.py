"""Resolved configuration data models.

Field names are snake_case in Python and camelCase in the JSON config file
(``maxAttempts``, ``settingSources``, ...), so file contents validate as-is.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _ConfigModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class SettingSource(str, Enum):
    USER = "user"
    PROJECT = "project"
    LOCAL = "local"


class RetrySettings(_ConfigModel):
    max_attempts: int = Field(default=3, ge=1)
    base_delay_ms: int = Field(default=2000, ge=0)


class AgentAdapterConfig(_ConfigModel):
    command: Optional[str] = None
    model: str
    retry: RetrySettings = RetrySettings()


class ClaudeAgentConfig(AgentAdapterConfig):
    setting_sources: Optional[list[SettingSource]] = None
    custom_system_prompt: Optional[str] = None


class CodexAgentConfig(AgentAdapterConfig):
    command: str = "codex"
    profile: Optional[str] = None
    verbose: bool = False


class FactoryAgentConfig(AgentAdapterConfig):
    command: str = "factory"
    extra_args: list[str] = []
    format: str = "markdown"


class CustomAgentConfig(AgentAdapterConfig):
    """User-registered CLI agent.

    ``args`` may reference ``{model}`` and ``{prompt}``; without a
    ``{prompt}`` placeholder the prompt is passed as the last argument.
    """

    command: str
    args: list[str] = []


class LoggingConfig(_ConfigModel):
    enabled: bool = True
    redact_content: bool = True


class CacheConfig(_ConfigModel):
    enabled: bool = True
    ttl_ms: int = Field(default=5 * 60 * 1000, ge=0)
    max_entries: int = Field(default=50, ge=1)


class DefaultsConfig(_ConfigModel):
    agent: str = "claude_code"
    model: Optional[str] = None


class ResolvedConfig(_ConfigModel):
    agents: dict[str, AgentAdapterConfig]
    logging: LoggingConfig = LoggingConfig()
    cache: CacheConfig = CacheConfig()
    defaults: DefaultsConfig = DefaultsConfig()
