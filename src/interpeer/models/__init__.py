from .config import (
    AgentAdapterConfig,
    CacheConfig,
    ClaudeAgentConfig,
    CodexAgentConfig,
    CustomAgentConfig,
    DefaultsConfig,
    FactoryAgentConfig,
    LoggingConfig,
    ResolvedConfig,
    RetrySettings,
)
from .request import ReviewRequest, ReviewStyle, ReviewType
from .result import AgentReviewResult, CacheEntry, CacheStatus, TokenUsage

__all__ = [
    "AgentAdapterConfig",
    "AgentReviewResult",
    "CacheConfig",
    "CacheEntry",
    "CacheStatus",
    "ClaudeAgentConfig",
    "CodexAgentConfig",
    "CustomAgentConfig",
    "DefaultsConfig",
    "FactoryAgentConfig",
    "LoggingConfig",
    "ResolvedConfig",
    "RetrySettings",
    "ReviewRequest",
    "ReviewStyle",
    "ReviewType",
    "TokenUsage",
]
