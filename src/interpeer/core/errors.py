"""Error taxonomy for the review router.

Every error raised out of the router carries the id of the agent it was
routed to, so callers fanning out across agents can attribute failures.
"""

from __future__ import annotations

from typing import Optional


class InterpeerError(Exception):
    """Base class for all interpeer failures."""

    def __init__(self, message: str, agent: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.agent = agent

    def __str__(self) -> str:
        if self.agent:
            return f"[{self.agent}] {self.message}"
        return self.message


class ValidationError(InterpeerError):
    """A request field is malformed. Raised before any external call."""


class ConfigError(InterpeerError):
    """An explicitly requested config file could not be read or parsed."""


class AgentRegistryError(ConfigError):
    """Invalid change to the agent registry."""


class ReservedAgentError(AgentRegistryError):
    pass


class DuplicateAgentError(AgentRegistryError):
    pass


class AgentNotFoundError(AgentRegistryError):
    pass


class AvailabilityError(InterpeerError):
    """The agent's command is missing or failed its version probe."""


class AdapterError(InterpeerError):
    """The SDK call or subprocess invocation failed."""


class ResourceReadError(InterpeerError):
    """A resource path could not be read into the request content."""
