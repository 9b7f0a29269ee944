"""Agent registry: maps routing ids to adapter definitions.

Built-in agents are addressed by their routing id (``claude_code``) while
their settings live under a shorter config key (``claude``). Custom agents
registered through the config file use the same id for both.

The mutation helpers at the bottom operate on the raw config-file dict and
are what the management CLI uses; they never touch the filesystem.
"""

from __future__ import annotations

import copy
import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..adapters.base import BaseAdapter
from ..adapters.claude_code import ClaudeCodeAdapter
from ..adapters.codex_cli import CodexCliAdapter
from ..adapters.custom import CustomCliAdapter
from ..adapters.factory_droid import FactoryDroidAdapter
from ..models.config import AgentAdapterConfig, ResolvedConfig
from .config import RESERVED_AGENT_IDS
from .errors import (
    AgentNotFoundError,
    AgentRegistryError,
    ConfigError,
    DuplicateAgentError,
    ReservedAgentError,
)

AGENT_ID_PATTERN = re.compile(r"^[a-z0-9_-]+$")


@dataclass(frozen=True)
class BuiltinAgent:
    agent_id: str
    config_key: str
    label: str
    adapter_cls: type[BaseAdapter]


BUILTIN_AGENTS: dict[str, BuiltinAgent] = {
    "claude_code": BuiltinAgent("claude_code", "claude", "Claude Code", ClaudeCodeAdapter),
    "codex_cli": BuiltinAgent("codex_cli", "codex", "Codex CLI", CodexCliAdapter),
    "factory_droid": BuiltinAgent("factory_droid", "factory", "Factory CLI", FactoryDroidAdapter),
}

_BUILTIN_BY_KEY = {agent.config_key: agent for agent in BUILTIN_AGENTS.values()}


@dataclass(frozen=True)
class AgentEntry:
    agent_id: str
    config_key: str
    config: AgentAdapterConfig
    adapter: BaseAdapter

    @property
    def label(self) -> str:
        return self.adapter.label

    @property
    def probe_command(self) -> Optional[str]:
        return self.adapter.probe_command


class AgentRegistry:
    def __init__(self, entries: dict[str, AgentEntry]):
        self._entries = entries

    @classmethod
    def from_config(cls, config: ResolvedConfig, project_root: Path) -> "AgentRegistry":
        entries: dict[str, AgentEntry] = {}
        for key, agent_config in config.agents.items():
            builtin = _BUILTIN_BY_KEY.get(key)
            if builtin:
                agent_id = builtin.agent_id
                adapter = builtin.adapter_cls(agent_id, agent_config, project_root, builtin.label)
            else:
                agent_id = key
                adapter = CustomCliAdapter(agent_id, agent_config, project_root, key)
            entries[agent_id] = AgentEntry(agent_id, key, agent_config, adapter)
        return cls(entries)

    def get(self, agent_id: str) -> AgentEntry:
        entry = self._entries.get(agent_id)
        if entry is None:
            raise AgentNotFoundError(
                f"Agent '{agent_id}' not found. Known agents: {', '.join(self.ids())}",
                agent=agent_id,
            )
        return entry

    def ids(self) -> list[str]:
        builtin = [a for a in BUILTIN_AGENTS if a in self._entries]
        custom = [a for a in self._entries if a not in BUILTIN_AGENTS]
        return builtin + custom

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._entries


# ---------------------------------------------------------------------------
# Config-file mutations (used by the management CLI)
# ---------------------------------------------------------------------------


def validate_agent_id(value: str, flag: str = "--id") -> str:
    trimmed = (value or "").strip()
    if not trimmed:
        raise AgentRegistryError(f"{flag} cannot be empty")
    if not AGENT_ID_PATTERN.match(trimmed):
        raise AgentRegistryError(
            f"{flag} must use lowercase letters, numbers, underscores, or hyphens"
        )
    return trimmed


def add_agent(
    overrides: dict,
    merged: ResolvedConfig,
    agent_id: str,
    command: str,
    model: str,
    retry: Optional[dict] = None,
) -> dict:
    """Register a custom CLI agent. Returns the updated overrides."""
    if agent_id in RESERVED_AGENT_IDS:
        raise ReservedAgentError(
            f"Agent id '{agent_id}' is a reserved id. "
            "Use set-agent to customize built-in adapters."
        )
    existing = overrides.get("agents") or {}
    if agent_id in merged.agents or agent_id in existing:
        raise DuplicateAgentError(
            f"Agent '{agent_id}' already exists. Use set-agent to update it "
            "or remove-agent to delete the override."
        )

    updated = copy.deepcopy(overrides)
    entry: dict = {"command": command, "model": model}
    if retry:
        entry["retry"] = dict(retry)
    updated.setdefault("agents", {})[agent_id] = entry
    return updated


def set_agent(
    overrides: dict,
    merged: ResolvedConfig,
    agent_id: str,
    command: Optional[str] = None,
    model: Optional[str] = None,
) -> dict:
    """Override the command and/or model of an existing agent."""
    if agent_id not in merged.agents:
        raise AgentNotFoundError(
            f"Agent '{agent_id}' is not defined. Use add-agent to register new agents first."
        )

    updated = copy.deepcopy(overrides)
    target = updated.setdefault("agents", {}).setdefault(agent_id, {})
    if command:
        target["command"] = command
    if model:
        target["model"] = model
    return updated


def remove_agent(overrides: dict, agent_id: str) -> dict:
    """Delete an agent override from the config file."""
    agents = overrides.get("agents") or {}
    if agent_id not in agents:
        raise AgentNotFoundError(f"Agent '{agent_id}' not found in config")

    updated = copy.deepcopy(overrides)
    del updated["agents"][agent_id]
    return updated


def set_defaults(overrides: dict, agent: Optional[str] = None, model: Optional[str] = None) -> dict:
    """Update the default agent and/or model. An empty model clears it."""
    if not agent and model is None:
        raise AgentRegistryError("Nothing to update. Provide --agent, --model, or both.")

    updated = copy.deepcopy(overrides)
    defaults = updated.setdefault("defaults", {})

    if agent:
        if agent not in BUILTIN_AGENTS:
            raise AgentRegistryError(
                f"Unsupported agent '{agent}'. Valid agents: {', '.join(BUILTIN_AGENTS)}"
            )
        defaults["agent"] = agent

    if model is not None:
        trimmed = model.strip()
        if trimmed:
            defaults["model"] = trimmed
        else:
            defaults.pop("model", None)
    return updated


def load_config_overrides(path: Path) -> dict:
    """Read the config file for editing. Unlike loading, errors are fatal here."""
    if not path.exists():
        return {}
    try:
        raw = path.read_text(encoding="utf-8-sig")
        data = json.loads(raw) if raw.strip() else {}
    except (OSError, ValueError) as e:
        raise ConfigError(f"Failed to read config file at {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Failed to read config file at {path}: expected a JSON object")
    return data


def save_config_file(path: Path, data: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    return path
