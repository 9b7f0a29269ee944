"""Layered configuration for interpeer.

Resolves one configuration from, lowest precedence first:
1. Built-in defaults
2. Project config file (.interpeer/interpeer.config.json)
3. Environment variables (INTERPEER_*)
4. Call-site overrides (programmatic default agent/model)

Each layer is a plain dict shaped like the JSON file; ``resolve_config``
merges them and validates the result, so precedence can be tested without
touching the filesystem or the process environment.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

import pydantic

from ..models.config import (
    AgentAdapterConfig,
    CacheConfig,
    ClaudeAgentConfig,
    CodexAgentConfig,
    CustomAgentConfig,
    DefaultsConfig,
    FactoryAgentConfig,
    LoggingConfig,
    ResolvedConfig,
    SettingSource,
)
from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "INTERPEER_CONFIG_PATH"
DEFAULT_CONFIG_PATH = ".interpeer/interpeer.config.json"
LEGACY_CONFIG_PATH = ".taskmaster/interpeer.config.json"

BUILTIN_AGENT_IDS = ("claude_code", "codex_cli", "factory_droid")
BUILTIN_CONFIG_KEYS = ("claude", "codex", "factory")
RESERVED_AGENT_IDS = frozenset(BUILTIN_CONFIG_KEYS) | frozenset(BUILTIN_AGENT_IDS)
FALLBACK_AGENT_ID = "claude_code"

AGENT_CONFIG_MODELS: dict[str, type[AgentAdapterConfig]] = {
    "claude": ClaudeAgentConfig,
    "codex": CodexAgentConfig,
    "factory": FactoryAgentConfig,
}

DEFAULT_CONFIG: dict = {
    "agents": {
        "claude": {
            "model": "sonnet",
            "retry": {"maxAttempts": 3, "baseDelayMs": 2000},
        },
        "codex": {
            "command": "codex",
            "model": "gpt-5-codex",
            "verbose": False,
            "retry": {"maxAttempts": 3, "baseDelayMs": 2000},
        },
        "factory": {
            "command": "factory",
            "model": "factory-droid",
            "extraArgs": [],
            "format": "markdown",
            "retry": {"maxAttempts": 3, "baseDelayMs": 2000},
        },
    },
    "logging": {"enabled": True, "redactContent": True},
    "cache": {"enabled": True, "ttlMs": 5 * 60 * 1000, "maxEntries": 50},
    "defaults": {"agent": "claude_code"},
}


@dataclass(frozen=True)
class ConfigLocation:
    path: Path
    explicit: bool = False
    legacy: bool = False


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dicts. Arrays are replaced, not merged."""
    result = {}
    for key in base:
        result[key] = base[key]
    for key, value in override.items():
        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            result[key] = deep_merge(base_value, value)
        else:
            result[key] = value
    return result


def resolve_config_path(
    project_root: Path,
    env: Mapping[str, str],
    override: Optional[str] = None,
) -> ConfigLocation:
    """Locate the config file.

    An override argument or INTERPEER_CONFIG_PATH makes the location explicit.
    Otherwise the default path is used, falling back to the legacy
    .taskmaster location when only that file exists.
    """
    requested = (override or "").strip() or env.get(CONFIG_PATH_ENV, "").strip()
    if requested:
        return ConfigLocation(path=(project_root / requested).resolve(), explicit=True)

    default_path = (project_root / DEFAULT_CONFIG_PATH).resolve()
    legacy_path = (project_root / LEGACY_CONFIG_PATH).resolve()
    if not default_path.exists() and legacy_path.exists():
        logger.warning(
            "Using legacy interpeer config at %s. Move it to %s; "
            "the legacy location will stop being read in a future release.",
            legacy_path,
            default_path,
        )
        return ConfigLocation(path=legacy_path, legacy=True)
    return ConfigLocation(path=default_path)


def read_config_file(location: ConfigLocation) -> dict:
    """Read the JSON config file. A missing or empty file yields {}."""
    if not location.path.exists():
        return {}
    try:
        content = location.path.read_text(encoding="utf-8-sig")
        data = json.loads(content) if content.strip() else {}
        if not isinstance(data, dict):
            raise ValueError("top-level value must be a JSON object")
        return data
    except (OSError, ValueError) as e:
        if location.explicit:
            raise ConfigError(
                f"Failed to load interpeer config file at {location.path}: {e}"
            ) from e
        logger.warning(
            "Ignoring unreadable interpeer config file at %s: %s", location.path, e
        )
        return {}


def _env_str(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name, "").strip()
    return value or None


def _env_bool(env: Mapping[str, str], name: str) -> Optional[bool]:
    value = _env_str(env, name)
    if value is None:
        return None
    return value.lower() == "true"


def _env_int(env: Mapping[str, str], name: str, minimum: int) -> Optional[int]:
    value = _env_str(env, name)
    if value is None:
        return None
    try:
        parsed = int(value, 10)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer", name, value)
        return None
    if parsed < minimum:
        logger.warning("Ignoring %s=%r: must be >= %d", name, value, minimum)
        return None
    return parsed


def parse_setting_sources(raw: Optional[str]) -> Optional[list[str]]:
    if not raw:
        return None
    allowed = {s.value for s in SettingSource}
    sources = [s.strip() for s in raw.split(",") if s.strip() in allowed]
    return sources or None


def parse_extra_args(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    return raw.split()


def _put(layer: dict, path: tuple[str, ...], value: object) -> None:
    if value is None:
        return
    node = layer
    for key in path[:-1]:
        node = node.setdefault(key, {})
    node[path[-1]] = value


def env_overrides(env: Mapping[str, str]) -> dict:
    """Build the sparse environment layer: only variables that are set appear."""
    layer: dict = {}

    default_agent = _env_str(env, "INTERPEER_DEFAULT_AGENT")
    if default_agent and default_agent not in BUILTIN_AGENT_IDS:
        logger.warning(
            "Ignoring INTERPEER_DEFAULT_AGENT=%r. Valid agents: %s",
            default_agent,
            ", ".join(BUILTIN_AGENT_IDS),
        )
        default_agent = None
    _put(layer, ("defaults", "agent"), default_agent)
    _put(layer, ("defaults", "model"), _env_str(env, "INTERPEER_DEFAULT_MODEL"))

    global_attempts = _env_int(env, "INTERPEER_MAX_RETRIES", 1)
    global_delay = _env_int(env, "INTERPEER_RETRY_DELAY_MS", 0)

    for key in BUILTIN_CONFIG_KEYS:
        prefix = f"INTERPEER_{key.upper()}_"
        agent = ("agents", key)
        _put(layer, agent + ("model",), _env_str(env, prefix + "MODEL"))
        _put(layer, agent + ("command",), _env_str(env, prefix + "COMMAND"))

        attempts = _env_int(env, prefix + "MAX_RETRIES", 1)
        delay = _env_int(env, prefix + "RETRY_DELAY_MS", 0)
        _put(layer, agent + ("retry", "maxAttempts"), attempts if attempts is not None else global_attempts)
        _put(layer, agent + ("retry", "baseDelayMs"), delay if delay is not None else global_delay)

    _put(
        layer,
        ("agents", "claude", "settingSources"),
        parse_setting_sources(_env_str(env, "INTERPEER_CLAUDE_SETTING_SOURCES")),
    )
    _put(
        layer,
        ("agents", "claude", "customSystemPrompt"),
        _env_str(env, "INTERPEER_CLAUDE_CUSTOM_SYSTEM_PROMPT"),
    )
    _put(layer, ("agents", "codex", "profile"), _env_str(env, "INTERPEER_CODEX_PROFILE"))
    _put(layer, ("agents", "codex", "verbose"), _env_bool(env, "INTERPEER_CODEX_VERBOSE"))
    extra_args = _env_str(env, "INTERPEER_FACTORY_EXTRA_ARGS")
    if extra_args is not None:
        _put(layer, ("agents", "factory", "extraArgs"), parse_extra_args(extra_args))
    _put(layer, ("agents", "factory", "format"), _env_str(env, "INTERPEER_FACTORY_FORMAT"))

    _put(layer, ("logging", "enabled"), _env_bool(env, "INTERPEER_LOGGING_ENABLED"))
    _put(
        layer,
        ("logging", "redactContent"),
        _env_bool(env, "INTERPEER_LOGGING_REDACT_CONTENT"),
    )

    _put(layer, ("cache", "enabled"), _env_bool(env, "INTERPEER_CACHE_ENABLED"))
    _put(layer, ("cache", "ttlMs"), _env_int(env, "INTERPEER_CACHE_TTL_MS", 1))
    _put(layer, ("cache", "maxEntries"), _env_int(env, "INTERPEER_CACHE_MAX_ENTRIES", 1))

    return layer


def _validate_agents(agents: dict) -> dict[str, AgentAdapterConfig]:
    resolved: dict[str, AgentAdapterConfig] = {}
    for key, value in agents.items():
        if not isinstance(value, dict):
            logger.warning("Ignoring agent entry %r: expected an object", key)
            continue
        if key not in AGENT_CONFIG_MODELS and key in RESERVED_AGENT_IDS:
            logger.warning(
                "Ignoring custom agent %r: it is a reserved id. "
                "Configure built-in agents under %s.",
                key,
                ", ".join(BUILTIN_CONFIG_KEYS),
            )
            continue
        model_cls = AGENT_CONFIG_MODELS.get(key, CustomAgentConfig)
        try:
            resolved[key] = model_cls.model_validate(value)
        except pydantic.ValidationError as e:
            if key in AGENT_CONFIG_MODELS:
                raise ConfigError(f"Invalid configuration for agent '{key}': {e}") from e
            logger.warning("Ignoring custom agent %r: %s", key, e)
    return resolved


def routing_ids(agents: Mapping[str, AgentAdapterConfig]) -> list[str]:
    """Routing ids for a set of configured agents, built-ins first."""
    builtin = [
        agent_id
        for agent_id, key in zip(BUILTIN_AGENT_IDS, BUILTIN_CONFIG_KEYS)
        if key in agents
    ]
    return builtin + [key for key in agents if key not in AGENT_CONFIG_MODELS]


def _check_default_agent(defaults_section: dict, agents: dict) -> dict:
    if not isinstance(defaults_section, dict):
        return defaults_section
    agent = defaults_section.get("agent")
    known = routing_ids(agents)
    if agent is None or agent in known:
        return defaults_section
    logger.warning(
        "Ignoring default agent %r: not a configured agent. Valid agents: %s. "
        "Falling back to %s.",
        agent,
        ", ".join(known),
        FALLBACK_AGENT_ID,
    )
    return {**defaults_section, "agent": FALLBACK_AGENT_ID}


def resolve_config(
    defaults: dict,
    file_layer: Optional[dict] = None,
    env_layer: Optional[dict] = None,
    call_layer: Optional[dict] = None,
) -> ResolvedConfig:
    """Merge the configuration layers and validate the result.

    Pure: the same four layers always produce the same ResolvedConfig.
    """
    merged = copy.deepcopy(defaults)
    for layer in (file_layer, env_layer, call_layer):
        if layer:
            merged = deep_merge(merged, layer)

    # An empty default model means "inherit the agent's model".
    defaults_section = merged.get("defaults") or {}
    if defaults_section.get("model") == "":
        defaults_section = {**defaults_section, "model": None}

    agents = _validate_agents(merged.get("agents") or {})
    defaults_section = _check_default_agent(defaults_section, agents)

    try:
        return ResolvedConfig(
            agents=agents,
            logging=LoggingConfig.model_validate(merged.get("logging") or {}),
            cache=CacheConfig.model_validate(merged.get("cache") or {}),
            defaults=DefaultsConfig.model_validate(defaults_section),
        )
    except pydantic.ValidationError as e:
        raise ConfigError(f"Invalid interpeer configuration: {e}") from e


def load_config(
    project_root: Path,
    env: Optional[Mapping[str, str]] = None,
    call_layer: Optional[dict] = None,
    config_path: Optional[str] = None,
) -> ResolvedConfig:
    """Get the fully resolved configuration for a project."""
    env = os.environ if env is None else env
    location = resolve_config_path(Path(project_root), env, override=config_path)
    return resolve_config(
        DEFAULT_CONFIG,
        file_layer=read_config_file(location),
        env_layer=env_overrides(env),
        call_layer=call_layer,
    )
