"""Process context owned by the server bootstrap.

Holds everything the router needs across calls: the project root, an
environment snapshot, the lazily resolved config, the response cache, and
the availability memo. Tests build their own contexts instead of sharing
module-level state.

Resetting a context while requests are in flight is not supported.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

from ..models.config import ResolvedConfig
from .availability import AvailabilityProber
from .cache import ResponseCache
from .config import load_config
from .registry import AgentRegistry


class InterpeerContext:
    def __init__(
        self,
        project_root: Path | str,
        environ: Optional[Mapping[str, str]] = None,
        config_path: Optional[str] = None,
        cache: Optional[ResponseCache] = None,
        prober: Optional[AvailabilityProber] = None,
    ):
        self.project_root = Path(project_root).resolve()
        self.environ: dict[str, str] = dict(os.environ if environ is None else environ)
        self.config_path = config_path
        self.cache = cache or ResponseCache()
        self.prober = prober or AvailabilityProber()
        self._default_agent: Optional[str] = None
        self._default_model: Optional[str] = None
        self._clear_model_default = False
        self._config: Optional[ResolvedConfig] = None
        self._registry: Optional[AgentRegistry] = None

    @property
    def config(self) -> ResolvedConfig:
        if self._config is None:
            self._config = load_config(
                self.project_root,
                env=self.environ,
                call_layer=self._call_layer(),
                config_path=self.config_path,
            )
        return self._config

    @property
    def registry(self) -> AgentRegistry:
        if self._registry is None:
            self._registry = AgentRegistry.from_config(self.config, self.project_root)
        return self._registry

    def _call_layer(self) -> dict:
        defaults: dict = {}
        if self._default_agent:
            defaults["agent"] = self._default_agent
        if self._default_model:
            defaults["model"] = self._default_model
        elif self._clear_model_default:
            defaults["model"] = None
        return {"defaults": defaults} if defaults else {}

    def _invalidate(self) -> None:
        self._config = None
        self._registry = None

    def set_default_agent(self, agent: str) -> None:
        self._default_agent = agent
        self._invalidate()

    def set_default_model(self, model: Optional[str]) -> None:
        """Override the default model; ``None`` or blank clears any default."""
        trimmed = (model or "").strip()
        self._default_model = trimmed or None
        self._clear_model_default = not trimmed
        self._invalidate()

    def set_project_root(self, project_root: Path | str) -> None:
        self.project_root = Path(project_root).resolve()
        self._invalidate()
        self.cache.clear()

    def reset(self) -> None:
        self._default_agent = None
        self._default_model = None
        self._clear_model_default = False
        self._invalidate()
        self.cache.clear()
        self.prober.reset()
