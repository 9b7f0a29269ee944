"""Review router.

Resolves a review request to an agent and model, serves it from the
response cache when possible, and otherwise dispatches it to the agent's
adapter under the agent's retry policy.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Optional

from ..models.request import ReviewRequest
from ..models.result import AgentReviewResult, CacheStatus
from .cache import build_cache_key
from .context import InterpeerContext
from .errors import AdapterError, InterpeerError
from .prompts import build_prompt_bundle, expand_resources
from .retry import with_retries

logger = logging.getLogger(__name__)
metrics_logger = logging.getLogger("interpeer.metrics")

METRICS_EVENT = "interpeer.review.metrics"


@dataclass(frozen=True)
class RoutedReview:
    """A review result together with the metrics logged for that request."""

    result: AgentReviewResult
    metrics: Optional[dict] = None


class Router:
    def __init__(self, context: InterpeerContext):
        self.context = context

    def resolve_agent(self, request: ReviewRequest) -> str:
        return request.target_agent or self.context.config.defaults.agent

    def resolve_model(self, request: ReviewRequest, agent_id: str) -> str:
        explicit = (request.target_model or "").strip()
        if explicit:
            return explicit
        # The process-wide default model only applies when the caller let the
        # router pick the agent too.
        if not request.target_agent and self.context.config.defaults.model:
            return self.context.config.defaults.model
        return self.context.registry.get(agent_id).config.model

    async def route(self, request: ReviewRequest) -> AgentReviewResult:
        routed = await self.route_with_metrics(request)
        return routed.result

    async def route_with_metrics(self, request: ReviewRequest) -> RoutedReview:
        agent_id = request.target_agent or None
        try:
            agent_id = self.resolve_agent(request)
            return await self._route(request, agent_id)
        except InterpeerError as e:
            if e.agent is None:
                e.agent = agent_id
            raise
        except Exception as e:
            raise AdapterError(str(e) or e.__class__.__name__, agent=agent_id) from e

    async def _route(self, request: ReviewRequest, agent_id: str) -> RoutedReview:
        config = self.context.config
        prepared = await expand_resources(request, self.context.project_root)
        model = self.resolve_model(prepared, agent_id)
        cache_key = build_cache_key(prepared, agent_id, model)

        if config.cache.enabled:
            cached = self.context.cache.get(cache_key, config.cache.ttl_ms)
            if cached is not None:
                logger.debug("Cache hit for %s (%s)", agent_id, model)
                result = cached.result.model_copy(update={"cache_status": CacheStatus.HIT})
                return RoutedReview(result, self._log_metrics(result))

        entry = self.context.registry.get(agent_id)
        if entry.probe_command:
            self.context.prober.ensure_available(agent_id, entry.probe_command, entry.label)

        bundle = build_prompt_bundle(prepared)
        result = await with_retries(
            lambda: entry.adapter.review(bundle, model),
            entry.config.retry,
            entry.label,
        )
        result = result.model_copy(update={"cache_status": CacheStatus.MISS})

        if config.cache.enabled:
            self.context.cache.put(cache_key, result, config.cache.max_entries)

        return RoutedReview(result, self._log_metrics(result))

    def _log_metrics(self, result: AgentReviewResult) -> Optional[dict]:
        logging_config = self.context.config.logging
        if not logging_config.enabled:
            return None

        data: dict = {
            "agent": result.agent,
            "model": result.model,
            "cache": result.cache_status.value if result.cache_status else None,
        }
        if result.usage and not logging_config.redact_content:
            data["usage"] = result.usage.model_dump()

        metrics_logger.info("%s %s", METRICS_EVENT, json.dumps(data, sort_keys=True))
        return data
