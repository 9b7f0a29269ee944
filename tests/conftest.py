"""Shared fixtures for interpeer tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from interpeer.core.availability import AvailabilityProber
from interpeer.core.cache import ResponseCache
from interpeer.core.config import DEFAULT_CONFIG_PATH
from interpeer.core.context import InterpeerContext
from interpeer.models.result import AgentReviewResult, TokenUsage


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """Create a minimal project to review."""
    project = tmp_path / "test-project"
    project.mkdir()
    (project / "src").mkdir()
    (project / "src" / "app.py").write_text("def add(a, b):\n    return a + b\n", encoding="utf-8")
    (project / "README.md").write_text("# Test Project\n", encoding="utf-8")
    return project


@pytest.fixture
def write_config(tmp_project: Path):
    """Write an interpeer config file into the test project."""

    def _write(data, relative: str = DEFAULT_CONFIG_PATH) -> Path:
        path = tmp_project / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        text = data if isinstance(data, str) else json.dumps(data)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def fake_prober() -> MagicMock:
    return MagicMock(spec=AvailabilityProber)


@pytest.fixture
def clock() -> list[float]:
    """Mutable millisecond clock; advance with ``clock[0] += ms``."""
    return [1_000_000.0]


@pytest.fixture
def make_context(tmp_project: Path, fake_prober: MagicMock, clock: list[float]):
    """Build an isolated context with zero retry delay and a controllable clock."""

    def _make(env: Optional[dict] = None, **kwargs) -> InterpeerContext:
        environ = {"INTERPEER_RETRY_DELAY_MS": "0"}
        environ.update(env or {})
        return InterpeerContext(
            tmp_project,
            environ=environ,
            cache=ResponseCache(clock=lambda: clock[0]),
            prober=fake_prober,
            **kwargs,
        )

    return _make


@pytest.fixture
def stub_agent():
    """Replace an agent's adapter call with an AsyncMock."""

    def _stub(
        context: InterpeerContext,
        agent_id: str,
        text: str = "## Strengths\n- Clear naming",
        usage: Optional[TokenUsage] = None,
        side_effect=None,
    ) -> AsyncMock:
        async def _review(bundle, model):
            return AgentReviewResult(agent=agent_id, model=model, text=text, usage=usage)

        mock = AsyncMock(side_effect=side_effect or _review)
        context.registry.get(agent_id).adapter.review = mock
        return mock

    return _stub
