"""Tests for core/router.py."""

from __future__ import annotations

import asyncio
import logging
import stat
import sys
from pathlib import Path

import pytest

from interpeer.core.errors import (
    AdapterError,
    AgentNotFoundError,
    AvailabilityError,
    ResourceReadError,
)
from interpeer.core.router import Router
from interpeer.models.request import ReviewRequest
from interpeer.models.result import AgentReviewResult, CacheStatus, TokenUsage


def _request(**overrides) -> ReviewRequest:
    return ReviewRequest.parse({"content": "def add(a, b): return a + b", **overrides})


class TestRouting:
    @pytest.mark.asyncio
    async def test_defaults_to_claude_code(self, make_context, stub_agent):
        context = make_context()
        review = stub_agent(context, "claude_code")

        result = await Router(context).route(_request())

        assert result.agent == "claude_code"
        assert result.model == "sonnet"
        assert result.cache_status == CacheStatus.MISS
        review.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_bundle_passed_to_adapter(self, make_context, stub_agent):
        context = make_context()
        review = stub_agent(context, "codex_cli")

        await Router(context).route(_request(target_agent="codex_cli", focus=["naming"]))

        bundle, model = review.await_args.args
        assert "- naming" in bundle.user
        assert "def add(a, b)" in bundle.user
        assert model == "gpt-5-codex"

    @pytest.mark.asyncio
    async def test_default_agent_override(self, make_context, stub_agent):
        context = make_context()
        context.set_default_agent("factory_droid")
        stub_agent(context, "factory_droid")

        result = await Router(context).route(_request())
        assert result.agent == "factory_droid"

    @pytest.mark.asyncio
    async def test_custom_agent_is_routable(self, make_context, stub_agent, write_config):
        write_config({"agents": {"openrouter": {"command": "or", "model": "anthropic/claude"}}})
        context = make_context()
        stub_agent(context, "openrouter")

        result = await Router(context).route(_request(target_agent="openrouter"))

        assert result.agent == "openrouter"
        assert result.model == "anthropic/claude"

    @pytest.mark.asyncio
    async def test_unknown_agent(self, make_context):
        with pytest.raises(AgentNotFoundError) as exc_info:
            await Router(make_context()).route(_request(target_agent="gemini"))
        assert exc_info.value.agent == "gemini"


class TestModelResolution:
    def test_explicit_model_wins(self, make_context):
        router = Router(make_context({"INTERPEER_DEFAULT_MODEL": "opus"}))
        request = _request(target_model=" o3 ")
        assert router.resolve_model(request, "codex_cli") == "o3"

    def test_default_model_when_agent_not_given(self, make_context):
        router = Router(make_context({"INTERPEER_DEFAULT_MODEL": "opus"}))
        assert router.resolve_model(_request(), "claude_code") == "opus"

    def test_agent_model_when_agent_given(self, make_context):
        router = Router(make_context({"INTERPEER_DEFAULT_MODEL": "opus"}))
        request = _request(target_agent="claude_code")
        assert router.resolve_model(request, "claude_code") == "sonnet"

    def test_blank_target_model_ignored(self, make_context):
        router = Router(make_context())
        request = _request(target_agent="codex_cli", target_model="   ")
        assert router.resolve_model(request, "codex_cli") == "gpt-5-codex"

    def test_cleared_default_model(self, make_context):
        context = make_context({"INTERPEER_DEFAULT_MODEL": "opus"})
        context.set_default_model("")
        assert Router(context).resolve_model(_request(), "claude_code") == "sonnet"


class TestCaching:
    @pytest.mark.asyncio
    async def test_second_identical_request_hits(self, make_context, stub_agent):
        context = make_context()
        review = stub_agent(context, "codex_cli")
        router = Router(context)

        first = await router.route(_request(target_agent="codex_cli"))
        second = await router.route(_request(target_agent="codex_cli"))

        assert first.cache_status == CacheStatus.MISS
        assert second.cache_status == CacheStatus.HIT
        assert second.text == first.text
        assert review.await_count == 1

    @pytest.mark.asyncio
    async def test_hit_returns_a_copy(self, make_context, stub_agent):
        context = make_context()
        stub_agent(context, "codex_cli", text="original")
        router = Router(context)

        first = await router.route(_request(target_agent="codex_cli"))
        first.text = "tampered"
        second = await router.route(_request(target_agent="codex_cli"))
        second.text = "tampered again"
        third = await router.route(_request(target_agent="codex_cli"))

        assert third.text == "original"

    @pytest.mark.asyncio
    async def test_model_change_misses(self, make_context, stub_agent):
        context = make_context()
        review = stub_agent(context, "codex_cli")
        router = Router(context)

        await router.route(_request(target_agent="codex_cli"))
        await router.route(_request(target_agent="codex_cli", target_model="o3"))

        assert review.await_count == 2

    @pytest.mark.asyncio
    async def test_ttl_expiry(self, make_context, stub_agent, clock):
        context = make_context({"INTERPEER_CACHE_TTL_MS": "1000"})
        review = stub_agent(context, "codex_cli")
        router = Router(context)

        await router.route(_request(target_agent="codex_cli"))
        clock[0] += 1000
        at_boundary = await router.route(_request(target_agent="codex_cli"))
        clock[0] += 1
        expired = await router.route(_request(target_agent="codex_cli"))

        assert at_boundary.cache_status == CacheStatus.HIT
        assert expired.cache_status == CacheStatus.MISS
        assert review.await_count == 2

    @pytest.mark.asyncio
    async def test_cache_disabled(self, make_context, stub_agent):
        context = make_context({"INTERPEER_CACHE_ENABLED": "false"})
        review = stub_agent(context, "codex_cli")
        router = Router(context)

        await router.route(_request(target_agent="codex_cli"))
        result = await router.route(_request(target_agent="codex_cli"))

        assert result.cache_status == CacheStatus.MISS
        assert review.await_count == 2
        assert len(context.cache) == 0

    @pytest.mark.asyncio
    async def test_resource_contents_are_part_of_key(self, make_context, stub_agent, tmp_project):
        context = make_context()
        review = stub_agent(context, "codex_cli")
        router = Router(context)
        request = _request(target_agent="codex_cli", resource_paths=["src/app.py"])

        await router.route(request)
        (tmp_project / "src" / "app.py").write_text("def add(a, b):\n    return a - b\n", encoding="utf-8")
        result = await router.route(request)

        assert result.cache_status == CacheStatus.MISS
        assert review.await_count == 2


class TestFailures:
    @pytest.mark.asyncio
    async def test_failing_cli_agent(self, make_context, stub_agent):
        context = make_context({"INTERPEER_CODEX_MAX_RETRIES": "2"})
        review = stub_agent(
            context,
            "codex_cli",
            side_effect=AdapterError("Codex CLI command failed: boom", agent="codex_cli"),
        )

        with pytest.raises(AdapterError, match="boom") as exc_info:
            await Router(context).route(_request(target_agent="codex_cli"))

        assert exc_info.value.agent == "codex_cli"
        assert review.await_count == 2
        assert len(context.cache) == 0

    @pytest.mark.asyncio
    async def test_unexpected_errors_wrapped(self, make_context, stub_agent):
        context = make_context({"INTERPEER_CODEX_MAX_RETRIES": "1"})
        stub_agent(context, "codex_cli", side_effect=RuntimeError("kaboom"))

        with pytest.raises(AdapterError, match="kaboom") as exc_info:
            await Router(context).route(_request(target_agent="codex_cli"))

        assert exc_info.value.agent == "codex_cli"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_subprocess_agents_are_probed(self, make_context, stub_agent, fake_prober):
        context = make_context()
        stub_agent(context, "codex_cli")

        await Router(context).route(_request(target_agent="codex_cli"))

        fake_prober.ensure_available.assert_called_once_with("codex_cli", "codex", "Codex CLI")

    @pytest.mark.asyncio
    async def test_sdk_agent_is_not_probed(self, make_context, stub_agent, fake_prober):
        context = make_context()
        stub_agent(context, "claude_code")

        await Router(context).route(_request(target_agent="claude_code"))

        fake_prober.ensure_available.assert_not_called()

    @pytest.mark.asyncio
    async def test_probe_failure_skips_adapter(self, make_context, stub_agent, fake_prober):
        context = make_context()
        review = stub_agent(context, "factory_droid")
        fake_prober.ensure_available.side_effect = AvailabilityError("Factory CLI not available")

        with pytest.raises(AvailabilityError) as exc_info:
            await Router(context).route(_request(target_agent="factory_droid"))

        assert exc_info.value.agent == "factory_droid"
        review.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unreadable_resource(self, make_context, stub_agent):
        context = make_context()
        review = stub_agent(context, "codex_cli")

        with pytest.raises(ResourceReadError) as exc_info:
            await Router(context).route(
                _request(target_agent="codex_cli", resource_paths=["does/not/exist.py"])
            )

        assert exc_info.value.agent == "codex_cli"
        review.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_resource_error_names_default_agent(self, make_context):
        with pytest.raises(ResourceReadError) as exc_info:
            await Router(make_context()).route(_request(resource_paths=["nope.txt"]))
        assert exc_info.value.agent == "claude_code"


class TestFailingExecutable:
    @pytest.fixture
    def failing_codex(self, tmp_path: Path) -> tuple[Path, Path]:
        calls = tmp_path / "calls.log"
        script = tmp_path / "codex-broken"
        script.write_text(
            "#!/bin/sh\n"
            f"echo run >> '{calls}'\n"
            "echo 'model unavailable' >&2\n"
            "exit 1\n",
            encoding="utf-8",
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR)
        return script, calls

    @pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX shell script")
    @pytest.mark.asyncio
    async def test_command_runs_once_per_attempt(self, make_context, failing_codex, fake_prober):
        script, calls = failing_codex
        context = make_context(
            {"INTERPEER_CODEX_COMMAND": str(script), "INTERPEER_CODEX_MAX_RETRIES": "3"}
        )

        with pytest.raises(AdapterError, match="model unavailable") as exc_info:
            await Router(context).route(_request(target_agent="codex_cli"))

        assert exc_info.value.agent == "codex_cli"
        assert calls.read_text(encoding="utf-8").splitlines() == ["run", "run", "run"]
        assert len(context.cache) == 0
        fake_prober.ensure_available.assert_called_once_with("codex_cli", str(script), "Codex CLI")


class TestMetrics:
    USAGE = TokenUsage(input_tokens=100, output_tokens=20, total_tokens=120)

    @pytest.mark.asyncio
    async def test_usage_redacted_by_default(self, make_context, stub_agent, caplog):
        context = make_context()
        stub_agent(context, "codex_cli", usage=self.USAGE)

        with caplog.at_level(logging.INFO, logger="interpeer.metrics"):
            routed = await Router(context).route_with_metrics(_request(target_agent="codex_cli"))

        assert routed.metrics == {"agent": "codex_cli", "model": "gpt-5-codex", "cache": "miss"}
        assert "interpeer.review.metrics" in caplog.text
        assert "input_tokens" not in caplog.text

    @pytest.mark.asyncio
    async def test_usage_included_when_not_redacted(self, make_context, stub_agent):
        context = make_context({"INTERPEER_LOGGING_REDACT_CONTENT": "false"})
        stub_agent(context, "codex_cli", usage=self.USAGE)

        routed = await Router(context).route_with_metrics(_request(target_agent="codex_cli"))

        assert routed.metrics["usage"] == {
            "input_tokens": 100,
            "output_tokens": 20,
            "total_tokens": 120,
        }

    @pytest.mark.asyncio
    async def test_hits_are_logged(self, make_context, stub_agent):
        context = make_context()
        stub_agent(context, "codex_cli")
        router = Router(context)

        first = await router.route_with_metrics(_request(target_agent="codex_cli"))
        second = await router.route_with_metrics(_request(target_agent="codex_cli"))

        assert first.metrics["cache"] == "miss"
        assert second.metrics["cache"] == "hit"

    @pytest.mark.asyncio
    async def test_logging_disabled(self, make_context, stub_agent, caplog):
        context = make_context({"INTERPEER_LOGGING_ENABLED": "false"})
        stub_agent(context, "codex_cli")

        with caplog.at_level(logging.INFO, logger="interpeer.metrics"):
            routed = await Router(context).route_with_metrics(_request(target_agent="codex_cli"))

        assert routed.metrics is None
        assert routed.result.agent == "codex_cli"
        assert "interpeer.review.metrics" not in caplog.text

    @pytest.mark.asyncio
    async def test_concurrent_requests_keep_their_own_metrics(self, make_context, stub_agent):
        context = make_context()
        slow_done = asyncio.Event()

        async def slow_review(bundle, model):
            await asyncio.sleep(0.05)
            slow_done.set()
            return AgentReviewResult(agent="codex_cli", model=model, text="slow")

        async def fast_review(bundle, model):
            return AgentReviewResult(agent="factory_droid", model=model, text="fast")

        stub_agent(context, "codex_cli", side_effect=slow_review)
        stub_agent(context, "factory_droid", side_effect=fast_review)
        router = Router(context)

        slow, fast = await asyncio.gather(
            router.route_with_metrics(_request(target_agent="codex_cli")),
            router.route_with_metrics(_request(target_agent="factory_droid")),
        )

        assert slow_done.is_set()
        assert slow.metrics["agent"] == slow.result.agent == "codex_cli"
        assert fast.metrics["agent"] == fast.result.agent == "factory_droid"
