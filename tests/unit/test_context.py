"""Tests for core/context.py."""

from __future__ import annotations

from interpeer.core.availability import AvailabilityProber
from interpeer.core.context import InterpeerContext
from interpeer.models.result import AgentReviewResult


class TestInterpeerContext:
    def test_config_is_memoized(self, tmp_project, write_config):
        context = InterpeerContext(tmp_project, environ={})
        first = context.config
        write_config({"agents": {"claude": {"model": "opus"}}})
        assert context.config is first
        assert context.registry is context.registry

    def test_default_overrides_reload(self, tmp_project):
        context = InterpeerContext(tmp_project, environ={"INTERPEER_DEFAULT_MODEL": "opus"})
        assert context.config.defaults.model == "opus"

        context.set_default_agent("codex_cli")
        context.set_default_model("o3")
        assert context.config.defaults.agent == "codex_cli"
        assert context.config.defaults.model == "o3"

        context.set_default_model("  ")
        assert context.config.defaults.model is None

    def test_environ_is_snapshotted(self, tmp_project):
        env = {"INTERPEER_CLAUDE_MODEL": "haiku"}
        context = InterpeerContext(tmp_project, environ=env)
        env["INTERPEER_CLAUDE_MODEL"] = "opus"
        assert context.config.agents["claude"].model == "haiku"

    def test_set_project_root_clears_cache(self, tmp_project, tmp_path):
        context = InterpeerContext(tmp_project, environ={})
        context.cache.put("k", AgentReviewResult(agent="a", model="m", text="t"), 5)
        other = tmp_path / "other"
        other.mkdir()

        context.set_project_root(other)

        assert context.project_root == other.resolve()
        assert len(context.cache) == 0

    def test_reset(self, tmp_project):
        prober = AvailabilityProber()
        prober._checked.add("codex_cli")
        context = InterpeerContext(tmp_project, environ={}, prober=prober)
        context.set_default_agent("factory_droid")

        context.reset()

        assert context.config.defaults.agent == "claude_code"
        assert not prober.is_checked("codex_cli")
