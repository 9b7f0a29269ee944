"""Factory Droid adapter (``factory ask``)."""

from __future__ import annotations

from ..core.prompts import PromptBundle, build_cross_agent_prompt
from ..models.config import FactoryAgentConfig
from ..models.result import AgentReviewResult
from .base import BaseAdapter, run_cli_command


class FactoryDroidAdapter(BaseAdapter):
    label = "Factory CLI"

    config: FactoryAgentConfig

    def build_args(self, prompt: str) -> list[str]:
        return ["ask", "--format", self.config.format, *self.config.extra_args, prompt]

    async def review(self, bundle: PromptBundle, model: str) -> AgentReviewResult:
        args = self.build_args(build_cross_agent_prompt(bundle))
        stdout = await run_cli_command(
            self.config.command, args, self.project_root, self.label, self.agent_id
        )
        # The droid picks its own model; the configured id is only reported back.
        return self._result(model, stdout)
