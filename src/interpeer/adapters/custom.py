"""Adapter for user-registered CLI agents."""

from __future__ import annotations

from ..core.prompts import PromptBundle, build_cross_agent_prompt
from ..models.config import CustomAgentConfig
from ..models.result import AgentReviewResult
from .base import BaseAdapter, run_cli_command


class CustomCliAdapter(BaseAdapter):
    config: CustomAgentConfig

    def build_args(self, prompt: str, model: str) -> list[str]:
        args = [
            arg.replace("{model}", model).replace("{prompt}", prompt)
            for arg in self.config.args
        ]
        if not any("{prompt}" in arg for arg in self.config.args):
            args.append(prompt)
        return args

    async def review(self, bundle: PromptBundle, model: str) -> AgentReviewResult:
        args = self.build_args(build_cross_agent_prompt(bundle), model)
        stdout = await run_cli_command(
            self.config.command, args, self.project_root, self.label, self.agent_id
        )
        return self._result(model, stdout)
