"""Codex CLI adapter (``codex exec``)."""

from __future__ import annotations

import logging

from ..core.prompts import PromptBundle, build_cross_agent_prompt
from ..models.config import CodexAgentConfig
from ..models.result import AgentReviewResult
from .base import BaseAdapter, run_cli_command

logger = logging.getLogger(__name__)


class CodexCliAdapter(BaseAdapter):
    label = "Codex CLI"

    config: CodexAgentConfig

    def build_args(self, prompt: str, model: str) -> list[str]:
        args = ["exec", "--model", model]
        if self.config.profile:
            args += ["--profile", self.config.profile]
        args.append(prompt)
        return args

    async def review(self, bundle: PromptBundle, model: str) -> AgentReviewResult:
        args = self.build_args(build_cross_agent_prompt(bundle), model)
        stdout = await run_cli_command(
            self.config.command, args, self.project_root, self.label, self.agent_id
        )
        if self.config.verbose:
            logger.info("%s output:\n%s", self.label, stdout)
        return self._result(model, stdout)
