"""Claude Code adapter via the Claude Agent SDK."""

from __future__ import annotations

from claude_agent_sdk import (
    AssistantMessage,
    ClaudeAgentOptions,
    ClaudeSDKError,
    ResultMessage,
    TextBlock,
    query,
)

from ..core.errors import AdapterError
from ..core.prompts import PromptBundle
from ..models.config import ClaudeAgentConfig
from ..models.result import AgentReviewResult, TokenUsage
from .base import BaseAdapter


class ClaudeCodeAdapter(BaseAdapter):
    label = "Claude Code"
    uses_subprocess = False

    config: ClaudeAgentConfig

    def _build_options(self, bundle: PromptBundle, model: str) -> ClaudeAgentOptions:
        system_prompt = bundle.system
        if self.config.custom_system_prompt:
            system_prompt = f"{self.config.custom_system_prompt}\n\n{bundle.system}"

        options = ClaudeAgentOptions(
            model=model,
            system_prompt=system_prompt,
            cwd=str(self.project_root),
            max_turns=1,
            allowed_tools=[],
        )
        if self.config.setting_sources:
            options.setting_sources = [s.value for s in self.config.setting_sources]
        if self.config.command:
            options.cli_path = self.config.command
        return options

    async def review(self, bundle: PromptBundle, model: str) -> AgentReviewResult:
        options = self._build_options(bundle, model)

        chunks: list[str] = []
        final_text = None
        usage = None
        try:
            async for message in query(prompt=bundle.user, options=options):
                if isinstance(message, AssistantMessage):
                    for block in message.content:
                        if isinstance(block, TextBlock):
                            chunks.append(block.text)
                elif isinstance(message, ResultMessage):
                    if message.is_error:
                        raise AdapterError(
                            f"{self.label} reported an error: {message.result or message.subtype}",
                            agent=self.agent_id,
                        )
                    final_text = message.result
                    usage = _usage_from_result(message.usage)
        except ClaudeSDKError as e:
            raise AdapterError(f"{self.label} request failed: {e}", agent=self.agent_id) from e

        text = final_text if final_text is not None else "".join(chunks)
        return self._result(model, text, usage)


def _usage_from_result(raw: dict | None) -> TokenUsage | None:
    if not raw:
        return None
    input_tokens = raw.get("input_tokens")
    output_tokens = raw.get("output_tokens")
    total = None
    if input_tokens is not None or output_tokens is not None:
        total = (input_tokens or 0) + (output_tokens or 0)
    return TokenUsage(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=total,
    )
