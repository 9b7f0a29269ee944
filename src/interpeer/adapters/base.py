"""Agent adapter abstraction.

An adapter turns one prompt bundle into one call against a backend agent.
Retries, probing, and caching live in the router so every adapter only has
to implement a single attempt.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from ..core.errors import AdapterError
from ..core.prompts import PromptBundle
from ..models.config import AgentAdapterConfig
from ..models.result import AgentReviewResult, TokenUsage

logger = logging.getLogger(__name__)


@runtime_checkable
class ReviewAdapter(Protocol):
    """Protocol that all agent adapters must implement."""

    agent_id: str
    label: str

    async def review(self, bundle: PromptBundle, model: str) -> AgentReviewResult: ...


class BaseAdapter:
    """Base class with shared config handling and result shaping."""

    label: str = "Agent"
    # SDK-backed adapters report their own structured errors and skip probing.
    uses_subprocess: bool = True

    def __init__(
        self,
        agent_id: str,
        config: AgentAdapterConfig,
        project_root: Path,
        label: Optional[str] = None,
    ):
        self.agent_id = agent_id
        self.config = config
        self.project_root = Path(project_root)
        if label:
            self.label = label

    @property
    def probe_command(self) -> Optional[str]:
        if not self.uses_subprocess:
            return None
        return self.config.command

    async def review(self, bundle: PromptBundle, model: str) -> AgentReviewResult:
        raise NotImplementedError

    def _result(self, model: str, text: str, usage: Optional[TokenUsage] = None) -> AgentReviewResult:
        return AgentReviewResult(
            agent=self.agent_id,
            model=model,
            text=text.strip() or f"{self.label} returned an empty response.",
            usage=usage,
        )


async def run_cli_command(command: str, args: list[str], cwd: Path, label: str, agent_id: str) -> str:
    """Run a CLI to completion and return its stdout."""
    logger.debug("Running %s: %s %s", label, command, " ".join(args[:-1]))
    try:
        process = await asyncio.create_subprocess_exec(
            command,
            *args,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()
    except OSError as e:
        raise AdapterError(f"{label} command failed: {e}", agent=agent_id) from e

    if process.returncode != 0:
        detail = stderr.decode("utf-8", errors="replace").strip()
        raise AdapterError(
            f"{label} command failed: {detail or f'exit code {process.returncode}'}",
            agent=agent_id,
        )
    return stdout.decode("utf-8", errors="replace")
