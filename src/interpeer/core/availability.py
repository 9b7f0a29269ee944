"""Availability probing for CLI-backed agents."""

from __future__ import annotations

import logging
import subprocess
from typing import Optional

from .errors import AvailabilityError

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_SECONDS = 30


class AvailabilityProber:
    """Runs ``<command> --version`` once per agent and remembers success.

    A successful probe is never repeated for the lifetime of the prober, even
    if the binary is later removed; a call after that point fails through the
    adapter instead.
    """

    def __init__(self) -> None:
        self._checked: set[str] = set()

    def is_checked(self, agent_id: str) -> bool:
        return agent_id in self._checked

    def reset(self) -> None:
        self._checked.clear()

    def ensure_available(self, agent_id: str, command: str, label: Optional[str] = None) -> None:
        if agent_id in self._checked:
            return

        label = label or agent_id
        try:
            result = subprocess.run(
                [command, "--version"],
                capture_output=True,
                text=True,
                timeout=PROBE_TIMEOUT_SECONDS,
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise AvailabilityError(_guidance(label, command, str(e)), agent=agent_id) from e

        if result.returncode != 0:
            detail = (result.stderr or "").strip() or f"exit code {result.returncode}"
            raise AvailabilityError(_guidance(label, command, detail), agent=agent_id)

        logger.debug("%s available: %s", label, (result.stdout or "").strip())
        self._checked.add(agent_id)


def _guidance(label: str, command: str, detail: str) -> str:
    return (
        f"{label} not available. Ensure the '{command}' CLI is installed, on your PATH, "
        f"and authenticated (run '{command} --version' to check). Underlying error: {detail}"
    )
