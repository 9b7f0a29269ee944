"""Error message sanitization for tool responses."""

from __future__ import annotations

import os
import re
from typing import Mapping, Optional


def sanitize_error(message: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """Strip API keys, bearer tokens, and the user's home path from a message.

    Agent CLIs echo their own stderr into failures, which can include
    credentials; these messages are returned to the calling agent verbatim.
    """
    if not message:
        return message

    env = os.environ if environ is None else environ
    sanitized = message
    sanitized = re.sub(r"sk-ant-[a-zA-Z0-9_-]+", "[REDACTED_KEY]", sanitized)
    sanitized = re.sub(r"sk-[a-zA-Z0-9_-]{20,}", "[REDACTED_KEY]", sanitized)
    sanitized = re.sub(r"fk-[a-zA-Z0-9_-]{20,}", "[REDACTED_KEY]", sanitized)
    sanitized = re.sub(r"Bearer\s+\S+", "Bearer [REDACTED]", sanitized)
    sanitized = re.sub(r"(?i)(x-api-key|api-key|authorization):\s*\S+", r"\1: [REDACTED]", sanitized)
    sanitized = re.sub(
        r"((?:ANTHROPIC|OPENAI|FACTORY)_API_KEY)=\S+", r"\1=[REDACTED]", sanitized
    )

    home = env.get("USERPROFILE") or env.get("HOME") or ""
    if home and home != "/":
        sanitized = sanitized.replace(home, "~")

    return sanitized
