"""Logging setup for the interpeer entry points.

stdout carries the MCP stdio transport, so every handler writes to stderr.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOG_LEVEL_ENV = "INTERPEER_LOG_LEVEL"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    resolved = (level or os.environ.get(LOG_LEVEL_ENV) or "INFO").upper()
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger("interpeer")
    root.handlers = [handler]
    root.setLevel(getattr(logging, resolved, logging.INFO))
    root.propagate = False
    return root
