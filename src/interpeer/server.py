"""MCP stdio server exposing the ``interpeer_review`` tool."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import mcp.types as types
from dotenv import dotenv_values
from mcp.server.lowlevel import NotificationOptions, Server
from mcp.server.stdio import stdio_server

from . import __version__
from .core.context import InterpeerContext
from .core.errors import InterpeerError
from .core.router import METRICS_EVENT, Router
from .models.request import ReviewRequest, ReviewStyle, ReviewType
from .utils.logging import setup_logging
from .utils.sanitize import sanitize_error

logger = logging.getLogger(__name__)

SERVER_NAME = "interpeer-mcp"
TOOL_NAME = "interpeer_review"
PROJECT_ROOT_ENV = "INTERPEER_PROJECT_ROOT"
BUILTIN_TARGETS = ["claude_code", "codex_cli", "factory_droid"]

Notifier = Callable[[types.LoggingLevel, str, dict], Awaitable[None]]


def build_tool() -> types.Tool:
    return types.Tool(
        name=TOOL_NAME,
        title="Request peer review through Interpeer",
        description=(
            "Ask another agent (Claude Code, Codex CLI, Factory Droid) to review code, "
            "designs, or approaches using interpeer conventions"
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "content": {
                    "type": "string",
                    "minLength": 1,
                    "description": "Primary text (code, design doc, etc.) the peer reviewer should analyze",
                },
                "focus": {
                    "type": "array",
                    "items": {"type": "string", "minLength": 1},
                    "description": "Optional focus areas like security, architecture, performance",
                },
                "style": {
                    "type": "string",
                    "enum": [s.value for s in ReviewStyle],
                    "description": "Whether the response should follow the interpeer structure",
                },
                "time_budget_seconds": {
                    "type": "integer",
                    "minimum": 30,
                    "maximum": 600,
                    "description": "Time budget hint for the downstream agent",
                },
                "review_type": {
                    "type": "string",
                    "enum": [t.value for t in ReviewType],
                    "description": "Template to apply (general by default)",
                },
                "target_agent": {
                    "type": "string",
                    "enum": BUILTIN_TARGETS,
                    "description": "Agent that should produce the second opinion",
                },
                "target_model": {
                    "type": "string",
                    "description": "Override the model identifier for the selected agent",
                },
                "resource_paths": {
                    "type": "array",
                    "items": {"type": "string", "minLength": 1},
                    "description": "File paths relative to the project root to include in the review",
                },
            },
            "required": ["content"],
        },
    )


async def handle_review(
    router: Router,
    arguments: Optional[dict[str, Any]],
    notify: Optional[Notifier] = None,
) -> types.CallToolResult:
    """Run one review and turn the outcome into a tool result.

    Failures never propagate to the transport: they come back as an error
    payload naming the agent the request was routed to.
    """
    arguments = arguments or {}
    try:
        request = ReviewRequest.parse(arguments)
        routed = await router.route_with_metrics(request)
    except InterpeerError as e:
        agent = e.agent or arguments.get("target_agent") or router.context.config.defaults.agent
        message = sanitize_error(e.message, router.context.environ)
        logger.error("Peer review via %s failed: %s", agent, message)
        if notify:
            await notify("error", "Failed to generate peer review.", {"agent": agent, "error": message})
        return types.CallToolResult(
            content=[types.TextContent(type="text", text=f"Peer review failed: {message}")],
            isError=True,
            **{"_meta": {"agent": agent, "error": True}},
        )

    result = routed.result
    usage = result.usage.model_dump() if result.usage else None
    cache = result.cache_status.value if result.cache_status else None
    if notify:
        if routed.metrics is not None:
            await notify("info", METRICS_EVENT, routed.metrics)
        await notify(
            "info",
            f"{result.agent} second opinion generated successfully.",
            {"agent": result.agent, "model": result.model, "cache": cache},
        )

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=result.text)],
        isError=False,
        **{"_meta": {"agent": result.agent, "model": result.model, "usage": usage, "cache": cache}},
    )


def load_environment(project_root: Path) -> dict[str, str]:
    """Process environment layered over the project's ``.env`` file."""
    env_file = project_root / ".env"
    values: dict[str, str] = {}
    if env_file.is_file():
        values = {k: v for k, v in dotenv_values(env_file).items() if v is not None}
    values.update(os.environ)
    return values


def create_server(router: Router) -> Server:
    server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [build_tool()]

    @server.set_logging_level()
    async def set_logging_level(level: types.LoggingLevel) -> None:
        logger.debug("Client requested log level %s", level)

    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        if name != TOOL_NAME:
            return types.CallToolResult(
                content=[types.TextContent(type="text", text=f"Unknown tool: {name}")],
                isError=True,
            )
        session = server.request_context.session

        async def notify(level: types.LoggingLevel, message: str, data: dict) -> None:
            await session.send_log_message(
                level=level, data={"message": message, **data}, logger=SERVER_NAME
            )

        return await handle_review(router, arguments, notify)

    return server


def resolve_project_root(project_root: Optional[str] = None) -> Path:
    chosen = project_root or os.environ.get(PROJECT_ROOT_ENV) or os.getcwd()
    return Path(chosen).expanduser().resolve()


async def serve(
    project_root: Optional[str] = None,
    config_path: Optional[str] = None,
    default_agent: Optional[str] = None,
    default_model: Optional[str] = None,
) -> None:
    root = resolve_project_root(project_root)
    context = InterpeerContext(root, environ=load_environment(root), config_path=config_path)
    if default_agent:
        context.set_default_agent(default_agent)
    if default_model is not None:
        context.set_default_model(default_model)

    # Surface config problems at startup rather than on the first call.
    config = context.config
    router = Router(context)
    server = create_server(router)

    logger.info(
        "Interpeer MCP server starting (project root %s, default agent %s)",
        root,
        config.defaults.agent,
    )
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(NotificationOptions()),
        )


def main() -> None:
    setup_logging()
    asyncio.run(serve())


if __name__ == "__main__":
    main()
