"""
MCP Server — Expose the claim operation as a tool over stdio.

One tool, ``safe_claim``, taking ``task_id``, ``owner`` and an optional
``team``. The result is always a single text item holding the boundary
string (``Claimed task ...`` or ``Error: ...``); claim failures are never
raised to the transport.

stdout carries the protocol, so all logging must go to stderr.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .claim import TaskClaimer

logger = logging.getLogger(__name__)

SERVER_NAME = "safe-task-claim"

INSTRUCTIONS = (
    "Safe task claiming with file locking. Use safe_claim before starting "
    "work on any task to prevent race conditions."
)

SAFE_CLAIM_TOOL = Tool(
    name="safe_claim",
    description=(
        "Atomically claim a task with file locking. Rejects if already "
        "claimed, in_progress, completed or deleted."
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "task_id": {
                "type": "string",
                "description": "Task ID to claim",
            },
            "owner": {
                "type": "string",
                "description": "Agent name claiming the task",
            },
            "team": {
                "type": "string",
                "description": "Team name (defaults to the first team directory)",
            },
        },
        "required": ["task_id", "owner"],
    },
)


def handle_safe_claim(claimer: TaskClaimer, arguments: dict[str, Any]) -> str:
    """Run one claim from raw tool arguments and return the boundary string."""
    task_id = arguments.get("task_id")
    owner = arguments.get("owner")
    team = arguments.get("team") or None

    if not isinstance(task_id, str) or not task_id:
        return "Error: task_id is required"
    if not isinstance(owner, str) or not owner:
        return "Error: owner is required"
    if team is not None and not isinstance(team, str):
        return "Error: team must be a string"

    logger.info("safe_claim task_id=%s owner=%s team=%s", task_id, owner, team)
    return claimer.safe_claim(task_id, owner, team)


def create_server(claimer: TaskClaimer) -> Server:
    """Build the MCP server bound to ``claimer``."""
    server = Server(SERVER_NAME, instructions=INSTRUCTIONS)

    @server.list_tools()  # type: ignore[misc]
    async def list_tools() -> list[Tool]:
        return [SAFE_CLAIM_TOOL]

    @server.call_tool()  # type: ignore[misc]
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        if name != SAFE_CLAIM_TOOL.name:
            text = f"Error: unknown tool {name}"
        else:
            # Lock acquisition blocks; keep it off the event loop
            text = await asyncio.to_thread(handle_safe_claim, claimer, arguments or {})
        return [TextContent(type="text", text=text)]

    return server


async def serve(claimer: TaskClaimer) -> None:
    """Serve over stdio until the client disconnects."""
    server = create_server(claimer)
    logger.info("Serving %s over stdio (base dir %s)", SERVER_NAME, claimer.base_dir)
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream, write_stream, server.create_initialization_options()
        )


def main(claimer: TaskClaimer) -> None:
    asyncio.run(serve(claimer))
