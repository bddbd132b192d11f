"""MCP server exposing the tool registry over stdio.

Protocol handling and the stdio transport come from the ``mcp`` SDK; this
module only bridges ``tools/list`` and ``tools/call`` onto flupp.mcp.tools.
Logs go to stderr; stdout carries only protocol messages.
"""

import asyncio
import json
import logging
import sys
from typing import Any

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from flupp.config import settings
from flupp.mcp.client import FluppApiError, FluppClient
from flupp.mcp.tools import ToolError, call_tool, list_tools

logger = logging.getLogger(__name__)


def _text(payload: Any) -> list[types.TextContent]:
    text = payload if isinstance(payload, str) else json.dumps(payload, indent=2)
    return [types.TextContent(type="text", text=text)]


def create_server(client: FluppClient) -> Server:
    """Build the MCP server; tool calls go through ``client``."""
    server = Server("flupp", version=settings.app_version)

    @server.list_tools()
    async def handle_list_tools() -> list[types.Tool]:
        return [
            types.Tool(
                name=spec["name"],
                description=spec["description"],
                inputSchema=spec["inputSchema"],
            )
            for spec in list_tools()
        ]

    @server.call_tool()
    async def handle_call_tool(name: str, arguments: dict | None) -> list[types.TextContent]:
        try:
            return _text(await call_tool(name, arguments, client))
        except (ToolError, FluppApiError) as e:
            # The SDK turns this into an isError result
            logger.info("Tool %s failed: %s", name, e)
            raise

    return server


async def _run() -> None:
    async with FluppClient() as client:
        server = create_server(client)
        logger.info("Flupp tool server ready (API at %s)", client.base_url)
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())


def main() -> None:
    logging.basicConfig(level=settings.log_level.upper(), stream=sys.stderr)
    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
