"""
MCP stdio transport.

Each tool of the MCP server is one capability. The transport has no per-call
credentials: every call runs with the single role configured for the process
(``IKOMA_MCP_ROLE``), and only the capabilities that role may invoke are
listed. Calls still go through the dispatcher, so unlisted names are rejected
and audited like any other request.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from ikoma_mcp import __version__
from ikoma_mcp.core.logging_config import get_logger
from ikoma_mcp.gateway.dispatcher import Dispatcher
from ikoma_mcp.gateway.schemas.domain import Role

logger = get_logger(__name__)

SERVER_NAME = "ikoma-mcp"


class ToolCallFailed(Exception):
    """Raised from ``call_tool`` so the MCP server answers with ``isError``; the message is the JSON result."""


def list_tool_definitions(dispatcher: Dispatcher, role: Role) -> List[types.Tool]:
    registry = dispatcher.registry
    tools = []
    for cap in registry.list_for(role, dispatcher.authorizer):
        described = registry.describe(cap)
        tools.append(
            types.Tool(
                name=described["name"],
                description=described["description"],
                inputSchema=described["inputSchema"],
            )
        )
    return tools


async def call_tool_text(dispatcher: Dispatcher, role: Role, name: str, arguments: Optional[Dict[str, Any]]) -> str:
    """
    Dispatch one tool call and serialize its result.

    Raises:
        ToolCallFailed: When the dispatch result is not ``ok``.
    """
    result = await dispatcher.dispatch(role, name, arguments or {})
    text = json.dumps(result.to_payload(), indent=2, default=str)
    if not result.ok:
        raise ToolCallFailed(text)
    return text


def build_mcp_server(dispatcher: Dispatcher, role: Role) -> Server:
    server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return list_tool_definitions(dispatcher, role)

    # Argument validation belongs to the dispatcher so rejected calls are audited.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: Dict[str, Any]) -> List[types.TextContent]:
        text = await call_tool_text(dispatcher, role, name, arguments)
        return [types.TextContent(type="text", text=text)]

    return server


async def serve_stdio(dispatcher: Dispatcher, role: Role) -> None:
    """Serve MCP over stdin/stdout until the client disconnects."""
    server = build_mcp_server(dispatcher, role)
    logger.info(f"MCP stdio transport ready (role: {role.value}, tools: {len(list_tool_definitions(dispatcher, role))})")
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
