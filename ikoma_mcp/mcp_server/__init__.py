"""MCP (stdio) transport."""

from .server import build_mcp_server, serve_stdio

__all__ = ["build_mcp_server", "serve_stdio"]
