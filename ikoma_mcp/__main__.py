"""
Process entry point: ``python -m ikoma_mcp [--mode mcp|http|hybrid]``.

``mcp`` serves MCP over stdio, ``http`` serves the REST API with uvicorn and
``hybrid`` runs both in one event loop over the same gateway services (and so
the same per-application locks and audit trail).
"""

import argparse
import asyncio
import sys
from typing import List, Optional

import uvicorn

from ikoma_mcp.core.logging_config import get_logger, setup_logging
from ikoma_mcp.gateway.errors import InvalidRoleError
from ikoma_mcp.gateway.roles import parse_role
from ikoma_mcp.gateway.services import build_services
from ikoma_mcp.mcp_server import serve_stdio
from ikoma_mcp.server.core.config import Settings, settings as default_settings
from ikoma_mcp.server.main import create_app

logger = get_logger(__name__)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ikoma-mcp", description="IKOMA MCP capability gateway")
    parser.add_argument(
        "--mode",
        choices=("mcp", "http", "hybrid"),
        default=None,
        help="Transports to run (default: IKOMA_SERVER_MODE)",
    )
    return parser


async def run(mode: str, settings: Settings) -> None:
    services = build_services(settings.gateway_config())
    jobs = []
    if mode in ("http", "hybrid"):
        app = create_app(settings, services)
        server = uvicorn.Server(
            uvicorn.Config(app, host=settings.http_host, port=settings.http_port, log_config=None)
        )
        logger.info(f"HTTP transport listening on {settings.http_host}:{settings.http_port}")
        jobs.append(server.serve())
    if mode in ("mcp", "hybrid"):
        jobs.append(serve_stdio(services.dispatcher(), parse_role(settings.mcp_role)))
    try:
        await asyncio.gather(*jobs)
    finally:
        await services.aclose()


def main(argv: Optional[List[str]] = None) -> int:
    args = _parser().parse_args(argv)
    setup_logging()
    settings = default_settings
    mode = args.mode or settings.server_mode
    try:
        parse_role(settings.mcp_role)
    except InvalidRoleError as exc:
        logger.error(f"IKOMA_MCP_ROLE: {exc.message}")
        return 2
    logger.info(f"Starting IKOMA MCP in {mode} mode")
    try:
        asyncio.run(run(mode, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
