"""
HTTP Application Entry Point.

This module builds the FastAPI application, wires the gateway services into
``app.state``, configures rate limiting and exception handlers, and includes
the API routers.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from ikoma_mcp import __version__
from ikoma_mcp.core.logging_config import get_logger
from ikoma_mcp.gateway.services import GatewayServices, build_services

from .api.v1 import capabilities, health
from .core import constant
from .core.config import Settings, settings as default_settings
from .exception_handlers import setup_exception_handlers
from .middleware import FixedWindowRateLimiter, RateLimitMiddleware

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Services are built with the application; shutdown releases the database
    engine.
    """
    logger.info(f"Starting up {constant.PROJECT_NAME} HTTP server (apps root: {app.state.services.guard.root})")
    if not app.state.api_key_hash:
        logger.warning("IKOMA_API_KEY_HASH is not set; every authenticated request will be rejected")

    yield

    logger.info(f"Shutting down {constant.PROJECT_NAME} HTTP server...")
    await app.state.services.aclose()


def create_app(
    settings: Optional[Settings] = None,
    services: Optional[GatewayServices] = None,
) -> FastAPI:
    """
    Build the HTTP application.

    Args:
        settings: Process settings; defaults to the environment-bound singleton.
        services: Prebuilt gateway services (tests inject fakes here).
    """
    settings = settings or default_settings
    services = services or build_services(settings.gateway_config())

    app = FastAPI(
        title=constant.PROJECT_NAME,
        description="""
        IKOMA MCP HTTP API

        Role-gated capabilities for managing applications under a single managed root:
        application lifecycle, databases, and the four-stage release pipeline.
        """,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.services = services
    app.state.dispatcher = services.dispatcher()
    app.state.api_key_hash = settings.api_key_hash

    rate_limit = settings.rate_limit
    app.add_middleware(
        RateLimitMiddleware,
        limiter=FixedWindowRateLimiter(rate_limit.window_ms, rate_limit.max_requests),
    )
    setup_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(capabilities.router, tags=["capabilities"])
    return app
