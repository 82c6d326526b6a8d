"""
Health Check Endpoint.

Unauthenticated liveness probe used by process supervisors and load
balancers. It does not touch Docker or PostgreSQL; use ``platform.check`` for
dependency health.
"""

from fastapi import APIRouter

from ikoma_mcp import __version__

router = APIRouter()


@router.get(
    "/health",
    summary="Health Check",
    description="Check the operational status of the API server.",
    response_description="Status object.",
)
async def health_check():
    """
    Health check endpoint.

    Returns a simple status indicator to confirm the server is running and reachable.
    """
    return {"status": "healthy", "version": __version__}
