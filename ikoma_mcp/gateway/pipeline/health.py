"""HTTP healthcheck probe run after a release is started."""

from __future__ import annotations

import time
from typing import Any, Dict

import httpx

from ikoma_mcp.core.logging_config import get_logger

logger = get_logger(__name__)


class HealthProbe:
    """
    Issue a single GET against a healthcheck URL.

    Any 2xx/3xx response counts as healthy. Connection errors and timeouts are
    reported as ``unhealthy`` rather than raised.
    """

    def __init__(self, timeout: float = 5.0) -> None:
        self._timeout = timeout

    async def check(self, url: str) -> Dict[str, Any]:
        started = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=False) as client:
                response = await client.get(url)
        except httpx.HTTPError as exc:
            latency_ms = round((time.perf_counter() - started) * 1000.0, 1)
            logger.info(f"Healthcheck {url} failed: {exc}")
            return {"status": "unhealthy", "latency_ms": latency_ms, "url": url, "error": str(exc) or type(exc).__name__}
        latency_ms = round((time.perf_counter() - started) * 1000.0, 1)
        status = "healthy" if response.status_code < 400 else "unhealthy"
        return {"status": status, "latency_ms": latency_ms, "url": url, "status_code": response.status_code}
