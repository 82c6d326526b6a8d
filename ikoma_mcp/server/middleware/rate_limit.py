"""
Rate Limiting Middleware.

Fixed-window request limit per client. A client is identified by its API key
digest when one is presented, otherwise by its address. ``/health`` is never
limited.
"""

import hashlib
import time
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ikoma_mcp.core.logging_config import get_logger

from ..core import constant

logger = get_logger(__name__)

EXEMPT_PATHS = frozenset({"/health"})


class FixedWindowRateLimiter:
    """
    Count requests per key in fixed windows.

    Args:
        window_ms: Window length in milliseconds.
        max_requests: Requests allowed per key and window.
        clock: Monotonic clock returning seconds.
    """

    def __init__(self, window_ms: int, max_requests: int, clock: Callable[[], float] = time.monotonic) -> None:
        self._window = window_ms / 1000.0
        self._max = max_requests
        self._clock = clock
        self._buckets: Dict[str, Tuple[float, int]] = {}

    def hit(self, key: str) -> Optional[float]:
        """Record one request. Returns ``None`` if allowed, else seconds until the window resets."""
        now = self._clock()
        started, count = self._buckets.get(key, (now, 0))
        if now - started >= self._window:
            started, count = now, 0
        if count >= self._max:
            return max(self._window - (now - started), 0.0)
        self._buckets[key] = (started, count + 1)
        if len(self._buckets) > 10_000:
            self._evict(now)
        return None

    def _evict(self, now: float) -> None:
        expired = [k for k, (started, _) in self._buckets.items() if now - started >= self._window]
        for key in expired:
            del self._buckets[key]


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Answer 429 once a client exceeds its request allowance."""

    def __init__(self, app, limiter: FixedWindowRateLimiter) -> None:
        super().__init__(app)
        self._limiter = limiter

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        api_key = request.headers.get(constant.API_KEY_HEADER)
        if api_key:
            key = "key:" + hashlib.sha256(api_key.encode("utf-8")).hexdigest()[:16]
        else:
            key = "addr:" + (request.client.host if request.client else "unknown")

        retry_after = self._limiter.hit(key)
        if retry_after is not None:
            logger.warning(f"Rate limit exceeded for {key} on {request.method} {request.url.path}")
            return JSONResponse(
                status_code=429,
                headers={"Retry-After": str(max(int(retry_after), 1))},
                content={
                    "ok": False,
                    "error": {"code": constant.RATE_LIMITED, "message": "Too many requests"},
                },
            )
        return await call_next(request)
