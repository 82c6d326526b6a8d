"""
Middleware modules for the IKOMA HTTP transport.
"""

from .rate_limit import FixedWindowRateLimiter, RateLimitMiddleware

__all__ = ["FixedWindowRateLimiter", "RateLimitMiddleware"]
