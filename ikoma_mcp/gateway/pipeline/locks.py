"""Per-application serialization.

Pipeline stages and ``apps.remove`` on the same application run one at a
time; different applications never wait on each other.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

from ikoma_mcp.core.logging_config import get_logger

logger = get_logger(__name__)


class AppLockRegistry:
    """Lazily created ``asyncio.Lock`` per application token."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}

    def lock_for(self, token: str) -> asyncio.Lock:
        lock = self._locks.get(token)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[token] = lock
        return lock

    def is_locked(self, token: str) -> bool:
        lock = self._locks.get(token)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, token: str) -> AsyncIterator[None]:
        lock = self.lock_for(token)
        if lock.locked():
            logger.debug(f"Waiting for application lock: {token}")
        async with lock:
            yield
