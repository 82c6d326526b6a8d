from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Type

from ikoma_mcp import __version__

from ..schemas.base import BaseSchema
from ..schemas.domain import ExecutionContext, Role, utc_now
from .base import Capability, CapabilityName, CapabilityResult
from .inputs import NoArgs


@dataclass(frozen=True)
class PlatformInfoCapability(Capability):
    """Report the gateway version, uptime, capability names and platform limits."""

    name: CapabilityName = CapabilityName.platform_info
    required_role: Role = Role.observer
    description: str = "Get platform information and capabilities"
    input_model: Type[BaseSchema] = NoArgs

    async def execute(self, ctx: ExecutionContext, args: NoArgs) -> CapabilityResult:
        services = ctx.services
        uptime = (utc_now() - services.started_at).total_seconds()
        return CapabilityResult.success(
            {
                "version": __version__,
                "uptime": round(max(uptime, 0.0), 3),
                "capabilities": [n.value for n in CapabilityName],
                "limits": {
                    "maxApps": services.config.max_apps,
                    "maxDbSize": services.config.max_db_size,
                },
            }
        )


@dataclass(frozen=True)
class PlatformCheckCapability(Capability):
    """
    Probe the platform dependencies.

    ``healthy`` is true only when the container engine answers, the shared
    PostgreSQL server accepts connections and the managed root is a directory.
    """

    name: CapabilityName = CapabilityName.platform_check
    required_role: Role = Role.observer
    description: str = "Check platform health (Docker, PostgreSQL, apps root)"
    input_model: Type[BaseSchema] = NoArgs

    async def execute(self, ctx: ExecutionContext, args: NoArgs) -> CapabilityResult:
        services = ctx.services
        docker_ok, postgres_ok = await asyncio.gather(services.compose.ping(), services.database.ping())
        checks = {
            "docker": docker_ok,
            "postgres": postgres_ok,
            "appsRoot": services.guard.root.is_dir(),
        }
        return CapabilityResult.success({"healthy": all(checks.values()), "checks": checks})
