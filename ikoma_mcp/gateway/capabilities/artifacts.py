from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Type

from ..drivers.database import database_name_for
from ..pipeline.layout import AppLayout
from ..schemas.base import BaseSchema
from ..schemas.domain import ExecutionContext, Role, isoformat
from .apps import app_layout, app_status
from .base import Capability, CapabilityName, CapabilityResult
from .inputs import AppNameArgs


def current_release(layout: AppLayout) -> Optional[str]:
    """Release id ``current`` points at, or ``None`` before the first deploy."""
    link = layout.current_link
    if not link.is_symlink():
        return None
    return os.path.basename(os.readlink(link))


@dataclass(frozen=True)
class GenerateRunbookCapability(Capability):
    """Assemble operational runbook data for an application."""

    name: CapabilityName = CapabilityName.artifact_generate_runbook
    required_role: Role = Role.observer
    description: str = "Generate deployment runbook"
    input_model: Type[BaseSchema] = AppNameArgs

    async def execute(self, ctx: ExecutionContext, args: AppNameArgs) -> CapabilityResult:
        layout = app_layout(ctx, args.app_name)
        status = await app_status(ctx, args.app_name)
        release = current_release(layout)
        return CapabilityResult.success(
            {
                "appName": args.app_name,
                "version": release or "unreleased",
                "deployedAt": isoformat(ctx.timestamp),
                "config": {
                    "docker": status["dockerRunning"],
                    "database": status["dbExists"],
                    "currentRelease": release,
                },
                "healthChecks": [
                    f"docker compose -f {layout.compose_file} ps",
                    "curl http://localhost:3000/health",
                    f'psql -d {database_name_for(layout.token)} -c "SELECT 1"',
                ],
                "rollbackProcedure": "Run: deploy.down, restore database backup, deploy.up",
            }
        )


@dataclass(frozen=True)
class VerifyReleaseCapability(Capability):
    name: CapabilityName = CapabilityName.artifact_verify_release
    required_role: Role = Role.observer
    description: str = "Verify release deployment"
    input_model: Type[BaseSchema] = AppNameArgs

    async def execute(self, ctx: ExecutionContext, args: AppNameArgs) -> CapabilityResult:
        status = await app_status(ctx, args.app_name)
        checks = [
            {
                "name": "app_exists",
                "passed": status["exists"],
                "details": "Application directory found" if status["exists"] else "Application not initialized",
            },
            {
                "name": "docker_running",
                "passed": status["dockerRunning"],
                "details": "Containers running" if status["dockerRunning"] else "Containers not running",
            },
            {
                "name": "database_exists",
                "passed": status["dbExists"],
                "details": "Database exists" if status["dbExists"] else "Database not created",
            },
        ]
        verified = all(c["passed"] for c in checks)
        summary = (
            f"Release verified for {args.app_name}"
            if verified
            else f"Release verification failed for {args.app_name}"
        )
        return CapabilityResult.success({"verified": verified, "checks": checks, "summary": summary})
