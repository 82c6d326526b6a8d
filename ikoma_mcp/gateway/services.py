"""Wiring of the gateway core from a ``GatewayConfig``.

Mirrors a dependency container: one place constructs the drivers, the path
guard, the release pipeline and the audit trail, and transports receive the
finished bundle.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ikoma_mcp.core.logging_config import get_logger

from .audit import AuditLogger
from .capabilities.builtin import build_default_registry
from .config import GatewayConfig
from .dispatcher import Dispatcher
from .drivers.compose import ComposeDriver
from .drivers.database import DatabaseDriver
from .drivers.git import GitDriver
from .drivers.process import CommandRunner
from .drivers.supabase import SupabaseCli
from .pipeline.base import PipelineDeps
from .pipeline.health import HealthProbe
from .pipeline.locks import AppLockRegistry
from .pipeline.pipeline import ReleasePipeline
from .roles import RoleAuthorizer
from .schemas.domain import utc_now
from .security.path_guard import PathGuard

logger = get_logger(__name__)


@dataclass
class GatewayServices:
    """Everything a capability may touch, reachable as ``ctx.services``."""

    config: GatewayConfig
    guard: PathGuard
    compose: ComposeDriver
    database: DatabaseDriver
    git: GitDriver
    supabase: SupabaseCli
    health: HealthProbe
    locks: AppLockRegistry
    pipeline: ReleasePipeline
    audit: AuditLogger
    started_at: datetime = field(default_factory=utc_now)

    def dispatcher(self) -> Dispatcher:
        """A dispatcher over the default capability table bound to these services."""
        return Dispatcher(build_default_registry(), RoleAuthorizer(), self.audit, self)

    async def aclose(self) -> None:
        await self.database.dispose()


def build_services(
    config: GatewayConfig,
    *,
    runner: Optional[CommandRunner] = None,
    **overrides: Any,
) -> GatewayServices:
    """
    Construct the service bundle.

    Args:
        config: Core configuration.
        runner: Command runner shared by the command-line drivers.
        overrides: Replacement collaborators by field name (``compose``,
            ``database``, ``git``, ``supabase``, ``health``, ``guard``,
            ``audit``, ``locks``); used by tests to inject fakes.
    """
    runner = runner or CommandRunner()
    guard = overrides.pop("guard", None) or PathGuard(config.apps_root)
    compose = overrides.pop("compose", None) or ComposeDriver(runner, config.docker_binary)
    database = overrides.pop("database", None) or DatabaseDriver(config.postgres, runner, config.pg_dump_binary)
    git = overrides.pop("git", None) or GitDriver(runner, config.git_binary)
    supabase = overrides.pop("supabase", None) or SupabaseCli(runner, config.supabase_binary)
    health = overrides.pop("health", None) or HealthProbe(config.healthcheck_timeout_seconds)
    locks = overrides.pop("locks", None) or AppLockRegistry()
    audit = overrides.pop("audit", None) or AuditLogger(config.audit_log)
    if overrides:
        raise TypeError(f"Unknown service overrides: {', '.join(sorted(overrides))}")

    pipeline = ReleasePipeline(
        PipelineDeps(
            config=config,
            guard=guard,
            git=git,
            compose=compose,
            supabase=supabase,
            health=health,
            locks=locks,
        )
    )
    logger.debug(f"Gateway services built for apps root {guard.root}")
    return GatewayServices(
        config=config,
        guard=guard,
        compose=compose,
        database=database,
        git=git,
        supabase=supabase,
        health=health,
        locks=locks,
        pipeline=pipeline,
        audit=audit,
    )
