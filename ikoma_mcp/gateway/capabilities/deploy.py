from __future__ import annotations

from dataclasses import dataclass
from typing import Type

from ikoma_mcp.core.logging_config import get_logger

from ..errors import AppNotFoundError
from ..pipeline.layout import AppLayout
from ..schemas.base import BaseSchema
from ..schemas.domain import ExecutionContext, Role
from .apps import require_app
from .base import Capability, CapabilityName, CapabilityResult
from .inputs import AppNameArgs, DeployUpArgs

logger = get_logger(__name__)


def _require_compose(ctx: ExecutionContext, app_name: str) -> AppLayout:
    layout = require_app(ctx, app_name)
    if not layout.compose_file.is_file():
        raise AppNotFoundError(
            f"docker-compose.yml not found for {app_name}",
            hint="Run apps.init to create a default definition",
        )
    return layout


@dataclass(frozen=True)
class DeployUpCapability(Capability):
    """Start (or update) the application's compose services, with an optional env overlay."""

    name: CapabilityName = CapabilityName.deploy_up
    required_role: Role = Role.operator
    description: str = "Deploy/start an application"
    input_model: Type[BaseSchema] = DeployUpArgs

    async def execute(self, ctx: ExecutionContext, args: DeployUpArgs) -> CapabilityResult:
        layout = _require_compose(ctx, args.app_name)
        output = await ctx.services.compose.up(layout.app_dir, env=args.env)
        logger.info(f"compose up completed for {layout.token}")
        return CapabilityResult.success(
            {"message": f"Application {args.app_name} deployed", "details": {"output": output}}
        )


@dataclass(frozen=True)
class DeployDownCapability(Capability):
    name: CapabilityName = CapabilityName.deploy_down
    required_role: Role = Role.operator
    description: str = "Stop an application"
    input_model: Type[BaseSchema] = AppNameArgs

    async def execute(self, ctx: ExecutionContext, args: AppNameArgs) -> CapabilityResult:
        layout = _require_compose(ctx, args.app_name)
        output = await ctx.services.compose.down(layout.app_dir)
        logger.info(f"compose down completed for {layout.token}")
        return CapabilityResult.success(
            {"message": f"Application {args.app_name} stopped", "details": {"output": output}}
        )


@dataclass(frozen=True)
class DeployRestartCapability(Capability):
    name: CapabilityName = CapabilityName.deploy_restart
    required_role: Role = Role.operator
    description: str = "Restart an application"
    input_model: Type[BaseSchema] = AppNameArgs

    async def execute(self, ctx: ExecutionContext, args: AppNameArgs) -> CapabilityResult:
        layout = _require_compose(ctx, args.app_name)
        output = await ctx.services.compose.restart(layout.app_dir)
        logger.info(f"compose restart completed for {layout.token}")
        return CapabilityResult.success(
            {"message": f"Application {args.app_name} restarted", "details": {"output": output}}
        )
