from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Type

from ..drivers.database import database_name_for
from ..errors import DatabaseDriverError
from ..schemas.base import BaseSchema
from ..schemas.domain import ExecutionContext, Role
from .apps import app_layout
from .base import Capability, CapabilityName, CapabilityResult
from .inputs import AppNameArgs, BackupArgs, SqlArgs


async def database_info(ctx: ExecutionContext, token: str) -> Dict[str, Any]:
    database = ctx.services.database
    info: Dict[str, Any] = {"exists": False, "name": database_name_for(token)}
    if not await database.database_exists(token):
        return info
    info["exists"] = True
    info["size"] = await database.database_size(token)
    info["tables"] = await database.list_tables(token)
    return info


async def _require_database(ctx: ExecutionContext, token: str) -> None:
    if not await ctx.services.database.database_exists(token):
        raise DatabaseDriverError(
            f"Database {database_name_for(token)} does not exist",
            hint="Run db.create first",
        )


@dataclass(frozen=True)
class DbCreateCapability(Capability):
    """Create the application database if it does not exist yet."""

    name: CapabilityName = CapabilityName.db_create
    required_role: Role = Role.builder
    description: str = "Create database for an application"
    input_model: Type[BaseSchema] = AppNameArgs

    async def execute(self, ctx: ExecutionContext, args: AppNameArgs) -> CapabilityResult:
        layout = app_layout(ctx, args.app_name)
        await ctx.services.database.create_database(layout.token)
        return CapabilityResult.success(await database_info(ctx, layout.token))


@dataclass(frozen=True)
class DbMigrateCapability(Capability):
    """Run a migration script in one transaction; a failing statement rolls back the whole script."""

    name: CapabilityName = CapabilityName.db_migrate
    required_role: Role = Role.builder
    description: str = "Run database migration"
    input_model: Type[BaseSchema] = SqlArgs

    async def execute(self, ctx: ExecutionContext, args: SqlArgs) -> CapabilityResult:
        layout = app_layout(ctx, args.app_name)
        await _require_database(ctx, layout.token)
        await ctx.services.database.execute_script(layout.token, args.sql)
        return CapabilityResult.success({"message": f"Migration executed for {args.app_name}"})


@dataclass(frozen=True)
class DbSeedCapability(Capability):
    name: CapabilityName = CapabilityName.db_seed
    required_role: Role = Role.builder
    description: str = "Seed database with data"
    input_model: Type[BaseSchema] = SqlArgs

    async def execute(self, ctx: ExecutionContext, args: SqlArgs) -> CapabilityResult:
        layout = app_layout(ctx, args.app_name)
        await _require_database(ctx, layout.token)
        await ctx.services.database.execute_script(layout.token, args.sql)
        return CapabilityResult.success({"message": f"Seed data inserted for {args.app_name}"})


@dataclass(frozen=True)
class DbBackupCapability(Capability):
    """Dump the application database to ``<app>/backups/<backupName>.sql``."""

    name: CapabilityName = CapabilityName.db_backup
    required_role: Role = Role.operator
    description: str = "Create database backup"
    input_model: Type[BaseSchema] = BackupArgs

    async def execute(self, ctx: ExecutionContext, args: BackupArgs) -> CapabilityResult:
        services = ctx.services
        layout = app_layout(ctx, args.app_name)
        await _require_database(ctx, layout.token)
        dest = services.guard.resolve(layout.token, "backups", f"{args.backup_name}.sql")
        path = await services.database.backup(layout.token, dest)
        return CapabilityResult.success({"backupPath": str(path)})


@dataclass(frozen=True)
class DbStatusCapability(Capability):
    name: CapabilityName = CapabilityName.db_status
    required_role: Role = Role.observer
    description: str = "Get database status"
    input_model: Type[BaseSchema] = AppNameArgs

    async def execute(self, ctx: ExecutionContext, args: AppNameArgs) -> CapabilityResult:
        layout = app_layout(ctx, args.app_name)
        return CapabilityResult.success(await database_info(ctx, layout.token))
