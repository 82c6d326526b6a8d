"""Stage 3: schema migrations and edge functions (``supabase.apply``)."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

from ..errors import CommandFailedError
from ..schemas.domain import ErrorCode, ReleaseStage
from .action_log import ActionLog
from .base import PipelineStage, StageFailure
from .envelope import EnvelopeBuilder
from .layout import AppLayout
from .requests import ApplyMigrationsRequest


def expected_project_path(layout: AppLayout) -> str:
    """The only ``project_path`` a caller may pass for this application."""
    return str(layout.src_dir)


def check_project_path(layout: AppLayout, project_path: str) -> Path:
    expected = expected_project_path(layout)
    if project_path != expected:
        raise StageFailure(f"project_path must equal {expected}")
    return Path(expected)


class MigrationStage(PipelineStage[ApplyMigrationsRequest]):
    """
    Apply pending migrations from ``src/supabase/migrations`` and deploy the
    requested edge functions.

    Migration application is delegated to the Supabase CLI. Function deploy
    failures are reported per function and as warnings; a failed migration
    push fails the stage.
    """

    action = "supabase.apply"
    failure_code = ErrorCode.db_migration_failed
    failure_summary = "Failed to apply Supabase changes"
    completes = ReleaseStage.migrated

    async def execute(
        self,
        request: ApplyMigrationsRequest,
        layout: AppLayout,
        envelope: EnvelopeBuilder,
        log: ActionLog,
    ) -> tuple[str, Dict[str, Any]]:
        project = check_project_path(layout, request.project_path)
        guard = self._deps.guard
        supabase_dir = project / "supabase"
        guard.ensure(supabase_dir, layout.token)
        if not supabase_dir.is_dir():
            raise StageFailure(
                f"{supabase_dir} not found",
                hint="Run repo.clone first; the repository must contain a supabase/ directory",
            )

        migrations_dir = supabase_dir / "migrations"
        migration_files: List[str] = []
        if migrations_dir.is_dir():
            migration_files = sorted(p.name for p in migrations_dir.glob("*.sql") if p.is_file())

        applied = False
        if migration_files:
            log.write(f"Applying {len(migration_files)} migration(s) from {migrations_dir}")
            output = await self._deps.supabase.db_push(project, self._stack_db_url())
            log.write(output)
            applied = True
        else:
            log.write(f"No migrations found in {migrations_dir}")
            envelope.warn("No migration files found; nothing was applied")

        functions = [await self._deploy_function(project, supabase_dir, name, envelope, log) for name in request.functions]

        artifacts = {
            "migrations_applied": applied,
            "migration_files": migration_files,
            "last_migration": Path(migration_files[-1]).stem if migration_files else None,
            "functions": functions,
        }
        return "Supabase migrations and functions applied", artifacts

    async def _deploy_function(
        self,
        project: Path,
        supabase_dir: Path,
        name: str,
        envelope: EnvelopeBuilder,
        log: ActionLog,
    ) -> Dict[str, Any]:
        function_dir = supabase_dir / "functions" / name
        if not function_dir.is_dir():
            envelope.warn(f"Function {name} not found in supabase/functions")
            return {"name": name, "ok": False, "error": "not found"}
        log.write(f"Deploying function {name}")
        try:
            output = await self._deps.supabase.deploy_function(project, name)
        except CommandFailedError as exc:
            log.write(f"Function {name} failed: {exc.message}")
            envelope.warn(f"Function {name} failed to deploy")
            return {"name": name, "ok": False, "error": exc.message}
        log.write(output)
        return {"name": name, "ok": True}

    def _stack_db_url(self) -> str:
        cfg = self._deps.config
        url = cfg.postgres.url(
            cfg.stack.db_name, drivername="postgresql", host=cfg.stack.db_host, port=cfg.stack.db_port
        )
        return url.render_as_string(hide_password=False)
