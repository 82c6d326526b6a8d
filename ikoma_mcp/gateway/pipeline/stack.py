"""Stage 2: backing-service stack readiness (``supabase.ensure``)."""

from __future__ import annotations

from typing import Any, Dict

from ..schemas.domain import ErrorCode, ReleaseStage
from .action_log import ActionLog
from .base import PipelineStage
from .envelope import EnvelopeBuilder
from .layout import AppLayout
from .requests import EnsureStackRequest

DEFAULT_STACK_COMPOSE = """\
services:
  db:
    image: postgres:15
    restart: unless-stopped
    ports:
      - "5432"
  rest:
    image: postgrest/postgrest
    restart: unless-stopped
    depends_on:
      - db
    ports:
      - "3000"
"""


class StackStage(PipelineStage[EnsureStackRequest]):
    """
    Make sure the application's stack definition exists and the stack runs.

    "Ensure" means make true: an existing definition is never overwritten and
    a running stack is never restarted or recreated.
    """

    action = "supabase.ensure"
    failure_code = ErrorCode.supabase_boot_failed
    failure_summary = "Failed to boot Supabase"
    completes = ReleaseStage.stack_ready

    async def execute(
        self,
        request: EnsureStackRequest,
        layout: AppLayout,
        envelope: EnvelopeBuilder,
        log: ActionLog,
    ) -> tuple[str, Dict[str, Any]]:
        guard = self._deps.guard
        compose = self._deps.compose
        stack_dir = layout.supabase_dir
        compose_file = stack_dir / "docker-compose.yml"
        guard.ensure(compose_file, layout.token)

        stack_dir.mkdir(parents=True, exist_ok=True)
        if not compose_file.exists():
            compose_file.write_text(DEFAULT_STACK_COMPOSE, encoding="utf-8")
            log.write(f"Wrote default stack definition to {compose_file}")
            envelope.warn("No stack definition found; a default docker-compose.yml was written")

        if await compose.is_running(stack_dir):
            log.write(f"Supabase stack in {stack_dir} is already running")
            summary = "Supabase stack already running"
        else:
            log.write(f"Starting Supabase stack in {stack_dir}")
            output = await compose.up(stack_dir)
            log.write(output)
            summary = "Supabase stack is up"

        stack = self._deps.config.stack
        artifacts = {
            "supabase_url": stack.supabase_url,
            "db_host": stack.db_host,
            "db_port": stack.db_port,
            "db_name": stack.db_name,
        }
        return summary, artifacts
