"""Supabase CLI driver used by the migration stage.

Applying migrations is delegated entirely to ``supabase db push``; the gateway
does not implement a migration engine of its own.
"""

from pathlib import Path
from typing import Optional

from .process import CommandRunner


class SupabaseCli:
    def __init__(self, runner: Optional[CommandRunner] = None, binary: str = "supabase") -> None:
        self._runner = runner or CommandRunner()
        self._binary = binary

    async def db_push(self, workdir: Path, db_url: str) -> str:
        """Apply pending migrations under ``<workdir>/supabase/migrations``."""
        result = await self._runner.run(
            [self._binary, "db", "push", "--workdir", str(workdir), "--db-url", db_url],
            cwd=workdir,
        )
        return result.output

    async def deploy_function(self, workdir: Path, name: str) -> str:
        result = await self._runner.run(
            [self._binary, "functions", "deploy", name, "--workdir", str(workdir)],
            cwd=workdir,
        )
        return result.output
