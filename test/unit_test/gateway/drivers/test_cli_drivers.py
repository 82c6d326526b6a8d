from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pytest

from ikoma_mcp.gateway.config import PostgresConfig
from ikoma_mcp.gateway.drivers.compose import ComposeDriver
from ikoma_mcp.gateway.drivers.database import DatabaseDriver, database_name_for, quote_identifier
from ikoma_mcp.gateway.drivers.git import GitDriver
from ikoma_mcp.gateway.drivers.process import CommandResult
from ikoma_mcp.gateway.drivers.supabase import SupabaseCli
from ikoma_mcp.gateway.errors import CommandFailedError, DatabaseDriverError

pytestmark = pytest.mark.asyncio


class RecordingRunner:
    """Stands in for ``CommandRunner``; replays queued stdout values."""

    def __init__(self, stdout: Sequence[str] = ()) -> None:
        self.calls: List[Dict[str, Any]] = []
        self._stdout = list(stdout)
        self.fail: Optional[CommandFailedError] = None

    async def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        check: bool = True,
    ) -> CommandResult:
        self.calls.append({"argv": list(argv), "cwd": cwd, "env": dict(env or {})})
        if self.fail is not None:
            raise self.fail
        out = self._stdout.pop(0) if self._stdout else ""
        return CommandResult(argv=tuple(argv), returncode=0, stdout=out, stderr="", duration_seconds=0.0)


async def test_git_clone_then_checkout(tmp_path: Path) -> None:
    runner = RecordingRunner()
    dest = tmp_path / "src"

    await GitDriver(runner).clone("https://github.com/org/repo", "main", dest)

    assert runner.calls[0]["argv"] == ["git", "clone", "--", "https://github.com/org/repo", str(dest)]
    assert runner.calls[0]["cwd"] == tmp_path
    assert runner.calls[1]["argv"] == ["git", "checkout", "main", "--"]
    assert all(call["env"] == {"GIT_TERMINAL_PROMPT": "0"} for call in runner.calls)


async def test_git_update_fast_forwards(tmp_path: Path) -> None:
    runner = RecordingRunner()

    await GitDriver(runner).update(tmp_path, "v2")

    assert [c["argv"][1] for c in runner.calls] == ["fetch", "checkout", "merge"]
    assert runner.calls[2]["argv"] == ["git", "merge", "--ff-only", "FETCH_HEAD"]


async def test_git_head_revision(tmp_path: Path) -> None:
    runner = RecordingRunner(stdout=["abc123\n"])
    assert await GitDriver(runner).head_revision(tmp_path) == "abc123"


async def test_compose_commands(tmp_path: Path) -> None:
    runner = RecordingRunner()
    compose = ComposeDriver(runner)

    await compose.up(tmp_path, services=["web"], env={"A": "1"})
    await compose.down(tmp_path)
    await compose.restart(tmp_path)

    assert runner.calls[0]["argv"] == ["docker", "compose", "up", "-d", "web"]
    assert runner.calls[0]["env"] == {"A": "1"}
    assert runner.calls[1]["argv"] == ["docker", "compose", "down"]
    assert runner.calls[2]["argv"] == ["docker", "compose", "restart"]
    assert all(c["cwd"] == tmp_path for c in runner.calls)


async def test_compose_running_state(tmp_path: Path) -> None:
    runner = RecordingRunner(stdout=["4f1c2d\n", ""])
    compose = ComposeDriver(runner)

    assert not await compose.is_running(tmp_path)
    assert runner.calls == []

    (tmp_path / "docker-compose.yml").write_text("services: {}\n", encoding="utf-8")
    assert await compose.is_running(tmp_path)
    assert not await compose.is_running(tmp_path)


async def test_compose_ping_failure() -> None:
    runner = RecordingRunner()
    runner.fail = CommandFailedError(["docker", "info"], 1, "Cannot connect to the Docker daemon")
    assert not await ComposeDriver(runner).ping()


async def test_supabase_push_and_deploy(tmp_path: Path) -> None:
    runner = RecordingRunner()
    cli = SupabaseCli(runner)

    await cli.db_push(tmp_path, "postgresql://u:p@h:5432/db")
    await cli.deploy_function(tmp_path, "hello")

    assert runner.calls[0]["argv"][:3] == ["supabase", "db", "push"]
    assert runner.calls[0]["argv"][-2:] == ["--db-url", "postgresql://u:p@h:5432/db"]
    assert runner.calls[1]["argv"][:4] == ["supabase", "functions", "deploy", "hello"]


@pytest.mark.parametrize(
    ("token", "expected"),
    [("demo", "app_demo"), ("my-app", "app_my_app"), ("x" * 64, "app_" + "x" * 59)],
)
def test_database_name_for(token: str, expected: str) -> None:
    assert database_name_for(token) == expected


def test_quote_identifier_rejects_unsafe_names() -> None:
    assert quote_identifier("app_demo") == '"app_demo"'
    with pytest.raises(DatabaseDriverError):
        quote_identifier('app"; DROP DATABASE x; --')


async def test_backup_uses_pg_dump_with_password_in_env(tmp_path: Path) -> None:
    runner = RecordingRunner()
    driver = DatabaseDriver(PostgresConfig(user="ikoma", password="s3cret"), runner)
    dest = tmp_path / "backups" / "nightly.sql"

    assert await driver.backup("demo", dest) == dest

    call = runner.calls[0]
    assert call["argv"][0] == "pg_dump"
    assert call["argv"][-1] == "app_demo"
    assert "s3cret" not in call["argv"]
    assert call["env"] == {"PGPASSWORD": "s3cret"}
    assert dest.parent.is_dir()


async def test_backup_failure_is_database_error(tmp_path: Path) -> None:
    runner = RecordingRunner()
    runner.fail = CommandFailedError(["pg_dump"], 1, "connection refused")
    driver = DatabaseDriver(PostgresConfig(), runner)

    with pytest.raises(DatabaseDriverError):
        await driver.backup("demo", tmp_path / "b.sql")
