from __future__ import annotations

import os
from pathlib import Path

import pytest

from ikoma_mcp import __version__
from ikoma_mcp.gateway.config import GatewayConfig
from ikoma_mcp.gateway.dispatcher import Dispatcher
from ikoma_mcp.gateway.schemas.domain import ErrorCode, Role
from ikoma_mcp.gateway.services import build_services

from conftest import FakeCompose, FakeDatabase

pytestmark = pytest.mark.asyncio


async def _init(dispatcher: Dispatcher, name: str = "demo") -> None:
    result = await dispatcher.dispatch(Role.builder, "apps.init", {"appName": name})
    assert result.ok, result.error


async def test_platform_info(dispatcher: Dispatcher) -> None:
    result = await dispatcher.dispatch(Role.observer, "platform.info")

    assert result.ok
    assert result.result["version"] == __version__
    assert len(result.result["capabilities"]) == 23
    assert result.result["limits"] == {"maxApps": 50, "maxDbSize": "10GB"}
    assert result.result["uptime"] >= 0


async def test_platform_check(dispatcher: Dispatcher, fake_database: FakeDatabase) -> None:
    healthy = await dispatcher.dispatch(Role.observer, "platform.check", {})
    fake_database.available = False
    degraded = await dispatcher.dispatch(Role.observer, "platform.check", {})

    assert healthy.result == {"healthy": True, "checks": {"docker": True, "postgres": True, "appsRoot": True}}
    assert degraded.result["healthy"] is False
    assert degraded.result["checks"]["postgres"] is False


async def test_apps_init_creates_tree(dispatcher: Dispatcher, apps_root: Path) -> None:
    first = await dispatcher.dispatch(Role.builder, "apps.init", {"appName": "demo"})
    second = await dispatcher.dispatch(Role.builder, "apps.init", {"appName": "demo"})

    app = apps_root / "demo"
    for sub in ("config", "migrations", "seeds", "src", "releases", "logs"):
        assert (app / sub).is_dir()
    assert "./current:/app" in (app / "docker-compose.yml").read_text(encoding="utf-8")
    assert first.result["details"]["composeCreated"] is True
    assert second.result["details"]["composeCreated"] is False


async def test_apps_init_enforces_app_limit(
    gateway_config: GatewayConfig, fake_compose: FakeCompose, fake_database: FakeDatabase
) -> None:
    services = build_services(
        gateway_config.model_copy(update={"max_apps": 1}),
        compose=fake_compose,
        database=fake_database,
    )
    dispatcher = services.dispatcher()
    await _init(dispatcher, "one")

    refused = await dispatcher.dispatch(Role.builder, "apps.init", {"appName": "two"})
    again = await dispatcher.dispatch(Role.builder, "apps.init", {"appName": "one"})

    assert refused.error.code is ErrorCode.execution_failed
    assert "limit" in refused.error.message
    assert again.ok


async def test_apps_list_and_status(dispatcher: Dispatcher, apps_root: Path) -> None:
    assert (await dispatcher.dispatch(Role.observer, "apps.list")).result == []
    await _init(dispatcher, "beta")
    await _init(dispatcher, "alpha")
    (apps_root / ".hidden").mkdir()

    listed = await dispatcher.dispatch(Role.observer, "apps.list")
    status = await dispatcher.dispatch(Role.observer, "apps.status", {"appName": "alpha"})

    assert listed.result == ["alpha", "beta"]
    assert status.result == {
        "name": "alpha",
        "exists": True,
        "dockerRunning": False,
        "dbExists": False,
        "health": "unhealthy",
    }


async def test_apps_status_unknown_app(dispatcher: Dispatcher) -> None:
    status = await dispatcher.dispatch(Role.observer, "apps.status", {"appName": "ghost"})
    assert status.ok
    assert status.result["exists"] is False
    assert status.result["health"] == "unknown"


async def test_deploy_lifecycle_and_health(dispatcher: Dispatcher, apps_root: Path, fake_compose: FakeCompose) -> None:
    await _init(dispatcher)
    await dispatcher.dispatch(Role.builder, "db.create", {"appName": "demo"})

    up = await dispatcher.dispatch(Role.operator, "deploy.up", {"appName": "demo", "env": {"PORT": "8080"}})
    health = await dispatcher.dispatch(Role.observer, "apps.health", {"appName": "demo"})
    restart = await dispatcher.dispatch(Role.operator, "deploy.restart", {"appName": "demo"})
    down = await dispatcher.dispatch(Role.operator, "deploy.down", {"appName": "demo"})
    after = await dispatcher.dispatch(Role.observer, "apps.health", {"appName": "demo"})

    assert up.result["message"] == "Application demo deployed"
    assert fake_compose.calls[0] == ("up", apps_root / "demo", {"PORT": "8080"}, ())
    assert health.result == {"status": "healthy", "details": {"docker": "running", "database": "exists"}}
    assert restart.ok and down.ok
    assert after.result["details"]["docker"] == "stopped"


async def test_deploy_requires_initialized_app(dispatcher: Dispatcher, fake_compose: FakeCompose) -> None:
    result = await dispatcher.dispatch(Role.operator, "deploy.up", {"appName": "ghost"})

    assert result.error.code is ErrorCode.app_not_found
    assert result.error.hint == "Run apps.init first"
    assert fake_compose.calls == []


async def test_deploy_up_rejects_bad_env_names(dispatcher: Dispatcher) -> None:
    await _init(dispatcher)
    result = await dispatcher.dispatch(Role.operator, "deploy.up", {"appName": "demo", "env": {"bad-key": "x"}})
    assert result.error.code is ErrorCode.validation_error


async def test_database_capabilities(dispatcher: Dispatcher, apps_root: Path, fake_database: FakeDatabase) -> None:
    await _init(dispatcher)

    missing = await dispatcher.dispatch(Role.observer, "db.status", {"appName": "demo"})
    created = await dispatcher.dispatch(Role.builder, "db.create", {"appName": "demo"})
    migrated = await dispatcher.dispatch(Role.builder, "db.migrate", {"appName": "demo", "sql": "CREATE TABLE users(id int);"})
    seeded = await dispatcher.dispatch(Role.builder, "db.seed", {"appName": "demo", "sql": "INSERT INTO users VALUES (1);"})
    status = await dispatcher.dispatch(Role.observer, "db.status", {"appName": "demo"})

    assert missing.result == {"exists": False, "name": "app_demo"}
    assert created.result["exists"] is True
    assert migrated.result == {"message": "Migration executed for demo"}
    assert seeded.result == {"message": "Seed data inserted for demo"}
    assert status.result == {"exists": True, "name": "app_demo", "size": "8 kB", "tables": ["users"]}
    assert len(fake_database.databases["demo"]) == 2


async def test_migrate_failures(dispatcher: Dispatcher) -> None:
    before = await dispatcher.dispatch(Role.builder, "db.migrate", {"appName": "demo", "sql": "SELECT 1"})
    await dispatcher.dispatch(Role.builder, "db.create", {"appName": "demo"})
    broken = await dispatcher.dispatch(Role.builder, "db.migrate", {"appName": "demo", "sql": "syntax error here"})
    too_big = await dispatcher.dispatch(Role.builder, "db.seed", {"appName": "demo", "sql": "x" * (1024 * 1024 + 1)})

    assert before.error.code is ErrorCode.database_failed
    assert before.error.hint == "Run db.create first"
    assert broken.error.code is ErrorCode.database_failed
    assert too_big.error.code is ErrorCode.validation_error


async def test_db_backup(dispatcher: Dispatcher, apps_root: Path) -> None:
    await _init(dispatcher)
    await dispatcher.dispatch(Role.builder, "db.create", {"appName": "demo"})

    result = await dispatcher.dispatch(Role.operator, "db.backup", {"appName": "demo", "backupName": "nightly"})
    bad = await dispatcher.dispatch(Role.operator, "db.backup", {"appName": "demo", "backupName": "../escape"})

    expected = apps_root / "demo" / "backups" / "nightly.sql"
    assert result.result == {"backupPath": str(expected)}
    assert expected.is_file()
    assert bad.error.code is ErrorCode.validation_error


async def test_apps_remove(dispatcher: Dispatcher, apps_root: Path, fake_compose: FakeCompose, fake_database: FakeDatabase) -> None:
    await _init(dispatcher)
    await dispatcher.dispatch(Role.builder, "db.create", {"appName": "demo"})

    denied = await dispatcher.dispatch(Role.builder, "apps.remove", {"appName": "demo"})
    removed = await dispatcher.dispatch(Role.admin, "apps.remove", {"appName": "demo"})

    assert denied.error.code is ErrorCode.permission_denied
    assert removed.result == {"message": "Application demo removed", "warnings": []}
    assert not (apps_root / "demo").exists()
    assert "demo" not in fake_database.databases
    assert fake_compose.count("down") == 1


async def test_env_example_and_validate(dispatcher: Dispatcher) -> None:
    example = await dispatcher.dispatch(Role.observer, "apps.env.example", {"appName": "My App"})
    invalid = await dispatcher.dispatch(Role.observer, "apps.validate", {"appName": "demo"})
    await _init(dispatcher)
    valid = await dispatcher.dispatch(Role.observer, "apps.validate", {"appName": "demo"})

    assert "POSTGRES_DB=app_my_app" in example.result
    assert "POSTGRES_USER=ikoma" in example.result
    assert "s3cret" not in example.result
    assert invalid.result == {
        "valid": False,
        "errors": ["App directory does not exist", "docker-compose.yml not found"],
    }
    assert valid.result == {"valid": True, "errors": []}


async def test_runbook_and_verify(dispatcher: Dispatcher, apps_root: Path) -> None:
    await _init(dispatcher)
    unreleased = await dispatcher.dispatch(Role.observer, "artifact.generate_runbook", {"appName": "demo"})
    (apps_root / "demo" / "releases" / "rel-7").mkdir()
    os.symlink(apps_root / "demo" / "releases" / "rel-7", apps_root / "demo" / "current")
    runbook = await dispatcher.dispatch(Role.observer, "artifact.generate_runbook", {"appName": "demo"})
    verify = await dispatcher.dispatch(Role.observer, "artifact.verify_release", {"appName": "demo"})

    assert unreleased.result["version"] == "unreleased"
    assert runbook.result["version"] == "rel-7"
    assert runbook.result["config"]["currentRelease"] == "rel-7"
    assert runbook.result["deployedAt"].endswith("Z")
    assert len(runbook.result["healthChecks"]) == 3
    assert verify.result["verified"] is False
    assert [c["passed"] for c in verify.result["checks"]] == [True, False, False]
