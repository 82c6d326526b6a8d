from __future__ import annotations

from pathlib import Path
from typing import Any, AsyncGenerator, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

import httpx
import pytest
import pytest_asyncio
from dotenv import load_dotenv
from fastapi import FastAPI

from ikoma_mcp.gateway.config import GatewayConfig, PostgresConfig
from ikoma_mcp.gateway.drivers.database import database_name_for
from ikoma_mcp.gateway.errors import CommandFailedError, DatabaseDriverError
from ikoma_mcp.gateway.security.path_guard import PathGuard
from ikoma_mcp.gateway.services import GatewayServices, build_services
from ikoma_mcp.server.core.config import Settings
from ikoma_mcp.server.main import create_app
from ikoma_mcp.server.services.deps import hash_api_key

TEST_ROOT = Path(__file__).resolve().parent
# test/.env first, then test/.env.example for defaults
load_dotenv(TEST_ROOT / ".env", override=False)
load_dotenv(TEST_ROOT / ".env.example", override=False)

COMMIT_HASH = "3f2c9a1b7d4e5f60718293a4b5c6d7e8f9012345"


# =====================================================================
# Driver doubles
# =====================================================================


class FakeGit:
    """Git double: a clone creates ``.git`` plus one file; ``update`` only records the call."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, ...]] = []
        self.revision = COMMIT_HASH
        self.fail_with: Optional[Exception] = None

    def is_working_copy(self, path: Path) -> bool:
        return (path / ".git").exists()

    async def clone(self, url: str, ref: str, dest: Path) -> str:
        self.calls.append(("clone", url, ref, str(dest)))
        if self.fail_with is not None:
            raise self.fail_with
        dest.mkdir(parents=True, exist_ok=True)
        (dest / ".git").mkdir(exist_ok=True)
        (dest / "README.md").write_text("# demo\n", encoding="utf-8")
        return f"Cloning into '{dest.name}'...\n"

    async def update(self, path: Path, ref: str) -> str:
        self.calls.append(("update", str(path), ref))
        if self.fail_with is not None:
            raise self.fail_with
        return "Already up to date.\n"

    async def head_revision(self, path: Path) -> str:
        return self.revision


class FakeCompose:
    def __init__(self) -> None:
        self.calls: List[Tuple[Any, ...]] = []
        self.running: Set[Path] = set()
        self.available = True
        self.fail_up: Optional[Exception] = None

    async def up(
        self,
        project_dir: Path,
        *,
        env: Optional[Mapping[str, str]] = None,
        services: Sequence[str] = (),
    ) -> str:
        self.calls.append(("up", project_dir, dict(env or {}), tuple(services)))
        if self.fail_up is not None:
            raise self.fail_up
        self.running.add(project_dir)
        return "Container started\n"

    async def down(self, project_dir: Path) -> str:
        self.calls.append(("down", project_dir))
        self.running.discard(project_dir)
        return "Container stopped\n"

    async def restart(self, project_dir: Path, *, services: Sequence[str] = ()) -> str:
        self.calls.append(("restart", project_dir, tuple(services)))
        return "Container restarted\n"

    async def is_running(self, project_dir: Path) -> bool:
        return project_dir in self.running

    async def ping(self) -> bool:
        return self.available

    def count(self, op: str) -> int:
        return sum(1 for call in self.calls if call[0] == op)


class FakeSupabase:
    def __init__(self) -> None:
        self.calls: List[Tuple[str, ...]] = []
        self.failing_functions: Set[str] = set()
        self.fail_push: Optional[Exception] = None

    async def db_push(self, workdir: Path, db_url: str) -> str:
        self.calls.append(("db_push", str(workdir), db_url))
        if self.fail_push is not None:
            raise self.fail_push
        return "Applying migration...\nFinished supabase db push.\n"

    async def deploy_function(self, workdir: Path, name: str) -> str:
        self.calls.append(("deploy_function", str(workdir), name))
        if name in self.failing_functions:
            raise CommandFailedError(["supabase", "functions", "deploy", name], 1, "deploy failed")
        return f"Deployed Function {name}\n"


class FakeDatabase:
    def __init__(self) -> None:
        self.databases: Dict[str, List[str]] = {}
        self.available = True

    async def ping(self) -> bool:
        return self.available

    async def database_exists(self, token: str) -> bool:
        return token in self.databases

    async def create_database(self, token: str) -> str:
        self.databases.setdefault(token, [])
        return database_name_for(token)

    async def drop_database(self, token: str) -> None:
        self.databases.pop(token, None)

    async def execute_script(self, token: str, sql: str) -> None:
        if "syntax error" in sql:
            raise DatabaseDriverError(f"SQL execution failed on {database_name_for(token)}: syntax error")
        self.databases[token].append(sql)

    async def list_tables(self, token: str) -> List[str]:
        return ["users"] if self.databases.get(token) else []

    async def database_size(self, token: str) -> Optional[str]:
        return "8 kB"

    async def backup(self, token: str, dest: Path) -> Path:
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text("-- PostgreSQL database dump\n", encoding="utf-8")
        return dest

    async def dispose(self) -> None:
        return None


class FakeHealth:
    def __init__(self, status: str = "healthy") -> None:
        self.status = status
        self.urls: List[str] = []

    async def check(self, url: str) -> Dict[str, Any]:
        self.urls.append(url)
        return {"status": self.status, "latency_ms": 1.0, "url": url, "status_code": 200}


# =====================================================================
# Fixtures
# =====================================================================


@pytest.fixture
def apps_root(tmp_path: Path) -> Path:
    root = tmp_path / "apps"
    root.mkdir()
    return root.resolve()


@pytest.fixture
def audit_path(tmp_path: Path) -> Path:
    return tmp_path / "audit" / "audit.log"


@pytest.fixture
def gateway_config(apps_root: Path, audit_path: Path) -> GatewayConfig:
    return GatewayConfig(
        apps_root=apps_root,
        audit_log=audit_path,
        postgres=PostgresConfig(user="ikoma", password="s3cret"),
    )


@pytest.fixture
def guard(apps_root: Path) -> PathGuard:
    return PathGuard(apps_root)


@pytest.fixture
def fake_git() -> FakeGit:
    return FakeGit()


@pytest.fixture
def fake_compose() -> FakeCompose:
    return FakeCompose()


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def fake_database() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def fake_health() -> FakeHealth:
    return FakeHealth()


@pytest.fixture
def services(
    gateway_config: GatewayConfig,
    guard: PathGuard,
    fake_git: FakeGit,
    fake_compose: FakeCompose,
    fake_supabase: FakeSupabase,
    fake_database: FakeDatabase,
    fake_health: FakeHealth,
) -> GatewayServices:
    return build_services(
        gateway_config,
        guard=guard,
        git=fake_git,
        compose=fake_compose,
        supabase=fake_supabase,
        database=fake_database,
        health=fake_health,
    )


@pytest.fixture
def dispatcher(services: GatewayServices):
    return services.dispatcher()


@pytest.fixture(autouse=True)
def _global_offline_http_guard(monkeypatch: pytest.MonkeyPatch):
    allowed_prefixes: Iterable[str] = (
        "http://mock",
        "https://mock",
        "http://localhost",
        "http://127.0.0.1",
        "http://test",
        "/",  # Allow relative paths (used by ASGI transport)
    )

    orig_sync = httpx._client.Client.request
    orig_async = httpx._client.AsyncClient.request

    def _is_allowed(url_str: str) -> bool:
        return any(url_str.startswith(p) for p in allowed_prefixes)

    def offline_sync(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return orig_sync(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard: {url_str}")

    async def offline_async(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return await orig_async(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard (async): {url_str}")

    monkeypatch.setattr(httpx._client.Client, "request", offline_sync, raising=True)
    monkeypatch.setattr(httpx._client.AsyncClient, "request", offline_async, raising=True)


# =====================================================================
# HTTP transport
# =====================================================================

API_KEY = "ikoma-test-key"


@pytest.fixture
def server_settings(apps_root: Path, audit_path: Path) -> Settings:
    return Settings(
        IKOMA_API_KEY_HASH=hash_api_key(API_KEY),
        IKOMA_APPS_ROOT=apps_root,
        IKOMA_AUDIT_LOG=audit_path,
        IKOMA_RATE_LIMIT_MAX_REQUESTS=1000,
    )


@pytest.fixture
def app(server_settings: Settings, services: GatewayServices) -> FastAPI:
    return create_app(server_settings, services)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
