"""Immutable configuration values injected into gateway components.

Transports build a ``GatewayConfig`` from their own settings source; the core
only ever sees these frozen objects.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from sqlalchemy.engine import URL

from .schemas.base import BaseSchema


class PostgresConfig(BaseSchema):
    """Connection parameters of the shared PostgreSQL server."""

    model_config = {"frozen": True}

    host: str = "localhost"
    port: int = Field(default=5432, ge=1, le=65535)
    database: str = "postgres"
    user: str = "postgres"
    password: str = Field(default="", repr=False)

    def url(
        self,
        database: str | None = None,
        *,
        drivername: str = "postgresql+asyncpg",
        host: str | None = None,
        port: int | None = None,
    ) -> URL:
        """SQLAlchemy URL for ``database`` (defaults to the admin database); credentials are escaped."""
        return URL.create(
            drivername=drivername,
            username=self.user,
            password=self.password or None,
            host=host or self.host,
            port=port or self.port,
            database=database or self.database,
        )


class StackConfig(BaseSchema):
    """Externally reachable endpoints of the per-application backing-service stack."""

    model_config = {"frozen": True}

    supabase_url: str = "http://localhost:8000"
    db_host: str = "localhost"
    db_port: int = Field(default=5432, ge=1, le=65535)
    db_name: str = "postgres"


class GatewayConfig(BaseSchema):
    """
    Root configuration for the gateway core.

    Attributes:
        apps_root: The managed root; every application lives in ``apps_root/<slug>``.
        audit_log: Path of the append-only audit trail (JSON lines).
        postgres: Shared PostgreSQL server used by the ``db.*`` capabilities.
        stack: Connection artifacts reported by ``supabase.ensure``.
    """

    model_config = {"frozen": True}

    apps_root: Path = Path("/srv/apps")
    audit_log: Path = Path("/var/log/ikoma/audit.log")
    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    stack: StackConfig = Field(default_factory=StackConfig)

    docker_binary: str = "docker"
    git_binary: str = "git"
    supabase_binary: str = "supabase"
    pg_dump_binary: str = "pg_dump"

    healthcheck_timeout_seconds: float = Field(default=5.0, gt=0.0, le=120.0)
    max_apps: int = Field(default=50, ge=1)
    max_db_size: str = "10GB"
