"""Relational-database driver (PostgreSQL through SQLAlchemy's async engine).

Each application owns one database named ``app_<slug>``. Administrative
statements (``CREATE DATABASE``/``DROP DATABASE``) run on an AUTOCOMMIT engine
bound to the server's admin database; per-application work uses a short-lived
engine bound to the application database.
"""

from __future__ import annotations

import re
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from ikoma_mcp.core.logging_config import get_logger

from ..config import PostgresConfig
from ..errors import CommandFailedError, DatabaseDriverError
from .process import CommandRunner

logger = get_logger(__name__)

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]{0,62}$")


def database_name_for(token: str) -> str:
    """Map a sanitized application token to its database name."""
    name = "app_" + token.replace("-", "_")
    name = name[:63]
    if not _IDENTIFIER.match(name):
        raise DatabaseDriverError(f"Cannot derive a database name from {token!r}")
    return name


def quote_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise DatabaseDriverError(f"Unsafe identifier: {name!r}")
    return f'"{name}"'


class DatabaseDriver:
    """
    Create, drop, inspect and back up per-application databases.

    Args:
        config: Shared server connection parameters.
        runner: Command runner used for ``pg_dump``.
        pg_dump_binary: Name or path of the ``pg_dump`` executable.
    """

    def __init__(
        self,
        config: PostgresConfig,
        runner: Optional[CommandRunner] = None,
        pg_dump_binary: str = "pg_dump",
    ) -> None:
        self._config = config
        self._runner = runner or CommandRunner()
        self._pg_dump = pg_dump_binary
        self._admin_engine: Optional[AsyncEngine] = None

    def _admin(self) -> AsyncEngine:
        if self._admin_engine is None:
            self._admin_engine = create_async_engine(
                self._config.url(),
                isolation_level="AUTOCOMMIT",
                pool_pre_ping=True,
            )
        return self._admin_engine

    @asynccontextmanager
    async def _connect(self, database: str) -> AsyncIterator[AsyncConnection]:
        engine = create_async_engine(self._config.url(database), pool_pre_ping=True)
        try:
            async with engine.connect() as conn:
                yield conn
        finally:
            await engine.dispose()

    async def ping(self) -> bool:
        try:
            async with self._admin().connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            logger.debug(f"PostgreSQL ping failed: {exc}")
            return False
        return True

    async def database_exists(self, token: str) -> bool:
        name = database_name_for(token)
        try:
            async with self._admin().connect() as conn:
                row = await conn.execute(text("SELECT 1 FROM pg_database WHERE datname = :name"), {"name": name})
                return row.first() is not None
        except (SQLAlchemyError, OSError) as exc:
            logger.warning(f"database_exists({name}) failed: {exc}")
            return False

    async def create_database(self, token: str) -> str:
        name = database_name_for(token)
        if await self.database_exists(token):
            return name
        try:
            async with self._admin().connect() as conn:
                await conn.execute(text(f"CREATE DATABASE {quote_identifier(name)}"))
        except (SQLAlchemyError, OSError) as exc:
            raise DatabaseDriverError(f"Failed to create database {name}: {exc}") from exc
        logger.info(f"Created database {name}")
        return name

    async def drop_database(self, token: str) -> None:
        name = database_name_for(token)
        try:
            async with self._admin().connect() as conn:
                await conn.execute(text(f"DROP DATABASE IF EXISTS {quote_identifier(name)}"))
        except (SQLAlchemyError, OSError) as exc:
            raise DatabaseDriverError(f"Failed to drop database {name}: {exc}") from exc
        logger.info(f"Dropped database {name}")

    async def execute_script(self, token: str, sql: str) -> None:
        """Run a (possibly multi-statement) SQL script inside one transaction."""
        name = database_name_for(token)
        try:
            async with self._connect(name) as conn:
                raw = await conn.get_raw_connection()
                driver_conn = raw.driver_connection
                async with driver_conn.transaction():
                    await driver_conn.execute(sql)
        except Exception as exc:
            # asyncpg raises its own PostgresError hierarchy on the raw connection.
            raise DatabaseDriverError(f"SQL execution failed on {name}: {exc}") from exc

    async def list_tables(self, token: str) -> List[str]:
        name = database_name_for(token)
        try:
            async with self._connect(name) as conn:
                rows = await conn.execute(
                    text(
                        "SELECT table_name FROM information_schema.tables "
                        "WHERE table_schema = 'public' ORDER BY table_name"
                    )
                )
                return [r[0] for r in rows]
        except (SQLAlchemyError, OSError) as exc:
            raise DatabaseDriverError(f"Failed to list tables of {name}: {exc}") from exc

    async def database_size(self, token: str) -> Optional[str]:
        name = database_name_for(token)
        try:
            async with self._admin().connect() as conn:
                row = await conn.execute(text("SELECT pg_size_pretty(pg_database_size(:name))"), {"name": name})
                value = row.scalar()
        except (SQLAlchemyError, OSError) as exc:
            logger.warning(f"database_size({name}) failed: {exc}")
            return None
        return str(value) if value is not None else None

    async def backup(self, token: str, dest: Path) -> Path:
        """Dump the application database to ``dest`` with ``pg_dump``."""
        name = database_name_for(token)
        dest.parent.mkdir(parents=True, exist_ok=True)
        try:
            await self._runner.run(
                [
                    self._pg_dump,
                    "--host", self._config.host,
                    "--port", str(self._config.port),
                    "--username", self._config.user,
                    "--no-password",
                    "--file", str(dest),
                    name,
                ],
                env={"PGPASSWORD": self._config.password},
            )
        except CommandFailedError as exc:
            raise DatabaseDriverError(f"Backup of {name} failed: {exc.message}") from exc
        return dest

    async def dispose(self) -> None:
        if self._admin_engine is not None:
            await self._admin_engine.dispose()
            self._admin_engine = None
