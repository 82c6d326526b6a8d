"""
Configuration Settings.

This module defines the process configuration using Pydantic's BaseSettings.
All values are read from environment variables (and an optional ``.env``
file). The gateway core never reads these settings directly: transports call
``Settings.gateway_config()`` and pass the result in.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =====================================================================
# Grouped Configuration Models
# =====================================================================


class PostgreSQLConfig(BaseModel):
    """Shared PostgreSQL server used for per-application databases."""

    host: str = Field(default="localhost", alias="POSTGRES_HOST", description="PostgreSQL host address")
    port: int = Field(default=5432, alias="POSTGRES_PORT", description="PostgreSQL port number")
    db: str = Field(default="postgres", alias="POSTGRES_DB", description="Administrative database name")
    user: str = Field(default="postgres", alias="POSTGRES_USER", description="PostgreSQL user")
    password: str = Field(default="", alias="POSTGRES_PASSWORD", description="PostgreSQL password", repr=False)

    model_config = {"populate_by_name": True}


class StackEndpointsConfig(BaseModel):
    """Endpoints reported by ``supabase.ensure``."""

    supabase_url: str = Field(default="http://localhost:8000", alias="IKOMA_SUPABASE_URL")
    db_host: str = Field(default="localhost", alias="IKOMA_STACK_DB_HOST")
    db_port: int = Field(default=5432, alias="IKOMA_STACK_DB_PORT")
    db_name: str = Field(default="postgres", alias="IKOMA_STACK_DB_NAME")

    model_config = {"populate_by_name": True}


class RateLimitConfig(BaseModel):
    """Fixed-window request limit of the HTTP transport."""

    window_ms: int = Field(default=60000, alias="IKOMA_RATE_LIMIT_WINDOW_MS", description="Window length in ms")
    max_requests: int = Field(
        default=100, alias="IKOMA_RATE_LIMIT_MAX_REQUESTS", description="Requests allowed per window and client"
    )

    model_config = {"populate_by_name": True}


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Process settings.

    All properties are bound from environment variables and the ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # Server Configuration
    # =====================================================================
    server_mode: Literal["mcp", "http", "hybrid"] = Field(
        default="hybrid",
        description="Transports to run: mcp (stdio), http, or both",
        alias="IKOMA_SERVER_MODE",
    )
    http_host: str = Field(default="0.0.0.0", description="HTTP bind address", alias="IKOMA_HTTP_HOST")
    http_port: int = Field(default=3000, description="HTTP port", alias="IKOMA_HTTP_PORT")
    api_key_hash: Optional[str] = Field(
        default=None,
        description="Hex SHA-256 digest of the HTTP API key",
        alias="IKOMA_API_KEY_HASH",
        repr=False,
    )
    mcp_role: str = Field(
        default="observer",
        description="Role granted to callers of the stdio transport",
        alias="IKOMA_MCP_ROLE",
    )

    # =====================================================================
    # Managed Root and Audit
    # =====================================================================
    apps_root: Path = Field(default=Path("/srv/apps"), description="Managed applications root", alias="IKOMA_APPS_ROOT")
    audit_log: Path = Field(
        default=Path("/var/log/ikoma/audit.log"),
        description="Append-only audit trail (JSON lines)",
        alias="IKOMA_AUDIT_LOG",
    )

    # =====================================================================
    # Logging Configuration
    # =====================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="IKOMA_LOG_LEVEL",
    )
    log_format: str = Field(default="detailed", description="simple, detailed or json", alias="IKOMA_LOG_FORMAT")
    log_file_dir: str = Field(default="logs", description="Directory for log files", alias="IKOMA_LOG_FILE_DIR")
    enable_file_logging: bool = Field(
        default=False, description="Also write logs to files", alias="IKOMA_ENABLE_FILE_LOGGING"
    )

    # =====================================================================
    # Platform Limits
    # =====================================================================
    max_apps: int = Field(default=50, ge=1, description="Maximum number of applications", alias="IKOMA_MAX_APPS")
    max_db_size: str = Field(default="10GB", description="Advertised per-database size limit", alias="IKOMA_MAX_DB_SIZE")
    healthcheck_timeout_seconds: float = Field(
        default=5.0, gt=0.0, description="Timeout of post-deploy healthchecks", alias="IKOMA_HEALTHCHECK_TIMEOUT"
    )

    # =====================================================================
    # External Programs
    # =====================================================================
    docker_binary: str = Field(default="docker", alias="IKOMA_DOCKER_BINARY")
    git_binary: str = Field(default="git", alias="IKOMA_GIT_BINARY")
    supabase_binary: str = Field(default="supabase", alias="IKOMA_SUPABASE_BINARY")
    pg_dump_binary: str = Field(default="pg_dump", alias="IKOMA_PG_DUMP_BINARY")

    # =====================================================================
    # Stack Endpoints
    # =====================================================================
    supabase_url: str = Field(default="http://localhost:8000", alias="IKOMA_SUPABASE_URL")
    stack_db_host: str = Field(default="localhost", alias="IKOMA_STACK_DB_HOST")
    stack_db_port: int = Field(default=5432, alias="IKOMA_STACK_DB_PORT")
    stack_db_name: str = Field(default="postgres", alias="IKOMA_STACK_DB_NAME")

    # =====================================================================
    # Rate Limiting
    # =====================================================================
    rate_limit_window_ms: int = Field(default=60000, alias="IKOMA_RATE_LIMIT_WINDOW_MS")
    rate_limit_max_requests: int = Field(default=100, alias="IKOMA_RATE_LIMIT_MAX_REQUESTS")

    # =====================================================================
    # PostgreSQL Configuration
    # =====================================================================
    postgres_host: str = Field(default="localhost", alias="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, alias="POSTGRES_PORT")
    postgres_db: str = Field(default="postgres", alias="POSTGRES_DB")
    postgres_user: str = Field(default="postgres", alias="POSTGRES_USER")
    postgres_password: str = Field(default="", alias="POSTGRES_PASSWORD", repr=False)

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def postgres(self) -> PostgreSQLConfig:
        """Get PostgreSQL configuration from environment variables."""
        return PostgreSQLConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def stack(self) -> StackEndpointsConfig:
        """Get stack endpoint configuration from environment variables."""
        return StackEndpointsConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def rate_limit(self) -> RateLimitConfig:
        """Get rate limit configuration from environment variables."""
        return RateLimitConfig.model_validate(self.model_dump(by_alias=True))

    def gateway_config(self):
        """Build the immutable ``GatewayConfig`` handed to the gateway core."""
        # Imported here: the logging module loads these settings before the gateway package exists.
        from ikoma_mcp.gateway.config import GatewayConfig, PostgresConfig, StackConfig

        pg = self.postgres
        stack = self.stack
        return GatewayConfig(
            apps_root=self.apps_root,
            audit_log=self.audit_log,
            postgres=PostgresConfig(host=pg.host, port=pg.port, database=pg.db, user=pg.user, password=pg.password),
            stack=StackConfig(
                supabase_url=stack.supabase_url,
                db_host=stack.db_host,
                db_port=stack.db_port,
                db_name=stack.db_name,
            ),
            docker_binary=self.docker_binary,
            git_binary=self.git_binary,
            supabase_binary=self.supabase_binary,
            pg_dump_binary=self.pg_dump_binary,
            healthcheck_timeout_seconds=self.healthcheck_timeout_seconds,
            max_apps=self.max_apps,
            max_db_size=self.max_db_size,
        )


settings = Settings()
