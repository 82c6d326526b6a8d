"""Argument models of the administrative capabilities.

The release capabilities reuse the stage request models from
``ikoma_mcp.gateway.pipeline.requests``.
"""

from __future__ import annotations

import re
from typing import Dict

from pydantic import Field, field_validator

from ..pipeline.requests import ENV_KEY_PATTERN, NAME_PATTERN
from ..schemas.base import BaseSchema

MAX_SQL_BYTES = 1024 * 1024

_ENV_KEY_RE = re.compile(ENV_KEY_PATTERN)


class NoArgs(BaseSchema):
    pass


class AppNameArgs(BaseSchema):
    app_name: str = Field(alias="appName", min_length=1, max_length=64, description="Application name")


class DeployUpArgs(AppNameArgs):
    env: Dict[str, str] = Field(default_factory=dict, description="Environment overlay for docker compose")

    @field_validator("env")
    @classmethod
    def _env_keys(cls, value: Dict[str, str]) -> Dict[str, str]:
        for key in value:
            if not _ENV_KEY_RE.match(key):
                raise ValueError(f"invalid environment variable name: {key!r}")
        return value


class SqlArgs(AppNameArgs):
    sql: str = Field(min_length=1, description="SQL script (at most 1 MiB)")

    @field_validator("sql")
    @classmethod
    def _size_limit(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_SQL_BYTES:
            raise ValueError("sql exceeds 1 MiB")
        return value


class BackupArgs(AppNameArgs):
    backup_name: str = Field(alias="backupName", pattern=NAME_PATTERN, description="Backup file name (without .sql)")
