"""Validated inputs of the four release pipeline stages.

These models are also the published input schemas of the ``repo.clone``,
``supabase.ensure``, ``supabase.apply`` and ``release.deploy`` capabilities.
"""

from __future__ import annotations

import re
from typing import List, Optional

from pydantic import Field, field_validator

from ..schemas.base import BaseSchema

RELEASE_ID_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$"
REF_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9._/-]{0,199}$"
NAME_PATTERN = r"^[A-Za-z0-9_-]{1,64}$"
ENV_KEY_PATTERN = r"^[A-Z_][A-Z0-9_]*$"
DOMAIN_PATTERN = r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)*$"

_NAME_RE = re.compile(NAME_PATTERN)
_ENV_KEY_RE = re.compile(ENV_KEY_PATTERN)


class StageRequest(BaseSchema):
    """Fields shared by every stage."""

    release_id: str = Field(pattern=RELEASE_ID_PATTERN, description="Release identifier")
    app_slug: str = Field(min_length=1, max_length=64, description="Application identifier")

    @field_validator("release_id")
    @classmethod
    def _no_parent_segments(cls, value: str) -> str:
        if ".." in value:
            raise ValueError("release_id must not contain '..'")
        return value


class CloneRequest(StageRequest):
    git_url: str = Field(min_length=1, max_length=2048, description="Repository URL (https://github.com/...)")
    ref: str = Field(default="main", pattern=REF_PATTERN, description="Branch, tag or commit to check out")

    @field_validator("ref")
    @classmethod
    def _no_parent_refs(cls, value: str) -> str:
        if ".." in value:
            raise ValueError("ref must not contain '..'")
        return value


class EnsureStackRequest(StageRequest):
    pass


class ApplyMigrationsRequest(StageRequest):
    project_path: str = Field(min_length=1, description="Must equal <root>/<app_slug>/src")
    functions: List[str] = Field(default_factory=list, description="Edge functions to deploy")

    @field_validator("functions")
    @classmethod
    def _function_names(cls, value: List[str]) -> List[str]:
        for name in value:
            if not _NAME_RE.match(name):
                raise ValueError(f"invalid function name: {name!r}")
        return value


class DeployRequest(StageRequest):
    project_path: str = Field(min_length=1, description="Must equal <root>/<app_slug>/src")
    type: str = Field(min_length=1, max_length=32, description="Deployment type (e.g. docker, compose, static)")
    service: str = Field(pattern=NAME_PATTERN, description="Service to start")
    port: int = Field(ge=1, le=65535, description="Port the service listens on")
    domain: Optional[str] = Field(default=None, max_length=253, pattern=DOMAIN_PATTERN, description="Public domain")
    healthcheck: Optional[str] = Field(default=None, max_length=2048, description="Healthcheck URL or path")
    env_required: List[str] = Field(default_factory=list, description="Keys that must be present in .env")

    @field_validator("env_required")
    @classmethod
    def _env_keys(cls, value: List[str]) -> List[str]:
        for key in value:
            if not _ENV_KEY_RE.match(key):
                raise ValueError(f"invalid environment key: {key!r}")
        return value
