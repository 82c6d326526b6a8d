from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import Field

from .base import BaseSchema


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(value: datetime) -> str:
    """Render a timestamp as ISO8601 with millisecond precision and a ``Z`` suffix."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Role(str, Enum):
    observer = "observer"
    operator = "operator"
    builder = "builder"
    admin = "admin"


class ErrorCode(str, Enum):
    repo_clone_failed = "REPO_CLONE_FAILED"
    supabase_boot_failed = "SUPABASE_BOOT_FAILED"
    db_migration_failed = "DB_MIGRATION_FAILED"
    env_missing_keys = "ENV_MISSING_KEYS"
    app_deploy_failed = "APP_DEPLOY_FAILED"
    permission_denied = "PERMISSION_DENIED"
    validation_error = "VALIDATION_ERROR"
    path_violation = "PATH_VIOLATION"
    unknown_capability = "UNKNOWN_CAPABILITY"
    execution_failed = "EXECUTION_FAILED"
    invalid_role = "INVALID_ROLE"
    orchestration_failed = "ORCHESTRATION_FAILED"
    database_failed = "DATABASE_FAILED"
    app_not_found = "APP_NOT_FOUND"


class ReleaseStage(str, Enum):
    uninitialized = "UNINITIALIZED"
    source_ready = "SOURCE_READY"
    stack_ready = "STACK_READY"
    migrated = "MIGRATED"
    deployed = "DEPLOYED"


STAGE_ORDER = (
    ReleaseStage.uninitialized,
    ReleaseStage.source_ready,
    ReleaseStage.stack_ready,
    ReleaseStage.migrated,
    ReleaseStage.deployed,
)


class AuditOutcome(str, Enum):
    success = "success"
    error = "error"


class ErrorInfo(BaseSchema):
    """Machine-readable failure carried by every failed result."""

    code: ErrorCode
    message: str
    hint: Optional[str] = None


@dataclass(frozen=True)
class ExecutionContext:
    """Per-invocation context threaded explicitly into every capability.

    Attributes
    ----------
    role:
        The caller role that passed authorization.
    request_id:
        Unique identifier of this invocation; it also keys the audit record.
    timestamp:
        Invocation time (UTC).
    services:
        The ``GatewayServices`` bundle (configuration, path guard, drivers,
        release pipeline). Capabilities never reach for global state.
    """

    role: Role
    services: Any
    request_id: str = field(default_factory=lambda: uuid4().hex)
    timestamp: datetime = field(default_factory=utc_now)


class AuditEntry(BaseSchema):
    """One line of the audit trail.

    Field aliases are the on-disk record keys; use ``to_record`` to serialize.
    """

    timestamp: datetime = Field(default_factory=utc_now)
    request_id: str = Field(alias="requestId")
    capability: str
    role: str
    arguments: Dict[str, Any] = Field(default_factory=dict)
    result: AuditOutcome
    error: Optional[str] = None
    duration: float = Field(description="Invocation duration in milliseconds", ge=0.0)

    def to_record(self) -> Dict[str, Any]:
        record = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        record["timestamp"] = isoformat(self.timestamp)
        return record
