"""Capability protocol and execution data models.

A capability is one named, role-gated operation. The ``Dispatcher`` resolves
a name through the ``CapabilityRegistry``, authorizes the caller, validates
the arguments against the capability's ``input_model`` and only then calls
``execute`` with the validated model.

Capabilities should:

- return structured outputs in ``CapabilityResult.output``,
- raise ``GatewayError`` subclasses for expected failures (the dispatcher maps
  them to their error code),
- avoid performing authorization themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol, Type

from ..schemas.base import BaseSchema
from ..schemas.domain import ErrorCode, ErrorInfo, ExecutionContext, Role


class CapabilityName(str, Enum):
    """The closed set of operations the gateway exposes."""

    platform_info = "platform.info"
    platform_check = "platform.check"
    apps_list = "apps.list"
    apps_status = "apps.status"
    apps_health = "apps.health"
    apps_init = "apps.init"
    apps_remove = "apps.remove"
    apps_env_example = "apps.env.example"
    apps_validate = "apps.validate"
    deploy_up = "deploy.up"
    deploy_down = "deploy.down"
    deploy_restart = "deploy.restart"
    db_create = "db.create"
    db_migrate = "db.migrate"
    db_seed = "db.seed"
    db_backup = "db.backup"
    db_status = "db.status"
    artifact_generate_runbook = "artifact.generate_runbook"
    artifact_verify_release = "artifact.verify_release"
    repo_clone = "repo.clone"
    supabase_ensure = "supabase.ensure"
    supabase_apply = "supabase.apply"
    release_deploy = "release.deploy"


@dataclass(frozen=True)
class CapabilityResult:
    """Structured capability execution result."""

    ok: bool
    output: Any
    error: Optional[ErrorInfo] = None

    @classmethod
    def success(cls, output: Any) -> "CapabilityResult":
        return cls(ok=True, output=output)

    @classmethod
    def failure(
        cls,
        code: ErrorCode,
        message: str,
        *,
        hint: Optional[str] = None,
        output: Any = None,
    ) -> "CapabilityResult":
        return cls(ok=False, output=output, error=ErrorInfo(code=code, message=message, hint=hint))


class Capability(Protocol):
    """Protocol for capability implementations."""

    name: CapabilityName
    required_role: Role
    description: str
    input_model: Type[BaseSchema]

    async def execute(self, ctx: ExecutionContext, args: Any) -> CapabilityResult: ...
