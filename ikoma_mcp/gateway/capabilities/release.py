"""Release pipeline capabilities.

Each capability hands its validated request to the ``ReleasePipeline`` and
returns the envelope as its output. A failed envelope becomes a failed
result carrying the envelope's error code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Type

from ..pipeline.requests import ApplyMigrationsRequest, CloneRequest, DeployRequest, EnsureStackRequest
from ..schemas.base import BaseSchema
from ..schemas.domain import ErrorInfo, ExecutionContext, Role
from ..schemas.envelope import ReleaseEnvelope
from .base import Capability, CapabilityName, CapabilityResult


def envelope_result(envelope: ReleaseEnvelope) -> CapabilityResult:
    error = None
    if envelope.error is not None:
        error = ErrorInfo(code=envelope.error.code, message=envelope.error.message, hint=envelope.error.hint)
    return CapabilityResult(ok=envelope.ok, output=envelope.to_payload(), error=error)


@dataclass(frozen=True)
class RepoCloneCapability(Capability):
    name: CapabilityName = CapabilityName.repo_clone
    required_role: Role = Role.builder
    description: str = "Clone or update the application source from GitHub into <app>/src"
    input_model: Type[BaseSchema] = CloneRequest

    async def execute(self, ctx: ExecutionContext, args: CloneRequest) -> CapabilityResult:
        return envelope_result(await ctx.services.pipeline.clone_source(args))


@dataclass(frozen=True)
class SupabaseEnsureCapability(Capability):
    name: CapabilityName = CapabilityName.supabase_ensure
    required_role: Role = Role.builder
    description: str = "Ensure the application's Supabase stack is defined and running"
    input_model: Type[BaseSchema] = EnsureStackRequest

    async def execute(self, ctx: ExecutionContext, args: EnsureStackRequest) -> CapabilityResult:
        return envelope_result(await ctx.services.pipeline.ensure_stack(args))


@dataclass(frozen=True)
class SupabaseApplyCapability(Capability):
    name: CapabilityName = CapabilityName.supabase_apply
    required_role: Role = Role.builder
    description: str = "Apply Supabase migrations and deploy edge functions"
    input_model: Type[BaseSchema] = ApplyMigrationsRequest

    async def execute(self, ctx: ExecutionContext, args: ApplyMigrationsRequest) -> CapabilityResult:
        return envelope_result(await ctx.services.pipeline.apply_migrations(args))


@dataclass(frozen=True)
class ReleaseDeployCapability(Capability):
    name: CapabilityName = CapabilityName.release_deploy
    required_role: Role = Role.builder
    description: str = "Materialize a release, switch the current pointer and start the service"
    input_model: Type[BaseSchema] = DeployRequest

    async def execute(self, ctx: ExecutionContext, args: DeployRequest) -> CapabilityResult:
        return envelope_result(await ctx.services.pipeline.deploy_release(args))
