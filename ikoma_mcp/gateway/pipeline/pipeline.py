"""The release pipeline facade used by the ``repo.clone``, ``supabase.*`` and
``release.deploy`` capabilities."""

from __future__ import annotations

from ..schemas.envelope import ReleaseEnvelope
from .base import PipelineDeps
from .deploy import DeployStage
from .layout import AppLayout
from .migrations import MigrationStage
from .requests import ApplyMigrationsRequest, CloneRequest, DeployRequest, EnsureStackRequest
from .source import SourceStage
from .stack import StackStage
from .state import ReleaseState


class ReleasePipeline:
    """
    Four independently invokable stages over one application's tree.

    ``UNINITIALIZED -> SOURCE_READY -> STACK_READY -> MIGRATED -> DEPLOYED``

    Stages do not require their predecessors to have run; each re-observes the
    on-disk state. The persisted stage marker only records progress.
    """

    def __init__(self, deps: PipelineDeps) -> None:
        self._deps = deps
        self._source = SourceStage(deps)
        self._stack = StackStage(deps)
        self._migrations = MigrationStage(deps)
        self._deploy = DeployStage(deps)

    @property
    def deps(self) -> PipelineDeps:
        return self._deps

    async def clone_source(self, request: CloneRequest) -> ReleaseEnvelope:
        return await self._source(request)

    async def ensure_stack(self, request: EnsureStackRequest) -> ReleaseEnvelope:
        return await self._stack(request)

    async def apply_migrations(self, request: ApplyMigrationsRequest) -> ReleaseEnvelope:
        return await self._migrations(request)

    async def deploy_release(self, request: DeployRequest) -> ReleaseEnvelope:
        return await self._deploy(request)

    def state(self, app_slug: str, release_id: str) -> ReleaseState:
        layout = AppLayout.for_app(self._deps.guard, app_slug)
        return self._deps.markers.read(layout, release_id)
