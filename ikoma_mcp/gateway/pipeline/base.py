"""Shared machinery for release pipeline stages.

Each stage is a ``PipelineStage`` subclass. Calling a stage:

1. creates an ``EnvelopeBuilder`` (captures ``started_at``),
2. sanitizes the application slug into an ``AppLayout``,
3. takes the application lock,
4. runs ``execute``,
5. converts any failure into a failed envelope carrying the stage's error code.

Stages never raise to their caller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from ikoma_mcp.core.logging_config import get_logger

from ..config import GatewayConfig
from ..drivers.compose import ComposeDriver
from ..drivers.git import GitDriver
from ..drivers.supabase import SupabaseCli
from ..errors import GatewayError
from ..schemas.domain import ErrorCode, ReleaseStage, utc_now
from ..schemas.envelope import ReleaseEnvelope
from ..security.path_guard import PathGuard
from .action_log import ActionLog
from .envelope import EnvelopeBuilder
from .health import HealthProbe
from .layout import AppLayout
from .locks import AppLockRegistry
from .requests import StageRequest
from .state import StageMarkerStore

logger = get_logger(__name__)

RequestT = TypeVar("RequestT", bound=StageRequest)


@dataclass
class PipelineDeps:
    """Collaborators shared by all stages."""

    config: GatewayConfig
    guard: PathGuard
    git: GitDriver
    compose: ComposeDriver
    supabase: SupabaseCli
    health: HealthProbe
    locks: AppLockRegistry = field(default_factory=AppLockRegistry)
    markers: Optional[StageMarkerStore] = None
    clock: Callable[[], datetime] = utc_now

    def __post_init__(self) -> None:
        if self.markers is None:
            self.markers = StageMarkerStore(self.guard, clock=self.clock)


class StageFailure(GatewayError):
    """
    Expected, caller-facing failure of a stage.

    ``code`` and ``summary`` override the stage defaults (used for
    ``ENV_MISSING_KEYS``).
    """

    def __init__(
        self,
        message: str,
        *,
        hint: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        summary: Optional[str] = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.override_code = code
        self.summary = summary


class PipelineStage(ABC, Generic[RequestT]):
    """Template for one idempotent pipeline stage."""

    action: str
    failure_code: ErrorCode
    failure_summary: str
    completes: ReleaseStage

    def __init__(self, deps: PipelineDeps) -> None:
        self._deps = deps

    async def __call__(self, request: RequestT) -> ReleaseEnvelope:
        envelope = EnvelopeBuilder(request.release_id, self.action, self._deps.clock)
        log: Optional[ActionLog] = None
        try:
            layout = AppLayout.for_app(self._deps.guard, request.app_slug)
            log = ActionLog(self._deps.guard, layout, request.release_id, self.action, self._deps.clock)
            async with self._deps.locks.hold(layout.token):
                summary, artifacts = await self.execute(request, layout, envelope, log)
                if "pipeline_stage" not in artifacts:
                    artifacts["pipeline_stage"] = self.mark_completed(layout, request.release_id)
            logger.info(f"{self.action} succeeded for {layout.token}/{request.release_id}")
            return envelope.succeed(summary, artifacts)
        except StageFailure as exc:
            logger.warning(f"{self.action} failed for {request.app_slug}/{request.release_id}: {exc.message}")
            self._log_failure(log, exc.message)
            return envelope.fail(
                exc.override_code or self.failure_code,
                exc.message,
                summary=exc.summary or self.failure_summary,
                hint=exc.hint,
            )
        except GatewayError as exc:
            logger.warning(f"{self.action} failed for {request.app_slug}/{request.release_id}: {exc.message}")
            self._log_failure(log, exc.message)
            return envelope.fail(self.failure_code, exc.message, summary=self.failure_summary, hint=exc.hint)
        except Exception as exc:
            logger.warning(f"{self.action} failed for {request.app_slug}/{request.release_id}: {exc}", exc_info=True)
            self._log_failure(log, str(exc))
            return envelope.fail(self.failure_code, str(exc) or type(exc).__name__, summary=self.failure_summary)

    @abstractmethod
    async def execute(
        self,
        request: RequestT,
        layout: AppLayout,
        envelope: EnvelopeBuilder,
        log: ActionLog,
    ) -> tuple[str, Dict[str, Any]]:
        """Perform the stage. Return ``(summary, artifacts)`` or raise."""

    def mark_completed(self, layout: AppLayout, release_id: str) -> str:
        """Persist completion of this stage; return the furthest stage reached."""
        return self._deps.markers.advance(layout, release_id, self.completes).stage.value

    @staticmethod
    def _log_failure(log: Optional[ActionLog], message: str) -> None:
        # Only annotate logs the stage already started; failed preconditions leave no trace on disk.
        if log is None or not log.written:
            return
        try:
            log.write(f"FAILED: {message}")
        except (GatewayError, OSError) as exc:
            logger.warning(f"Could not append failure to {log.path}: {exc}")
