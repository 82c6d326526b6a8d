"""Persisted per-release stage marker.

The marker records which pipeline stages have completed for a release so that
a crashed or interrupted pipeline can be inspected and resumed without
inferring progress from directory contents. It only moves on stage success.
"""

from __future__ import annotations

import json
import os
from datetime import datetime
from typing import Callable, List
from uuid import uuid4

from pydantic import Field, ValidationError

from ikoma_mcp.core.logging_config import get_logger

from ..schemas.base import BaseSchema
from ..schemas.domain import STAGE_ORDER, ReleaseStage, utc_now
from ..security.path_guard import PathGuard
from .layout import AppLayout

logger = get_logger(__name__)


class StageTransition(BaseSchema):
    stage: ReleaseStage
    at: datetime


class ReleaseState(BaseSchema):
    """
    Stage marker of one release.

    Attributes:
        stage: Furthest stage completed so far.
        completed: Every stage that has completed at least once.
        history: Successful stage completions in order.
    """

    release_id: str
    stage: ReleaseStage = ReleaseStage.uninitialized
    completed: List[ReleaseStage] = Field(default_factory=list)
    history: List[StageTransition] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=utc_now)


def _rank(stage: ReleaseStage) -> int:
    return STAGE_ORDER.index(stage)


class StageMarkerStore:
    """Reads and atomically rewrites ``<app>/.state/<release_id>.json``."""

    def __init__(self, guard: PathGuard, clock: Callable[[], datetime] = utc_now) -> None:
        self._guard = guard
        self._clock = clock

    def read(self, layout: AppLayout, release_id: str) -> ReleaseState:
        path = layout.state_file(release_id)
        self._guard.ensure(path, layout.token)
        if not path.exists():
            return ReleaseState(release_id=release_id)
        try:
            return ReleaseState.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning(f"Ignoring unreadable stage marker {path}: {exc}")
            return ReleaseState(release_id=release_id)

    def advance(self, layout: AppLayout, release_id: str, stage: ReleaseStage) -> ReleaseState:
        """Record a successful completion of ``stage`` and return the new state."""
        state = self.read(layout, release_id)
        now = self._clock()
        completed = list(state.completed)
        if stage not in completed:
            completed.append(stage)
            completed.sort(key=_rank)
        furthest = stage if _rank(stage) > _rank(state.stage) else state.stage
        updated = ReleaseState(
            release_id=release_id,
            stage=furthest,
            completed=completed,
            history=[*state.history, StageTransition(stage=stage, at=now)],
            updated_at=now,
        )
        self._write(layout, release_id, updated)
        return updated

    def _write(self, layout: AppLayout, release_id: str, state: ReleaseState) -> None:
        path = layout.state_file(release_id)
        self._guard.ensure(path, layout.token)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(f".{path.name}.{uuid4().hex[:8]}.tmp")
        tmp.write_text(state.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp, path)
