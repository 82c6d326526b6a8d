"""Per-release, per-action log files (``logs/<release_id>/<action>.log``)."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Callable

from ..schemas.domain import isoformat, utc_now
from ..security.path_guard import PathGuard
from ..security.redaction import scrub_text
from .layout import AppLayout


class ActionLog:
    """
    Append-only text log for one stage invocation.

    Nothing touches the filesystem until the first ``write``, so a stage that
    fails its preconditions leaves no log directory behind.
    """

    def __init__(
        self,
        guard: PathGuard,
        layout: AppLayout,
        release_id: str,
        action: str,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._guard = guard
        self._layout = layout
        self._path = layout.action_log(release_id, action)
        self._clock = clock
        self._written = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def written(self) -> bool:
        return self._written

    def write(self, content: str) -> None:
        if not content:
            return
        self._guard.ensure(self._path, self._layout.token)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        stamp = isoformat(self._clock())
        lines = scrub_text(content).rstrip("\n").splitlines() or [""]
        with self._path.open("a", encoding="utf-8") as fh:
            for line in lines:
                fh.write(f"[{stamp}] {line}\n")
        self._written = True
