"""Builder for ``ReleaseEnvelope`` results."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..schemas.domain import ErrorCode, isoformat, utc_now
from ..schemas.envelope import EnvelopeError, ReleaseEnvelope
from ..security.redaction import redact_artifacts, scrub_text


class EnvelopeBuilder:
    """
    Collects warnings for one stage invocation and produces its envelope.

    ``started_at`` is captured when the builder is created; ``ended_at`` when
    ``succeed`` or ``fail`` is called. Artifacts are redacted on the way out.
    """

    def __init__(self, release_id: str, action: str, clock: Callable[[], datetime] = utc_now) -> None:
        self.release_id = release_id
        self.action = action
        self._clock = clock
        self.started_at = clock()
        self._warnings: List[str] = []

    @property
    def warnings(self) -> List[str]:
        return list(self._warnings)

    def warn(self, message: str) -> None:
        self._warnings.append(scrub_text(message))

    def succeed(self, summary: str, artifacts: Optional[Mapping[str, Any]] = None) -> ReleaseEnvelope:
        return self._build(ok=True, summary=summary, artifacts=artifacts)

    def fail(
        self,
        code: ErrorCode,
        message: str,
        *,
        summary: str,
        hint: Optional[str] = None,
        artifacts: Optional[Mapping[str, Any]] = None,
    ) -> ReleaseEnvelope:
        error = EnvelopeError(code=code, message=scrub_text(message), hint=hint)
        return self._build(ok=False, summary=summary, artifacts=artifacts, error=error)

    def _build(
        self,
        *,
        ok: bool,
        summary: str,
        artifacts: Optional[Mapping[str, Any]],
        error: Optional[EnvelopeError] = None,
    ) -> ReleaseEnvelope:
        clean: Dict[str, Any] = redact_artifacts(artifacts)
        return ReleaseEnvelope(
            ok=ok,
            release_id=self.release_id,
            action=self.action,
            started_at=isoformat(self.started_at),
            ended_at=isoformat(self._clock()),
            summary=scrub_text(summary),
            warnings=self.warnings,
            artifacts=clean,
            error=error,
        )
