"""Uniform result shape for release pipeline stages."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import Field

from .base import BaseSchema
from .domain import ErrorCode


class EnvelopeError(BaseSchema):
    code: ErrorCode
    message: str
    hint: Optional[str] = None


class ReleaseEnvelope(BaseSchema):
    """
    Result of one pipeline stage.

    ``started_at``/``ended_at`` are ISO8601 strings. ``artifacts`` holds the
    stage-specific structured output and is scrubbed of secrets before the
    envelope is built.
    """

    ok: bool
    release_id: str
    action: str
    started_at: str
    ended_at: str
    summary: str
    warnings: List[str] = Field(default_factory=list)
    artifacts: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[EnvelopeError] = None

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dict; ``error`` is omitted on success and ``hint`` when unset."""
        payload = self.model_dump(mode="json", exclude={"error"})
        if self.error is not None:
            payload["error"] = self.error.model_dump(mode="json", exclude_none=True)
        return payload
