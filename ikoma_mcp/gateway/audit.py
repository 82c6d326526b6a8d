"""Append-only audit trail.

Every capability invocation produces exactly one JSON line:

``{timestamp, requestId, capability, role, arguments, result, error?, duration}``

The wrapper records *after* the action: if the audit write itself fails, the
failure is reported as an operational error but the action is not undone.
"""

from __future__ import annotations

import json
import os
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Generic, Mapping, Optional, TypeVar

from ikoma_mcp.core.logging_config import get_logger

from .errors import AuditWriteError
from .schemas.domain import AuditEntry, AuditOutcome, ExecutionContext
from .security.redaction import redact_arguments

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class AuditedCall(Generic[T]):
    """Outcome of ``AuditLogger.audited`` when the wrapped call returned normally."""

    value: T
    audit_error: Optional[str] = None


def outcome_of(value: Any) -> tuple[AuditOutcome, Optional[str]]:
    """
    Derive the audit outcome from a handler result.

    Results exposing ``ok`` (``CapabilityResult``, ``ReleaseEnvelope``) are
    recorded as errors when ``ok`` is false, with the error message if any.
    """
    ok = getattr(value, "ok", True)
    if ok:
        return AuditOutcome.success, None
    error = getattr(value, "error", None)
    message = getattr(error, "message", None) or (str(error) if error else "operation failed")
    return AuditOutcome.error, message


class AuditLogger:
    """
    Writes audit entries to a JSON-lines file.

    Args:
        path: Destination file. Parent directories are created on first write.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def record(self, entry: AuditEntry) -> None:
        """
        Append one entry synchronously.

        Raises:
            AuditWriteError: If the line could not be written and flushed.
        """
        line = json.dumps(entry.to_record(), separators=(",", ":"), default=str)
        try:
            with self._lock:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with self._path.open("a", encoding="utf-8") as fh:
                    fh.write(line + "\n")
                    fh.flush()
                    os.fsync(fh.fileno())
        except OSError as exc:
            raise AuditWriteError(f"Failed to write audit record {entry.request_id}: {exc}") from exc

    def record_safely(self, entry: AuditEntry) -> Optional[str]:
        """Record ``entry``; on failure log it and return the error message instead of raising."""
        try:
            self.record(entry)
        except AuditWriteError as exc:
            logger.error(f"Audit write failed for {entry.capability} [{entry.request_id}]: {exc}")
            return exc.message
        logger.debug(f"Audit recorded: {entry.capability} [{entry.request_id}] -> {entry.result.value}")
        return None

    def build_entry(
        self,
        ctx: ExecutionContext,
        capability: str,
        arguments: Mapping[str, Any] | None,
        outcome: AuditOutcome,
        error: Optional[str],
        duration_ms: float,
    ) -> AuditEntry:
        return AuditEntry(
            timestamp=ctx.timestamp,
            request_id=ctx.request_id,
            capability=capability,
            role=ctx.role.value,
            arguments=redact_arguments(arguments),
            result=outcome,
            error=error,
            duration=max(duration_ms, 0.0),
        )

    async def audited(
        self,
        ctx: ExecutionContext,
        capability: str,
        arguments: Mapping[str, Any] | None,
        call: Callable[[], Awaitable[T]],
    ) -> AuditedCall[T]:
        """
        Run ``call`` and record exactly one audit entry for it.

        The entry is written whether ``call`` returns or raises. Exceptions from
        ``call`` are re-raised after recording; audit write failures are
        returned in ``AuditedCall.audit_error`` (or logged, when ``call``
        raised).
        """
        started = time.perf_counter()
        try:
            value = await call()
        except BaseException as exc:
            duration_ms = (time.perf_counter() - started) * 1000.0
            message = str(exc) or type(exc).__name__
            self.record_safely(
                self.build_entry(ctx, capability, arguments, AuditOutcome.error, message, duration_ms)
            )
            raise
        duration_ms = (time.perf_counter() - started) * 1000.0
        outcome, error = outcome_of(value)
        audit_error = self.record_safely(
            self.build_entry(ctx, capability, arguments, outcome, error, duration_ms)
        )
        return AuditedCall(value=value, audit_error=audit_error)
