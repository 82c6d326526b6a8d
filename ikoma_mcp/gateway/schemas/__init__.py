"""Gateway data models.

- ``base``: ``BaseSchema`` with strict (extra-forbidding) validation.
- ``domain``: roles, error codes, release stages, execution context and audit entries.
- ``envelope``: the ``ReleaseEnvelope`` returned by every pipeline stage.
"""

from .base import BaseSchema
from .domain import (
    AuditEntry,
    AuditOutcome,
    ErrorCode,
    ErrorInfo,
    ExecutionContext,
    ReleaseStage,
    Role,
)
from .envelope import EnvelopeError, ReleaseEnvelope

__all__ = [
    "AuditEntry",
    "AuditOutcome",
    "BaseSchema",
    "EnvelopeError",
    "ErrorCode",
    "ErrorInfo",
    "ExecutionContext",
    "ReleaseEnvelope",
    "ReleaseStage",
    "Role",
]
