"""Path confinement, secret redaction and source-origin checks."""

from .origin import is_allowed_source
from .path_guard import PathGuard
from .redaction import REDACTED, SAFE_ARGUMENT_FIELDS, redact_arguments, redact_artifacts, scrub_text

__all__ = [
    "PathGuard",
    "REDACTED",
    "SAFE_ARGUMENT_FIELDS",
    "is_allowed_source",
    "redact_arguments",
    "redact_artifacts",
    "scrub_text",
]
