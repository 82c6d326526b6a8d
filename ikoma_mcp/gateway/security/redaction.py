"""Secret redaction for audit records and returned artifacts.

Audit arguments are filtered through an allow-list: only argument names known
to be safe are persisted verbatim, everything else is replaced by
``REDACTED``. Values that are kept still pass through ``scrub_text`` so that
credentials embedded in URLs or known token formats never reach the trail.

Artifacts are produced by the gateway itself, so they are filtered by key name
and token pattern instead.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

REDACTED = "<redacted>"

SAFE_ARGUMENT_FIELDS = frozenset(
    {
        "appName",
        "app_slug",
        "release_id",
        "git_url",
        "ref",
        "project_path",
        "functions",
        "type",
        "service",
        "port",
        "domain",
        "healthcheck",
        "env_required",
        "backupName",
    }
)

_SECRET_PATTERNS = (
    re.compile(r"sk-[A-Za-z0-9]{10,}"),
    re.compile(r"ghp_[A-Za-z0-9]{10,}"),
    re.compile(r"github_pat_[A-Za-z0-9_]{10,}"),
    re.compile(r"xoxb-[A-Za-z0-9-]{10,}"),
    re.compile(r"eyJ[A-Za-z0-9_-]{8,}\.[A-Za-z0-9_-]{8,}\.[A-Za-z0-9_-]{8,}"),
)

_URL_CREDENTIALS = re.compile(r"(?P<scheme>[a-zA-Z][a-zA-Z0-9+.-]*://)[^/@\s]+@")

_SECRET_KEY_HINTS = ("password", "passwd", "secret", "token", "credential", "api_key", "apikey", "private_key")


def scrub_text(text: str) -> str:
    """Remove URL user-info and known token formats from ``text``."""
    out = _URL_CREDENTIALS.sub(lambda m: f"{m.group('scheme')}{REDACTED}@", text)
    for pat in _SECRET_PATTERNS:
        out = pat.sub(REDACTED, out)
    return out


def _scrub_value(value: Any) -> Any:
    if isinstance(value, str):
        return scrub_text(value)
    if isinstance(value, Mapping):
        return {str(k): _scrub_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_scrub_value(v) for v in value]
    return value


def redact_arguments(arguments: Mapping[str, Any] | None, safe_fields: frozenset[str] = SAFE_ARGUMENT_FIELDS) -> dict[str, Any]:
    """
    Produce the argument snapshot persisted in an audit record.

    Args:
        arguments: Raw invocation arguments as received from the transport.
        safe_fields: Names whose values may be logged. Any other name is
            recorded with its value replaced by ``REDACTED``.

    Returns:
        A new dict; the input is never mutated.
    """
    if not arguments:
        return {}
    snapshot: dict[str, Any] = {}
    for key, value in arguments.items():
        name = str(key)
        snapshot[name] = _scrub_value(value) if name in safe_fields else REDACTED
    return snapshot


def is_secret_key(key: str) -> bool:
    lowered = key.lower()
    return any(hint in lowered for hint in _SECRET_KEY_HINTS)


def redact_artifacts(artifacts: Mapping[str, Any] | None) -> dict[str, Any]:
    """Scrub secret-looking keys and token patterns from stage artifacts (recursively)."""
    if not artifacts:
        return {}
    clean: dict[str, Any] = {}
    for key, value in artifacts.items():
        name = str(key)
        if is_secret_key(name):
            clean[name] = REDACTED
        elif isinstance(value, Mapping):
            clean[name] = redact_artifacts(value)
        elif isinstance(value, (list, tuple)):
            clean[name] = [redact_artifacts(v) if isinstance(v, Mapping) else _scrub_value(v) for v in value]
        else:
            clean[name] = _scrub_value(value)
    return clean
