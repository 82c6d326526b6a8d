"""The single source origin ``repo.clone`` may fetch from.

This is a hard-coded allow-list on purpose: it is the primary defense against
a caller redirecting a release to an attacker-controlled repository, so it is
not exposed through configuration.
"""

from __future__ import annotations

from urllib.parse import urlsplit

ALLOWED_SCHEME = "https"
ALLOWED_HOST = "github.com"


def is_allowed_source(url: str) -> bool:
    """
    Return True when ``url`` is ``https://github.com/<owner>/<repo>[...]``.

    Rejected: other schemes or hosts (including look-alike hosts such as
    ``github.com.example.org``), explicit ports, embedded credentials, query
    strings and fragments, and any ``..`` path segment.
    """
    if not isinstance(url, str) or not url.startswith(f"{ALLOWED_SCHEME}://{ALLOWED_HOST}/"):
        return False
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return False
    if parts.scheme != ALLOWED_SCHEME or parts.hostname != ALLOWED_HOST:
        return False
    if port is not None or parts.username is not None or parts.password is not None:
        return False
    if parts.query or parts.fragment:
        return False
    segments = [s for s in parts.path.split("/") if s]
    if len(segments) < 2 or any(s in {".", ".."} for s in segments):
        return False
    return all(not s.startswith("-") for s in segments)
