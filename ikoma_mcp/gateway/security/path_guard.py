"""Path confinement for the managed root.

Every filesystem effect of a capability must land inside
``<apps_root>/<slug>``. ``PathGuard`` provides the two primitives the rest of
the core relies on:

- ``sanitize`` turns an arbitrary caller-supplied application identifier into
  a portable directory-name token.
- ``validate`` confirms that a candidate path resolves inside the owning
  application's directory.

The guard is fail-closed: anything it cannot resolve with certainty is
rejected.
"""

from __future__ import annotations

import os
import re
from pathlib import Path, PurePath
from typing import Union

from ikoma_mcp.core.logging_config import get_logger

from ..errors import PathViolationError

logger = get_logger(__name__)

MAX_TOKEN_LENGTH = 64

_UNSAFE_CHARS = re.compile(r"[^a-z0-9_-]+")
_DASH_RUNS = re.compile(r"-{2,}")

PathLike = Union[str, os.PathLike]


class PathGuard:
    """
    Resolve and validate paths against a single managed root.

    Args:
        root: The managed root directory. It is resolved once at construction;
            it does not need to exist yet.
    """

    def __init__(self, root: PathLike) -> None:
        self._root = Path(root).expanduser().resolve()

    @property
    def root(self) -> Path:
        """Return the resolved managed root."""
        return self._root

    def sanitize(self, name: str) -> str:
        """
        Collapse an application identifier into a filesystem-safe token.

        The name is lower-cased, every run of characters outside ``[a-z0-9_-]``
        (including path separators and dots) becomes a single ``-``, leading
        and trailing separators are stripped and the result is truncated to
        64 characters.

        Raises:
            PathViolationError: If nothing usable is left (e.g. ``".."``).
        """
        if not isinstance(name, str):
            raise PathViolationError("Application name must be a string")
        token = _UNSAFE_CHARS.sub("-", name.strip().lower())
        token = _DASH_RUNS.sub("-", token).strip("-_")
        token = token[:MAX_TOKEN_LENGTH].rstrip("-_")
        if not token:
            raise PathViolationError(f"Application name {name!r} does not contain a usable identifier")
        return token

    def app_dir(self, token: str) -> Path:
        """Return ``<root>/<token>`` after checking ``token`` is already sanitized."""
        if not self._is_token(token):
            raise PathViolationError(f"Invalid application token: {token!r}")
        return self._root / token

    def validate(self, candidate: PathLike, expected_owner: str) -> bool:
        """
        Check that ``candidate`` stays inside ``<root>/<expected_owner>``.

        The candidate is rejected when the owner is not a sanitized token, when
        any path segment is ``..``, or when the fully resolved path (symlinks
        followed) is not the owner directory or one of its descendants.
        """
        if not self._is_token(expected_owner):
            return False
        try:
            raw = PurePath(os.fspath(candidate))
        except TypeError:
            return False
        if ".." in raw.parts:
            return False
        if not raw.is_absolute():
            raw = self._root / raw
        owner_dir = self._root / expected_owner
        try:
            resolved = Path(raw).resolve(strict=False)
            owner_resolved = owner_dir.resolve(strict=False)
        except (OSError, RuntimeError) as exc:
            logger.warning(f"Unable to resolve {raw}: {exc}")
            return False
        if owner_resolved != owner_dir:
            # The application directory itself must not be a redirect.
            return False
        return resolved == owner_resolved or owner_resolved in resolved.parents

    def resolve(self, token: str, *parts: str) -> Path:
        """
        Build ``<root>/<token>/<parts...>`` and validate it.

        Raises:
            PathViolationError: If the resulting path escapes the application directory.
        """
        path = self.app_dir(token).joinpath(*parts)
        self.ensure(path, token)
        return path

    def ensure(self, candidate: PathLike, expected_owner: str) -> None:
        """Raise ``PathViolationError`` unless ``validate`` accepts ``candidate``."""
        if not self.validate(candidate, expected_owner):
            logger.warning(f"Path safety violation: {candidate} is outside application {expected_owner!r}")
            raise PathViolationError("Path safety violation")

    @staticmethod
    def _is_token(token: str) -> bool:
        if not isinstance(token, str) or not token or len(token) > MAX_TOKEN_LENGTH:
            return False
        return _UNSAFE_CHARS.search(token) is None and token.strip("-_") == token
