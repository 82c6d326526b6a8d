"""Exceptions raised inside the gateway core.

None of these cross the ``Dispatcher``: capabilities convert them into failed
results, and the dispatcher converts anything left over into an
``EXECUTION_FAILED`` result.
"""

from __future__ import annotations

from typing import Optional, Sequence

from .schemas.domain import ErrorCode


class GatewayError(Exception):
    """Base class for gateway errors that carry a machine-readable code."""

    code: ErrorCode = ErrorCode.execution_failed

    def __init__(self, message: str, *, hint: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint


class PathViolationError(GatewayError):
    code = ErrorCode.path_violation


class InvalidRoleError(GatewayError):
    code = ErrorCode.invalid_role


class AuditWriteError(GatewayError):
    """The audit record could not be appended. The audited action already happened."""


class CommandFailedError(GatewayError):
    """An external command exited with a non-zero status."""

    code = ErrorCode.orchestration_failed

    def __init__(self, argv: Sequence[str], returncode: Optional[int], stderr: str = "") -> None:
        program = argv[0] if argv else "<empty>"
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else "no output"
        super().__init__(f"{program} exited with status {returncode}: {detail}")
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr


class DatabaseDriverError(GatewayError):
    code = ErrorCode.database_failed


class AppNotFoundError(GatewayError):
    code = ErrorCode.app_not_found
