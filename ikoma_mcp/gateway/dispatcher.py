"""Single entry point from a transport into the gateway core.

``Dispatcher.dispatch`` runs the fixed sequence

1. look up the capability (``UNKNOWN_CAPABILITY``),
2. authorize the caller's role (``PERMISSION_DENIED``),
3. validate the arguments (``VALIDATION_ERROR``),
4. execute under the audit wrapper,

and always returns a ``DispatchResult``. Each dispatch writes exactly one
audit entry, rejections included.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from ikoma_mcp.core.logging_config import get_logger

from .audit import AuditLogger
from .capabilities.base import Capability, CapabilityResult
from .capabilities.registry import CapabilityRegistry
from .errors import GatewayError, InvalidRoleError
from .roles import RoleAuthorizer, parse_role
from .schemas.domain import AuditOutcome, ErrorCode, ErrorInfo, ExecutionContext, Role

logger = get_logger(__name__)


@dataclass(frozen=True)
class DispatchResult:
    """
    Uniform outcome of one dispatch.

    Attributes:
        ok: Success flag of the capability result (false for every rejection).
        request_id: Identifier shared with the audit entry.
        capability: The requested capability name, as received.
        result: Capability output (for release capabilities, the envelope).
        error: Code, message and hint on failure.
        details: Extra machine-readable context (``required``/``current`` for
            permission failures).
        audit_error: Set when the audit entry could not be written.
    """

    ok: bool
    request_id: str
    capability: str
    result: Any = None
    error: Optional[ErrorInfo] = None
    details: Dict[str, Any] = field(default_factory=dict)
    audit_error: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "ok": self.ok,
            "requestId": self.request_id,
            "capability": self.capability,
        }
        if self.ok or self.result is not None:
            payload["result"] = self.result
        if self.error is not None:
            payload["error"] = self.error.model_dump(mode="json", exclude_none=True)
        if self.details:
            payload["details"] = self.details
        if self.audit_error:
            payload["auditError"] = self.audit_error
        return payload


def _describe_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0] if exc.errors() else None
    if first is None:
        return "Invalid arguments"
    loc = ".".join(str(part) for part in first.get("loc", ()))
    if not loc:
        return f"Invalid arguments: {first.get('msg', 'invalid value')}"
    return f"Invalid argument '{loc}': {first.get('msg', 'invalid value')}"


class Dispatcher:
    """
    Resolve, authorize, validate, audit and execute one capability invocation.

    Args:
        registry: The capability table.
        authorizer: Role comparison.
        audit: Destination of the audit trail.
        services: Bundle handed to capabilities through ``ExecutionContext``.
    """

    def __init__(
        self,
        registry: CapabilityRegistry,
        authorizer: RoleAuthorizer,
        audit: AuditLogger,
        services: Any,
    ) -> None:
        self._registry = registry
        self._authorizer = authorizer
        self._audit = audit
        self._services = services

    @property
    def registry(self) -> CapabilityRegistry:
        return self._registry

    @property
    def authorizer(self) -> RoleAuthorizer:
        return self._authorizer

    async def dispatch(
        self,
        role: Role | str,
        capability: str,
        arguments: Optional[Mapping[str, Any]] = None,
    ) -> DispatchResult:
        try:
            caller = parse_role(role)
        except InvalidRoleError as exc:
            # Transports reject invalid roles before dispatch; there is no caller role to audit.
            logger.warning(f"Dispatch of {capability!r} refused: {exc.message}")
            return DispatchResult(
                ok=False,
                request_id="",
                capability=capability,
                error=ErrorInfo(code=exc.code, message=exc.message, hint=exc.hint),
            )

        started = time.perf_counter()
        arguments = dict(arguments or {})
        ctx = ExecutionContext(role=caller, services=self._services)

        cap = self._registry.lookup(capability)
        if cap is None:
            return self._reject(
                ctx,
                started,
                capability,
                arguments,
                ErrorInfo(
                    code=ErrorCode.unknown_capability,
                    message=f"Unknown capability: {capability}",
                    hint="List available capabilities with GET /capabilities",
                ),
            )

        if not self._authorizer.permits(caller, cap.required_role):
            return self._reject(
                ctx,
                started,
                capability,
                arguments,
                ErrorInfo(
                    code=ErrorCode.permission_denied,
                    message=f"Insufficient permissions for {capability}",
                    hint=f"Requires role {cap.required_role.value} or higher",
                ),
                details={"required": cap.required_role.value, "current": caller.value},
            )

        try:
            validated = cap.input_model.model_validate(arguments)
        except ValidationError as exc:
            return self._reject(
                ctx,
                started,
                capability,
                arguments,
                ErrorInfo(code=ErrorCode.validation_error, message=_describe_validation_error(exc)),
            )

        audited = await self._audit.audited(ctx, capability, arguments, lambda: self._invoke(cap, ctx, validated))
        result: CapabilityResult = audited.value
        return DispatchResult(
            ok=result.ok,
            request_id=ctx.request_id,
            capability=capability,
            result=result.output,
            error=result.error,
            audit_error=audited.audit_error,
        )

    async def _invoke(self, cap: Capability, ctx: ExecutionContext, args: Any) -> CapabilityResult:
        try:
            return await cap.execute(ctx, args)
        except GatewayError as exc:
            logger.warning(f"{cap.name.value} failed [{ctx.request_id}]: {exc.code.value}: {exc.message}")
            return CapabilityResult.failure(exc.code, exc.message, hint=exc.hint)
        except Exception as exc:
            logger.exception(f"Unhandled fault in capability {cap.name.value} [{ctx.request_id}]")
            return CapabilityResult.failure(
                ErrorCode.execution_failed,
                f"Capability {cap.name.value} failed: {type(exc).__name__}",
            )

    def _reject(
        self,
        ctx: ExecutionContext,
        started: float,
        capability: str,
        arguments: Mapping[str, Any],
        error: ErrorInfo,
        details: Optional[Dict[str, Any]] = None,
    ) -> DispatchResult:
        logger.info(f"Rejected {capability} for role {ctx.role.value}: {error.code.value}")
        audit_error = self._audit.record_safely(
            self._audit.build_entry(
                ctx,
                capability,
                arguments,
                AuditOutcome.error,
                error.message,
                (time.perf_counter() - started) * 1000.0,
            )
        )
        return DispatchResult(
            ok=False,
            request_id=ctx.request_id,
            capability=capability,
            error=error,
            details=details or {},
            audit_error=audit_error,
        )
