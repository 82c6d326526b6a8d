"""Authorization and release-pipeline core.

Everything a transport needs is reachable from here:

- ``build_services`` wires drivers, the pipeline and the audit trail from a
  ``GatewayConfig``.
- ``build_default_registry`` returns the fixed capability table.
- ``Dispatcher`` authorizes, validates, audits and executes one invocation.

The core never reads process-wide settings; transports convert their settings
into a ``GatewayConfig`` and pass it in.
"""

from .config import GatewayConfig, PostgresConfig, StackConfig
from .dispatcher import Dispatcher, DispatchResult
from .roles import RoleAuthorizer, parse_role
from .schemas.domain import ErrorCode, ExecutionContext, Role
from .services import GatewayServices, build_services

__all__ = [
    "Dispatcher",
    "DispatchResult",
    "ErrorCode",
    "ExecutionContext",
    "GatewayConfig",
    "GatewayServices",
    "PostgresConfig",
    "Role",
    "RoleAuthorizer",
    "StackConfig",
    "build_services",
    "parse_role",
]
