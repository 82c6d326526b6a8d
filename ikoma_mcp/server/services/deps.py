"""
Request Dependencies.

Authentication (API key), caller role extraction and access to the
dispatcher bound to the running application.
"""

import hashlib
import hmac
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Request

from ikoma_mcp.core.logging_config import get_logger
from ikoma_mcp.gateway.dispatcher import Dispatcher
from ikoma_mcp.gateway.errors import InvalidRoleError
from ikoma_mcp.gateway.roles import parse_role
from ikoma_mcp.gateway.schemas.domain import ErrorCode, Role

from ..core import constant

logger = get_logger(__name__)


def hash_api_key(api_key: str) -> str:
    """Hex SHA-256 digest, the format stored in ``IKOMA_API_KEY_HASH``."""
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


def verify_api_key(api_key: str, expected_hash: Optional[str]) -> bool:
    if not expected_hash:
        return False
    return hmac.compare_digest(hash_api_key(api_key), expected_hash.strip().lower())


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(status_code=401, detail={"code": constant.UNAUTHORIZED, "message": message})


async def require_api_key(
    request: Request,
    x_api_key: Annotated[Optional[str], Header(alias=constant.API_KEY_HEADER)] = None,
) -> None:
    """Reject the request unless ``X-API-Key`` matches the configured hash."""
    if not x_api_key:
        raise _unauthorized("API key required")
    if not verify_api_key(x_api_key, request.app.state.api_key_hash):
        logger.warning(f"Invalid API key from {request.client.host if request.client else 'unknown'}")
        raise _unauthorized("Invalid API key")


async def require_role(
    x_role: Annotated[Optional[str], Header(alias=constant.ROLE_HEADER)] = None,
) -> Role:
    """Parse ``X-Role``; anything but the four role names is rejected before dispatch."""
    try:
        return parse_role(x_role)
    except InvalidRoleError as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": ErrorCode.invalid_role.value, "message": exc.message, "hint": exc.hint},
        ) from exc


def get_dispatcher(request: Request) -> Dispatcher:
    return request.app.state.dispatcher


AuthDep = Depends(require_api_key)
RoleDep = Annotated[Role, Depends(require_role)]
DispatcherDep = Annotated[Dispatcher, Depends(get_dispatcher)]
