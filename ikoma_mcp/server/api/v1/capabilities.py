"""
Capability Endpoints.

``GET /capabilities`` lists every capability with its input schema and
whether the caller's role may invoke it. ``POST /execute/{capability}`` runs
one capability through the dispatcher; the JSON body is the argument object.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse

from ikoma_mcp.core.logging_config import get_logger

from ...core import constant
from ...services.deps import AuthDep, DispatcherDep, RoleDep

logger = get_logger(__name__)

router = APIRouter(dependencies=[AuthDep])


@router.get(
    "/capabilities",
    summary="List Capabilities",
    description="List all capabilities with their required role, input schema and a per-caller permitted flag.",
    responses={
        200: {"description": "Capability list"},
        400: {"description": "Missing or invalid X-Role header"},
        401: {"description": "Missing or invalid API key"},
    },
)
async def list_capabilities(role: RoleDep, dispatcher: DispatcherDep) -> Dict[str, Any]:
    registry = dispatcher.registry
    authorizer = dispatcher.authorizer
    capabilities = []
    for cap in registry.all():
        entry = registry.describe(cap)
        entry["permitted"] = authorizer.permits(role, cap.required_role)
        capabilities.append(entry)
    return {"role": role.value, "capabilities": capabilities}


@router.post(
    "/execute/{capability}",
    summary="Execute Capability",
    description="Authorize, validate, audit and run one capability. The request body is the argument object.",
    responses={
        200: {"description": "Capability ran (check ``ok``; release stages report failures in the envelope)"},
        400: {"description": "Invalid arguments or role"},
        401: {"description": "Missing or invalid API key"},
        403: {"description": "Role below the capability's required role"},
        404: {"description": "Unknown capability or application"},
        429: {"description": "Rate limit exceeded"},
        500: {"description": "Capability failed"},
    },
)
async def execute_capability(
    capability: str,
    role: RoleDep,
    dispatcher: DispatcherDep,
    arguments: Optional[Dict[str, Any]] = Body(default=None),
) -> JSONResponse:
    result = await dispatcher.dispatch(role, capability, arguments or {})
    status_code = 200
    if result.error is not None:
        status_code = constant.STATUS_BY_ERROR_CODE.get(result.error.code.value, 200)
    logger.debug(f"POST /execute/{capability} [{result.request_id}] -> {status_code}")
    return JSONResponse(status_code=status_code, content=result.to_payload())
