"""
Passthrough to backend edge functions.

POST|PATCH|DELETE /api/functions/{name} forwards the JSON body with the
caller's session token and answers `{"data": ...}`.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Request

from olla.core.auth import get_function_gateway
from olla.features.functions.gateway import ALLOWED_METHODS, FunctionGateway

router = APIRouter(prefix="/api/functions", tags=["functions"])


@router.api_route("/{name}", methods=list(ALLOWED_METHODS))
async def forward_function(
    name: str,
    request: Request,
    payload: Optional[Dict[str, Any]] = Body(default=None),
    public: bool = Query(False, description="Call without requiring a session"),
    gateway: FunctionGateway = Depends(get_function_gateway),
):
    data = await gateway.call_function(
        name,
        payload or {},
        require_auth=not public,
        method=request.method,
    )
    return {"data": data}
