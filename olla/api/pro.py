"""Professional dashboard passthrough."""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from olla.core.admin_auth import ProfessionalActor, require_professional
from olla.core.auth import get_backend_client, get_function_gateway
from olla.features.business import service as business_service
from olla.features.functions.gateway import FunctionGateway
from olla.services.backend_client import BackendClient

router = APIRouter(prefix="/api/pro", tags=["pro"])

DASHBOARD_FUNCTION = "web-get-pro-dashboard"


@router.get("/dashboard")
async def dashboard(
    business_id: Optional[str] = Query(None, alias="businessId"),
    actor: ProfessionalActor = Depends(require_professional),
    client: BackendClient = Depends(get_backend_client),
    gateway: FunctionGateway = Depends(get_function_gateway),
):
    """Dashboard of one of the caller's businesses (the first one by default).

    A professional without a business gets 409 and belongs in onboarding.
    """
    business_id = await business_service.resolve_business(client, actor.user_id, business_id)
    data = await gateway.call_function(
        DASHBOARD_FUNCTION,
        {"userId": actor.user_id, "authId": actor.auth_id, "businessId": business_id},
    )
    return {"businessId": business_id, "data": data}
