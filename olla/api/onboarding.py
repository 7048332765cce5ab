"""
Onboarding wizard API.

A wizard run lives in a scope opened by a signed-in client and visible to
that identity only:

POST   /api/onboarding/scopes                 -> {"scopeId"}
GET    /api/onboarding/scopes/{id}            -> current selections and status
GET    /api/onboarding/scopes/{id}/redirect   -> where a page request should go
PUT    /api/onboarding/scopes/{id}/plan       -> select plan by slug (replaces)
DELETE /api/onboarding/scopes/{id}/plan       -> clear plan
PUT    /api/onboarding/scopes/{id}/business   -> business details
POST   /api/onboarding/scopes/{id}/complete   -> loyalty programs + final submission
DELETE /api/onboarding/scopes/{id}            -> discard the scope

Scopes are in memory only; a discarded or expired scope means starting over.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from pydantic import BaseModel, Field

from olla.core.admin_auth import ProfessionalActor, require_professional
from olla.core.auth import get_backend_client, get_current_user, get_function_gateway
from olla.features.functions.gateway import FunctionGateway
from olla.features.onboarding import progress, wizard
from olla.features.onboarding.state import OnboardingScopes
from olla.models.onboarding import BusinessData, LoyaltyProgram
from olla.models.user import AuthUser
from olla.services.backend_client import BackendClient

router = APIRouter(prefix="/api/onboarding", tags=["onboarding"])


def get_onboarding_scopes(request: Request) -> OnboardingScopes:
    return request.app.state.onboarding_scopes


class SelectPlanIn(BaseModel):
    slug: Optional[str] = None


class CompleteIn(BaseModel):
    loyalty_programs: List[LoyaltyProgram] = Field(default_factory=list, alias="loyaltyPrograms")


@router.get("/plans")
async def list_plans(gateway: FunctionGateway = Depends(get_function_gateway)):
    plans = await wizard.fetch_plans(gateway)
    return {"plans": [p.model_dump() for p in plans]}


@router.post("/scopes", status_code=201)
def open_scope(
    scopes: OnboardingScopes = Depends(get_onboarding_scopes),
    user: AuthUser = Depends(get_current_user),
):
    return {"scopeId": scopes.open(user.id)}


@router.get("/scopes/{scope_id}")
def get_scope(
    scope_id: str,
    scopes: OnboardingScopes = Depends(get_onboarding_scopes),
    user: AuthUser = Depends(get_current_user),
):
    return scopes.get(scope_id, user.id).snapshot()


@router.get("/scopes/{scope_id}/redirect")
async def step_redirect(
    scope_id: str,
    path: str = Query(..., description="Page the client is about to show"),
    scopes: OnboardingScopes = Depends(get_onboarding_scopes),
    user: AuthUser = Depends(get_current_user),
    client: BackendClient = Depends(get_backend_client),
):
    state = scopes.get(scope_id, user.id)
    status = await wizard.effective_status(state, client, user.id)
    redirect = None if progress.can_access_step(status, path) else progress.redirect_path(status, path)
    return {
        "status": status.value if status else None,
        "allowed": redirect is None,
        "redirect": redirect,
    }


@router.put("/scopes/{scope_id}/plan")
async def select_plan(
    scope_id: str,
    body: SelectPlanIn,
    scopes: OnboardingScopes = Depends(get_onboarding_scopes),
    user: AuthUser = Depends(get_current_user),
    gateway: FunctionGateway = Depends(get_function_gateway),
):
    state = scopes.get(scope_id, user.id)
    plans = await wizard.fetch_plans(gateway)
    plan = wizard.choose_plan(state, plans, body.slug)
    return {"selectedPlan": plan.model_dump()}


@router.delete("/scopes/{scope_id}/plan")
def clear_plan(
    scope_id: str,
    scopes: OnboardingScopes = Depends(get_onboarding_scopes),
    user: AuthUser = Depends(get_current_user),
):
    scopes.get(scope_id, user.id).clear_selected_plan()
    return {"selectedPlan": None}


@router.put("/scopes/{scope_id}/business")
def submit_business(
    scope_id: str,
    body: BusinessData,
    scopes: OnboardingScopes = Depends(get_onboarding_scopes),
    user: AuthUser = Depends(get_current_user),
):
    state = scopes.get(scope_id, user.id)
    wizard.submit_business(state, body)
    return state.snapshot()


@router.post("/scopes/{scope_id}/complete")
async def complete(
    scope_id: str,
    body: CompleteIn,
    scopes: OnboardingScopes = Depends(get_onboarding_scopes),
    actor: ProfessionalActor = Depends(require_professional),
    gateway: FunctionGateway = Depends(get_function_gateway),
):
    """Finish onboarding for the caller's own `users` row."""
    state = scopes.get(scope_id, actor.auth_id)
    wizard.submit_loyalty(state, body.loyalty_programs)
    business_id = await wizard.complete_onboarding(state, gateway, user_id=actor.user_id, auth_id=actor.auth_id)
    return {"businessId": business_id}


@router.delete("/scopes/{scope_id}", status_code=204)
def close_scope(
    scope_id: str,
    scopes: OnboardingScopes = Depends(get_onboarding_scopes),
    user: AuthUser = Depends(get_current_user),
):
    scopes.close(scope_id, user.id)
    return Response(status_code=204)
