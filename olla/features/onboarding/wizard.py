"""
Onboarding wizard steps.

Each step receives the scope's OnboardingState explicitly:
plan selection -> business creation -> loyalty setup -> completion.
Steps must be taken in order (see progress.py); each one advances the
scope's status.

Completion creates the business through
`web-complete-professional-onboarding`, unless the professional already
owns one, in which case only its loyalty programs are replaced.
"""
import logging
from typing import Iterable, List, Optional

from olla.core.errors import (
    CallFailedError,
    MissingParameterError,
    NotFoundError,
    OnboardingStepError,
    ProfileLookupError,
    ValidationError,
)
from olla.features.business import service as business_service
from olla.features.functions.gateway import FunctionGateway
from olla.features.onboarding import progress
from olla.features.onboarding.progress import OnboardingStatus
from olla.features.onboarding.state import OnboardingState
from olla.models.onboarding import BusinessData, LoyaltyProgram
from olla.models.plan import Plan
from olla.services.backend_client import BackendClient, BackendError

logger = logging.getLogger("olla")

PLANS_FUNCTION = "web-get-available-plans"
COMPLETE_FUNCTION = "web-complete-professional-onboarding"


def _require_step(state: OnboardingState, path: str) -> None:
    redirect = progress.redirect_path(state.status, path)
    if redirect is not None:
        raise OnboardingStepError(f"This onboarding step is not available yet; continue at {redirect}")


async def fetch_plans(gateway: FunctionGateway) -> List[Plan]:
    """Available plans ordered for display."""
    data = await gateway.call_function(PLANS_FUNCTION, {}, require_auth=False)
    if not isinstance(data, list):
        raise CallFailedError("Unexpected plans payload")
    try:
        plans = [Plan.model_validate(item) for item in data]
    except ValueError as e:
        raise CallFailedError(f"Unexpected plans payload: {e}") from e
    return sorted(plans, key=lambda p: p.display_order)


def choose_plan(state: OnboardingState, plans: Iterable[Plan], slug: Optional[str]) -> Plan:
    _require_step(state, progress.PLAN_PATH)
    if not slug:
        raise MissingParameterError("slug is required")
    for plan in plans:
        if plan.slug == slug:
            state.set_selected_plan(plan)
            state.advance(OnboardingStatus.PLAN_SELECTED)
            return plan
    raise NotFoundError(f"Unknown plan: {slug}")


def submit_business(state: OnboardingState, data: BusinessData) -> None:
    _require_step(state, progress.BUSINESS_PATH)
    state.set_business_data(data)
    state.advance(OnboardingStatus.BUSINESS_INFO)


def submit_loyalty(state: OnboardingState, programs: List[LoyaltyProgram]) -> None:
    _require_step(state, progress.LOYALTY_PATH)
    if not programs:
        raise ValidationError("At least one loyalty program is required")
    plan = state.get_selected_plan()
    if plan is not None and not plan.allows_programs(len(programs)):
        raise ValidationError(
            f"The {plan.name} plan allows at most {plan.max_loyalty_programs} loyalty programs"
        )
    state.set_loyalty_programs(programs)
    state.advance(OnboardingStatus.LOYALTY_SETUP)


async def effective_status(state: OnboardingState, client: BackendClient, auth_id: str) -> Optional[OnboardingStatus]:
    """Scope status, except that a professional owning a business is done."""
    try:
        profile = await client.fetch_role_flags(auth_id)
    except BackendError as e:
        raise ProfileLookupError("Unable to verify the account") from e
    if profile.pro and profile.id and await business_service.business_ids(client, profile.id):
        return OnboardingStatus.COMPLETED
    return state.status


async def complete_onboarding(
    state: OnboardingState,
    gateway: FunctionGateway,
    *,
    user_id: str,
    auth_id: str,
) -> str:
    """Submit the collected wizard data; returns the business id."""
    if not user_id:
        raise MissingParameterError("userId is required")
    programs = state.get_loyalty_programs()
    if not programs:
        raise ValidationError("At least one loyalty program is required")

    client = gateway.client
    existing = await business_service.business_ids(client, user_id)
    if existing:
        business_id = existing[0]
        await business_service.replace_loyalty_programs(client, business_id, programs)
    else:
        business_id = await _create_business(state, gateway, programs, user_id=user_id, auth_id=auth_id)

    logger.info(
        "[onboarding] completed",
        extra={"user_id": user_id, "event_type": "onboarding.completed"},
    )
    state.clear()
    state.advance(OnboardingStatus.COMPLETED)
    return business_id


async def _create_business(
    state: OnboardingState,
    gateway: FunctionGateway,
    programs: List[LoyaltyProgram],
    *,
    user_id: str,
    auth_id: str,
) -> str:
    plan = state.get_selected_plan()
    business = state.get_business_data()
    if plan is None or business is None:
        raise MissingParameterError("Onboarding data is missing; please restart the onboarding")

    data = await gateway.call_function(
        COMPLETE_FUNCTION,
        {
            "userId": user_id,
            "authId": auth_id,
            "planSlug": plan.slug,
            "businessData": business.model_dump(by_alias=True),
            "loyaltyPrograms": [p.model_dump(by_alias=True) for p in programs],
        },
    )
    business_id = data.get("businessId") if isinstance(data, dict) else None
    if not business_id:
        raise CallFailedError("Onboarding completion returned no business")
    return business_id
