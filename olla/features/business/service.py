"""
Businesses owned by a professional.

`professionals` links a `users` row to its businesses; `loyalty_programs`
holds one row per reward tier of a business.
"""
import logging
from typing import List, Optional

from olla.core.errors import ForbiddenError, MutationFailedError, OnboardingIncompleteError, QueryFailedError
from olla.models.onboarding import LoyaltyProgram
from olla.services.backend_client import BackendClient, BackendError

logger = logging.getLogger("olla")


async def business_ids(client: BackendClient, user_id: str) -> List[str]:
    try:
        rows = await client.select(
            "professionals",
            {"select": "business_id", "user_id": f"eq.{user_id}"},
        )
    except BackendError as e:
        logger.error(f"[business] ownership lookup failed: {e}", extra={"user_id": user_id})
        raise QueryFailedError("Unable to load your businesses") from e
    return [row["business_id"] for row in rows if row.get("business_id")]


async def resolve_business(client: BackendClient, user_id: str, requested: Optional[str] = None) -> str:
    """Pick the business to act on: `requested` if owned, else the first one."""
    owned = await business_ids(client, user_id)
    if not owned:
        raise OnboardingIncompleteError("Complete your business onboarding first")
    if requested is None:
        return owned[0]
    if requested not in owned:
        raise ForbiddenError("This business does not belong to you")
    return requested


async def replace_loyalty_programs(client: BackendClient, business_id: str, programs: List[LoyaltyProgram]) -> None:
    try:
        await client.delete("loyalty_programs", {"business_id": f"eq.{business_id}"})
        await client.insert(
            "loyalty_programs",
            [
                {
                    "business_id": business_id,
                    "point_needed": p.points_required,
                    "reward_label": p.reward_label,
                }
                for p in programs
            ],
        )
    except BackendError as e:
        logger.error(f"[business] loyalty program update failed: {e}", extra={"event_type": "business.loyalty_failed"})
        raise MutationFailedError(e.message) from e
