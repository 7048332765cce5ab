"""
Onboarding workflow state.

One OnboardingState per onboarding scope, passed by reference to every
wizard step. Nothing is persisted: discarding the scope loses the
selection and the user picks a plan again.

Scopes belong to the identity that opened them and expire after a period
of inactivity; the registry is bounded per owner and overall.
"""
import logging
import secrets
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, List, Optional

from olla.core.errors import NotFoundError
from olla.features.business.validators import display_phone_number
from olla.features.onboarding.progress import STEP_ORDER, OnboardingStatus
from olla.models.onboarding import BusinessData, LoyaltyProgram
from olla.models.plan import Plan

logger = logging.getLogger("olla")

SCOPE_TTL_SECONDS = 60 * 60
MAX_SCOPES_PER_OWNER = 3
MAX_SCOPES = 10_000


class OnboardingState:
    def __init__(self):
        self._selected_plan: Optional[Plan] = None
        self._business_data: Optional[BusinessData] = None
        self._loyalty_programs: Optional[List[LoyaltyProgram]] = None
        self.status: Optional[OnboardingStatus] = None

    # Selecting replaces the previous plan; at most one is held.
    def set_selected_plan(self, plan: Plan) -> None:
        self._selected_plan = plan

    def get_selected_plan(self) -> Optional[Plan]:
        return self._selected_plan

    def clear_selected_plan(self) -> None:
        self._selected_plan = None

    def set_business_data(self, data: BusinessData) -> None:
        self._business_data = data

    def get_business_data(self) -> Optional[BusinessData]:
        return self._business_data

    def set_loyalty_programs(self, programs: List[LoyaltyProgram]) -> None:
        self._loyalty_programs = list(programs)

    def get_loyalty_programs(self) -> Optional[List[LoyaltyProgram]]:
        return list(self._loyalty_programs) if self._loyalty_programs is not None else None

    def advance(self, status: OnboardingStatus) -> None:
        """Move progress forward; revisiting an earlier step keeps it."""
        if STEP_ORDER.index(status) > STEP_ORDER.index(self.status):
            self.status = status

    def clear(self) -> None:
        self._selected_plan = None
        self._business_data = None
        self._loyalty_programs = None
        self.status = None

    def snapshot(self) -> dict:
        plan = self._selected_plan
        business = self._business_data
        programs = self._loyalty_programs
        business_out = None
        if business:
            business_out = business.model_dump(by_alias=True)
            business_out["phoneDisplay"] = display_phone_number(business.phone)
        return {
            "status": self.status.value if self.status else None,
            "selectedPlan": plan.model_dump() if plan else None,
            "businessData": business_out,
            "loyaltyPrograms": [p.model_dump(by_alias=True) for p in programs] if programs is not None else None,
        }


@dataclass
class _Scope:
    owner: str
    state: OnboardingState
    touched: float


class OnboardingScopes:
    """Registry of live onboarding scopes, owned by the application.

    Least recently used first; expired scopes are dropped on access.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = SCOPE_TTL_SECONDS,
        max_per_owner: int = MAX_SCOPES_PER_OWNER,
        max_scopes: int = MAX_SCOPES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_per_owner = max_per_owner
        self.max_scopes = max_scopes
        self._clock = clock
        self._scopes: "OrderedDict[str, _Scope]" = OrderedDict()

    def open(self, owner: str) -> str:
        self._evict_expired()
        owned = [sid for sid, scope in self._scopes.items() if scope.owner == owner]
        for sid in owned[: max(0, len(owned) - self.max_per_owner + 1)]:
            del self._scopes[sid]
        while len(self._scopes) >= self.max_scopes:
            self._scopes.popitem(last=False)

        scope_id = secrets.token_urlsafe(16)
        self._scopes[scope_id] = _Scope(owner=owner, state=OnboardingState(), touched=self._clock())
        logger.info("[onboarding] scope opened", extra={"user_id": owner, "event_type": "onboarding.scope_opened"})
        return scope_id

    def get(self, scope_id: str, owner: str) -> OnboardingState:
        scope = self._live(scope_id, owner)
        scope.touched = self._clock()
        self._scopes.move_to_end(scope_id)
        return scope.state

    def close(self, scope_id: str, owner: str) -> None:
        self._live(scope_id, owner)
        del self._scopes[scope_id]
        logger.info("[onboarding] scope closed", extra={"user_id": owner, "event_type": "onboarding.scope_closed"})

    def _live(self, scope_id: str, owner: str) -> _Scope:
        scope = self._scopes.get(scope_id)
        if scope is not None and self._expired(scope):
            del self._scopes[scope_id]
            scope = None
        # Someone else's scope is indistinguishable from a missing one
        if scope is None or scope.owner != owner:
            raise NotFoundError("Onboarding scope not found")
        return scope

    def _expired(self, scope: _Scope) -> bool:
        return self._clock() - scope.touched > self.ttl_seconds

    def _evict_expired(self) -> None:
        while self._scopes:
            scope_id, scope = next(iter(self._scopes.items()))
            if not self._expired(scope):
                break
            del self._scopes[scope_id]

    def __len__(self) -> int:
        return len(self._scopes)
