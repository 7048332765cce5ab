"""
olla/models/plan.py

Subscription plan as returned by the `web-get-available-plans` function.

Field names mirror the backend rows exactly. Plans are selected by the
onboarding wizard, never created here.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict


class Plan(BaseModel):
    """
    Plan represents a subscription tier.

    Examples:
    - free
    - starter
    - premium

    `max_loyalty_programs` of None means unlimited.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str
    slug: str
    description: Optional[str] = None
    price_monthly: float
    features: List[str] = []
    max_loyalty_programs: Optional[int] = None
    display_order: int = 0

    is_active: Optional[bool] = None
    promotion_enabled: Optional[bool] = None
    promotion_label: Optional[str] = None
    promotion_months_free: Optional[int] = None

    @property
    def is_unlimited(self) -> bool:
        return self.max_loyalty_programs is None

    def allows_programs(self, count: int) -> bool:
        return self.is_unlimited or count <= self.max_loyalty_programs
