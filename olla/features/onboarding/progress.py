"""
Onboarding progression rules.

Statuses advance in a fixed order; a user may revisit earlier steps and
open at most the next one. Completed users belong on the dashboard.
"""
from enum import Enum
from typing import Optional, Union


class OnboardingStatus(str, Enum):
    PLAN_SELECTED = "plan_selected"
    BUSINESS_INFO = "business_info"
    LOYALTY_SETUP = "loyalty_setup"
    COMPLETED = "completed"


PLAN_PATH = "/onboarding/plan"
BUSINESS_PATH = "/onboarding/business"
LOYALTY_PATH = "/onboarding/loyalty"
WELCOME_PATH = "/onboarding/welcome"
DASHBOARD_PATH = "/pro"

# None means nothing done yet
STEP_ORDER = [
    None,
    OnboardingStatus.PLAN_SELECTED,
    OnboardingStatus.BUSINESS_INFO,
    OnboardingStatus.LOYALTY_SETUP,
    OnboardingStatus.COMPLETED,
]

NEXT_PATH = {
    None: PLAN_PATH,
    OnboardingStatus.PLAN_SELECTED: BUSINESS_PATH,
    OnboardingStatus.BUSINESS_INFO: LOYALTY_PATH,
    OnboardingStatus.LOYALTY_SETUP: WELCOME_PATH,
    OnboardingStatus.COMPLETED: DASHBOARD_PATH,
}

# Status a user must have reached to land on a page
_REQUIRED_STATUS = [
    (PLAN_PATH, None),
    (BUSINESS_PATH, OnboardingStatus.PLAN_SELECTED),
    (LOYALTY_PATH, OnboardingStatus.BUSINESS_INFO),
    (WELCOME_PATH, OnboardingStatus.LOYALTY_SETUP),
]

StatusLike = Union[OnboardingStatus, str, None]


def parse_status(value: StatusLike) -> Optional[OnboardingStatus]:
    if value is None or isinstance(value, OnboardingStatus):
        return value
    try:
        return OnboardingStatus(value)
    except ValueError:
        return None


def onboarding_path(status: StatusLike) -> str:
    return NEXT_PATH[parse_status(status)]


def expected_status(pathname: str) -> Optional[OnboardingStatus]:
    for prefix, status in _REQUIRED_STATUS:
        if prefix in pathname:
            return status
    return OnboardingStatus.COMPLETED


def can_access_step(status: StatusLike, pathname: str) -> bool:
    current = parse_status(status)
    if current is OnboardingStatus.COMPLETED:
        return pathname == DASHBOARD_PATH
    current_index = STEP_ORDER.index(current)
    expected_index = STEP_ORDER.index(expected_status(pathname))
    return expected_index <= current_index + 1


def redirect_path(status: StatusLike, pathname: str) -> Optional[str]:
    """Where to send the user instead of `pathname`, or None to let them in."""
    current = parse_status(status)
    if current is OnboardingStatus.COMPLETED:
        return DASHBOARD_PATH
    if not can_access_step(current, pathname):
        return onboarding_path(current)
    return None
