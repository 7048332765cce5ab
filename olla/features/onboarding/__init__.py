"""Professional onboarding: plan selection, business creation, loyalty setup."""

from olla.features.onboarding.state import OnboardingScopes, OnboardingState
from olla.features.onboarding.progress import OnboardingStatus, can_access_step, redirect_path

__all__ = [
    "OnboardingScopes",
    "OnboardingState",
    "OnboardingStatus",
    "can_access_step",
    "redirect_path",
]
