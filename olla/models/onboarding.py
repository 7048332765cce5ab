from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from olla.features.business.validators import category_key, format_phone_number


class BusinessData(BaseModel):
    """Business details collected by the first wizard step.

    Serialized by alias (camelCase) for the onboarding completion function.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    business_name: str = Field(alias="businessName", min_length=1)
    address: str = Field(min_length=1)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    phone: str
    website: Optional[str] = None
    category: str
    opening_hours: Optional[Any] = Field(default=None, alias="openingHours")

    @field_validator("business_name", "address")
    @classmethod
    def _strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("phone")
    @classmethod
    def _normalize_phone(cls, value: str) -> str:
        result = format_phone_number(value)
        if not result.is_valid:
            raise ValueError(result.error)
        return result.formatted

    @field_validator("category")
    @classmethod
    def _normalize_category(cls, value: str) -> str:
        return category_key(value)

    @field_validator("website")
    @classmethod
    def _blank_website(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class LoyaltyProgram(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    points_required: int = Field(alias="pointsRequired", ge=1)
    reward_label: str = Field(alias="rewardLabel", min_length=1)
