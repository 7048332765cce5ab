from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    """Row of the backend `users` table."""
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: str
    first_name: Optional[str] = Field(default=None, alias="user_firstname")
    last_name: Optional[str] = Field(default=None, alias="user_lastname")
    email: Optional[str] = Field(default=None, alias="user_email")
    pro: bool = False
    admin: bool = False
    auth_id: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def display_name(self) -> str:
        parts = [p.strip() for p in (self.first_name, self.last_name) if p and p.strip()]
        if parts:
            return " ".join(parts)
        return self.email or self.id


class RoleFlags(BaseModel):
    """Projection of a user row used to gate the professional area."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: Optional[str] = None
    pro: bool = False
    admin: bool = False

    @property
    def may_access_pro_area(self) -> bool:
        return self.pro or self.admin


class AuthUser(BaseModel):
    """Identity as reported by the hosted auth provider."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = {}


class Session(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    user: Optional[AuthUser] = None
