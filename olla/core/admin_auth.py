"""
Role authorization for protected routes.

The caller must hold a valid session; its `users` row decides the rest:

- require_admin:        `admin` flag (user management)
- require_professional: `pro` or `admin` flag (professional area)

- no session / rejected session -> 401 unauthenticated
- profile unreadable            -> 500 profile_lookup_failed
- profile without the role      -> 403 forbidden
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends

from olla.core.auth import get_backend_client, get_current_user
from olla.core.errors import ForbiddenError, ProfileLookupError
from olla.models.user import AuthUser, RoleFlags
from olla.services.backend_client import BackendClient, BackendError

logger = logging.getLogger("olla")


@dataclass
class AdminActor:
    """Represents an authenticated admin actor."""
    auth_id: str
    email: Optional[str] = None


@dataclass
class ProfessionalActor:
    """Caller of the professional area, resolved to its `users` row."""
    auth_id: str
    user_id: str
    email: Optional[str] = None
    is_admin: bool = False


async def _profile(user: AuthUser, client: BackendClient) -> RoleFlags:
    try:
        return await client.fetch_role_flags(user.id)
    except BackendError as e:
        logger.error(f"[auth] profile lookup failed: {e}", extra={"user_id": user.id})
        raise ProfileLookupError("Unable to verify the account") from e


async def require_admin(
    user: AuthUser = Depends(get_current_user),
    client: BackendClient = Depends(get_backend_client),
) -> AdminActor:
    """
    FastAPI dependency: Require an admin caller.

    Usage:
        @router.post("/admin/endpoint")
        async def admin_endpoint(actor: AdminActor = Depends(require_admin)):
            ...
    """
    flags = await _profile(user, client)
    if not flags.admin:
        logger.warning("[admin] non-admin caller refused", extra={"user_id": user.id, "event_type": "admin.forbidden"})
        raise ForbiddenError("Admin privileges required")

    return AdminActor(auth_id=user.id, email=user.email)


async def require_professional(
    user: AuthUser = Depends(get_current_user),
    client: BackendClient = Depends(get_backend_client),
) -> ProfessionalActor:
    """FastAPI dependency: caller with the `pro` or `admin` flag.

    The row id comes from the caller's own profile, never from the request.
    """
    profile = await _profile(user, client)
    if not profile.may_access_pro_area:
        logger.warning("[pro] non-professional caller refused", extra={"user_id": user.id, "event_type": "pro.forbidden"})
        raise ForbiddenError("This area is reserved for professionals")
    if not profile.id:
        raise ProfileLookupError("Unable to verify the account")

    return ProfessionalActor(auth_id=user.id, user_id=profile.id, email=user.email, is_admin=profile.admin)
