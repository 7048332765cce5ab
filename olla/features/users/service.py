"""
User role service.
- promote(client, user_id): pro = true
- demote(client, user_id): pro = false
- list_users(client, role, search): admin listing

Writes reassert the value; promoting a professional is a successful no-op.
"""

import logging
from typing import List, Optional

from olla.core.errors import MissingParameterError, MutationFailedError, QueryFailedError, ValidationError
from olla.models.user import User
from olla.services.backend_client import BackendClient, BackendError

logger = logging.getLogger("olla")


async def _set_pro_flag(client: BackendClient, user_id: Optional[str], value: bool) -> None:
    if not user_id:
        raise MissingParameterError("userId is required")
    try:
        await client.update_user(user_id, {"pro": value})
    except BackendError as e:
        logger.error(
            f"[users] failed to set pro={value}: {e}",
            extra={"user_id": user_id, "event_type": "users.role_update_failed"},
        )
        raise MutationFailedError(e.message or "Failed to update user") from e
    logger.info(f"[users] pro={value}", extra={"user_id": user_id, "event_type": "users.role_updated"})


async def promote(client: BackendClient, user_id: Optional[str]) -> str:
    await _set_pro_flag(client, user_id, True)
    return "User promoted to professional"


async def demote(client: BackendClient, user_id: Optional[str]) -> str:
    await _set_pro_flag(client, user_id, False)
    return "User demoted to client"


USER_FILTERS = ("all", "pro", "client", "admin")


def _matches_filter(user: User, role: str) -> bool:
    if role == "pro":
        return user.pro and not user.admin
    if role == "client":
        return not user.pro and not user.admin
    if role == "admin":
        return user.admin
    return True


def _matches_search(user: User, query: str) -> bool:
    fields = (user.first_name, user.last_name, user.email)
    return any(query in value.lower() for value in fields if value)


async def list_users(client: BackendClient, *, role: str = "all", search: Optional[str] = None) -> List[User]:
    """All users, newest first, narrowed by role and a name/email search."""
    if role not in USER_FILTERS:
        raise ValidationError(f"role must be one of {', '.join(USER_FILTERS)}")
    try:
        rows = await client.select("users", {"select": "*", "order": "created_at.desc"})
    except BackendError as e:
        logger.error(f"[users] listing failed: {e}", extra={"event_type": "users.list_failed"})
        raise QueryFailedError(e.message) from e

    users = [User.model_validate(row) for row in rows]
    query = (search or "").strip().lower()
    return [
        u for u in users
        if _matches_filter(u, role) and (not query or _matches_search(u, query))
    ]
