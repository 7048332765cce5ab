"""
Admin API routes: user roles, user listing and overview counts.

All routes require an authenticated caller whose profile has the admin flag.
"""
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel, Field

from olla.core.admin_auth import AdminActor, require_admin
from olla.core.auth import get_backend_client
from olla.core.logging import log_event
from olla.features.admin.stats import overview_stats
from olla.features.users import service as users_service
from olla.services.backend_client import BackendClient

router = APIRouter(prefix="/api/admin", tags=["admin"])


class UserIdIn(BaseModel):
    user_id: Optional[str] = Field(default=None, alias="userId")


def _user_id(body: Optional[UserIdIn]) -> Optional[str]:
    return body.user_id if body else None


@router.get("/users")
async def list_users(
    role: str = Query("all", description="all, pro, client or admin"),
    search: Optional[str] = Query(None, description="Matches names and email"),
    actor: AdminActor = Depends(require_admin),
    client: BackendClient = Depends(get_backend_client),
) -> dict:
    """Users, newest first."""
    users = await users_service.list_users(client, role=role, search=search)
    return {"users": [{**u.model_dump(), "display_name": u.display_name} for u in users]}


@router.get("/stats")
async def stats(
    actor: AdminActor = Depends(require_admin),
    client: BackendClient = Depends(get_backend_client),
) -> dict:
    return await overview_stats(client)


@router.post("/users/promote")
async def promote_user(
    body: Optional[UserIdIn] = Body(default=None),
    actor: AdminActor = Depends(require_admin),
    client: BackendClient = Depends(get_backend_client),
) -> dict:
    """Promote a user to professional status."""
    message = await users_service.promote(client, _user_id(body))
    log_event("info", "[admin] promote", user_id=actor.auth_id, event_type="admin.promote", extra={"target_user_id": _user_id(body)})
    return {"success": True, "message": message}


@router.post("/users/demote")
async def demote_user(
    body: Optional[UserIdIn] = Body(default=None),
    actor: AdminActor = Depends(require_admin),
    client: BackendClient = Depends(get_backend_client),
) -> dict:
    """Demote a user from professional to client status."""
    message = await users_service.demote(client, _user_id(body))
    log_event("info", "[admin] demote", user_id=actor.auth_id, event_type="admin.demote", extra={"target_user_id": _user_id(body)})
    return {"success": True, "message": message}
