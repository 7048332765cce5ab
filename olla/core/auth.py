"""
Request-scoped backend access for Olla API routes.

Builds one BackendClient per request, seeded with the caller's session
(Bearer token first, then session cookies), and resolves the current
identity when a route needs one.
"""
import logging
from typing import AsyncIterator

import httpx
from fastapi import Depends, Request, Response

from olla.core.config import settings
from olla.core.errors import UnauthenticatedError
from olla.features.functions.gateway import FunctionGateway
from olla.models.user import AuthUser
from olla.services.backend_client import BackendClient, BackendError
from olla.services.session_store import CookieSessionStore

logger = logging.getLogger("olla")


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """One HTTP client per request; tests override this with a mock transport."""
    async with httpx.AsyncClient() as http:
        yield http


async def get_backend_client(
    request: Request,
    http: httpx.AsyncClient = Depends(get_http_client),
) -> BackendClient:
    store = CookieSessionStore.from_request(request)
    return BackendClient(
        settings.SUPABASE_URL or "",
        settings.SUPABASE_ANON_KEY or "",
        session_store=store,
        http=http,
    )


def get_function_gateway(client: BackendClient = Depends(get_backend_client)) -> FunctionGateway:
    return FunctionGateway(client)


def persist_session(client: BackendClient, response: Response) -> None:
    """Write session changes made during the request back as cookies."""
    store = client.session_store
    if isinstance(store, CookieSessionStore):
        store.apply(
            response,
            secure=settings.SESSION_COOKIE_SECURE,
            max_age=settings.SESSION_COOKIE_MAX_AGE,
        )


async def get_current_user(client: BackendClient = Depends(get_backend_client)) -> AuthUser:
    """
    Resolve the identity behind the request's session.

    Raises:
        UnauthenticatedError 401: no session, or the provider rejects it
    """
    if not client.access_token:
        raise UnauthenticatedError("Authentication required")
    try:
        return await client.auth.get_user()
    except BackendError as e:
        logger.debug(f"Session rejected by auth provider: {e}")
        raise UnauthenticatedError("Invalid or expired session") from e
