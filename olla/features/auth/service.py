"""
Authentication service.

- sign_in(): role-gated password sign-in; only `pro` or `admin` users keep
  the session they just obtained
- sign_up(): professional account registration
- sign_out()
"""
import logging
from dataclasses import dataclass
from typing import Optional

from olla.core.errors import (
    ForbiddenError,
    InvalidCredentialsError,
    ProfileLookupError,
    ValidationError,
)
from olla.models.user import AuthUser
from olla.services.backend_client import BackendClient, BackendError

logger = logging.getLogger("olla")

MIN_PASSWORD_LENGTH = 6


@dataclass(frozen=True)
class SignInResult:
    user: AuthUser
    is_admin: bool


async def _revoke(client: BackendClient, user_id: str, reason: str) -> None:
    """Sign the fresh session out again; the store ends up empty either way."""
    try:
        await client.auth.sign_out()
    except BackendError as e:
        logger.error(
            f"[auth] failed to revoke session after {reason}: {e}",
            extra={"user_id": user_id, "event_type": "auth.revoke_failed"},
        )


async def sign_in(client: BackendClient, email: str, password: str) -> SignInResult:
    try:
        session = await client.auth.sign_in_with_password(email, password)
    except BackendError as e:
        logger.info("[auth] sign-in rejected", extra={"event_type": "auth.sign_in_rejected"})
        raise InvalidCredentialsError(e.message) from e

    user = session.user
    if user is None:
        user = await _current_user(client)

    try:
        flags = await client.fetch_role_flags(user.id)
    except BackendError as e:
        logger.error(
            f"[auth] profile lookup failed: {e}",
            extra={"user_id": user.id, "event_type": "auth.profile_lookup_failed"},
        )
        await _revoke(client, user.id, "profile lookup failure")
        raise ProfileLookupError("Unable to verify the account") from e

    if not flags.may_access_pro_area:
        logger.info("[auth] non-professional sign-in refused", extra={"user_id": user.id, "event_type": "auth.forbidden"})
        await _revoke(client, user.id, "role check")
        raise ForbiddenError("This area is reserved for professionals")

    logger.info("[auth] signed in", extra={"user_id": user.id, "event_type": "auth.signed_in"})
    return SignInResult(user=user, is_admin=flags.admin)


async def _current_user(client: BackendClient) -> AuthUser:
    try:
        return await client.auth.get_user()
    except BackendError as e:
        await _revoke(client, "unknown", "identity lookup failure")
        raise ProfileLookupError("Unable to verify the account") from e


async def sign_up(
    client: BackendClient,
    *,
    email: Optional[str],
    password: Optional[str],
    confirm_password: Optional[str],
    first_name: Optional[str],
    last_name: Optional[str],
) -> AuthUser:
    """Register a professional account. The `pro` flag travels as user metadata."""
    if not all([email, password, confirm_password, first_name, last_name]):
        raise ValidationError("All fields are required")
    if password != confirm_password:
        raise ValidationError("Passwords do not match")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    try:
        user = await client.auth.sign_up(
            email,
            password,
            data={
                "first_name": first_name.strip(),
                "last_name": last_name.strip(),
                "pro": True,
            },
        )
    except BackendError as e:
        raise ValidationError(e.message) from e

    logger.info("[auth] signed up", extra={"user_id": user.id, "event_type": "auth.signed_up"})
    return user


async def sign_out(client: BackendClient) -> None:
    try:
        await client.auth.sign_out()
    except BackendError as e:
        # Local session is already cleared
        logger.warning(f"[auth] remote sign-out failed: {e}", extra={"event_type": "auth.sign_out_failed"})
