"""
Function gateway.

Forwards calls to named backend edge functions
(`<base>/functions/v1/<name>`), attaching the session bearer token, and
normalizes their `{data, error}` shape:

- no token while auth is required -> UnauthenticatedError, no network call
- non-2xx status                  -> CallFailedError(body.error or status message)
- 2xx with an `error` field        -> CallFailedError(body.error)
- success                          -> body.data if present, else the body

Single attempt; no retry, no extra timeout.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from olla.core.errors import CallFailedError, UnauthenticatedError, ValidationError
from olla.services.backend_client import BackendClient, BackendError

logger = logging.getLogger("olla")

ALLOWED_METHODS = ("POST", "PATCH", "DELETE")


def _error_text(value: Any) -> str:
    if isinstance(value, dict):
        return str(value.get("message") or value)
    return str(value)


class FunctionGateway:
    def __init__(self, client: BackendClient):
        self.client = client

    async def call_function(
        self,
        name: str,
        payload: Optional[Dict[str, Any]] = None,
        *,
        require_auth: bool = True,
        method: str = "POST",
    ) -> Any:
        method = method.upper()
        if method not in ALLOWED_METHODS:
            raise ValidationError(f"Unsupported method {method}; expected one of {', '.join(ALLOWED_METHODS)}")

        token = self.client.access_token
        if require_auth and not token:
            raise UnauthenticatedError("Authentication required")

        headers = {"Authorization": f"Bearer {token}" if token else ""}
        try:
            response = await self.client.request(
                method,
                f"/functions/v1/{name}",
                json=payload or {},
                headers=headers,
                authenticated=False,
            )
        except (BackendError, httpx.HTTPError) as e:
            logger.warning(f"[functions] {name} failed: {e}", extra={"function": name})
            raise CallFailedError(str(e)) from e

        try:
            body = response.json()
        except ValueError as e:
            if response.is_success:
                logger.warning(f"[functions] {name} returned an unreadable body", extra={"function": name})
                raise CallFailedError(str(e)) from e
            body = None

        error = body.get("error") if isinstance(body, dict) else None
        if not response.is_success:
            message = _error_text(error) if error else f"Function call failed with status {response.status_code}"
            logger.warning(
                f"[functions] {name} returned {response.status_code}",
                extra={"function": name, "status": response.status_code},
            )
            raise CallFailedError(message)

        if error:
            logger.warning(f"[functions] {name} reported an error", extra={"function": name})
            raise CallFailedError(_error_text(error))

        if isinstance(body, dict) and body.get("data") is not None:
            return body["data"]
        return body
