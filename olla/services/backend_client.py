"""
Client for the hosted backend-as-a-service.

Speaks the provider's REST contracts as-is:
- auth:      /auth/v1/token?grant_type=password, /auth/v1/signup,
             /auth/v1/logout, /auth/v1/user
- data:      /rest/v1/<table> with PostgREST filters; counts through
             `Prefer: count=exact` and the Content-Range total
- functions: /functions/v1/<name>

One client is constructed per request (or per script) with an explicit
session store; nothing here is process-wide.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from olla.models.user import AuthUser, RoleFlags, Session
from olla.services.session_store import InMemorySessionStore, SessionStore

logger = logging.getLogger("olla")

SINGLE_OBJECT = "application/vnd.pgrst.object+json"


class BackendError(Exception):
    """Raised when the backend rejects a call or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def error_message(response: httpx.Response) -> str:
    """Best-effort human message from a provider error response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            value = body.get(key)
            if isinstance(value, dict):
                value = value.get("message")
            if value:
                return str(value)
    return f"Request failed with status {response.status_code}"


def _parse(response: httpx.Response, model):
    if response.status_code >= 400:
        raise BackendError(error_message(response), response.status_code)
    try:
        return model.model_validate(response.json())
    except ValueError as e:
        raise BackendError(f"Malformed response: {e}", response.status_code) from e


def _content_range_total(response: httpx.Response) -> int:
    # "0-24/3573" or "*/0"
    total = response.headers.get("Content-Range", "").rpartition("/")[2]
    if not total.isdigit():
        raise BackendError("Malformed response: missing row count", response.status_code)
    return int(total)


class AuthAPI:
    """Hosted identity provider endpoints."""

    def __init__(self, client: "BackendClient"):
        self._client = client

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        """Password grant. Stores the resulting session on success."""
        response = await self._client.request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            authenticated=False,
        )
        session = _parse(response, Session)
        self._client.session_store.set(session)
        return session

    async def sign_up(self, email: str, password: str, data: Optional[Dict[str, Any]] = None) -> AuthUser:
        response = await self._client.request(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password, "data": data or {}},
            authenticated=False,
        )
        if response.status_code >= 400:
            raise BackendError(error_message(response), response.status_code)
        try:
            body = response.json()
            # With auto-confirm the provider answers with a session wrapping the user
            if isinstance(body, dict) and "access_token" in body:
                session = Session.model_validate(body)
                self._client.session_store.set(session)
                return session.user
            if isinstance(body, dict) and isinstance(body.get("user"), dict):
                body = body["user"]
            return AuthUser.model_validate(body)
        except ValueError as e:
            raise BackendError(f"Malformed response: {e}", response.status_code) from e

    async def sign_out(self) -> None:
        """Revoke the current session. The local store is cleared regardless."""
        token = self._client.access_token
        try:
            if token:
                response = await self._client.request("POST", "/auth/v1/logout")
                if response.status_code >= 400:
                    raise BackendError(error_message(response), response.status_code)
        finally:
            self._client.session_store.clear()

    async def get_user(self, access_token: Optional[str] = None) -> AuthUser:
        token = access_token or self._client.access_token
        if not token:
            raise BackendError("No session", 401)
        response = await self._client.request(
            "GET",
            "/auth/v1/user",
            headers={"Authorization": f"Bearer {token}"},
            authenticated=False,
        )
        return _parse(response, AuthUser)


class BackendClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        session_store: Optional[SessionStore] = None,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.session_store = session_store if session_store is not None else InMemorySessionStore()
        self._http = http or httpx.AsyncClient()
        self._owns_http = http is None
        self.auth = AuthAPI(self)

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    @property
    def access_token(self) -> Optional[str]:
        session = self.session_store.get()
        return session.access_token if session else None

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
        authenticated: bool = True,
    ) -> httpx.Response:
        """Issue one call. Transport failures surface as BackendError."""
        merged = {"apikey": self.api_key, "Content-Type": "application/json"}
        if authenticated:
            merged["Authorization"] = f"Bearer {self.access_token or self.api_key}"
        if headers:
            merged.update(headers)
        try:
            return await self._http.request(method, self.url(path), params=params, json=json, headers=merged)
        except httpx.HTTPError as e:
            logger.warning(f"[backend] {method} {path} transport error: {e}")
            raise BackendError(str(e)) from e

    # ---- tables ----

    async def select(self, table: str, params: Optional[Dict[str, str]] = None) -> List[Dict[str, Any]]:
        response = await self.request("GET", f"/rest/v1/{table}", params=params)
        if response.status_code >= 400:
            raise BackendError(error_message(response), response.status_code)
        try:
            rows = response.json()
        except ValueError as e:
            raise BackendError(f"Malformed response: {e}", response.status_code) from e
        if not isinstance(rows, list):
            raise BackendError("Malformed response: expected a list of rows", response.status_code)
        return rows

    async def count(self, table: str, filters: Optional[Dict[str, str]] = None) -> int:
        """Exact row count without transferring rows."""
        response = await self.request(
            "HEAD",
            f"/rest/v1/{table}",
            params={"select": "id", **(filters or {})},
            headers={"Prefer": "count=exact"},
        )
        if response.status_code >= 400:
            raise BackendError(error_message(response), response.status_code)
        return _content_range_total(response)

    async def insert(self, table: str, rows: List[Dict[str, Any]]) -> None:
        response = await self.request(
            "POST",
            f"/rest/v1/{table}",
            json=rows,
            headers={"Prefer": "return=minimal"},
        )
        if response.status_code >= 400:
            raise BackendError(error_message(response), response.status_code)

    async def delete(self, table: str, filters: Dict[str, str]) -> None:
        if not filters:
            raise ValueError("Refusing an unfiltered delete")
        response = await self.request("DELETE", f"/rest/v1/{table}", params=filters)
        if response.status_code >= 400:
            raise BackendError(error_message(response), response.status_code)

    # ---- users table ----

    async def fetch_role_flags(self, auth_id: str) -> RoleFlags:
        """Single `users` row matched by the auth linkage: row id, `pro` and `admin`."""
        response = await self.request(
            "GET",
            "/rest/v1/users",
            params={"select": "id,pro,admin", "auth_id": f"eq.{auth_id}"},
            headers={"Accept": SINGLE_OBJECT},
        )
        return _parse(response, RoleFlags)

    async def update_user(self, user_id: str, values: Dict[str, Any]) -> None:
        response = await self.request(
            "PATCH",
            "/rest/v1/users",
            params={"id": f"eq.{user_id}"},
            json=values,
            headers={"Prefer": "return=minimal"},
        )
        if response.status_code >= 400:
            raise BackendError(error_message(response), response.status_code)
