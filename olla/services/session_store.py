"""
Session stores.

A store owns the authenticated session (access token, refresh token,
identity). The backend client writes to it on sign-in and clears it on
sign-out; listeners are notified of every change.

- InMemorySessionStore: plain holder (scripts, tests)
- CookieSessionStore: seeded from an incoming request, written back to the
  outgoing response as httponly cookies
"""
import logging
from typing import Callable, List, Optional, Protocol

from fastapi import Request, Response

from olla.models.user import Session

logger = logging.getLogger("olla")

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"

SessionListener = Callable[[str, Optional[Session]], None]


class SessionStore(Protocol):
    def get(self) -> Optional[Session]:
        ...

    def set(self, session: Session) -> None:
        ...

    def clear(self) -> None:
        ...

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a change listener; returns an unsubscribe callable."""
        ...


class InMemorySessionStore:
    def __init__(self, session: Optional[Session] = None):
        self._session = session
        self._listeners: List[SessionListener] = []

    def get(self) -> Optional[Session]:
        return self._session

    def set(self, session: Session) -> None:
        self._session = session
        self._notify(SIGNED_IN, session)

    def clear(self) -> None:
        had_session = self._session is not None
        self._session = None
        if had_session:
            self._notify(SIGNED_OUT, None)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: str, session: Optional[Session]) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, session)
            except Exception as e:
                logger.warning(f"Session listener failed on {event}: {e}")


class CookieSessionStore(InMemorySessionStore):
    """Request-scoped store persisted through session cookies."""

    ACCESS_COOKIE = "sb-access-token"
    REFRESH_COOKIE = "sb-refresh-token"

    def __init__(self, session: Optional[Session] = None):
        super().__init__(session)
        self._dirty = False

    @classmethod
    def from_request(cls, request: Request) -> "CookieSessionStore":
        """Seed from `Authorization: Bearer` first, then from cookies."""
        auth_header = request.headers.get("Authorization", "")
        token = auth_header[7:].strip() if auth_header.startswith("Bearer ") else ""
        refresh = None
        if not token:
            token = request.cookies.get(cls.ACCESS_COOKIE, "")
            refresh = request.cookies.get(cls.REFRESH_COOKIE)
        if not token:
            return cls()
        return cls(Session(access_token=token, refresh_token=refresh))

    def set(self, session: Session) -> None:
        self._dirty = True
        super().set(session)

    def clear(self) -> None:
        self._dirty = True
        super().clear()

    @classmethod
    def expire(cls, response: Response) -> None:
        response.delete_cookie(cls.ACCESS_COOKIE, path="/")
        response.delete_cookie(cls.REFRESH_COOKIE, path="/")

    def apply(self, response: Response, *, secure: bool = False, max_age: Optional[int] = None) -> None:
        """Write pending session changes to the response cookies."""
        if not self._dirty:
            return
        session = self.get()
        if session is None:
            self.expire(response)
            return
        cookie_args = dict(httponly=True, secure=secure, samesite="lax", path="/", max_age=max_age)
        response.set_cookie(self.ACCESS_COOKIE, session.access_token, **cookie_args)
        if session.refresh_token:
            response.set_cookie(self.REFRESH_COOKIE, session.refresh_token, **cookie_args)
