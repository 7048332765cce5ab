"""Error taxonomy and FastAPI exception handlers.

Every handler boundary converts failures into the JSON contract
``{"error": <message>, "code": <kind>, "request_id": <rid>}``.
"""

import logging
from typing import Optional
from uuid import uuid4

from starlette.exceptions import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from olla.core.logging import get_request_id
from olla.services.session_store import CookieSessionStore


class AppError(Exception):
    code = "app_error"
    status_code = 500
    # When set, the error response also expires the session cookies
    clear_session = False

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id


class InvalidCredentialsError(AppError):
    code = "invalid_credentials"
    status_code = 401


class ProfileLookupError(AppError):
    """The user row behind an authenticated identity could not be read."""
    code = "profile_lookup_failed"
    status_code = 500


class ForbiddenError(AppError):
    code = "forbidden"
    status_code = 403


class MissingParameterError(AppError, ValueError):
    code = "missing_parameter"
    status_code = 400


class MutationFailedError(AppError):
    code = "mutation_failed"
    status_code = 500


class UnauthenticatedError(AppError):
    code = "unauthenticated"
    status_code = 401


class CallFailedError(AppError):
    """A backend function call failed (transport, status or error body)."""
    code = "call_failed"
    status_code = 502


class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class NotFoundError(AppError, ValueError):
    code = "not_found"
    status_code = 404


class QueryFailedError(AppError):
    """A read against the data store failed."""
    code = "query_failed"
    status_code = 500


class OnboardingIncompleteError(AppError):
    """Professional without a business: onboarding must be finished first."""
    code = "onboarding_incomplete"
    status_code = 409


class OnboardingStepError(AppError):
    """Wizard step requested out of order."""
    code = "onboarding_step_not_allowed"
    status_code = 409


def _extract_request_id(request: Request, fallback: Optional[str] = None) -> str:
    return (
        getattr(request.state, "request_id", None)
        or get_request_id()
        or fallback
        or str(uuid4())
    )


def _error_payload(code: str, message: str, request_id: str) -> dict:
    return {"error": message, "code": code, "request_id": request_id}


def _respond(status_code: int, code: str, message: str, rid: str) -> JSONResponse:
    response = JSONResponse(status_code=status_code, content=_error_payload(code, message, rid))
    response.headers["x-request-id"] = rid
    return response


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _extract_request_id(request)
    logger = logging.getLogger("olla")
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        log_level,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "error_message": exc.message, "status": exc.status_code},
    )
    response = _respond(exc.status_code, exc.code, exc.message, rid)
    if exc.clear_session:
        CookieSessionStore.expire(response)
    return response


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _extract_request_id(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    message = exc.detail if exc.detail else "HTTP error"
    logger = logging.getLogger("olla")
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    return _respond(exc.status_code, code, message, rid)


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    rid = _extract_request_id(request)
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    logging.getLogger("olla").warning(
        "request.invalid", extra={"request_id": rid, "error_code": "validation_error", "status": 400}
    )
    return _respond(400, "validation_error", message, rid)


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _extract_request_id(request)
    logger = logging.getLogger("olla")
    logger.error("unhandled.exception", exc_info=True, extra={"request_id": rid, "error_code": "internal_error"})
    return _respond(500, "internal_error", "Unexpected error", rid)
