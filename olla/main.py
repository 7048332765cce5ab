import logging
import os
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from starlette.exceptions import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

# Load env from the project root .env
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env"))

from olla.core.config import settings, validate_config
from olla.core.logging import configure_logging
from olla.core.middleware.request_id import RequestIdMiddleware
from olla.core.validation import validate_env
from olla.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_error_handler,
    unhandled_exception_handler,
)
from olla.features.onboarding.state import OnboardingScopes
from olla.api import admin, auth, functions, health, onboarding, pro

configure_logging(settings.ENV)
validate_env()
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("olla")
    logger.info("Starting Olla backend...")
    app.state.startup_time = time.time()
    try:
        yield
    finally:
        logging.getLogger("olla").info("Stopping Olla backend...")


def create_app() -> FastAPI:
    app = FastAPI(title="Olla - Backend", lifespan=lifespan)
    app.state.onboarding_scopes = OnboardingScopes()

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(admin.router)
    app.include_router(functions.router)
    app.include_router(onboarding.router)
    app.include_router(pro.router)
    app.include_router(health.router)
    return app


app = create_app()
