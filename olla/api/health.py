"""
Health endpoints for the Olla backend.

Lightweight liveness/readiness without exposing secrets.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from olla.core.config import settings

logger = logging.getLogger("olla")

router = APIRouter(tags=["health"])


@router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz():
    """Readiness: backend configuration present (no network call)."""
    missing = [key for key in ("SUPABASE_URL", "SUPABASE_ANON_KEY") if not getattr(settings, key, None)]
    if missing:
        detail = f"missing configuration: {', '.join(missing)}"
        logger.warning(f"[readyz] {detail}")
        return JSONResponse(status_code=503, content={"status": "error", "detail": detail})
    return {"status": "ok"}
