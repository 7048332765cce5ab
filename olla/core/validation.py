"""
Environment validation utilities.

Ensures the backend fails fast on misconfiguration while
remaining bypassable for tests via SKIP_ENV_VALIDATION.
"""

import os
from typing import Optional, Iterable
from urllib.parse import urlparse

from olla.core.config import settings


class EnvValidationError(RuntimeError):
    """Raised when environment validation fails."""


def _is_valid_http_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def _require(vars_required: Iterable[str], source: object) -> None:
    for var in vars_required:
        if not getattr(source, var, None):
            raise EnvValidationError(f"{var} is required in production")


def validate_env(env: Optional[str] = None, settings_obj=None) -> bool:
    """Validate environment configuration.

    Args:
        env: Override environment name (defaults to settings.ENV)
        settings_obj: Override settings object (defaults to olla.core.config.settings)

    Returns:
        True if validation passes.

    Raises:
        EnvValidationError when a rule is violated.
    """
    if os.getenv("SKIP_ENV_VALIDATION") == "1":
        return True

    cfg = settings_obj or settings
    mode = (env or getattr(cfg, "ENV", "development") or "development").lower()

    for var in ("SUPABASE_URL", "APP_URL"):
        value = getattr(cfg, var, None)
        if value and not _is_valid_http_url(value):
            raise EnvValidationError(f"{var} must be a valid http(s) URL (e.g. https://project.supabase.co)")

    if mode == "production":
        _require(["SUPABASE_URL", "SUPABASE_ANON_KEY", "APP_URL"], cfg)
        if not getattr(cfg, "SESSION_COOKIE_SECURE", False):
            raise EnvValidationError("SESSION_COOKIE_SECURE must be enabled in production")

    return True
