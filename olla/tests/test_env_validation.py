"""Tests for environment and configuration validation."""

import logging
from types import SimpleNamespace

import pytest

from olla.core.config import Settings, validate_config
from olla.core.validation import EnvValidationError, validate_env


@pytest.fixture(autouse=True)
def enforce_validation(monkeypatch):
    monkeypatch.delenv("SKIP_ENV_VALIDATION", raising=False)


def make_settings(**overrides):
    defaults = dict(
        ENV="development",
        SUPABASE_URL=None,
        SUPABASE_ANON_KEY=None,
        APP_URL="http://localhost:3000",
        SESSION_COOKIE_SECURE=False,
        CONFIG_STRICT=False,
    )
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def test_valid_production_config_passes():
    settings = make_settings(
        ENV="production",
        SUPABASE_URL="https://project.supabase.co",
        SUPABASE_ANON_KEY="anon",
        APP_URL="https://olla.app",
        SESSION_COOKIE_SECURE=True,
    )
    assert validate_env(settings_obj=settings)


def test_missing_anon_key_in_production_fails():
    settings = make_settings(
        ENV="production",
        SUPABASE_URL="https://project.supabase.co",
        SESSION_COOKIE_SECURE=True,
    )
    with pytest.raises(EnvValidationError, match="SUPABASE_ANON_KEY"):
        validate_env(settings_obj=settings)


def test_insecure_cookies_in_production_fail():
    settings = make_settings(
        ENV="production",
        SUPABASE_URL="https://project.supabase.co",
        SUPABASE_ANON_KEY="anon",
    )
    with pytest.raises(EnvValidationError, match="SESSION_COOKIE_SECURE"):
        validate_env(settings_obj=settings)


def test_invalid_backend_url_fails():
    with pytest.raises(EnvValidationError):
        validate_env(settings_obj=make_settings(SUPABASE_URL="not-a-url"))


def test_development_tolerates_missing_keys():
    assert validate_env(settings_obj=make_settings())


def test_skip_env_validation_bypass(monkeypatch):
    monkeypatch.setenv("SKIP_ENV_VALIDATION", "1")
    assert validate_env(settings_obj=make_settings(ENV="production"))


def test_validate_config_warns(caplog):
    logger = logging.getLogger("olla.test")
    with caplog.at_level(logging.WARNING, logger="olla.test"):
        assert validate_config(strict=False, settings_obj=make_settings(), logger=logger)
    assert "SUPABASE_URL" in caplog.text
    assert "SUPABASE_ANON_KEY" in caplog.text


def test_validate_config_strict_raises():
    with pytest.raises(RuntimeError, match="SUPABASE_URL"):
        validate_config(strict=True, settings_obj=make_settings())


def test_cors_origins_split():
    settings = Settings(CORS_ORIGINS="http://a.test, http://b.test,")
    assert settings.cors_origins() == ["http://a.test", "http://b.test"]
