# olla/conftest.py
import os
import sys
from pathlib import Path

import pytest

# Add project root to PYTHONPATH
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("SKIP_ENV_VALIDATION", "1")

from olla.core.config import settings  # noqa: E402
from olla.tests.mocks import FakeBackend  # noqa: E402

TEST_BASE_URL = "https://olla.test"
TEST_API_KEY = "anon-test-key"


@pytest.fixture(autouse=True)
def configure_backend_settings():
    """Point the app at a fake backend and restore settings afterwards."""
    orig = {"url": settings.SUPABASE_URL, "key": settings.SUPABASE_ANON_KEY}
    settings.SUPABASE_URL = TEST_BASE_URL
    settings.SUPABASE_ANON_KEY = TEST_API_KEY
    yield
    settings.SUPABASE_URL = orig["url"]
    settings.SUPABASE_ANON_KEY = orig["key"]


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def backend_client(fake_backend):
    """BackendClient with an in-memory session store talking to `fake_backend`."""
    from olla.services.backend_client import BackendClient

    return BackendClient(TEST_BASE_URL, TEST_API_KEY, http=fake_backend.http_client())


@pytest.fixture
def client(fake_backend):
    """TestClient whose backend calls are answered by `fake_backend`."""
    from fastapi.testclient import TestClient
    from olla.core.auth import get_http_client
    from olla.main import create_app

    app = create_app()

    async def override_http_client():
        async with fake_backend.http_client() as http:
            yield http

    app.dependency_overrides[get_http_client] = override_http_client
    with TestClient(app) as test_client:
        yield test_client
