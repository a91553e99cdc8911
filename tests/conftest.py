# tests/conftest.py
import asyncio
import os
import tempfile

import pytest

# Point the app at a throwaway SQLite file before anything reads settings.
_DB_DIR = tempfile.mkdtemp(prefix="caseload-calendar-tests-")
os.environ.setdefault("DB_URL", f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'test.db')}")
os.environ.setdefault("APP_ENV", "test")

from fastapi.testclient import TestClient  # noqa: E402

from caseload_calendar.db.session import reset_db  # noqa: E402
from caseload_calendar.main import create_app  # noqa: E402


@pytest.fixture(scope="session")
def app_client() -> TestClient:
    """
    Shared TestClient for all API tests.

    Uses the application factory so configuration stays test-friendly.
    """
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def client(app_client: TestClient) -> TestClient:
    """
    TestClient with every table dropped and recreated before the test.
    """
    asyncio.run(reset_db())
    return app_client
