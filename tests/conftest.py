"""
RecipeHub Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Tests run against the real application and a throwaway SQLite
       database (aiosqlite) in a temporary directory; images go to a
       temporary local storage root.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── database: engine + empty tables, dropped and disposed afterwards
    │   ├── db_session: AsyncSession for service-level tests
    │   └── test_client: HTTPX AsyncClient wired to the FastAPI app
    ├── sample_image_bytes / sample_png_bytes: tiny image payloads
    └── recipe_form: valid multipart fields for POST /recipes
"""

import os
import tempfile

# Settings are read at import time; configure the environment BEFORE any
# recipehub import.
_TEST_DIR = tempfile.mkdtemp(prefix="recipehub_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["JWT_SECRET"] = "test-secret-not-real"
os.environ["STORAGE_ROOT"] = os.path.join(_TEST_DIR, "storage")
os.environ["MEDIA_BACKEND"] = "local"
os.environ["ADMIN_USERNAMES"] = "admin"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "0"
os.environ["CAS_MAX_ATTEMPTS"] = "10"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"

import json  # noqa: E402
from pathlib import Path  # noqa: E402
from typing import Dict  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

import recipehub.models  # noqa: E402,F401
from recipehub.database import (  # noqa: E402
    Base,
    create_tables,
    dispose_engine,
    get_engine,
    get_session_factory,
    init_engine,
)


def storage_path_for(url: str) -> Path:
    """Map a local-backend image URL (/media/...) to its file on disk."""
    return Path(os.environ["STORAGE_ROOT"]) / url[len("/media/"):]


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def database():
    """
    Fresh schema per test.

    The engine is bound to the test's event loop, so it is created and
    disposed inside each test.
    """
    await dispose_engine()
    init_engine()
    await create_tables()
    yield
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await dispose_engine()


@pytest_asyncio.fixture
async def db_session(database):
    async with get_session_factory()() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(database):
    """
    HTTPX AsyncClient routed straight into the app (no server, no lifespan).

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from recipehub.main import app
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def login_as(client: AsyncClient, username: str, password: str = "s3cret-pass") -> Dict[str, str]:
    """Register (if needed) and log in; returns Authorization headers."""
    await client.post("/register", json={"username": username, "password": password})
    response = await client.post("/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


# ══════════════════════════════════════════════════════════════════════════
# Payloads
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def sample_image_bytes():
    """Minimal JPEG: SOI + JFIF header + EOI."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest.fixture
def sample_png_bytes():
    """PNG signature followed by an empty IEND chunk."""
    return b"\x89PNG\r\n\x1a\n\x00\x00\x00\x00IEND\xaeB`\x82"


@pytest.fixture
def recipe_form():
    return {
        "name": "Carbonara",
        "cuisine": "Italian",
        "cookingTime": "20",
        "ingredients": json.dumps([
            {"name": "spaghetti", "quantity": "200 g"},
            {"name": "guanciale", "quantity": "100 g"},
        ]),
        "methodSteps": "Boil pasta, Fry guanciale, Mix with eggs",
    }
