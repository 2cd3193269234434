"""Lingua – Pytest Configuration.

Shared fixtures for all tests.
"""

import os
import tempfile

# Force testing mode with a throwaway SQLite database before app modules load.
os.environ["ENVIRONMENT"] = "testing"
os.environ["DATABASE_URL"] = f"sqlite:///{tempfile.mkdtemp(prefix='lingua-test-')}/lingua.db"
os.environ["REDIS_URL"] = "redis://localhost:6379/0"
os.environ["SUPPORTED_LANGUAGES"] = "en,de,it,fr,es"
os.environ["SOURCE_LANGUAGE"] = "en"
os.environ["SYSTEM_ADMIN_EMAIL"] = "admin@lingua.test"
os.environ["SYSTEM_ADMIN_PASSWORD"] = "test-admin-password"
os.environ["LLM_API_KEY"] = ""

import pytest
import fakeredis.aioredis
from httpx import ASGITransport, AsyncClient

from app.gateway.main import app

ADMIN_EMAIL = "admin@lingua.test"
ADMIN_PASSWORD = "test-admin-password"


@pytest.fixture(autouse=True)
def seed_admin():
    """Ensure schema and the default admin exist for tests."""
    from app.core.auth import ensure_default_admin

    ensure_default_admin()


@pytest.fixture(autouse=True)
def reset_editor_registry():
    from app.gateway.dependencies import editor_registry

    editor_registry.clear()
    yield
    editor_registry.clear()


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def fake_cache():
    """Point the shared DocumentCache at fakeredis for the duration of a test."""
    from app.gateway.dependencies import document_cache

    fake = fakeredis.aioredis.FakeRedis(decode_responses=True)
    await fake.flushall()
    document_cache._client = fake
    yield document_cache
    await fake.flushall()
    document_cache._client = None


@pytest.fixture
async def client():
    """Async test client for the FastAPI gateway."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def admin_headers() -> dict[str, str]:
    from app.core.auth import create_access_token
    from app.core.db import SessionLocal
    from app.core.models import UserAccount

    db = SessionLocal()
    try:
        user = db.query(UserAccount).filter(UserAccount.email == ADMIN_EMAIL).first()
        token = create_access_token(user_id=user.id, email=user.email, role=user.role)
    finally:
        db.close()
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def editor_headers() -> dict[str, str]:
    from app.core.auth import create_access_token, hash_password
    from app.core.db import SessionLocal
    from app.core.models import UserAccount

    email = "editor@lingua.test"
    db = SessionLocal()
    try:
        user = db.query(UserAccount).filter(UserAccount.email == email).first()
        if not user:
            user = UserAccount(email=email, role="editor", password_hash=hash_password("editor-password"))
            db.add(user)
            db.commit()
            db.refresh(user)
        token = create_access_token(user_id=user.id, email=user.email, role=user.role)
    finally:
        db.close()
    return {"Authorization": f"Bearer {token}"}
