import os

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# In-memory DB and no external assistant for tests
os.environ["GEMINI_API_KEY"] = ""
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""
os.environ["ASSISTANT_PROVIDER"] = "none"
os.environ["DATABASE_PATH"] = ":memory:"
os.environ["DATABASE_URL"] = ""
os.environ["SEED_DEMO_DATA"] = "false"

from carechat.database import close_db, init_db
from carechat.main import app
from carechat.models.auth import SignUpRequest
from carechat.services import auth
from carechat.storage import Storage

import carechat.services.llm as _llm_mod

_llm_mod._client = None


@pytest_asyncio.fixture
async def db():
    """Provide a fresh in-memory database for each test."""
    import carechat.database as db_mod

    if db_mod._db is not None:
        try:
            await db_mod._db.close()
        except Exception:
            pass
    db_mod._db = None

    db_mod.DATABASE_PATH = ":memory:"
    db_mod.DATABASE_URL = ""
    db_mod.SEED_DEMO_DATA = False

    await init_db()
    database = await db_mod.get_db()
    yield database
    await close_db()


@pytest.fixture
def storage(db):
    return Storage(db)


@pytest.fixture
def make_patient(storage):
    """Insert a patient row; keyword arguments override the defaults."""

    async def _make(full_name="Test Patient", **overrides):
        row = {
            "full_name": full_name,
            "date_of_birth": "1980-01-01",
            "gender": "female",
            "department": "cardiology",
            "status": "admitted",
            "admission_date": "2026-01-10T09:00:00+00:00",
            **overrides,
        }
        result = await storage.insert("patients", row)
        assert result.ok, result.error
        return result.data

    return _make


@pytest_asyncio.fixture
async def staff(storage):
    """A signed-up doctor profile."""
    session = await auth.sign_up(
        storage,
        SignUpRequest(email="doctor@example.com", password="s3cure-pass", full_name="Dr. Test", role="doctor"),
    )
    return session.user


@pytest_asyncio.fixture
async def async_client(db):
    """Provide an async httpx client for async HTTP tests."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def auth_headers(async_client):
    """Bearer headers for a freshly signed-up intern."""
    resp = await async_client.post(
        "/api/auth/sign-up",
        json={"email": "intern@example.com", "password": "intern-pass", "full_name": "Ira Intern"},
    )
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}
