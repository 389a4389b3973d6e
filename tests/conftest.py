import os
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# ------------------------------------------------------------------
# FORCE TESTING MODE
# This must be done BEFORE importing app.main so Settings and the
# engine in database.py pick up the in-memory database.
# ------------------------------------------------------------------
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-for-pytest-only-0123456789"

from app.main import app
from app.core.constants import DEPARTMENT_ID_MAP
from app.core.database import AsyncSessionLocal, engine, init_db
from app.core.performance import performance_buffer
from app.core.security import create_access_token
from app.models.department import Department
from app.models.user import User


@pytest_asyncio.fixture(autouse=True)
async def database():
    """
    Fresh schema for every test. The in-memory database lives on the
    single pooled connection, so disposing the engine throws it away.
    """
    await init_db()
    async with AsyncSessionLocal() as session:
        for name, dept_id in DEPARTMENT_ID_MAP.items():
            session.add(Department(id=dept_id, name=name))
        await session.commit()

    performance_buffer.clear()
    yield
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session():
    async with AsyncSessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    async def _make(role="User", department_id=None, **extra) -> User:
        counter["n"] += 1
        user = User(
            full_name=extra.pop("full_name", f"{role} {counter['n']}"),
            email=extra.pop("email", f"{role.lower()}{counter['n']}@example.com"),
            role=role,
            department_id=department_id,
            **extra,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers
