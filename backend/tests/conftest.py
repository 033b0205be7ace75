"""Root conftest — shared test configuration and DB fixtures.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use the test DB
    - db_manager patched so readiness checks hit the test engine

Design Decisions:
    - SQLite in-memory with StaticPool: one shared connection, so the test
      session and the request sessions see the same data
"""

import hashlib
import os

os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)
os.environ.setdefault("ADMIN_SECRET_KEY", "test-admin-secret-0123456789")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from retroboard.core.domain_types import Identity, UserHash  # noqa: E402
from retroboard.db.base import Base  # noqa: E402
from retroboard.infrastructure.database import get_db, DatabaseSessionManager  # noqa: E402
import retroboard.infrastructure.database as db_module  # noqa: E402
import retroboard.models  # noqa: E402,F401
from retroboard.main import app  # noqa: E402
from retroboard.services.board_lifecycle import BoardLifecycle  # noqa: E402

ADMIN_SECRET = os.environ["ADMIN_SECRET_KEY"]
SESSION_COOKIE = "retro_session_id"
COLUMNS = [
    {"id": "went-well", "name": "Went Well", "color": "#4CAF50"},
    {"id": "to-improve", "name": "To Improve"},
    {"id": "actions", "name": "Action Items"},
]


def make_identity(name: str, admin: bool = False) -> Identity:
    return Identity(
        user_hash=UserHash(hashlib.sha256(name.encode()).hexdigest()),
        is_admin_override=admin,
    )


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
        cookies={SESSION_COOKIE: "alice-session"},
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
def alice() -> Identity:
    return make_identity("alice")


@pytest.fixture
def bob() -> Identity:
    return make_identity("bob")


@pytest.fixture
async def board(test_db, alice):
    """Active board created by alice, who has joined as 'Alice'."""
    return await BoardLifecycle(test_db).create_board(
        "Sprint 42 Retro", COLUMNS, alice, creator_alias="Alice",
    )


@pytest.fixture
def carol() -> Identity:
    return make_identity("carol")


@pytest.fixture
def operator() -> Identity:
    """Caller presenting the admin secret."""
    return make_identity("operator", admin=True)


@pytest.fixture
def admin_headers() -> dict:
    return {"X-Admin-Secret": ADMIN_SECRET}


@pytest.fixture
async def bob_client(client):
    """Second browser session against the same app and database."""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
        cookies={SESSION_COOKIE: "bob-session"},
    ) as c:
        yield c
