"""Pytest configuration and fixtures for onboardflow tests.

Each test gets a fresh in-memory SQLite database with the schema created
from the models and the default step configuration seeded.
"""

import os

# Must be set before the app (and its settings) are imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SEED_STEP_CONFIG_ON_STARTUP", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from typing import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.auth.jwt import create_admin_token, create_session_token  # noqa: E402
from app.auth.password import hash_password  # noqa: E402
from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.subject import Subject  # noqa: E402
from app.services.record_store import RecordStore  # noqa: E402
from app.services.step_config import StepConfigStore  # noqa: E402

TEST_PASSWORD = "secret123"


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine():
    """In-memory database shared by every connection of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def store(db_session: AsyncSession) -> RecordStore:
    """Record store over a seeded database."""
    record_store = RecordStore(db_session)
    await StepConfigStore(record_store).seed_defaults()
    return record_store


@pytest_asyncio.fixture
async def client(session_factory, store) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client; every request gets its own session on the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Test Data Fixtures ───────────────────────────────────────────

@pytest_asyncio.fixture
async def test_subject(db_session: AsyncSession, store) -> Subject:
    """A subject that has just passed the identity step."""
    subject = Subject(
        email="test@example.com",
        password_hash=hash_password(TEST_PASSWORD),
        current_step=1,
        completed=False,
    )
    db_session.add(subject)
    await db_session.commit()
    await db_session.refresh(subject)
    return subject


@pytest.fixture
def session_headers(test_subject: Subject) -> dict:
    return {"Authorization": f"Bearer {create_session_token(test_subject.id)}"}


@pytest.fixture
def admin_headers() -> dict:
    return {"Authorization": f"Bearer {create_admin_token()}"}


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "api: HTTP endpoint tests")
    config.addinivalue_line("markers", "auth: Identity and token tests")
