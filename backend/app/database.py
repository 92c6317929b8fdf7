"""Database engine, session factory, and declarative base.

One session dependency for FastAPI:
  - get_db()  → yields an AsyncSession; commits on success, rolls back on error

Services that must surface store failures to the caller (step persistence,
configuration commits, signups) commit explicitly through RecordStore, so the
trailing commit here is normally a no-op.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings


def _engine_options(url: str) -> dict:
    # SQLite (tests, local demos) uses a single-connection pool
    if url.startswith("sqlite"):
        return {"echo": False}
    return {"echo": settings.debug, "pool_size": 20, "max_overflow": 10, "pool_pre_ping": True}


engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class Base(DeclarativeBase):
    """Declarative base for all onboarding tables."""
    pass


async def get_db() -> AsyncSession:
    """Yield a database session scoped to one request."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
