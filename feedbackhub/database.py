"""
FeedbackHub – Database setup (async SQLAlchemy).
Used only when DATABASE_URL is configured; SQLite for local dev, PostgreSQL in production.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def make_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for the durable submission store."""
    return create_async_engine(url, echo=echo, future=True)


def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine):
    """Create all tables (for development). Use Alembic in production."""
    async with engine.begin() as conn:
        from feedbackhub.models import submission  # noqa: F401
        await conn.run_sync(Base.metadata.create_all)
