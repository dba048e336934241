"""
db/session.py — Database Connection & Session Management
=========================================================
Handles the async database connection using SQLAlchemy.
Called by main.py on startup via init_db().

Routes use get_db() as a FastAPI dependency to get a request session.
Notification fan-out uses get_session_factory() so every write gets its
own short-lived session.
"""

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from config import settings
import logging

logger = logging.getLogger("jataayu.db")

# Convert standard postgres:// URL to async postgresql+asyncpg://
DATABASE_URL = settings.DATABASE_URL.replace(
    "postgresql://", "postgresql+asyncpg://"
)

# SQLite picks its own pool; only server databases take pool sizing
engine_options = {"echo": settings.DEBUG}
if not DATABASE_URL.startswith("sqlite"):
    engine_options.update(
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )

engine = create_async_engine(DATABASE_URL, **engine_options)

# Session factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class all database models inherit from."""
    pass


async def init_db():
    """Create all tables on startup if they don't exist."""
    from db.models import (  # noqa: F401
        User, Event, EventRegistration, Notification, Initiative
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created / verified.")


async def close_db():
    await engine.dispose()


async def get_db():
    """
    FastAPI dependency — yields a DB session per request.

    Usage in any route:
        async def my_endpoint(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_session_factory() -> async_sessionmaker:
    """FastAPI dependency — the factory used for independent side-effect writes."""
    return AsyncSessionLocal
