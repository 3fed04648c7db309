"""
Wish – Async SQLAlchemy engine, session factory, and declarative base.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase

from wishboard.config import settings


# ── Declarative base ──
class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


def build_engine(url, echo: bool = False, **kwargs) -> AsyncEngine:
    """Create an async engine for the hosted store (or a local SQLite file)."""
    engine_kwargs = {"echo": echo, "future": True, **kwargs}

    # Supabase pools through PgBouncer in transaction mode, which does not
    # support asyncpg's prepared statement cache.
    if make_url(url).drivername == "postgresql+asyncpg":
        engine_kwargs.setdefault("connect_args", {"statement_cache_size": 0})

    return create_async_engine(url, **engine_kwargs)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_tables(bind: AsyncEngine) -> None:
    """Create any missing tables (local development and tests)."""
    import wishboard.models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# ── Engine ──
engine = build_engine(settings.store_url, echo=settings.DEBUG)

# ── Session factory ──
async_session = build_session_factory(engine)
