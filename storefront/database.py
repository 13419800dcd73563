from typing import AsyncIterator, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from .config import settings

Base = declarative_base()

_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker] = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, **kwargs) -> AsyncEngine:
    engine = create_async_engine(url, **kwargs)
    if engine.dialect.name == "sqlite":
        # ON DELETE CASCADE / SET NULL are only honoured with the pragma on
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def get_engine() -> AsyncEngine:
    """Process-wide engine, created on first use with a single shared pool."""
    global _engine, _sessionmaker
    if _engine is None:
        _engine = build_engine(settings.DATABASE_URL, pool_pre_ping=True)
        _sessionmaker = build_sessionmaker(_engine)
    return _engine


def get_sessionmaker() -> async_sessionmaker:
    if _sessionmaker is None:
        get_engine()
    return _sessionmaker


async def get_db() -> AsyncIterator[AsyncSession]:
    async with get_sessionmaker()() as session:
        yield session


async def init_models(engine: Optional[AsyncEngine] = None) -> None:
    engine = engine or get_engine()
    async with engine.begin() as conn:
        # Caution: In real prod, use Alembic migrations.
        await conn.run_sync(Base.metadata.create_all)
