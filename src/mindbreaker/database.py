"""Async SQLAlchemy engine and session management."""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm.exc import StaleDataError

from mindbreaker.errors import Conflict, InvalidInput, MindBreakerError, PersistenceError

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


async def init_db(url: str) -> None:
    """Initialize the database engine and session factory."""
    global _engine, _session_factory  # noqa: PLW0603
    if url.startswith("sqlite"):
        # SQLite (tests, local dev) has no server-side pool to tune
        _engine = create_async_engine(url, echo=False)
    else:
        _engine = create_async_engine(
            url,
            pool_size=20,
            max_overflow=10,
            pool_pre_ping=True,
            echo=False,
            connect_args={"statement_cache_size": 0},
        )
    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def close_db() -> None:
    """Dispose of the database engine."""
    global _engine  # noqa: PLW0603
    if _engine:
        await _engine.dispose()
        _engine = None


def get_engine() -> AsyncEngine:
    """Get the async engine instance."""
    if _engine is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    return _engine


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session (FastAPI dependency)."""
    if _session_factory is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    async with _session_factory() as session:
        yield session


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncIterator[None]:
    """Run a block as one transaction: commit on success, roll back on any failure.

    ``ValueError`` from domain logic becomes ``InvalidInput``, an optimistic-lock
    failure becomes ``Conflict`` and any other datastore error becomes
    ``PersistenceError`` carrying the driver's message.
    """
    try:
        yield
        await db.commit()
    except MindBreakerError:
        await db.rollback()
        raise
    except ValueError as e:
        await db.rollback()
        raise InvalidInput(str(e)) from e
    except StaleDataError as e:
        await db.rollback()
        raise Conflict() from e
    except SQLAlchemyError as e:
        await db.rollback()
        raise PersistenceError(str(getattr(e, "orig", None) or e)) from e
