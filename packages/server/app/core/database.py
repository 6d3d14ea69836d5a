"""
Database connection and session management.

The engine is owned by a ``Database`` instance built in ``create_app`` and
kept on ``app.state``; request handlers reach it through ``get_session``.
"""

from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

ON_COMMIT_KEY = "on_commit"


def _sqlite_pragmas(dbapi_connection, _record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


class Database:
    """Async engine + session factory for one deployment environment."""

    def __init__(self, url: str, *, echo: bool = False):
        self.engine = create_async_engine(url, echo=echo, future=True)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        if self.engine.dialect.name == "sqlite":
            # SQLite enforces foreign keys only when asked, per connection
            event.listen(self.engine.sync_engine, "connect", _sqlite_pragmas)

    async def init_db(self) -> None:
        """Create all tables (development and tests only)."""
        import app.models  # noqa: F401  populate metadata

        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def session(self):
        """Transactional session: commit on success, roll back on error.

        Callbacks queued with ``on_commit`` run only after a successful commit.
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                session.info.pop(ON_COMMIT_KEY, None)
                await session.rollback()
                raise
            for callback in session.info.pop(ON_COMMIT_KEY, []):
                callback()


def on_commit(session: AsyncSession, callback: Callable[[], None]) -> None:
    """Run ``callback`` once the session's transaction has committed."""
    session.info.setdefault(ON_COMMIT_KEY, []).append(callback)


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    db: Database = request.app.state.db
    async with db.session() as session:
        yield session
