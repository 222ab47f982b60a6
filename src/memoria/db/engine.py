"""Database connection management for the memory stores."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from memoria.db.models import Base


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    # Off by default in SQLite; messages must reference a real conversation
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the async engine and hands out one session per store call.

    Stores never share a session: each call commits on its own, so work
    finished before a cancellation or timeout stays committed.
    """

    def __init__(
        self, database_url: str | None = None, database_path: Path | None = None
    ):
        """Initialize database.

        Args:
            database_url: Any async SQLAlchemy URL; wins over database_path.
            database_path: SQLite file, opened with aiosqlite. Its directory
                is created if missing.
        """
        if database_url:
            self._url = database_url
        elif database_path:
            database_path.parent.mkdir(parents=True, exist_ok=True)
            self._url = f"sqlite+aiosqlite:///{database_path}"
        else:
            raise ValueError("a database URL or SQLite path is required")

        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("database is not connected; call connect() first")
        return self._engine

    async def connect(self) -> None:
        engine = create_async_engine(self._url, pool_pre_ping=True)
        if engine.dialect.name == "sqlite":
            event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self._engine = engine
        # Rows are mapped to dataclasses after commit, so keep them loaded
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)

    async def disconnect(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._sessions = None

    async def create_tables(self) -> None:
        """Create missing tables directly; deployments use the migrations."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits when the block exits cleanly.

        Any exception, cancellation included, rolls back and propagates.
        """
        if self._sessions is None:
            raise RuntimeError("database is not connected; call connect() first")
        async with self._sessions() as session:
            try:
                yield session
                await session.commit()
            except BaseException:
                await session.rollback()
                raise
