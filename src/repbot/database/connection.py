"""Database connection management for async SQLAlchemy."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..config import DatabaseConfig
from .models import Base


class DatabaseManager:
    """Manages async database connections and sessions."""

    def __init__(self, config: DatabaseConfig, *, echo: bool = False) -> None:
        self._config = config
        self._echo = echo
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @property
    def dialect_name(self) -> str:
        return make_url(self._config.url).get_backend_name()

    async def initialize(self) -> None:
        """Initialize the database engine and session maker."""
        if self._engine is not None:
            return

        engine_kwargs: dict = {"echo": self._echo}
        if self.dialect_name != "sqlite":
            engine_kwargs.update(
                pool_size=self._config.pool_size,
                max_overflow=self._config.max_overflow,
                pool_timeout=self._config.pool_timeout,
            )
        self._engine = create_async_engine(self._config.url, **engine_kwargs)

        self._sessionmaker = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def close(self) -> None:
        """Close the database engine."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._sessionmaker = None

    async def create_schema(self, *, drop: bool = False) -> None:
        """Create all tables from the models, optionally dropping them first."""
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        async with self._engine.begin() as conn:
            if drop:
                await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a session that commits on success and rolls back on any error."""
        if self._sessionmaker is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        async with self._sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    @asynccontextmanager
    async def read_only_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a session whose transaction is always rolled back on exit."""
        if self._sessionmaker is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        async with self._sessionmaker() as session:
            try:
                yield session
            finally:
                await session.rollback()
                await session.close()
