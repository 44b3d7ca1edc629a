"""Async SQLAlchemy engine for the marketplace's SQL stores."""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from agentmarket.storage.base_model import Base

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./marketplace.db"


@dataclass(frozen=True)
class DatabaseConfig:
    """Engine settings.

    ``pool_size`` and ``max_overflow`` only apply to server databases;
    SQLite connections are not pooled that way.
    """

    url: str = DEFAULT_DATABASE_URL
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


class Database:
    """Owns the engine and hands out one session per store operation.

    Example:
        >>> db = Database(DatabaseConfig(url="sqlite+aiosqlite:///:memory:"))
        >>> await db.create_tables()
        >>> async with db.session() as session:
        ...     await session.execute(select(AgentModel))
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.engine = create_async_engine(config.url, **self._engine_options(config))
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    @staticmethod
    def _engine_options(config: DatabaseConfig) -> dict[str, Any]:
        options: dict[str, Any] = {"echo": config.echo}
        if not config.is_sqlite:
            options.update(pool_size=config.pool_size, max_overflow=config.max_overflow)
        elif ":memory:" in config.url:
            # One shared connection, or every session sees an empty database
            options.update(poolclass=StaticPool, connect_args={"check_same_thread": False})
        return options

    async def create_tables(self) -> None:
        """Create the agent and execution tables if they do not exist."""
        from agentmarket.storage.model_registry import register_all_models

        register_all_models()
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits when the block exits cleanly and rolls back otherwise."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        await self.engine.dispose()

    async def health_check(self) -> bool:
        """Run ``SELECT 1`` against the engine.

        Raises:
            SQLAlchemyError: If the database cannot be reached
        """
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
