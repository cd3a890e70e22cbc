import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from marketplace.config import Settings
from marketplace.models import Base

logger = logging.getLogger(__name__)


class MarketplaceDatabase:
    """Async SQLAlchemy engine and session factory for the marketplace database"""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine: Optional[AsyncEngine] = None
        self.async_session_maker: Optional[async_sessionmaker] = None

    async def initialize(self):
        """Create engine, session factory and check connectivity"""
        url = self.settings.sqlalchemy_url
        engine_kwargs = {"echo": False}
        if url.startswith("postgresql"):
            engine_kwargs.update(
                pool_size=self.settings.db_pool_min_size,
                max_overflow=self.settings.db_pool_max_size - self.settings.db_pool_min_size,
                pool_pre_ping=True,
            )

        try:
            self.engine = create_async_engine(url, **engine_kwargs)
            self.async_session_maker = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False
            )

            if not await self.health_check():
                raise RuntimeError("Database health check failed")

            if self.settings.db_create_tables:
                await self.create_tables()

            logger.info(f"Marketplace database initialized (db={self.settings.db_name})")
        except Exception as e:
            logger.error(f"Failed to initialize marketplace database: {e}")
            raise

    async def create_tables(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def health_check(self) -> bool:
        async with self.engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            return result.scalar() == 1

    async def close(self):
        if self.engine:
            await self.engine.dispose()
            logger.info("SQLAlchemy engine disposed")

    def _require_session_maker(self) -> async_sessionmaker:
        if not self.async_session_maker:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self.async_session_maker

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Plain session; the caller decides when to commit"""
        async with self._require_session_maker()() as session:
            yield session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """
        Session inside one transaction

        Commits when the block exits normally and rolls back on any exception
        before it propagates.
        """
        async with self._require_session_maker()() as session:
            async with session.begin():
                yield session


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for SQLAlchemy async sessions"""
    database: MarketplaceDatabase = request.app.state.database
    async with database.session() as session:
        yield session
