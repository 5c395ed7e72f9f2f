import logging
from typing import AsyncGenerator

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from config import Settings

settings = Settings()

engine = create_async_engine(settings.generate_database_url(), echo=settings.env.DEBUG)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            # nothing from a failed unit of work may reach the ledger
            await session.rollback()
            raise


def dialect_insert(session: AsyncSession, model):
    """INSERT construct supporting ON CONFLICT for the bound backend."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    logging.error(f"Upserts are not supported on {dialect}")
    raise RuntimeError(f"Unsupported database dialect: {dialect}")
