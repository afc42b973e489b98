"""Database connection and session management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from affiliate_admin.config import get_settings
from affiliate_admin.utils.errors import DataAccessError

settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=True,
    echo=settings.app_debug,
    future=True,
)

async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting an async database session.

    정산 API는 읽기 전용이므로 커밋하지 않고, 요청 종료 시 롤백합니다.
    """
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()


@asynccontextmanager
async def read_savepoint(
    session: AsyncSession, operation: str
) -> AsyncGenerator[None, None]:
    """Run reads inside a SAVEPOINT, wrapping failures in DataAccessError.

    실패한 쿼리는 세이브포인트만 롤백하므로 같은 세션의 이후 조회는 계속됩니다.

    Usage:
        async with read_savepoint(session, "fetch_partner"):
            partner = await session.get(Partner, partner_id)
    """
    try:
        async with session.begin_nested():
            yield
    except SQLAlchemyError as e:
        raise DataAccessError(operation, e) from e


async def init_db() -> None:
    """Verify the database is reachable."""
    async with engine.begin() as conn:
        await conn.run_sync(lambda _: None)


async def close_db() -> None:
    """Close database connection pool."""
    await engine.dispose()
