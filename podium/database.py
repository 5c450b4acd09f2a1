from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from podium.config import DATABASE_URL


def build_engine(url: str = DATABASE_URL) -> AsyncEngine:
    if url.startswith("sqlite"):
        # Concurrent writers wait on the file lock instead of failing fast.
        return create_async_engine(url, connect_args={"timeout": 30})
    return create_async_engine(url, pool_pre_ping=True)


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, expire_on_commit=False)


engine = build_engine()
AsyncSessionLocal = build_sessionmaker(engine)


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session
