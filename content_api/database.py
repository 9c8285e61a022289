from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from content_api.config import settings
from content_api.middleware import install_query_counter


def _pool_options(url: str) -> dict:
    # SQLite (local runs) picks its own pool; sizing applies to server databases only.
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_pre_ping": True,
    }


# Tests build their own engine and override get_db; this one serves the app.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **_pool_options(settings.DATABASE_URL),
)

install_query_counter(engine)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db():
    """
    Yield one session per request.

    The article store and the media service commit their own writes so
    that cache invalidation and file removal happen after the row is
    durable; the trailing commit here covers the user service, which only
    flushes.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def dispose_engine() -> None:
    """Close pooled connections.  Called from the application lifespan."""
    await engine.dispose()
