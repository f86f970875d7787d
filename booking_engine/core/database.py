from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from booking_engine.core.config import Settings


class Base(DeclarativeBase):
    pass


def create_engine(settings: Settings) -> AsyncEngine:
    """Build the async engine for the configured database URL."""
    connect_args = {}
    if settings.DATABASE_URL.startswith("sqlite"):
        # Writers on the same file wait for each other instead of failing fast
        connect_args["timeout"] = 15
    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DB_ECHO,
        connect_args=connect_args,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


async def init_models(engine: AsyncEngine) -> None:
    """Create all tables. Used for local runs and tests; production uses Alembic."""
    import booking_engine.models  # noqa: F401  registers mappers on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
