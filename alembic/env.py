from logging.config import fileConfig
from alembic import context
from sqlalchemy import engine_from_config, pool

from booking_engine.core.config import settings
from booking_engine.core.database import Base
from booking_engine.models import *  # noqa: F401,F403  ensures models are loaded

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

SYNC_DRIVERS = {
    "postgresql+asyncpg://": "postgresql+psycopg://",
    "sqlite+aiosqlite://": "sqlite://",
}


def _sync_url(async_url: str) -> str:
    # migrations run on a sync driver: postgresql+asyncpg:// -> postgresql+psycopg://
    for async_prefix, sync_prefix in SYNC_DRIVERS.items():
        if async_url.startswith(async_prefix):
            return async_url.replace(async_prefix, sync_prefix, 1)
    return async_url


def run_migrations_offline() -> None:
    url = _sync_url(settings.DATABASE_URL)
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=url.startswith("sqlite"),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = _sync_url(settings.DATABASE_URL)

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
