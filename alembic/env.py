from logging.config import fileConfig
import logging

from sqlalchemy import create_engine

from alembic import context

# Importing the package registers every model on Base.metadata
import app.models  # noqa: F401
from app.database.base_class import Base
from app.core.config import settings

logger = logging.getLogger("alembic")

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def get_sync_url() -> str:
    """Migrations run on the synchronous driver of the configured database."""
    url = settings.DATABASE_URI
    if not url:
        raise RuntimeError("DATABASE_URI is not configured")
    return (
        url.replace("+aiomysql", "+pymysql")
        .replace("+asyncpg", "")
        .replace("+aiosqlite", "")
    )


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode, emitting SQL instead of executing it."""
    context.configure(
        url=get_sync_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(get_sync_url(), pool_pre_ping=True)
    logger.info("Running migrations against the configured database")

    with connectable.connect() as connection:
        context.configure(
            connection=connection, target_metadata=target_metadata
        )

        with context.begin_transaction():
            context.run_migrations()

    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
