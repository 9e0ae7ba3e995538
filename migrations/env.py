from logging.config import fileConfig
import os
import sys

from alembic import context
from sqlalchemy import engine_from_config, pool

# Make the 'backoffice' package importable when alembic runs from the repo root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Registers every document table on Base.metadata
import backoffice.models  # noqa: F401
from backoffice.config import settings
from backoffice.database import Base


def sync_database_url() -> str:
    """DATABASE_SYNC_URL, or the async DATABASE_URL switched to psycopg2."""
    if settings.DATABASE_SYNC_URL:
        return settings.DATABASE_SYNC_URL
    return settings.DATABASE_URL.replace("+asyncpg", "+psycopg2", 1)


config = context.config
config.set_main_option("sqlalchemy.url", sync_database_url())
if config.config_file_name:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# Autogenerate also compares column types (Numeric money, JSONB lines)
CONFIGURE_OPTIONS = {"target_metadata": target_metadata, "compare_type": True}


def run_migrations_offline():
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **CONFIGURE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, **CONFIGURE_OPTIONS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
