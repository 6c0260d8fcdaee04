import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

# `alembic` may be run from Assistant/; the package must still import
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# Loads .env and normalizes postgres:// URLs
from Assistant.database import DATABASE_URL, Base  # noqa: E402
import Assistant.models  # noqa: E402,F401  registers conversations, messages, news_queries

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


# alembic.ini carries only a ${DATABASE_URL} placeholder; anything else there is an explicit override
def _migration_url() -> str:
    url = (config.get_main_option("sqlalchemy.url") or "").strip()
    if url and not url.startswith("${"):
        return url
    return DATABASE_URL


def run_migrations_offline() -> None:
    context.configure(
        url=_migration_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(_migration_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
