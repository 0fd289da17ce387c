"""Alembic environment: migrations run against the same DATABASE_URL as the API."""
import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

# Make backend/ importable when alembic is run from the backend folder
sys.path.insert(0, os.path.realpath(os.path.join(os.path.dirname(__file__), "..")))

from database import Base, IS_SQLITE, SQLALCHEMY_DATABASE_URL, register_models  # noqa: E402

config = context.config
# ConfigParser treats % as interpolation; URL-encoded passwords contain it
config.set_main_option("sqlalchemy.url", SQLALCHEMY_DATABASE_URL.replace("%", "%%"))

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

register_models()
target_metadata = Base.metadata


def _configure(**options) -> None:
    # SQLite has no ALTER CONSTRAINT; batch mode copies the table instead
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=IS_SQLITE,
        **options,
    )


def run_migrations_offline() -> None:
    """Emit the ledger schema as SQL without connecting."""
    _configure(
        url=SQLALCHEMY_DATABASE_URL,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
