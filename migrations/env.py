"""Alembic environment for the review schema."""

from __future__ import annotations

import logging
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from signoff.config import config as signoff_config
from signoff.models import Base

alembic_config = context.config

# Keep the application's logging when migrations run in-process
if alembic_config.config_file_name is not None and not logging.getLogger().handlers:
    fileConfig(alembic_config.config_file_name)

alembic_config.set_main_option(
    "sqlalchemy.url", signoff_config.database.postgres_url.replace("%", "%%")
)

target_metadata = Base.metadata


def include_object(obj, name, type_, reflected, compare_to):  # noqa: ANN001
    # ``assets`` belongs to the asset pipeline
    if type_ == "table" and obj.info.get("external"):
        return False
    return True


def run_migrations_offline() -> None:
    context.configure(
        url=alembic_config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        include_object=include_object,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        alembic_config.get_section(alembic_config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            include_object=include_object,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
