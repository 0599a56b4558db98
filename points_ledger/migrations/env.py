"""
migrations/env.py — Alembic environment for the ledger schema.

The database URL comes from the same config classes the app uses
(config.migration_database_url), so FLASK_ENV picks development, testing
or production. Override it for one run with:

    alembic -c points_ledger/alembic.ini -x db_url=postgresql://... upgrade head

SQLite gets batch mode so later ALTERs can be rendered as table copies.
"""

from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from points_ledger.app.extensions import db
from points_ledger.app.models import (  # noqa: F401
    allocation_record,
    available_remainder,
    deposit,
    payer_balance,
    spend_record,
)
from points_ledger.config import migration_database_url

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = db.metadata

db_url = migration_database_url(override=context.get_x_argument(as_dictionary=True).get("db_url"))
config.set_main_option("sqlalchemy.url", db_url.replace("%", "%%"))

render_as_batch = db_url.startswith("sqlite")


def run_migrations_offline() -> None:
    context.configure(
        url=db_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        render_as_batch=render_as_batch,
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
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=render_as_batch,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
