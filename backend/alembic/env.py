"""Alembic environment for the attendance schema.

Migrations run against ``settings.DATABASE_URL`` through ``make_engine``, so a
SQLite target gets the same connection setup as the service itself. SQLite
cannot ALTER most constraints in place, hence batch mode there.
"""
from logging.config import fileConfig

from alembic import context

from rally.config import settings
from rally.database import Base, make_engine

# Tables must be on Base.metadata for autogenerate
from rally.models.event import Event                        # noqa: F401
from rally.models.attendance import AttendanceRecord        # noqa: F401
from rally.models.attendance_log import AttendanceLogEntry  # noqa: F401
from rally.models.feedback import EventFeedback             # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
database_url = settings.DATABASE_URL


def _migration_options() -> dict:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_as_batch": database_url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    """Emit the attendance DDL as SQL without connecting."""
    context.configure(
        url=database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_migration_options(),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = make_engine(database_url)
    try:
        with engine.connect() as connection:
            context.configure(connection=connection, **_migration_options())
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
