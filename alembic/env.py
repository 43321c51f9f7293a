"""Alembic Environment Configuration"""

import asyncio
import sys
from pathlib import Path
from logging.config import fileConfig
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine
from alembic import context

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from app.database import Base, connect_args, database_url
from app.models.user import User  # noqa
from app.models.batch import Batch  # noqa
from app.models.enrollment import Enrollment  # noqa
from app.models.payment import Payment  # noqa
from app.models.communication import Notification, EmailJob  # noqa
from app.models.class_session import ClassSession  # noqa

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# SQLite cannot ALTER most constraints in place
_render_as_batch = database_url.startswith("sqlite")


def run_migrations_offline() -> None:
    """Emit migration SQL without connecting (alembic upgrade --sql)."""
    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        render_as_batch=_render_as_batch,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=_render_as_batch,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Run migrations over the application's async engine settings (sslmode handling included)."""
    connectable = create_async_engine(database_url, connect_args=connect_args, poolclass=pool.NullPool)

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
