import asyncio

from sqlalchemy import pool
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import create_async_engine

from alembic import context
from jobmonitor.config import get_settings
from jobmonitor.core.logging import setup_logging
from jobmonitor.models import Base

config = context.config

# Route alembic output through loguru like the rest of the service
setup_logging()

# `alembic -x db_url=sqlite+aiosqlite:///other.db upgrade head` targets another database
x_args = context.get_x_argument(as_dictionary=True)
db_url = x_args.get("db_url") or get_settings().database_url
config.set_main_option("sqlalchemy.url", db_url)

# SQLite cannot ALTER most constraints in place
render_as_batch = make_url(db_url).get_backend_name() == "sqlite"

target_metadata = Base.metadata


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        render_as_batch=render_as_batch,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit migration SQL without connecting to the database."""
    _configure(url=db_url, literal_binds=True, dialect_opts={"paramstyle": "named"})

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    _configure(connection=connection)

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    connectable = create_async_engine(db_url, poolclass=pool.NullPool)

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
