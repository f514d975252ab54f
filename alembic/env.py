import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine.url import make_url

# Load variables from .env when python-dotenv is installed.
try:
    from dotenv import load_dotenv  # type: ignore
    load_dotenv()
except ImportError:
    pass

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Import Base and every model so autogenerate sees the full schema.
from app.core.database import Base
from app.domain.users.models import User  # noqa: F401
from app.domain.insights.models import InsightSnapshot  # noqa: F401

target_metadata = Base.metadata


def _sync_url_from_env() -> str:
    """Convert the async DATABASE_URL into a sync URL for migrations."""
    db_url = os.getenv("DATABASE_URL")
    if not db_url:
        from app.core.config import settings

        db_url = settings.DATABASE_URL
    url = make_url(db_url)

    if url.drivername == "sqlite+aiosqlite":
        url = url.set(drivername="sqlite+pysqlite")
    elif url.drivername == "postgresql+asyncpg":
        url = url.set(drivername="postgresql+psycopg2")

    return url.render_as_string(hide_password=False)


def run_migrations_offline() -> None:
    """Emit SQL without a database connection."""
    context.configure(
        url=_sync_url_from_env(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations against a live connection."""
    config.set_main_option("sqlalchemy.url", _sync_url_from_env())
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        future=True,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
