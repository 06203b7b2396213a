"""Database engine, session factory and declarative base."""

from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from config.settings import get_settings


class Base(DeclarativeBase):
    """Declarative base model."""


settings = get_settings()
_engine_options = {}
if make_url(settings.database_url).get_backend_name() == "sqlite":
    # aiosqlite connections are bound to the loop that opened them.
    _engine_options["poolclass"] = NullPool

engine = create_async_engine(settings.database_url, echo=False, future=True, **_engine_options)
AsyncSessionFactory = async_sessionmaker(
    engine,
    expire_on_commit=False,
    autoflush=False,
    autocommit=False,
)

if engine.dialect.name == "sqlite":

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
        # SQLite ignores ON DELETE clauses unless enabled per connection.
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


async def init_db() -> None:
    """Create the contacts, call_records and biometric_profiles tables.

    Only runs when `AUTO_CREATE_DB_SCHEMA=true`; other environments apply the
    Alembic migrations instead.
    """

    if not settings.auto_create_db_schema:
        return

    # Import models so metadata is populated.
    import db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_db() -> None:
    await engine.dispose()
