from collections.abc import AsyncGenerator

from sqlalchemy import MetaData, event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from house_tracker.config import settings

convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)


class Base(DeclarativeBase):
    metadata = metadata


# Determine engine kwargs based on database type
_db_url = settings.effective_database_url
_engine_kwargs: dict = {
    "echo": settings.app_debug,
}

if _db_url.startswith("sqlite"):
    _engine_kwargs["connect_args"] = {"check_same_thread": False}
    if ":memory:" in _db_url or _db_url.rstrip("/").endswith("sqlite+aiosqlite:"):
        # One shared connection, otherwise every checkout sees an empty database
        _engine_kwargs["poolclass"] = StaticPool
else:
    # Hosted PostgreSQL. Poolers in transaction mode (PgBouncer) break
    # asyncpg's prepared statement cache, so it is disabled.
    _engine_kwargs["pool_size"] = 5
    _engine_kwargs["max_overflow"] = 5
    _engine_kwargs["connect_args"] = {"statement_cache_size": 0}
    _engine_kwargs["pool_pre_ping"] = True

engine = create_async_engine(_db_url, **_engine_kwargs)

if _db_url.startswith("sqlite"):

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        # Rating rows rely on ON DELETE CASCADE when a criterion is removed
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_all_tables():
    """Create the application tables if they do not exist yet.

    Schema migrations are out of scope; this only bootstraps a fresh database.
    """
    import house_tracker.models  # noqa: F401  register every table on the metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
