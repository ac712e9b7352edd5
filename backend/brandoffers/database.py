"""Database engine and session management."""

import logging

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from brandoffers.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


class Base(DeclarativeBase):
    pass


def configure_sqlite_locking(engine: AsyncEngine) -> None:
    """Make SQLite take its write lock when a transaction begins.

    pysqlite defers BEGIN until the first write, so two transactions that
    both read before writing end up deadlocked on the lock upgrade and one
    of them fails with "database is locked". Emitting BEGIN IMMEDIATE
    ourselves serializes them on the busy timeout instead.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, *, echo: bool = False, pool_timeout: float = 10.0) -> AsyncEngine:
    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=echo)
        configure_sqlite_locking(engine)
        logger.info("Using SQLite record store at %s", url)
        return engine

    return create_async_engine(
        url,
        echo=echo,
        pool_size=5,
        max_overflow=10,
        pool_timeout=pool_timeout,
    )


engine = build_engine(
    settings.database_url,
    echo=settings.debug,
    pool_timeout=settings.database_pool_timeout,
)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(target: AsyncEngine = engine, *, drop_first: bool = False) -> None:
    # Models must be registered on Base.metadata before create_all runs.
    import brandoffers.models  # noqa: F401

    async with target.begin() as conn:
        if drop_first:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
