"""
seaptc/database.py
Database engine and session factory for the conference store.
"""
import logging

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from seaptc.orm import Base

logger = logging.getLogger(__name__)


def _serialize_sqlite_writes(engine: AsyncEngine) -> None:
    """
    Take the database write lock when a transaction begins.

    pysqlite defers BEGIN until the first write, so a read-modify-write would
    read outside its transaction. With the driver's transaction handling off,
    every transaction starts with BEGIN IMMEDIATE and concurrent writers, in
    this process or another, wait on the busy timeout.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine(database_url: str) -> AsyncEngine:
    if "sqlite" in database_url.lower():
        engine = create_async_engine(
            database_url,
            echo=False,
            future=True,
            pool_pre_ping=True,
            connect_args={
                "timeout": 30.0,   # SQLite busy timeout in seconds
            }
        )
        _serialize_sqlite_writes(engine)
        return engine
    return create_async_engine(
        database_url,
        echo=False,
        future=True,
        pool_pre_ping=True,
        pool_size=20,
        max_overflow=30,
        pool_timeout=30,
        pool_recycle=3600,      # Recycle connections after 1 hour
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Create missing tables."""
    logger.info(f"Initializing database ({engine.url.get_backend_name()})...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("✓ Database initialization complete")


async def close_db(engine: AsyncEngine) -> None:
    await engine.dispose()
    logger.info("Database connection closed")
