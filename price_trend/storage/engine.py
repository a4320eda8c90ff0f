"""
Database engine for the price store.

The engine owns the connection pool; callers only ever check connections out
through PriceStore. Atomicity between the updater (single writer) and the
concurrent range queries comes from the database's own transactions.
"""

import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import QueuePool, StaticPool

logger = logging.getLogger("price_store")

Base = declarative_base()


def _redact(url: str) -> str:
    return url.split("@")[-1]


def create_database_engine(
    database_url: str,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    echo: bool = False,
) -> Engine:
    """
    Create a SQLAlchemy engine with connection pooling.

    SQLite gets its own handling: an in-memory database must share one
    connection across threads (StaticPool), and file databases must allow use
    from the worker threads the updater and request handlers run in.

    Args:
        database_url: SQLAlchemy URL (mysql+pymysql://, postgresql://, sqlite://)
        pool_size: Number of connections to keep in pool
        max_overflow: Max connections beyond pool_size
        pool_timeout: Seconds to wait for available connection
        pool_recycle: Recycle connections after N seconds
        echo: Log SQL statements

    Returns:
        SQLAlchemy Engine
    """
    logger.info("Creating database engine for: %s", _redact(database_url))

    if database_url.startswith("sqlite"):
        in_memory = database_url in ("sqlite://", "sqlite:///:memory:")
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool if in_memory else None,
            echo=echo,
        )

        # pysqlite defers BEGIN until the first DML and commits around
        # SAVEPOINT, so take over transaction start: one BEGIN per
        # Connection.begin(), making reads consistent and savepoints nest.
        @event.listens_for(engine, "connect")
        def _sqlite_autocommit(dbapi_conn, connection_record):
            dbapi_conn.isolation_level = None

        @event.listens_for(engine, "begin")
        def _sqlite_begin(conn):
            conn.exec_driver_sql("BEGIN")
    else:
        engine = create_engine(
            database_url,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            pool_pre_ping=True,
            echo=echo,
        )

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_conn, connection_record):
        logger.debug("Database connection established")

    @event.listens_for(engine, "checkout")
    def on_checkout(dbapi_conn, connection_record, connection_proxy):
        logger.debug("Database connection checked out from pool")

    return engine
