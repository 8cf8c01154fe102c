"""
Database engine factory.

PostgreSQL is the production store; row locks come from
``SELECT ... FOR UPDATE``. SQLite (tests, local runs) has no row locks,
so every transaction is opened with ``BEGIN IMMEDIATE`` instead: writers
take the database write lock up front and serialize.
"""

import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url

logger = logging.getLogger(__name__)


def create_db_engine(
    dsn: str, pool_pre_ping: bool = True, sqlite_busy_timeout: float = 30.0
) -> Engine:
    """Build a SQLAlchemy engine for the ledger store.

    Args:
        dsn: SQLAlchemy database URL.
        pool_pre_ping: Check pooled connections before use.
        sqlite_busy_timeout: Seconds a SQLite writer waits for the lock.

    Returns:
        A configured Engine.
    """
    url = make_url(dsn)

    if url.get_backend_name() != "sqlite":
        logger.info("Creating %s engine for %s", url.get_backend_name(), url.host)
        return create_engine(dsn, pool_pre_ping=pool_pre_ping)

    engine = create_engine(
        dsn,
        connect_args={"timeout": sqlite_busy_timeout, "check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, _connection_record):
        # Let SQLAlchemy emit BEGIN itself.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    logger.info("Created sqlite engine for %s", url.database or ":memory:")
    return engine
