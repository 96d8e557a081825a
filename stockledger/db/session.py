import os
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from stockledger.core.config import settings


# connection execution option set by run_atomic; marks a write transaction
WRITE_TRANSACTION = "stockledger_write"


def async_url(url: str) -> str:
    """sqlite:/// -> sqlite+aiosqlite:///"""
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return url


def create_engine_for(url: str) -> AsyncEngine:
    """
    Build an async engine

    On SQLite a write transaction (see begin_write) starts with BEGIN
    IMMEDIATE, so two writers never both read a size counter before one of
    them commits. Plain reads use a deferred BEGIN and take no write lock.
    Foreign keys are switched on per connection.
    """
    url = async_url(url)
    is_sqlite = url.startswith("sqlite")
    engine = create_async_engine(
        url,
        echo=os.getenv("SQL_DEBUG", "false").lower() == "true",
        future=True,
        connect_args={"timeout": settings.DB_BUSY_TIMEOUT} if is_sqlite else {},
    )

    if is_sqlite:
        @event.listens_for(engine.sync_engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            # let SQLAlchemy emit BEGIN itself
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine.sync_engine, "begin")
        def _on_begin(conn):
            if conn.get_execution_options().get(WRITE_TRANSACTION):
                conn.exec_driver_sql("BEGIN IMMEDIATE")
            else:
                conn.exec_driver_sql("BEGIN")

    return engine


def create_session_factory(bind: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def begin_write(db: AsyncSession) -> None:
    """Open the session's transaction as a write transaction

    Has no effect on a session that is already inside a transaction; that
    transaction keeps whatever lock mode it was opened with.
    """
    if not db.in_transaction():
        await db.connection(execution_options={WRITE_TRANSACTION: True})


engine = create_engine_for(settings.SQLITE_DATABASE_URI)

SessionLocal = create_session_factory(engine)
