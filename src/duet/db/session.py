"""Engine and session wiring for the messaging store.

SQLite needs two connection hooks before the services behave the same as on
PostgreSQL:

* ``PRAGMA foreign_keys=ON`` so deleting a conversation cascades to its
  messages.
* SQLAlchemy must own transaction boundaries (``isolation_level=None`` plus an
  explicit ``BEGIN``) or ``Session.begin_nested()`` savepoints misbehave under
  pysqlite. ``BEGIN IMMEDIATE`` takes the write lock up front, so concurrent
  writers queue on the busy timeout instead of failing a read-to-write lock
  upgrade with ``database is locked``.
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from duet.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Ensure model modules are imported so that metadata is populated when create_all runs.
import duet.models  # noqa: E402,F401


def configure_sqlite(engine: Engine) -> None:
    """Install the foreign-key and transaction hooks on a SQLite engine."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, **kwargs: Any) -> Engine:
    """Create an engine for ``url``, applying the SQLite hooks when needed."""
    kwargs.setdefault("pool_pre_ping", True)
    new_engine = create_engine(url, **kwargs)
    if new_engine.dialect.name == "sqlite":
        configure_sqlite(new_engine)
    return new_engine


engine = build_engine(settings.effective_database_url, echo=settings.sql_debug)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables() -> None:
    """Create all database tables."""
    Base.metadata.create_all(bind=engine)
