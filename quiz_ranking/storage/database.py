"""Engine and unit-of-work helpers for the relational store.

Architecture note:
    Every submission runs inside ``Database.transaction()``: the session
    commits when the block exits cleanly and rolls back on any exception, so
    a failed submission never leaves half-updated counters behind. SQLite
    only takes its write lock on the first write statement, which would let
    two submissions read the same "current best" row. SQLite transactions are
    therefore opened with ``BEGIN IMMEDIATE`` (the pysqlite recipe from the
    SQLAlchemy documentation), making writers queue up at ``BEGIN``. Other
    backends rely on the ``SELECT ... FOR UPDATE`` the ledger issues on the
    quiz row.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from quiz_ranking.storage.tables import Base

logger = logging.getLogger(__name__)


def create_database_engine(database_url: str, *, echo: bool = False) -> Engine:
    """Create an engine, applying SQLite specific connection settings."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(url, echo=echo, pool_pre_ping=True)

    options: dict[str, object] = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        # One shared connection, otherwise every checkout sees an empty database.
        options["poolclass"] = StaticPool
    engine = create_engine(url, echo=echo, **options)
    _install_sqlite_hooks(engine)
    return engine


def _install_sqlite_hooks(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _connection_record) -> None:
        # Hand transaction control to SQLAlchemy so BEGIN is emitted below.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(connection) -> None:
        connection.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """Owns the engine and hands out sessions."""

    def __init__(self, database_url: str, *, echo: bool = False) -> None:
        self.url = database_url
        self.engine = create_database_engine(database_url, echo=echo)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_schema(self) -> None:
        """Create missing tables and indexes."""
        Base.metadata.create_all(self.engine)
        logger.info("Database schema ready at %s", self.engine.url.render_as_string(hide_password=True))

    def drop_schema(self) -> None:
        Base.metadata.drop_all(self.engine)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Yield a session whose work is committed atomically or not at all."""
        with self._session_factory.begin() as session:
            yield session

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a session for read paths; nothing is committed."""
        session = self._session_factory()
        try:
            yield session
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()
