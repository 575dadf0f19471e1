"""SQLAlchemy engine/session helpers bound to one SQLite file.

Usage
-----
from pocketbook_db.client import Database

db = Database(path)
with db.session_scope() as s:
    s.execute(...)

Unlike a process-wide engine, a :class:`Database` is an ordinary object owned
by whoever opened it (see ``pocketbook.storage.StorageHandle``), so several
files can be open side by side in tests.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def sqlite_url(path: str | os.PathLike[str]) -> str:
    return f"sqlite+pysqlite:///{os.fspath(path)}"


def create_sqlite_engine(path: str | os.PathLike[str]) -> Engine:
    """Return an engine for ``path`` with foreign keys enforced on every connection.

    Cascading deletes (owner -> credentials/payments -> items, entry -> tags)
    rely on ``PRAGMA foreign_keys``; SQLite leaves it off by default.
    """

    engine = create_engine(sqlite_url(path))

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _):  # pragma: no cover - tiny bridge
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    return engine


class Database:
    """An engine plus session factory for a single database file."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)
        self.engine = create_sqlite_engine(self.path)
        self._session_maker: sessionmaker[Session] = sessionmaker(
            bind=self.engine, expire_on_commit=False, class_=Session
        )

    def get_session(self) -> Session:
        """Return a new session bound to this database's engine."""

        return self._session_maker()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Provide a transactional scope around a series of operations."""

        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"Database(path={str(self.path)!r})"


__all__ = [
    "Database",
    "create_sqlite_engine",
    "sqlite_url",
]
