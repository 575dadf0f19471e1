"""Ownership of the "currently configured database" for one process.

:class:`StorageHandle` replaces a process-wide mutable path with an explicit
object: the path lives behind a lock, falls back lazily to the preference
file, and maps to a cached :class:`pocketbook_db.client.Database`.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from pathlib import Path

from sqlalchemy import inspect

from pocketbook_db.client import Database, create_sqlite_engine
from pocketbook_db.schema import ensure_schema

from . import config
from .errors import NotConfiguredError, NotFoundError
from .logging_setup import get_logger

logger = get_logger("pocketbook.storage")


@dataclass(frozen=True, slots=True)
class DbStatus:
    configured: bool
    path: str
    exists: bool
    size_bytes: int | None = None
    tables: list[str] = field(default_factory=list)


def list_tables(path: Path) -> list[str]:
    engine = create_sqlite_engine(path)
    try:
        names = inspect(engine).get_table_names()
    finally:
        engine.dispose()
    return sorted(n for n in names if not n.startswith("sqlite_"))


def build_status(path: Path, *, configured: bool = True) -> DbStatus:
    exists = path.exists()
    return DbStatus(
        configured=configured,
        path=os.fspath(path),
        exists=exists,
        size_bytes=path.stat().st_size if exists else None,
        tables=list_tables(path) if exists else [],
    )


class StorageHandle:
    """Lock-guarded handle to the configured database file."""

    def __init__(self, path: str | os.PathLike[str] | None = None) -> None:
        self._lock = threading.Lock()
        self._path: Path | None = Path(path) if path is not None else None
        self._databases: dict[Path, Database] = {}

    # ---- path resolution ------------------------------------------------

    def configured_path(self) -> Path | None:
        with self._lock:
            if self._path is None:
                self._path = config.resolve_configured_path()
            return self._path

    def _set_path(self, path: Path) -> None:
        with self._lock:
            self._path = path

    def require_path(self) -> Path:
        path = self.configured_path()
        if path is None:
            raise NotConfiguredError()
        return path

    def database(self) -> Database:
        """Return the :class:`Database` for the configured, existing file."""

        path = self.require_path()
        if not path.exists():
            raise NotFoundError(f"database file does not exist: {path}")
        with self._lock:
            db = self._databases.get(path)
            if db is None:
                db = Database(path)
                self._databases[path] = db
            return db

    # ---- lifecycle commands ---------------------------------------------

    def status(self) -> DbStatus:
        """Report the configured database, upgrading its schema when present.

        A failed migration is logged and swallowed so diagnostics can still
        render.
        """

        path = self.configured_path()
        if path is None:
            return DbStatus(configured=False, path="", exists=False)
        if path.exists():
            try:
                ensure_schema(path)
            except Exception:
                logger.warning("schema migration failed for %s", path, exc_info=True)
        return build_status(path)

    def initialize(self, path: str | os.PathLike[str] | None = None) -> DbStatus:
        """Create (or upgrade) a database and make it the configured one."""

        target = Path(path) if path is not None else config.default_db_path()
        ensure_schema(target)
        config.persist_configured_path(target)
        self._set_path(target)
        logger.info("initialized database at %s", target)
        return build_status(target)

    def load_existing(self, path: str | os.PathLike[str]) -> DbStatus:
        target = Path(path)
        if not target.exists():
            raise NotFoundError(f"no database file at {target}")
        ensure_schema(target)
        config.persist_configured_path(target)
        self._set_path(target)
        logger.info("loaded existing database at %s", target)
        return build_status(target)

    def logout(self) -> None:
        """Forget the configured path; the file stays on disk."""

        config.clear_configured_path()
        with self._lock:
            self._path = None

    def close(self) -> None:
        with self._lock:
            for db in self._databases.values():
                db.dispose()
            self._databases.clear()


__all__ = ["DbStatus", "StorageHandle", "build_status", "list_tables"]
