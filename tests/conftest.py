"""Pytest configuration for test isolation.

The backend keeps its preference file under an application directory
(``~/.pocketbook`` by default). Tests must never read or write the real one,
so an autouse fixture points ``POCKETBOOK_HOME`` at the test's own temporary
directory. Database files are file-backed SQLite under ``tmp_path`` so that
several connections share state.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest

from pocketbook.api import Backend
from pocketbook.storage import StorageHandle
from pocketbook_db.client import Database
from tests.helpers.db import bootstrap_db


@pytest.fixture(autouse=True)
def _isolate_app_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Force a per-test application directory and clear tuning env vars."""

    home = tmp_path / "app"
    home.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("POCKETBOOK_HOME", os.fspath(home))
    monkeypatch.delenv("POCKETBOOK_LEDGER_PASSWORD_TTL_DAYS", raising=False)
    monkeypatch.delenv("POCKETBOOK_LOG_LEVEL", raising=False)
    return home


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "pocketbook.db"


@pytest.fixture()
def db(db_path: Path) -> Iterator[Database]:
    database = bootstrap_db(db_path)
    try:
        yield database
    finally:
        database.dispose()


@pytest.fixture()
def backend(db_path: Path) -> Iterator[Backend]:
    """A backend whose storage handle is initialized on a fresh file."""

    b = Backend(StorageHandle())
    b.initialize(db_path)
    try:
        yield b
    finally:
        b.close()
