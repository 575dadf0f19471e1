"""Application directory, preference file, and environment-driven settings.

The preference record is a small JSON document in the application-private
directory::

    {"dbPath": "/home/me/.pocketbook/storage/pocketbook.db"}

An absent file, an absent key, or an empty string all mean "not configured".
Clearing the preference never touches the database file itself.
"""

from __future__ import annotations

import json
import os
from datetime import timedelta
from pathlib import Path

from .logging_setup import get_logger

logger = get_logger("pocketbook.config")

CONFIG_FILE_NAME = "config.json"
DEFAULT_DB_FILE_NAME = "pocketbook.db"
DEFAULT_PASSWORD_TTL_DAYS = 30


def app_dir() -> Path:
    """Return (and create) the application-private directory.

    ``POCKETBOOK_HOME`` overrides the default ``~/.pocketbook``.
    """

    override = os.getenv("POCKETBOOK_HOME")
    base = Path(override).expanduser() if override else Path.home() / ".pocketbook"
    base.mkdir(parents=True, exist_ok=True)
    return base


def config_file() -> Path:
    return app_dir() / CONFIG_FILE_NAME


def default_db_path() -> Path:
    storage = app_dir() / "storage"
    storage.mkdir(parents=True, exist_ok=True)
    return storage / DEFAULT_DB_FILE_NAME


def resolve_configured_path() -> Path | None:
    """Read the configured database path from the preference file."""

    file = config_file()
    if not file.exists():
        return None
    with file.open("r", encoding="utf-8") as f:
        data = json.load(f)
    value = data.get("dbPath") if isinstance(data, dict) else None
    if not isinstance(value, str) or not value:
        return None
    return Path(value)


def persist_configured_path(path: str | os.PathLike[str]) -> None:
    file = config_file()
    payload = {"dbPath": os.fspath(path)}
    file.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    logger.debug("persisted dbPath=%s to %s", payload["dbPath"], file)


def clear_configured_path() -> None:
    """Forget the configured path ("logout"); the database file is kept."""

    file = config_file()
    if file.exists():
        file.unlink()
        logger.info("cleared configured database path")


def ledger_password_ttl() -> timedelta:
    """Lifetime of a ledger-account password (``POCKETBOOK_LEDGER_PASSWORD_TTL_DAYS``)."""

    raw = os.getenv("POCKETBOOK_LEDGER_PASSWORD_TTL_DAYS")
    try:
        days = float(raw) if raw else DEFAULT_PASSWORD_TTL_DAYS
    except ValueError:
        logger.warning("ignoring invalid POCKETBOOK_LEDGER_PASSWORD_TTL_DAYS=%r", raw)
        days = DEFAULT_PASSWORD_TTL_DAYS
    return timedelta(days=days)


__all__ = [
    "app_dir",
    "clear_configured_path",
    "config_file",
    "default_db_path",
    "ledger_password_ttl",
    "persist_configured_path",
    "resolve_configured_path",
]
