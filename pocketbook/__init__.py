"""pocketbook: local storage backend for scraped shopping records and a manual ledger.

Public exports
--------------
- ``Backend``: one method per command the GUI shell can call
- ``StorageHandle``: owner of the configured database path
- error classes from :mod:`pocketbook.errors`
"""

from __future__ import annotations

from .api import Backend
from .errors import (
    ConstraintError,
    NotConfiguredError,
    NotFoundError,
    PocketbookError,
    TransportError,
    ValidationError,
)
from .storage import DbStatus, StorageHandle

__all__ = [
    "Backend",
    "ConstraintError",
    "DbStatus",
    "NotConfiguredError",
    "NotFoundError",
    "PocketbookError",
    "StorageHandle",
    "TransportError",
    "ValidationError",
]
