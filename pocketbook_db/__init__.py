"""pocketbook_db: storage library for pocketbook (SQLAlchemy/Alembic on SQLite).

Public exports
--------------
- ``Base`` and ``metadata`` for schema creation and inspection
- ORM models in ``pocketbook_db.models`` (re-exported for convenience)
- ``Database`` engine/session handle in ``pocketbook_db.client``
- ``ensure_schema`` in ``pocketbook_db.schema``
"""

from __future__ import annotations

from .client import Database
from .models import (
    Base,
    Category,
    CoupangPayment,
    CoupangPaymentItem,
    Credential,
    LedgerAccount,
    LedgerEntry,
    LedgerEntryTag,
    LedgerHistory,
    NaverPayment,
    NaverPaymentItem,
    Owner,
    ProductMeta,
    ProductMetaCategory,
    ProductMetaTag,
)
from .schema import ensure_schema

metadata = Base.metadata

__all__ = [
    "Base",
    "metadata",
    "Database",
    "ensure_schema",
    "Owner",
    "Credential",
    "NaverPayment",
    "NaverPaymentItem",
    "CoupangPayment",
    "CoupangPaymentItem",
    "LedgerAccount",
    "LedgerEntry",
    "LedgerEntryTag",
    "LedgerHistory",
    "Category",
    "ProductMeta",
    "ProductMetaTag",
    "ProductMetaCategory",
]
