"""Schema lifecycle for a pocketbook database file.

``ensure_schema(path)`` is safe to run on every startup. It performs, in order:

1. ``CREATE TABLE`` for every model table that does not exist yet.
2. Additive migration: each column in :data:`ADDITIVE_COLUMNS` is added with
   Alembic's operations API. A "duplicate column" failure means the column is
   already there and counts as success; any other failure propagates.
3. ``CREATE INDEX`` for every declared index that does not exist yet.
4. Insert-if-absent seeding of reference rows (the default category
   taxonomy). Rows are never overwritten, so user edits survive.

Tables must exist before columns are added to them; nothing else about the
ordering is assumed.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import OperationalError

from .client import create_sqlite_engine
from .models import Base, Category

logger = logging.getLogger("pocketbook_db.schema")


@dataclass(frozen=True, slots=True)
class AdditiveColumn:
    """A nullable column introduced after a table's first release."""

    table: str
    name: str
    type_: sa.types.TypeEngine[Any]
    default: str | None = None

    def to_column(self) -> sa.Column[Any]:
        server_default = sa.text(self.default) if self.default is not None else None
        return sa.Column(self.name, self.type_, nullable=True, server_default=server_default)


# Keep in sync with the model definitions in ``pocketbook_db.models.payments``.
ADDITIVE_COLUMNS: tuple[AdditiveColumn, ...] = (
    AdditiveColumn("pb_coupang_payments", "paid_at", sa.String()),
    AdditiveColumn("pb_coupang_payments", "total_order_amount", sa.Integer()),
    AdditiveColumn("pb_coupang_payments", "total_cancel_amount", sa.Integer(), "0"),
    AdditiveColumn("pb_coupang_payments", "main_pay_type", sa.String()),
    AdditiveColumn("pb_coupang_payments", "pay_rocket_balance_amount", sa.Integer(), "0"),
    AdditiveColumn("pb_coupang_payments", "pay_card_amount", sa.Integer(), "0"),
    AdditiveColumn("pb_coupang_payments", "pay_coupon_amount", sa.Integer(), "0"),
    AdditiveColumn("pb_coupang_payments", "pay_coupang_cash_amount", sa.Integer(), "0"),
    AdditiveColumn("pb_coupang_payments", "pay_rocket_bank_amount", sa.Integer(), "0"),
    AdditiveColumn("pb_coupang_payments", "wow_instant_discount", sa.Integer(), "0"),
    AdditiveColumn("pb_coupang_payments", "reward_cash_amount", sa.Integer(), "0"),
    AdditiveColumn("pb_coupang_payment_items", "product_id", sa.String()),
    AdditiveColumn("pb_coupang_payment_items", "vendor_item_id", sa.String()),
    AdditiveColumn("pb_coupang_payment_items", "brand_name", sa.String()),
    AdditiveColumn("pb_coupang_payment_items", "discounted_unit_price", sa.Integer()),
    AdditiveColumn("pb_coupang_payment_items", "combined_unit_price", sa.Integer()),
)

# Default expense taxonomy; ids are stable so re-seeding is a no-op.
DEFAULT_CATEGORIES: tuple[dict[str, str], ...] = (
    {"id": "food", "name": "Food", "color": "#ea580c"},
    {"id": "transport", "name": "Transport", "color": "#2563eb"},
    {"id": "housing", "name": "Housing", "color": "#ca8a04"},
    {"id": "shopping", "name": "Shopping", "color": "#dc2626"},
    {"id": "leisure", "name": "Leisure", "color": "#9333ea"},
    {"id": "medical", "name": "Medical", "color": "#16a34a"},
    {"id": "education", "name": "Education", "color": "#0891b2"},
    {"id": "finance", "name": "Finance", "color": "#4b5563"},
    {"id": "social", "name": "Gifts & Events", "color": "#db2777"},
    {"id": "etc", "name": "Other", "color": "#78716c"},
)


def _is_duplicate_column(exc: OperationalError) -> bool:
    return "duplicate column name" in str(exc.orig).lower()


def create_missing_tables(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine, checkfirst=True)


def add_missing_columns(engine: Engine) -> list[str]:
    """Apply :data:`ADDITIVE_COLUMNS`; return ``table.column`` names actually added.

    Each column is attempted in its own transaction so one failure cannot
    leave a half-applied batch behind.
    """

    added: list[str] = []
    for col in ADDITIVE_COLUMNS:
        qualified = f"{col.table}.{col.name}"
        try:
            with engine.begin() as conn:
                op = Operations(MigrationContext.configure(conn))
                op.add_column(col.table, col.to_column())
        except OperationalError as exc:
            if not _is_duplicate_column(exc):
                raise
            logger.debug("column %s already present", qualified)
            continue
        logger.info("added column %s", qualified)
        added.append(qualified)
    return added


def create_missing_indexes(engine: Engine) -> None:
    with engine.begin() as conn:
        for table in Base.metadata.sorted_tables:
            for index in table.indexes:
                index.create(bind=conn, checkfirst=True)


def seed_reference_data(conn: Connection) -> int:
    """Insert default categories that are absent; return the number inserted."""

    stmt = sqlite_insert(Category).values([dict(row) for row in DEFAULT_CATEGORIES])
    # No conflict target: a clash on either the id or a user-renamed name is skipped.
    stmt = stmt.on_conflict_do_nothing()
    result = conn.execute(stmt)
    return max(result.rowcount or 0, 0)


def migrate(engine: Engine) -> list[str]:
    """Bring the database behind ``engine`` up to the current schema."""

    create_missing_tables(engine)
    added = add_missing_columns(engine)
    create_missing_indexes(engine)
    with engine.begin() as conn:
        seeded = seed_reference_data(conn)
    if seeded:
        logger.info("seeded %d default categories", seeded)
    return added


def ensure_schema(path: str | os.PathLike[str]) -> list[str]:
    """Create or upgrade the database file at ``path``.

    The parent directory is created when missing. Returns the list of
    ``table.column`` names added by additive migration (empty when the file
    was already current).
    """

    db_path = Path(path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_sqlite_engine(db_path)
    try:
        return migrate(engine)
    finally:
        engine.dispose()


__all__ = [
    "ADDITIVE_COLUMNS",
    "DEFAULT_CATEGORIES",
    "AdditiveColumn",
    "add_missing_columns",
    "create_missing_indexes",
    "create_missing_tables",
    "ensure_schema",
    "migrate",
    "seed_reference_data",
]
