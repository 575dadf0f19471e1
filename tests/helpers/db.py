"""DB helpers for tests: bootstrap a temporary SQLite DB and build legacy files."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import text as sql_text

from pocketbook_db.client import Database, create_sqlite_engine
from pocketbook_db.schema import ensure_schema


def bootstrap_db(db_file: Path) -> Database:
    """Create a current-schema SQLite file and return a :class:`Database` on it.

    Using a file-backed SQLite DB ensures multiple SQLAlchemy connections share
    the same state (in-memory DBs are per-connection by default).
    """

    ensure_schema(db_file)
    return Database(db_file)


# First-release shapes of the tables that later gained columns. Everything
# else is created by ``ensure_schema`` itself.
_LEGACY_DDL = (
    """
    CREATE TABLE pb_owners (
        id VARCHAR NOT NULL PRIMARY KEY,
        provider VARCHAR NOT NULL,
        alias VARCHAR NOT NULL,
        auth_blob TEXT NOT NULL,
        created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE pb_coupang_payments (
        id INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT,
        owner_id VARCHAR NOT NULL REFERENCES pb_owners (id) ON DELETE CASCADE,
        order_id VARCHAR NOT NULL,
        external_id VARCHAR,
        status_code VARCHAR,
        status_text VARCHAR,
        status_color VARCHAR,
        ordered_at VARCHAR NOT NULL,
        merchant_name TEXT NOT NULL,
        merchant_tel VARCHAR,
        merchant_url TEXT,
        merchant_image_url TEXT,
        product_name TEXT,
        product_count INTEGER,
        product_detail_url TEXT,
        order_detail_url TEXT,
        total_amount INTEGER NOT NULL,
        discount_amount INTEGER DEFAULT 0,
        rest_amount INTEGER,
        created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
        CONSTRAINT uq_pb_coupang_payments_owner_order_id UNIQUE (owner_id, order_id)
    )
    """,
    """
    CREATE TABLE pb_coupang_payment_items (
        id INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT,
        payment_id INTEGER NOT NULL REFERENCES pb_coupang_payments (id) ON DELETE CASCADE,
        line_no INTEGER NOT NULL,
        product_name TEXT NOT NULL,
        image_url TEXT,
        info_url TEXT,
        quantity INTEGER NOT NULL DEFAULT 1,
        unit_price INTEGER,
        line_amount INTEGER,
        rest_amount INTEGER,
        memo TEXT,
        created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
        CONSTRAINT uq_pb_coupang_payment_items_payment_line UNIQUE (payment_id, line_no)
    )
    """,
)

LEGACY_ROWS = {
    "pb_owners": (
        "INSERT INTO pb_owners (id, provider, alias, auth_blob, created_at, updated_at) "
        "VALUES ('owner-legacy', 'coupang', 'old login', 'blob', "
        "'2023-01-02 03:04:05', '2023-01-02 03:04:05')"
    ),
    "pb_coupang_payments": (
        "INSERT INTO pb_coupang_payments (id, owner_id, order_id, status_text, ordered_at, "
        "merchant_name, total_amount, discount_amount, created_at, updated_at) "
        "VALUES (1, 'owner-legacy', 'ORD-1', 'Delivered', '2023-01-01T10:00:00', "
        "'Coupang', 15900, 900, '2023-01-02 03:04:05', '2023-01-02 03:04:05')"
    ),
    "pb_coupang_payment_items": (
        "INSERT INTO pb_coupang_payment_items (id, payment_id, line_no, product_name, "
        "quantity, unit_price, line_amount, created_at, updated_at) "
        "VALUES (1, 1, 0, 'Sparkling water 24x500ml', 1, 15900, 15900, "
        "'2023-01-02 03:04:05', '2023-01-02 03:04:05')"
    ),
}


def build_legacy_db(db_file: Path) -> None:
    """Create a file shaped like the first release, with one row per table."""

    db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = create_sqlite_engine(db_file)
    try:
        with engine.begin() as conn:
            for ddl in _LEGACY_DDL:
                conn.exec_driver_sql(ddl)
            for stmt in LEGACY_ROWS.values():
                conn.exec_driver_sql(stmt)
    finally:
        engine.dispose()


def dump_table(db_file: Path, table: str) -> list[dict]:
    """Return every row of ``table`` as a dict, ordered by rowid."""

    engine = create_sqlite_engine(db_file)
    try:
        with engine.connect() as conn:
            result = conn.execute(sql_text(f"SELECT * FROM {table} ORDER BY rowid"))
            return [dict(row._mapping) for row in result]
    finally:
        engine.dispose()


def column_names(db_file: Path, table: str) -> set[str]:
    engine = create_sqlite_engine(db_file)
    try:
        with engine.connect() as conn:
            rows = conn.execute(sql_text(f"PRAGMA table_info('{table}')")).fetchall()
        return {row[1] for row in rows}  # (cid, name, type, notnull, dflt_value, pk)
    finally:
        engine.dispose()
