"""Table-level inspection helpers for the settings screen.

These work on any table of the configured file by reflection, so table names
arrive from the caller and are checked before use.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, TypedDict

from sqlalchemy import MetaData, Table, func, inspect, select
from sqlalchemy.orm import Session

from .errors import NotFoundError, ValidationError
from .logging_setup import get_logger

logger = get_logger("pocketbook.diagnostics")


class TableStat(TypedDict):
    name: str
    row_count: int


class TableRows(TypedDict):
    columns: list[str]
    rows: list[list[Any]]
    total_count: int


def _user_tables(session: Session) -> list[str]:
    names = inspect(session.connection()).get_table_names()
    return sorted(n for n in names if not n.startswith("sqlite_"))


def _check_table_name(session: Session, name: str) -> Table:
    if not name or any(ch.isspace() for ch in name) or ";" in name:
        raise ValidationError(f"invalid table name: {name!r}")
    if name not in _user_tables(session):
        raise NotFoundError(f"no such table: {name}")
    return Table(name, MetaData(), autoload_with=session.connection())


def _json_value(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return f"<BLOB {len(bytes(value))} bytes>"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def table_stats(session: Session) -> list[TableStat]:
    out: list[TableStat] = []
    for name in _user_tables(session):
        table = Table(name, MetaData(), autoload_with=session.connection())
        count = session.scalar(select(func.count()).select_from(table)) or 0
        out.append({"name": name, "row_count": int(count)})
    return out


def truncate_table(session: Session, name: str) -> int:
    """Delete every row of ``name``; cascades follow the declared foreign keys."""

    table = _check_table_name(session, name)
    result = session.execute(table.delete())
    deleted = result.rowcount or 0
    logger.warning("truncated table %s (%d rows)", name, deleted)
    return deleted


def table_rows(session: Session, name: str, *, limit: int = 50, offset: int = 0) -> TableRows:
    table = _check_table_name(session, name)
    total = session.scalar(select(func.count()).select_from(table)) or 0
    result = session.execute(select(table).limit(limit).offset(offset))
    columns = list(result.keys())
    rows = [[_json_value(v) for v in row] for row in result]
    return {"columns": columns, "rows": rows, "total_count": int(total)}


__all__ = ["TableRows", "TableStat", "table_rows", "table_stats", "truncate_table"]
