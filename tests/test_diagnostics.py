from __future__ import annotations

import pytest
from sqlalchemy import text

from pocketbook import diagnostics
from pocketbook.errors import NotFoundError, ValidationError
from pocketbook_db.client import Database


def test_table_stats_lists_every_table(db: Database) -> None:
    with db.session_scope() as s:
        stats = {t["name"]: t["row_count"] for t in diagnostics.table_stats(s)}

    assert stats["pb_categories"] == 10
    assert stats["pb_owners"] == 0
    assert not any(name.startswith("sqlite_") for name in stats)


@pytest.mark.parametrize("name", ["pb_owners; DROP TABLE pb_owners", "pb owners", "", "x\t"])
def test_unsafe_table_names_are_rejected(db: Database, name: str) -> None:
    with pytest.raises(ValidationError):
        with db.session_scope() as s:
            diagnostics.table_rows(s, name)


def test_unknown_table_is_not_found(db: Database) -> None:
    with pytest.raises(NotFoundError):
        with db.session_scope() as s:
            diagnostics.truncate_table(s, "pb_nothing_here")


def test_table_rows_pages_and_renders_blobs(db: Database) -> None:
    with db.session_scope() as s:
        s.execute(text("CREATE TABLE scratch (id INTEGER PRIMARY KEY, payload BLOB, label TEXT)"))
        for i in range(3):
            s.execute(
                text("INSERT INTO scratch (id, payload, label) VALUES (:id, :payload, :label)"),
                {"id": i, "payload": b"\x00" * (i + 1), "label": f"row {i}"},
            )

    with db.session_scope() as s:
        page = diagnostics.table_rows(s, "scratch", limit=2, offset=1)

    assert page["columns"] == ["id", "payload", "label"]
    assert page["total_count"] == 3
    assert page["rows"] == [[1, "<BLOB 2 bytes>", "row 1"], [2, "<BLOB 3 bytes>", "row 2"]]


def test_truncate_table_removes_rows(db: Database) -> None:
    with db.session_scope() as s:
        deleted = diagnostics.truncate_table(s, "pb_categories")
    assert deleted == 10

    with db.session_scope() as s:
        assert diagnostics.table_rows(s, "pb_categories")["total_count"] == 0
