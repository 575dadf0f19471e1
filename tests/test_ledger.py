from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import update

from pocketbook import ledger
from pocketbook.errors import NotFoundError, ValidationError
from pocketbook.models import LedgerEntryIn
from pocketbook_db.client import Database
from pocketbook_db.models import LedgerAccount, utcnow
from tests.helpers.payloads import ledger_entry


def _account(db: Database, password: str | None = None) -> str:
    with db.session_scope() as s:
        return ledger.create_account(s, nickname="household", password=password)["id"]


def _expected_snapshot(account_id: str, payload: dict) -> dict:
    entry = LedgerEntryIn.model_validate(payload)
    snap = {"account_id": account_id}
    snap.update({f: getattr(entry, f) for f in ledger.ENTRY_FIELDS})
    snap["tags"] = sorted(entry.tags)
    return snap


def test_history_follows_create_update_delete(db: Database) -> None:
    account_id = _account(db)
    created = ledger_entry()
    edited = ledger_entry(amount=15000, title="Team lunch", tags=["work", "team"])

    with db.session_scope() as s:
        entry_id = ledger.create_entry(s, account_id, LedgerEntryIn.model_validate(created))
    with db.session_scope() as s:
        history = ledger.list_history(s, entry_id)
    assert len(history) == 1
    assert history[0]["action"] == "create"
    assert history[0]["snapshot_before"] is None
    assert history[0]["snapshot_after"] == _expected_snapshot(account_id, created)

    with db.session_scope() as s:
        ledger.update_entry(s, entry_id, LedgerEntryIn.model_validate(edited))
    with db.session_scope() as s:
        history = ledger.list_history(s, entry_id)
    assert [h["action"] for h in history] == ["create", "update"]
    assert history[1]["snapshot_before"] == _expected_snapshot(account_id, created)
    assert history[1]["snapshot_after"] == _expected_snapshot(account_id, edited)

    with db.session_scope() as s:
        ledger.delete_entry(s, entry_id)
    with db.session_scope() as s:
        history = ledger.list_history(s, entry_id)
        assert ledger.get_entry(s, entry_id) is None
    assert [h["action"] for h in history] == ["create", "update", "delete"]
    assert history[2]["snapshot_before"] == _expected_snapshot(account_id, edited)
    assert history[2]["snapshot_after"] is None


def test_update_replaces_tag_set(db: Database) -> None:
    account_id = _account(db)
    with db.session_scope() as s:
        entry_id = ledger.create_entry(
            s, account_id, LedgerEntryIn.model_validate(ledger_entry(tags=["a", "b"]))
        )
        ledger.update_entry(s, entry_id, LedgerEntryIn.model_validate(ledger_entry(tags=["c"])))

    with db.session_scope() as s:
        assert ledger.get_entry(s, entry_id)["tags"] == ["c"]


def test_failed_update_leaves_no_history(db: Database, monkeypatch: pytest.MonkeyPatch) -> None:
    account_id = _account(db)
    with db.session_scope() as s:
        entry_id = ledger.create_entry(s, account_id, LedgerEntryIn.model_validate(ledger_entry()))

    def _boom(*_args, **_kwargs):
        raise RuntimeError("tag write failed")

    monkeypatch.setattr(ledger, "_replace_tags", _boom)
    with pytest.raises(RuntimeError):
        with db.session_scope() as s:
            ledger.update_entry(
                s, entry_id, LedgerEntryIn.model_validate(ledger_entry(title="never"))
            )

    monkeypatch.undo()
    with db.session_scope() as s:
        assert [h["action"] for h in ledger.list_history(s, entry_id)] == ["create"]
        assert ledger.get_entry(s, entry_id)["title"] == "Lunch"


def test_list_entries_filters_month_and_orders_newest_first(db: Database) -> None:
    account_id = _account(db)
    with db.session_scope() as s:
        for date, title in (
            ("2024-07-01", "first"),
            ("2024-07-20", "latest"),
            ("2024-08-01", "next month"),
            ("2024-07-20", "latest, added later"),
        ):
            ledger.create_entry(
                s, account_id, LedgerEntryIn.model_validate(ledger_entry(date=date, title=title))
            )

    with db.session_scope() as s:
        titles = [e["title"] for e in ledger.list_entries(s, account_id, "2024-07")]

    assert titles == ["latest, added later", "latest", "first"]


def test_list_entries_rejects_bad_month(db: Database) -> None:
    account_id = _account(db)
    with pytest.raises(ValidationError):
        with db.session_scope() as s:
            ledger.list_entries(s, account_id, "July")


def test_create_entry_for_missing_account(db: Database) -> None:
    with pytest.raises(NotFoundError):
        with db.session_scope() as s:
            ledger.create_entry(s, "ghost", LedgerEntryIn.model_validate(ledger_entry()))


def test_history_survives_account_deletion(db: Database) -> None:
    account_id = _account(db)
    with db.session_scope() as s:
        entry_id = ledger.create_entry(s, account_id, LedgerEntryIn.model_validate(ledger_entry()))
    with db.session_scope() as s:
        ledger.delete_account(s, account_id)

    with db.session_scope() as s:
        assert ledger.get_entry(s, entry_id) is None
        history = ledger.list_history(s, entry_id)
    assert [h["action"] for h in history] == ["create", "delete"]
    assert history[1]["snapshot_after"] is None
    assert history[1]["snapshot_before"]["account_id"] == account_id
    assert history[1]["snapshot_before"]["title"] == history[0]["snapshot_after"]["title"]


# ---- passwords ---------------------------------------------------------------


def test_password_verify_and_update(db: Database) -> None:
    account_id = _account(db, password="hunter2")
    with db.session_scope() as s:
        assert ledger.verify_password(s, account_id, "hunter2") is True
        assert ledger.verify_password(s, account_id, "wrong") is False
        ledger.update_password(s, account_id, "correct horse")
    with db.session_scope() as s:
        assert ledger.verify_password(s, account_id, "correct horse") is True
        assert ledger.verify_password(s, account_id, "hunter2") is False


def test_account_without_password_never_verifies(db: Database) -> None:
    account_id = _account(db)
    with db.session_scope() as s:
        assert ledger.verify_password(s, account_id, "") is False
        assert ledger.list_accounts(s)[0]["has_password"] is False


def _expire(db: Database, account_id: str) -> None:
    with db.session_scope() as s:
        s.execute(
            update(LedgerAccount)
            .where(LedgerAccount.id == account_id)
            .values(password_expires_at=utcnow() - timedelta(minutes=1))
        )


def _password_hash(db: Database, account_id: str) -> str | None:
    with db.session_scope() as s:
        return s.get(LedgerAccount, account_id).password_hash


def test_expired_password_is_cleared_on_next_ledger_call_not_before(db: Database) -> None:
    account_id = _account(db, password="pw")
    other_id = _account(db, password="pw")
    _expire(db, account_id)

    # Nothing has touched the ledger yet; the stale hash is still stored.
    assert _password_hash(db, account_id) is not None

    with db.session_scope() as s:
        ledger.list_entries(s, other_id, "2024-01")

    assert _password_hash(db, account_id) is None
    assert _password_hash(db, other_id) is not None
    with db.session_scope() as s:
        account = next(a for a in ledger.list_accounts(s) if a["id"] == account_id)
    assert account["has_password"] is False
    assert account["password_expires_at"] is None


@pytest.mark.parametrize(
    "touch",
    [
        lambda s, acc: ledger.list_accounts(s),
        lambda s, acc: ledger.verify_password(s, acc, "pw"),
        lambda s, acc: ledger.get_entry(s, "missing"),
        lambda s, acc: ledger.list_history(s, "missing"),
        lambda s, acc: ledger.check_password_expiry(s),
    ],
)
def test_every_ledger_call_purges_expired_passwords(db: Database, touch) -> None:
    account_id = _account(db, password="pw")
    _expire(db, account_id)

    with db.session_scope() as s:
        touch(s, account_id)

    assert _password_hash(db, account_id) is None


def test_password_ttl_comes_from_environment(db: Database, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("POCKETBOOK_LEDGER_PASSWORD_TTL_DAYS", "2")
    with db.session_scope() as s:
        account = ledger.create_account(s, nickname="short", password="pw")

    lifetime = account["password_expires_at"] - account["created_at"]
    assert timedelta(days=2) - timedelta(seconds=5) < lifetime <= timedelta(days=2)


def test_check_password_expiry_reports_purged_count(db: Database) -> None:
    ids = [_account(db, password="pw") for _ in range(2)]
    for account_id in ids:
        _expire(db, account_id)

    with db.session_scope() as s:
        assert ledger.check_password_expiry(s) == 2
    with db.session_scope() as s:
        assert ledger.check_password_expiry(s) == 0


def test_hash_format_roundtrip() -> None:
    stored = ledger.hash_password("s3cret")
    assert stored.startswith("$pbkdf2-sha256$")
    assert stored != ledger.hash_password("s3cret")
    assert ledger.check_password("s3cret", stored)
    assert not ledger.check_password("S3cret", stored)


@pytest.mark.parametrize(
    "stored",
    ["garbage", "", "$pbkdf2-sha256$", "$pbkdf2-sha256$abc$zz$!!", "pbkdf2_sha256$1$00$00"],
)
def test_malformed_hash_is_rejected(stored: str) -> None:
    assert ledger.check_password("s3cret", stored) is False


def test_corrupted_stored_hash_fails_verification(db: Database) -> None:
    account_id = _account(db, password="pw")
    with db.session_scope() as s:
        s.execute(
            update(LedgerAccount)
            .where(LedgerAccount.id == account_id)
            .values(password_hash="pbkdf2_sha256$120000$zz$00")
        )
    with db.session_scope() as s:
        assert ledger.verify_password(s, account_id, "pw") is False
