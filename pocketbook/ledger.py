"""Manual ledger: accounts, entries, and the append-only entry history.

Journal rules
-------------
- ``create_entry``/``update_entry``/``delete_entry`` each write, in the
  caller's single transaction: the entry row, a full tag-set replace
  (delete-all-then-insert), and exactly one ``pb_ledger_history`` row.
- History snapshots are plain dicts holding every business field plus
  ``account_id`` and the sorted tag list. ``create`` stores an after-snapshot
  only, ``update`` stores both, ``delete`` stores a before-snapshot only.
- History rows are never updated or deleted, and they outlive their entry.

Password expiry
---------------
Account passwords carry an expiry timestamp. Nothing runs on a timer: every
account or entry operation first calls :func:`purge_expired_passwords`, which
clears hash and expiry for accounts whose expiry has passed ("purge on
touch"). An installation that never touches the ledger keeps its stale hash.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timedelta
from typing import Any, Literal, TypedDict

from passlib.context import CryptContext
from sqlalchemy import delete, insert, select
from sqlalchemy.orm import Session

from pocketbook_db.models import LedgerAccount, LedgerEntry, LedgerEntryTag, LedgerHistory, utcnow

from . import config
from .errors import NotFoundError, ValidationError
from .logging_setup import get_logger
from .models import LedgerEntryIn

logger = get_logger("pocketbook.ledger")

HistoryAction = Literal["create", "update", "delete"]

ENTRY_FIELDS: tuple[str, ...] = (
    "type",
    "amount",
    "date",
    "title",
    "category",
    "platform",
    "url",
    "merchant",
    "payment_method",
    "memo",
    "color",
)

_YEAR_MONTH_RE = re.compile(r"^\d{4}-\d{2}$")
_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class AccountDict(TypedDict):
    id: str
    nickname: str
    has_password: bool
    password_expires_at: datetime | None
    created_at: datetime
    updated_at: datetime


class EntryDict(TypedDict):
    id: str
    account_id: str
    type: str
    amount: int
    date: str
    title: str
    category: str
    platform: str | None
    url: str | None
    merchant: str | None
    payment_method: str | None
    memo: str | None
    color: str | None
    tags: list[str]
    created_at: datetime
    updated_at: datetime


class HistoryDict(TypedDict):
    id: int
    entry_id: str
    account_id: str
    action: str
    snapshot_before: dict[str, Any] | None
    snapshot_after: dict[str, Any] | None
    created_at: datetime


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(password: str) -> str:
    """Return a salted ``$pbkdf2-sha256$...`` modular-crypt hash."""

    return _pwd_context.hash(password)


def check_password(password: str, stored: str) -> bool:
    # Unknown or malformed hashes count as a mismatch.
    try:
        return _pwd_context.verify(password, stored)
    except (ValueError, TypeError):
        return False


# ---------------------------------------------------------------------------
# Expiry ("purge on touch")
# ---------------------------------------------------------------------------


def purge_expired_passwords(session: Session, *, now: datetime | None = None) -> int:
    """Clear password fields of every account whose expiry is in the past."""

    now = now or utcnow()
    expired = (
        session.execute(
            select(LedgerAccount).where(
                LedgerAccount.password_expires_at.is_not(None),
                LedgerAccount.password_expires_at <= now,
            )
        )
        .scalars()
        .all()
    )
    for account in expired:
        account.password_hash = None
        account.password_expires_at = None
        account.updated_at = now
    if expired:
        session.flush()
        logger.info("cleared %d expired ledger password(s)", len(expired))
    return len(expired)


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


def _account_to_dict(row: LedgerAccount) -> AccountDict:
    return {
        "id": row.id,
        "nickname": row.nickname,
        "has_password": row.password_hash is not None,
        "password_expires_at": row.password_expires_at,
        "created_at": row.created_at,
        "updated_at": row.updated_at,
    }


def _get_account(session: Session, account_id: str) -> LedgerAccount:
    account = session.get(LedgerAccount, account_id)
    if account is None:
        raise NotFoundError(f"ledger account not found: {account_id!r}")
    return account


def _arm_password(
    account: LedgerAccount, password: str, now: datetime, ttl: timedelta | None
) -> None:
    account.password_hash = hash_password(password)
    account.password_expires_at = now + (ttl if ttl is not None else config.ledger_password_ttl())


def create_account(
    session: Session,
    *,
    nickname: str,
    password: str | None = None,
    ttl: timedelta | None = None,
) -> AccountDict:
    purge_expired_passwords(session)
    now = utcnow()
    account = LedgerAccount(id=str(uuid.uuid4()), nickname=nickname, created_at=now, updated_at=now)
    if password:
        _arm_password(account, password, now, ttl)
    session.add(account)
    session.flush()
    return _account_to_dict(account)


def list_accounts(session: Session) -> list[AccountDict]:
    purge_expired_passwords(session)
    rows = (
        session.execute(select(LedgerAccount).order_by(LedgerAccount.created_at))
        .scalars()
        .all()
    )
    return [_account_to_dict(r) for r in rows]


def verify_password(session: Session, account_id: str, password: str) -> bool:
    """Check ``password`` against the account; ``False`` when none is set."""

    purge_expired_passwords(session)
    account = _get_account(session, account_id)
    if account.password_hash is None:
        return False
    return check_password(password, account.password_hash)


def update_password(
    session: Session, account_id: str, password: str, *, ttl: timedelta | None = None
) -> None:
    """Set a new password and restart its expiry window."""

    purge_expired_passwords(session)
    account = _get_account(session, account_id)
    now = utcnow()
    _arm_password(account, password, now, ttl)
    account.updated_at = now
    session.flush()


def check_password_expiry(session: Session) -> int:
    return purge_expired_passwords(session)


def delete_account(session: Session, account_id: str) -> None:
    """Delete an account and its entries.

    Each entry goes through the journal's delete path first, so every one gets
    a ``delete`` history row holding its last state.
    """

    purge_expired_passwords(session)
    rows = (
        session.execute(select(LedgerEntry).where(LedgerEntry.account_id == account_id))
        .scalars()
        .all()
    )
    for row in rows:
        _delete_entry_row(session, row)
    session.execute(delete(LedgerAccount).where(LedgerAccount.id == account_id))


# ---------------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------------


def _entry_tags(session: Session, entry_id: str) -> list[str]:
    return list(
        session.execute(
            select(LedgerEntryTag.tag)
            .where(LedgerEntryTag.entry_id == entry_id)
            .order_by(LedgerEntryTag.tag)
        )
        .scalars()
        .all()
    )


def _replace_tags(session: Session, entry_id: str, tags: list[str]) -> None:
    session.execute(delete(LedgerEntryTag).where(LedgerEntryTag.entry_id == entry_id))
    if tags:
        session.execute(insert(LedgerEntryTag), [{"entry_id": entry_id, "tag": t} for t in tags])


def _snapshot(account_id: str, fields: dict[str, Any], tags: list[str]) -> dict[str, Any]:
    snap: dict[str, Any] = {"account_id": account_id}
    snap.update({name: fields[name] for name in ENTRY_FIELDS})
    snap["tags"] = sorted(tags)
    return snap


def _row_snapshot(session: Session, row: LedgerEntry) -> dict[str, Any]:
    fields = {name: getattr(row, name) for name in ENTRY_FIELDS}
    return _snapshot(row.account_id, fields, _entry_tags(session, row.id))


def _input_snapshot(account_id: str, entry: LedgerEntryIn) -> dict[str, Any]:
    return _snapshot(account_id, entry.model_dump(), entry.tags)


def _append_history(
    session: Session,
    *,
    entry_id: str,
    account_id: str,
    action: HistoryAction,
    before: dict[str, Any] | None,
    after: dict[str, Any] | None,
) -> None:
    session.add(
        LedgerHistory(
            entry_id=entry_id,
            account_id=account_id,
            action=action,
            snapshot_before=before,
            snapshot_after=after,
            created_at=utcnow(),
        )
    )


def _get_entry_row(session: Session, entry_id: str) -> LedgerEntry:
    row = session.get(LedgerEntry, entry_id)
    if row is None:
        raise NotFoundError(f"ledger entry not found: {entry_id!r}")
    return row


def _entry_to_dict(session: Session, row: LedgerEntry) -> EntryDict:
    out: dict[str, Any] = {"id": row.id, "account_id": row.account_id}
    out.update({name: getattr(row, name) for name in ENTRY_FIELDS})
    out["tags"] = _entry_tags(session, row.id)
    out["created_at"] = row.created_at
    out["updated_at"] = row.updated_at
    return out  # type: ignore[return-value]


def create_entry(session: Session, account_id: str, entry: LedgerEntryIn) -> str:
    """Insert an entry with its tags and a ``create`` history row; return its id."""

    purge_expired_passwords(session)
    _get_account(session, account_id)
    now = utcnow()
    entry_id = str(uuid.uuid4())
    fields = {name: getattr(entry, name) for name in ENTRY_FIELDS}
    session.add(
        LedgerEntry(id=entry_id, account_id=account_id, created_at=now, updated_at=now, **fields)
    )
    session.flush()
    _replace_tags(session, entry_id, entry.tags)
    _append_history(
        session,
        entry_id=entry_id,
        account_id=account_id,
        action="create",
        before=None,
        after=_input_snapshot(account_id, entry),
    )
    session.flush()
    return entry_id


def update_entry(session: Session, entry_id: str, entry: LedgerEntryIn) -> None:
    purge_expired_passwords(session)
    row = _get_entry_row(session, entry_id)
    before = _row_snapshot(session, row)
    for name in ENTRY_FIELDS:
        setattr(row, name, getattr(entry, name))
    row.updated_at = utcnow()
    session.flush()
    _replace_tags(session, entry_id, entry.tags)
    _append_history(
        session,
        entry_id=entry_id,
        account_id=row.account_id,
        action="update",
        before=before,
        after=_input_snapshot(row.account_id, entry),
    )
    session.flush()


def delete_entry(session: Session, entry_id: str) -> None:
    purge_expired_passwords(session)
    _delete_entry_row(session, _get_entry_row(session, entry_id))


def _delete_entry_row(session: Session, row: LedgerEntry) -> None:
    entry_id = row.id
    before = _row_snapshot(session, row)
    account_id = row.account_id
    session.delete(row)
    session.flush()
    _append_history(
        session,
        entry_id=entry_id,
        account_id=account_id,
        action="delete",
        before=before,
        after=None,
    )
    session.flush()


def list_entries(session: Session, account_id: str, year_month: str) -> list[EntryDict]:
    """Return the account's entries dated within ``year_month`` (``YYYY-MM``)."""

    purge_expired_passwords(session)
    if not _YEAR_MONTH_RE.match(year_month):
        raise ValidationError(f"year_month must look like YYYY-MM, got {year_month!r}")
    rows = (
        session.execute(
            select(LedgerEntry)
            .where(
                LedgerEntry.account_id == account_id,
                LedgerEntry.date.startswith(f"{year_month}-", autoescape=True),
            )
            .order_by(LedgerEntry.date.desc(), LedgerEntry.created_at.desc())
        )
        .scalars()
        .all()
    )
    return [_entry_to_dict(session, r) for r in rows]


def get_entry(session: Session, entry_id: str) -> EntryDict | None:
    purge_expired_passwords(session)
    row = session.get(LedgerEntry, entry_id)
    return _entry_to_dict(session, row) if row is not None else None


def list_history(session: Session, entry_id: str) -> list[HistoryDict]:
    """Return every history row for ``entry_id`` in write order."""

    purge_expired_passwords(session)
    rows = (
        session.execute(
            select(LedgerHistory)
            .where(LedgerHistory.entry_id == entry_id)
            .order_by(LedgerHistory.id)
        )
        .scalars()
        .all()
    )
    return [
        {
            "id": r.id,
            "entry_id": r.entry_id,
            "account_id": r.account_id,
            "action": r.action,
            "snapshot_before": r.snapshot_before,
            "snapshot_after": r.snapshot_after,
            "created_at": r.created_at,
        }
        for r in rows
    ]


__all__ = [
    "AccountDict",
    "ENTRY_FIELDS",
    "EntryDict",
    "HistoryDict",
    "check_password",
    "check_password_expiry",
    "create_account",
    "create_entry",
    "delete_account",
    "delete_entry",
    "get_entry",
    "hash_password",
    "list_accounts",
    "list_entries",
    "list_history",
    "purge_expired_passwords",
    "update_entry",
    "update_password",
    "verify_password",
]
