from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, Timestamped, utcnow

# ---------------------------
# Ledger accounts
# ---------------------------


class LedgerAccount(Timestamped, Base):
    __tablename__ = "pb_ledger_accounts"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    nickname: Mapped[str] = mapped_column(String, nullable=False)
    # Both password fields are cleared together once the expiry passes; see
    # pocketbook.ledger.purge_expired_passwords.
    password_hash: Mapped[str | None] = mapped_column(String, nullable=True)
    password_expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


# ---------------------------
# Ledger entries + tags
# ---------------------------


class LedgerEntry(Timestamped, Base):
    __tablename__ = "pb_ledger_entries"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    account_id: Mapped[str] = mapped_column(
        String, ForeignKey("pb_ledger_accounts.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    # Calendar date as YYYY-MM-DD; month filters use a string prefix match.
    date: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    platform: Mapped[str | None] = mapped_column(String)
    url: Mapped[str | None] = mapped_column(Text)
    merchant: Mapped[str | None] = mapped_column(Text)
    payment_method: Mapped[str | None] = mapped_column(String)
    memo: Mapped[str | None] = mapped_column(Text)
    color: Mapped[str | None] = mapped_column(String)

    __table_args__ = (
        CheckConstraint("type in ('income','expense')", name="ck_pb_ledger_entries_type"),
        Index("ix_pb_ledger_entries_account_date", "account_id", "date"),
    )


class LedgerEntryTag(Base):
    __tablename__ = "pb_ledger_entry_tags"

    entry_id: Mapped[str] = mapped_column(
        String, ForeignKey("pb_ledger_entries.id", ondelete="CASCADE"), primary_key=True
    )
    tag: Mapped[str] = mapped_column(String, primary_key=True)


# ---------------------------
# Ledger history (append-only)
# ---------------------------


class LedgerHistory(Base):
    __tablename__ = "pb_ledger_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Deliberately not a foreign key: history outlives the entry it describes.
    entry_id: Mapped[str] = mapped_column(String, nullable=False)
    account_id: Mapped[str] = mapped_column(String, nullable=False)
    action: Mapped[str] = mapped_column(String, nullable=False)
    snapshot_before: Mapped[dict[str, Any] | None] = mapped_column(
        JSON(none_as_null=True), nullable=True
    )
    snapshot_after: Mapped[dict[str, Any] | None] = mapped_column(
        JSON(none_as_null=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        CheckConstraint(
            "action in ('create','update','delete')", name="ck_pb_ledger_history_action"
        ),
        CheckConstraint(
            "snapshot_before IS NOT NULL OR snapshot_after IS NOT NULL",
            name="ck_pb_ledger_history_has_snapshot",
        ),
        Index("ix_pb_ledger_history_entry_id", "entry_id"),
    )


__all__ = [
    "LedgerAccount",
    "LedgerEntry",
    "LedgerEntryTag",
    "LedgerHistory",
]
