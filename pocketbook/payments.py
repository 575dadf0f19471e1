"""Payment synchronization and listing for Naver Pay and Coupang records.

Synchronization contract (per payment, inside the caller's transaction):

1. Upsert the header keyed by ``(owner_id, pay_id | order_id)``. On conflict
   only the provider's *mutable subset* is overwritten
   (:data:`NAVER_HEADER_MUTABLE_FIELDS`, :data:`COUPANG_HEADER_MUTABLE_FIELDS`);
   every other stored field keeps its first-seen value.
2. Resolve the header's surrogate ``id``.
3. Upsert each line item keyed by ``(payment_id, line_no)`` overwriting every
   business field on conflict.

Headers use a partial overwrite while items use a full overwrite. The
asymmetry is kept as-is. Items missing from a later sync are never pruned.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, TypedDict

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from pocketbook_db.models import (
    Base,
    CoupangPayment,
    CoupangPaymentItem,
    NaverPayment,
    NaverPaymentItem,
    utcnow,
)

from .errors import NotFoundError
from .logging_setup import get_logger
from .models import CoupangPaymentIn, NaverPaymentIn

logger = get_logger("pocketbook.payments")

# Fields overwritten when a Naver header is synced again.
NAVER_HEADER_MUTABLE_FIELDS: tuple[str, ...] = (
    "external_id",
    "service_type",
    "status_code",
    "status_text",
    "status_color",
    "merchant_name",
    "total_amount",
)

# Fields overwritten when a Coupang header is synced again: everything except
# the key and the creation timestamp.
COUPANG_HEADER_MUTABLE_FIELDS: tuple[str, ...] = (
    "external_id",
    "status_code",
    "status_text",
    "status_color",
    "ordered_at",
    "paid_at",
    "merchant_name",
    "merchant_tel",
    "merchant_url",
    "merchant_image_url",
    "product_name",
    "product_count",
    "product_detail_url",
    "order_detail_url",
    "total_amount",
    "total_order_amount",
    "total_cancel_amount",
    "discount_amount",
    "rest_amount",
    "main_pay_type",
    "pay_rocket_balance_amount",
    "pay_card_amount",
    "pay_coupon_amount",
    "pay_coupang_cash_amount",
    "pay_rocket_bank_amount",
    "wow_instant_discount",
    "reward_cash_amount",
)

# Naver service types that are not shopping orders and stay out of listings.
NAVER_EXCLUDED_SERVICE_TYPES: tuple[str, ...] = ("BOOKING", "CONTENTS")

_ITEM_KEY = ("payment_id", "line_no")


@dataclass(frozen=True, slots=True)
class ProviderTables:
    provider: str
    header: type[Base]
    item: type[Base]
    key_field: str
    time_field: str
    mutable_fields: tuple[str, ...]


NAVER = ProviderTables(
    provider="naver",
    header=NaverPayment,
    item=NaverPaymentItem,
    key_field="pay_id",
    time_field="paid_at",
    mutable_fields=NAVER_HEADER_MUTABLE_FIELDS,
)
COUPANG = ProviderTables(
    provider="coupang",
    header=CoupangPayment,
    item=CoupangPaymentItem,
    key_field="order_id",
    time_field="ordered_at",
    mutable_fields=COUPANG_HEADER_MUTABLE_FIELDS,
)
PROVIDERS: dict[str, ProviderTables] = {NAVER.provider: NAVER, COUPANG.provider: COUPANG}


@dataclass(frozen=True, slots=True)
class SyncResult:
    payment_id: int
    item_count: int


class LatestPayment(TypedDict):
    external_key: str
    occurred_at: str


def provider_tables(provider: str) -> ProviderTables:
    try:
        return PROVIDERS[provider]
    except KeyError:
        raise NotFoundError(f"unknown provider: {provider!r}") from None


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------


def _upsert_header(
    session: Session, tables: ProviderTables, owner_id: str, header: dict[str, Any]
) -> None:
    now = utcnow()
    values = {**header, "owner_id": owner_id, "created_at": now, "updated_at": now}
    stmt = sqlite_insert(tables.header).values(values)
    set_ = {name: stmt.excluded[name] for name in tables.mutable_fields}
    set_["updated_at"] = stmt.excluded.updated_at
    stmt = stmt.on_conflict_do_update(index_elements=["owner_id", tables.key_field], set_=set_)
    session.execute(stmt)


def _resolve_payment_id(
    session: Session, tables: ProviderTables, owner_id: str, key: str
) -> int:
    header = tables.header
    payment_id = session.scalar(
        select(header.id).where(
            header.owner_id == owner_id,
            getattr(header, tables.key_field) == key,
        )
    )
    if payment_id is None:  # pragma: no cover - the upsert above guarantees a row
        raise NotFoundError(f"{tables.provider} payment {key!r} vanished during sync")
    return payment_id


def _upsert_items(
    session: Session,
    tables: ProviderTables,
    payment_id: int,
    items: Sequence[dict[str, Any]],
) -> None:
    if not items:
        return
    now = utcnow()
    rows = [
        {**item, "payment_id": payment_id, "created_at": now, "updated_at": now}
        for item in items
    ]
    stmt = sqlite_insert(tables.item).values(rows)
    overwrite = [name for name in items[0] if name not in _ITEM_KEY]
    set_ = {name: stmt.excluded[name] for name in overwrite}
    set_["updated_at"] = stmt.excluded.updated_at
    stmt = stmt.on_conflict_do_update(index_elements=list(_ITEM_KEY), set_=set_)
    session.execute(stmt)


def sync_payment(
    session: Session, tables: ProviderTables, owner_id: str, payment: BaseModel
) -> SyncResult:
    """Merge one payment (header + items) into storage.

    Must run inside a single transaction owned by the caller so that a
    failure at any step leaves no partial rows behind.
    """

    header = payment.model_dump(exclude={"items"})
    items = [item.model_dump() for item in getattr(payment, "items")]
    key = header[tables.key_field]

    _upsert_header(session, tables, owner_id, header)
    payment_id = _resolve_payment_id(session, tables, owner_id, key)
    _upsert_items(session, tables, payment_id, items)

    logger.info(
        "synced %s payment %s for owner %s (%d items)",
        tables.provider,
        key,
        owner_id,
        len(items),
    )
    return SyncResult(payment_id=payment_id, item_count=len(items))


def sync_naver_payment(session: Session, owner_id: str, payment: NaverPaymentIn) -> SyncResult:
    return sync_payment(session, NAVER, owner_id, payment)


def sync_coupang_payment(
    session: Session, owner_id: str, payment: CoupangPaymentIn
) -> SyncResult:
    return sync_payment(session, COUPANG, owner_id, payment)


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


def _columns_dict(row: Base, *, exclude: Sequence[str] = ()) -> dict[str, Any]:
    return {
        c.key: getattr(row, c.key) for c in row.__table__.columns if c.key not in exclude
    }


def _items_by_payment(
    session: Session, tables: ProviderTables, payment_ids: Sequence[int]
) -> dict[int, list[dict[str, Any]]]:
    if not payment_ids:
        return {}
    item = tables.item
    rows = (
        session.execute(
            select(item).where(item.payment_id.in_(payment_ids)).order_by(item.line_no)
        )
        .scalars()
        .all()
    )
    grouped: dict[int, list[dict[str, Any]]] = defaultdict(list)
    for r in rows:
        grouped[r.payment_id].append(
            _columns_dict(r, exclude=("payment_id", "created_at", "updated_at"))
        )
    return grouped


def list_payments(
    session: Session,
    tables: ProviderTables,
    owner_id: str,
    *,
    limit: int = 100,
    offset: int = 0,
) -> list[dict[str, Any]]:
    """Return an owner's payments newest first, each with its ordered items."""

    header = tables.header
    time_col = getattr(header, tables.time_field)
    stmt = select(header).where(header.owner_id == owner_id)
    if tables is NAVER:
        stmt = stmt.where(
            header.service_type.is_(None)
            | header.service_type.notin_(NAVER_EXCLUDED_SERVICE_TYPES)
        )
    stmt = stmt.order_by(time_col.desc(), header.id.desc()).limit(limit).offset(offset)
    rows = session.execute(stmt).scalars().all()

    items = _items_by_payment(session, tables, [r.id for r in rows])
    out: list[dict[str, Any]] = []
    for r in rows:
        payload = _columns_dict(r, exclude=("owner_id",))
        payload["items"] = items.get(r.id, [])
        out.append(payload)
    return out


def latest_payment(
    session: Session, tables: ProviderTables, owner_id: str
) -> LatestPayment | None:
    """Return the key and timestamp of the owner's most recent payment, if any."""

    header = tables.header
    key_col = getattr(header, tables.key_field)
    time_col = getattr(header, tables.time_field)
    row = session.execute(
        select(key_col, time_col)
        .where(header.owner_id == owner_id)
        .order_by(time_col.desc())
        .limit(1)
    ).first()
    if row is None:
        return None
    return {"external_key": row[0], "occurred_at": row[1]}


__all__ = [
    "COUPANG",
    "COUPANG_HEADER_MUTABLE_FIELDS",
    "NAVER",
    "NAVER_EXCLUDED_SERVICE_TYPES",
    "NAVER_HEADER_MUTABLE_FIELDS",
    "PROVIDERS",
    "LatestPayment",
    "ProviderTables",
    "SyncResult",
    "latest_payment",
    "list_payments",
    "provider_tables",
    "sync_coupang_payment",
    "sync_naver_payment",
    "sync_payment",
]
