"""Free-text product search across both providers' line items."""

from __future__ import annotations

from typing import TypedDict

from sqlalchemy import select
from sqlalchemy.orm import Session

from .payments import COUPANG, NAVER, ProviderTables


class SearchResultItem(TypedDict):
    id: int
    provider: str
    product_name: str
    image_url: str | None
    merchant_name: str
    paid_at: str
    quantity: int
    unit_price: int | None
    line_amount: int | None


class SearchResponse(TypedDict):
    items: list[SearchResultItem]
    total: int


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _search_provider(
    session: Session, tables: ProviderTables, pattern: str, limit: int
) -> list[SearchResultItem]:
    item, header = tables.item, tables.header
    time_col = getattr(header, tables.time_field)
    rows = session.execute(
        select(
            item.id,
            item.product_name,
            item.image_url,
            header.merchant_name,
            time_col,
            item.quantity,
            item.unit_price,
            item.line_amount,
        )
        .join(header, item.payment_id == header.id)
        .where(item.product_name.ilike(pattern, escape="\\"))
        .order_by(time_col.desc())
        .limit(limit)
    ).all()
    return [
        {
            "id": r[0],
            "provider": tables.provider,
            "product_name": r[1],
            "image_url": r[2],
            "merchant_name": r[3],
            "paid_at": r[4],
            "quantity": r[5],
            "unit_price": r[6],
            "line_amount": r[7],
        }
        for r in rows
    ]


def search_products(session: Session, query: str, *, limit: int = 50) -> SearchResponse:
    """Search line-item product names of both providers, newest first.

    Each provider contributes at most ``limit`` matches; ``total`` counts the
    merged candidates before the final cut to ``limit``.
    """

    pattern = f"%{_escape_like(query.strip())}%"
    items: list[SearchResultItem] = []
    for tables in (NAVER, COUPANG):
        items.extend(_search_provider(session, tables, pattern, limit))
    items.sort(key=lambda it: it["paid_at"] or "", reverse=True)
    return {"items": items[:limit], "total": len(items)}


__all__ = ["SearchResponse", "SearchResultItem", "search_products"]
