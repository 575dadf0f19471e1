"""Categories and per-line-item product metadata.

A ``(provider, item_id)`` pair owns at most one meta row. Saving replaces its
tag set and its category-link set wholesale (delete-all-then-insert), so a
repeated save with identical input leaves identical rows.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TypedDict

from sqlalchemy import delete, func, insert, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from pocketbook_db.models import (
    Category,
    ProductMeta,
    ProductMetaCategory,
    ProductMetaTag,
    utcnow,
)

from .errors import NotFoundError
from .logging_setup import get_logger
from .models import ProductMetaIn

logger = get_logger("pocketbook.product_meta")


class CategoryDict(TypedDict):
    id: str
    name: str
    color: str | None


class ProductMetaDict(TypedDict):
    id: int
    provider: str
    item_id: str
    memo: str | None
    url: str | None
    rating: int | None
    tags: list[str]
    category_ids: list[str]
    updated_at: datetime


class ProductMetaSummary(TypedDict):
    item_id: int | str
    has_memo: bool
    rating: int | None
    tag_count: int
    category_count: int


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


def list_categories(session: Session) -> list[CategoryDict]:
    rows = session.execute(select(Category).order_by(Category.name)).scalars().all()
    return [{"id": r.id, "name": r.name, "color": r.color} for r in rows]


def create_category(session: Session, *, name: str, color: str | None = None) -> CategoryDict:
    """Create a category; a duplicate name surfaces as an ``IntegrityError``."""

    now = utcnow()
    category = Category(
        id=str(uuid.uuid4()), name=name.strip(), color=color, created_at=now, updated_at=now
    )
    session.add(category)
    session.flush()
    return {"id": category.id, "name": category.name, "color": category.color}


def delete_category(session: Session, category_id: str) -> None:
    """Delete a category; its product links go with it via cascade."""

    session.execute(delete(Category).where(Category.id == category_id))


# ---------------------------------------------------------------------------
# Product meta
# ---------------------------------------------------------------------------


def _meta_row(session: Session, provider: str, item_id: str) -> ProductMeta | None:
    return session.execute(
        select(ProductMeta).where(ProductMeta.provider == provider, ProductMeta.item_id == item_id)
    ).scalar_one_or_none()


def _meta_to_dict(session: Session, row: ProductMeta) -> ProductMetaDict:
    tags = session.execute(
        select(ProductMetaTag.tag).where(ProductMetaTag.meta_id == row.id).order_by(ProductMetaTag.tag)
    ).scalars().all()
    category_ids = session.execute(
        select(ProductMetaCategory.category_id)
        .where(ProductMetaCategory.meta_id == row.id)
        .order_by(ProductMetaCategory.category_id)
    ).scalars().all()
    return {
        "id": row.id,
        "provider": row.provider,
        "item_id": row.item_id,
        "memo": row.memo,
        "url": row.url,
        "rating": row.rating,
        "tags": list(tags),
        "category_ids": list(category_ids),
        "updated_at": row.updated_at,
    }


def get_product_meta(session: Session, provider: str, item_id: str) -> ProductMetaDict | None:
    row = _meta_row(session, provider, str(item_id))
    return _meta_to_dict(session, row) if row is not None else None


def save_product_meta(
    session: Session, provider: str, item_id: str, meta: ProductMetaIn
) -> ProductMetaDict:
    """Upsert the meta row, then replace its tags and category links."""

    item_id = str(item_id)
    now = utcnow()
    stmt = sqlite_insert(ProductMeta).values(
        provider=provider,
        item_id=item_id,
        memo=meta.memo,
        url=meta.url,
        rating=meta.rating,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["provider", "item_id"],
        set_={
            "memo": stmt.excluded.memo,
            "url": stmt.excluded.url,
            "rating": stmt.excluded.rating,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    session.execute(stmt)
    # The upsert bypasses the identity map; refresh any cached instance.
    session.expire_all()

    row = _meta_row(session, provider, item_id)
    if row is None:  # pragma: no cover - the upsert above guarantees a row
        raise NotFoundError(f"product meta {provider}/{item_id} vanished during save")

    session.execute(delete(ProductMetaTag).where(ProductMetaTag.meta_id == row.id))
    if meta.tags:
        session.execute(insert(ProductMetaTag), [{"meta_id": row.id, "tag": t} for t in meta.tags])

    session.execute(delete(ProductMetaCategory).where(ProductMetaCategory.meta_id == row.id))
    if meta.category_ids:
        session.execute(
            insert(ProductMetaCategory),
            [{"meta_id": row.id, "category_id": c} for c in meta.category_ids],
        )

    logger.debug(
        "saved product meta %s/%s (%d tags, %d categories)",
        provider,
        item_id,
        len(meta.tags),
        len(meta.category_ids),
    )
    return _meta_to_dict(session, row)


def delete_product_meta(session: Session, provider: str, item_id: str) -> None:
    session.execute(
        delete(ProductMeta).where(
            ProductMeta.provider == provider, ProductMeta.item_id == str(item_id)
        )
    )


def list_product_meta_summaries(session: Session, provider: str) -> list[ProductMetaSummary]:
    """One compact row per item of ``provider`` that carries any metadata."""

    tag_counts = (
        select(ProductMetaTag.meta_id, func.count().label("n"))
        .group_by(ProductMetaTag.meta_id)
        .subquery()
    )
    category_counts = (
        select(ProductMetaCategory.meta_id, func.count().label("n"))
        .group_by(ProductMetaCategory.meta_id)
        .subquery()
    )
    rows = session.execute(
        select(
            ProductMeta.item_id,
            ProductMeta.memo,
            ProductMeta.rating,
            func.coalesce(tag_counts.c.n, 0),
            func.coalesce(category_counts.c.n, 0),
        )
        .outerjoin(tag_counts, tag_counts.c.meta_id == ProductMeta.id)
        .outerjoin(category_counts, category_counts.c.meta_id == ProductMeta.id)
        .where(ProductMeta.provider == provider)
        .order_by(ProductMeta.id)
    ).all()
    # Line items are keyed by their numeric id on the GUI side.
    return [
        {
            "item_id": int(item_id) if item_id.isdecimal() else item_id,
            "has_memo": bool(memo),
            "rating": rating,
            "tag_count": int(n_tags),
            "category_count": int(n_categories),
        }
        for item_id, memo, rating, n_tags, n_categories in rows
    ]


def search_tags(session: Session, query: str, *, limit: int = 10) -> list[str]:
    """Distinct known tags containing ``query``; prefix matches sort first."""

    q = query.strip()
    if not q:
        return []
    escaped = q.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    prefix_rank = func.min(ProductMetaTag.tag.ilike(f"{escaped}%", escape="\\"))
    rows = session.execute(
        select(ProductMetaTag.tag)
        .where(ProductMetaTag.tag.ilike(f"%{escaped}%", escape="\\"))
        .group_by(ProductMetaTag.tag)
        .order_by(prefix_rank.desc(), ProductMetaTag.tag)
        .limit(limit)
    ).scalars().all()
    return list(rows)


__all__ = [
    "CategoryDict",
    "ProductMetaDict",
    "ProductMetaSummary",
    "create_category",
    "delete_category",
    "delete_product_meta",
    "get_product_meta",
    "list_categories",
    "list_product_meta_summaries",
    "save_product_meta",
    "search_tags",
]
