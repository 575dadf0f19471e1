from __future__ import annotations

from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, Timestamped

# ---------------------------
# Reference: categories (shared taxonomy)
# ---------------------------


class Category(Timestamped, Base):
    __tablename__ = "pb_categories"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    color: Mapped[str | None] = mapped_column(String, nullable=True)


# ---------------------------
# Per scraped line item metadata
# ---------------------------


class ProductMeta(Timestamped, Base):
    __tablename__ = "pb_product_meta"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    provider: Mapped[str] = mapped_column(String, nullable=False)
    # Identifier of the line item within its provider; stored as text so both
    # numeric surrogate ids and provider item ids fit.
    item_id: Mapped[str] = mapped_column(String, nullable=False)
    memo: Mapped[str | None] = mapped_column(Text)
    url: Mapped[str | None] = mapped_column(Text)
    rating: Mapped[int | None] = mapped_column(Integer)

    __table_args__ = (
        UniqueConstraint("provider", "item_id", name="uq_pb_product_meta_provider_item"),
    )


class ProductMetaTag(Base):
    __tablename__ = "pb_product_meta_tags"

    meta_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("pb_product_meta.id", ondelete="CASCADE"), primary_key=True
    )
    tag: Mapped[str] = mapped_column(String, primary_key=True)

    __table_args__ = (Index("ix_pb_product_meta_tags_tag", "tag"),)


class ProductMetaCategory(Base):
    __tablename__ = "pb_product_meta_categories"

    meta_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("pb_product_meta.id", ondelete="CASCADE"), primary_key=True
    )
    category_id: Mapped[str] = mapped_column(
        String, ForeignKey("pb_categories.id", ondelete="CASCADE"), primary_key=True
    )


__all__ = [
    "Category",
    "ProductMeta",
    "ProductMetaTag",
    "ProductMetaCategory",
]
