"""Scraped payment headers and line items for the two supported providers.

Each provider gets its own header/item table pair because the record shapes
share little beyond amounts and merchant names:

- Naver Pay headers (``pb_naver_payments``) carry a wide set of optional
  payment-method and benefit attributes.
- Coupang orders (``pb_coupang_payments``) are narrower but gained several
  columns after the first release; those are listed in
  :data:`pocketbook_db.schema.ADDITIVE_COLUMNS` so older files get them too.

Headers are unique per ``(owner_id, external key)``; items are unique per
``(payment_id, line_no)`` where ``payment_id`` is the header's surrogate id.
"""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, Timestamped

# ---------------------------
# Naver Pay
# ---------------------------


class NaverPayment(Timestamped, Base):
    __tablename__ = "pb_naver_payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(
        String, ForeignKey("pb_owners.id", ondelete="CASCADE"), nullable=False
    )
    pay_id: Mapped[str] = mapped_column(String, nullable=False)
    external_id: Mapped[str | None] = mapped_column(String)
    service_type: Mapped[str | None] = mapped_column(String)
    status_code: Mapped[str | None] = mapped_column(String)
    status_text: Mapped[str | None] = mapped_column(String)
    status_color: Mapped[str | None] = mapped_column(String)
    paid_at: Mapped[str] = mapped_column(String, nullable=False)
    purchaser_name: Mapped[str | None] = mapped_column(String)
    merchant_no: Mapped[str | None] = mapped_column(String)
    merchant_name: Mapped[str] = mapped_column(Text, nullable=False)
    merchant_tel: Mapped[str | None] = mapped_column(String)
    merchant_url: Mapped[str | None] = mapped_column(Text)
    merchant_image_url: Mapped[str | None] = mapped_column(Text)
    merchant_payment_id: Mapped[str | None] = mapped_column(String)
    sub_merchant_name: Mapped[str | None] = mapped_column(Text)
    sub_merchant_url: Mapped[str | None] = mapped_column(Text)
    sub_merchant_payment_id: Mapped[str | None] = mapped_column(String)
    is_tax_type: Mapped[bool | None] = mapped_column(Boolean)
    is_oversea_transfer: Mapped[bool | None] = mapped_column(Boolean)
    product_name: Mapped[str | None] = mapped_column(Text)
    product_count: Mapped[int | None] = mapped_column(Integer)
    product_detail_url: Mapped[str | None] = mapped_column(Text)
    order_detail_url: Mapped[str | None] = mapped_column(Text)
    total_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    discount_amount: Mapped[int | None] = mapped_column(Integer, server_default=text("0"))
    cup_deposit_amount: Mapped[int | None] = mapped_column(Integer, server_default=text("0"))
    rest_amount: Mapped[int | None] = mapped_column(Integer)
    pay_easycard_amount: Mapped[int | None] = mapped_column(Integer, server_default=text("0"))
    pay_easybank_amount: Mapped[int | None] = mapped_column(Integer, server_default=text("0"))
    pay_reward_point_amount: Mapped[int | None] = mapped_column(
        Integer, server_default=text("0")
    )
    pay_charge_point_amount: Mapped[int | None] = mapped_column(
        Integer, server_default=text("0")
    )
    pay_giftcard_amount: Mapped[int | None] = mapped_column(Integer, server_default=text("0"))
    benefit_type: Mapped[str | None] = mapped_column(String)
    has_plus_membership: Mapped[bool | None] = mapped_column(Boolean)
    benefit_waiting_period: Mapped[int | None] = mapped_column(Integer)
    benefit_expected_amount: Mapped[int | None] = mapped_column(
        Integer, server_default=text("0")
    )
    benefit_amount: Mapped[int | None] = mapped_column(Integer, server_default=text("0"))
    is_membership: Mapped[bool | None] = mapped_column(Boolean)
    is_branch: Mapped[bool | None] = mapped_column(Boolean)
    is_last_subscription_round: Mapped[bool | None] = mapped_column(Boolean)
    is_cafe_safe_payment: Mapped[bool | None] = mapped_column(Boolean)
    merchant_country_code: Mapped[str | None] = mapped_column(String)
    merchant_country_name: Mapped[str | None] = mapped_column(String)
    application_completed: Mapped[bool | None] = mapped_column(Boolean)

    __table_args__ = (
        UniqueConstraint("owner_id", "pay_id", name="uq_pb_naver_payments_owner_pay_id"),
        Index("ix_pb_naver_payments_owner_id", "owner_id"),
        Index("ix_pb_naver_payments_paid_at", "paid_at"),
    )


class NaverPaymentItem(Timestamped, Base):
    __tablename__ = "pb_naver_payment_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    payment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("pb_naver_payments.id", ondelete="CASCADE"), nullable=False
    )
    line_no: Mapped[int] = mapped_column(Integer, nullable=False)
    product_name: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str | None] = mapped_column(Text)
    info_url: Mapped[str | None] = mapped_column(Text)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("1"))
    unit_price: Mapped[int | None] = mapped_column(Integer)
    line_amount: Mapped[int | None] = mapped_column(Integer)
    rest_amount: Mapped[int | None] = mapped_column(Integer)
    memo: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        UniqueConstraint("payment_id", "line_no", name="uq_pb_naver_payment_items_payment_line"),
    )


# ---------------------------
# Coupang
# ---------------------------


class CoupangPayment(Timestamped, Base):
    __tablename__ = "pb_coupang_payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(
        String, ForeignKey("pb_owners.id", ondelete="CASCADE"), nullable=False
    )
    order_id: Mapped[str] = mapped_column(String, nullable=False)
    external_id: Mapped[str | None] = mapped_column(String)
    status_code: Mapped[str | None] = mapped_column(String)
    status_text: Mapped[str | None] = mapped_column(String)
    status_color: Mapped[str | None] = mapped_column(String)
    ordered_at: Mapped[str] = mapped_column(String, nullable=False)
    merchant_name: Mapped[str] = mapped_column(Text, nullable=False)
    merchant_tel: Mapped[str | None] = mapped_column(String)
    merchant_url: Mapped[str | None] = mapped_column(Text)
    merchant_image_url: Mapped[str | None] = mapped_column(Text)
    product_name: Mapped[str | None] = mapped_column(Text)
    product_count: Mapped[int | None] = mapped_column(Integer)
    product_detail_url: Mapped[str | None] = mapped_column(Text)
    order_detail_url: Mapped[str | None] = mapped_column(Text)
    total_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    discount_amount: Mapped[int | None] = mapped_column(Integer, server_default=text("0"))
    rest_amount: Mapped[int | None] = mapped_column(Integer)
    # Added after the first release; kept in sync with schema.ADDITIVE_COLUMNS.
    paid_at: Mapped[str | None] = mapped_column(String)
    total_order_amount: Mapped[int | None] = mapped_column(Integer)
    total_cancel_amount: Mapped[int | None] = mapped_column(Integer, server_default=text("0"))
    main_pay_type: Mapped[str | None] = mapped_column(String)
    pay_rocket_balance_amount: Mapped[int | None] = mapped_column(
        Integer, server_default=text("0")
    )
    pay_card_amount: Mapped[int | None] = mapped_column(Integer, server_default=text("0"))
    pay_coupon_amount: Mapped[int | None] = mapped_column(Integer, server_default=text("0"))
    pay_coupang_cash_amount: Mapped[int | None] = mapped_column(
        Integer, server_default=text("0")
    )
    pay_rocket_bank_amount: Mapped[int | None] = mapped_column(
        Integer, server_default=text("0")
    )
    wow_instant_discount: Mapped[int | None] = mapped_column(Integer, server_default=text("0"))
    reward_cash_amount: Mapped[int | None] = mapped_column(Integer, server_default=text("0"))

    __table_args__ = (
        UniqueConstraint("owner_id", "order_id", name="uq_pb_coupang_payments_owner_order_id"),
        Index("ix_pb_coupang_payments_owner_id", "owner_id"),
        Index("ix_pb_coupang_payments_ordered_at", "ordered_at"),
    )


class CoupangPaymentItem(Timestamped, Base):
    __tablename__ = "pb_coupang_payment_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    payment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("pb_coupang_payments.id", ondelete="CASCADE"), nullable=False
    )
    line_no: Mapped[int] = mapped_column(Integer, nullable=False)
    product_name: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str | None] = mapped_column(Text)
    info_url: Mapped[str | None] = mapped_column(Text)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("1"))
    unit_price: Mapped[int | None] = mapped_column(Integer)
    line_amount: Mapped[int | None] = mapped_column(Integer)
    rest_amount: Mapped[int | None] = mapped_column(Integer)
    memo: Mapped[str | None] = mapped_column(Text)
    # Added after the first release; kept in sync with schema.ADDITIVE_COLUMNS.
    product_id: Mapped[str | None] = mapped_column(String)
    vendor_item_id: Mapped[str | None] = mapped_column(String)
    brand_name: Mapped[str | None] = mapped_column(String)
    discounted_unit_price: Mapped[int | None] = mapped_column(Integer)
    combined_unit_price: Mapped[int | None] = mapped_column(Integer)

    __table_args__ = (
        UniqueConstraint(
            "payment_id", "line_no", name="uq_pb_coupang_payment_items_payment_line"
        ),
    )


__all__ = [
    "NaverPayment",
    "NaverPaymentItem",
    "CoupangPayment",
    "CoupangPaymentItem",
]
