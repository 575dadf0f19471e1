"""Payload models for data coming from the GUI shell.

Payloads arrive as camelCase JSON (``payId``, ``lineNo``...). Every model
accepts both camelCase aliases and snake_case field names; unknown keys are
ignored so newer scrapers do not break older backends.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def normalize_tags(tags: Iterable[str]) -> list[str]:
    """Trim, drop empties, and de-duplicate while keeping first-seen order."""

    seen: dict[str, None] = {}
    for tag in tags:
        t = " ".join(str(tag).split())
        if t:
            seen.setdefault(t, None)
    return list(seen)


# ---------------------------------------------------------------------------
# Naver Pay ("header A")
# ---------------------------------------------------------------------------


class NaverPaymentItemIn(_Payload):
    line_no: int
    product_name: str
    image_url: str | None = None
    info_url: str | None = None
    quantity: int = 1
    unit_price: int | None = None
    line_amount: int | None = None
    rest_amount: int | None = None
    memo: str | None = None


class NaverPaymentIn(_Payload):
    pay_id: str
    external_id: str | None = None
    service_type: str | None = None
    status_code: str | None = None
    status_text: str | None = None
    status_color: str | None = None
    paid_at: str
    purchaser_name: str | None = None
    merchant_no: str | None = None
    merchant_name: str
    merchant_tel: str | None = None
    merchant_url: str | None = None
    merchant_image_url: str | None = None
    merchant_payment_id: str | None = None
    sub_merchant_name: str | None = None
    sub_merchant_url: str | None = None
    sub_merchant_payment_id: str | None = None
    is_tax_type: bool | None = None
    is_oversea_transfer: bool | None = None
    product_name: str | None = None
    product_count: int | None = None
    product_detail_url: str | None = None
    order_detail_url: str | None = None
    total_amount: int
    discount_amount: int | None = None
    cup_deposit_amount: int | None = None
    rest_amount: int | None = None
    pay_easycard_amount: int | None = None
    pay_easybank_amount: int | None = None
    pay_reward_point_amount: int | None = None
    pay_charge_point_amount: int | None = None
    pay_giftcard_amount: int | None = None
    benefit_type: str | None = None
    has_plus_membership: bool | None = None
    benefit_waiting_period: int | None = None
    benefit_expected_amount: int | None = None
    benefit_amount: int | None = None
    is_membership: bool | None = None
    is_branch: bool | None = None
    is_last_subscription_round: bool | None = None
    is_cafe_safe_payment: bool | None = None
    merchant_country_code: str | None = None
    merchant_country_name: str | None = None
    application_completed: bool | None = None
    items: list[NaverPaymentItemIn] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Coupang ("header B")
# ---------------------------------------------------------------------------


class CoupangPaymentItemIn(_Payload):
    line_no: int
    product_id: str | None = None
    vendor_item_id: str | None = None
    product_name: str
    image_url: str | None = None
    info_url: str | None = None
    brand_name: str | None = None
    quantity: int = 1
    unit_price: int | None = None
    discounted_unit_price: int | None = None
    combined_unit_price: int | None = None
    line_amount: int | None = None
    rest_amount: int | None = None
    memo: str | None = None


class CoupangPaymentIn(_Payload):
    order_id: str
    external_id: str | None = None
    status_code: str | None = None
    status_text: str | None = None
    status_color: str | None = None
    ordered_at: str
    paid_at: str | None = None
    merchant_name: str
    merchant_tel: str | None = None
    merchant_url: str | None = None
    merchant_image_url: str | None = None
    product_name: str | None = None
    product_count: int | None = None
    product_detail_url: str | None = None
    order_detail_url: str | None = None
    total_amount: int
    total_order_amount: int | None = None
    total_cancel_amount: int | None = None
    discount_amount: int | None = None
    rest_amount: int | None = None
    main_pay_type: str | None = None
    pay_rocket_balance_amount: int | None = None
    pay_card_amount: int | None = None
    pay_coupon_amount: int | None = None
    pay_coupang_cash_amount: int | None = None
    pay_rocket_bank_amount: int | None = None
    wow_instant_discount: int | None = None
    reward_cash_amount: int | None = None
    items: list[CoupangPaymentItemIn] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

EntryType = Literal["income", "expense"]
Platform = Literal["offline", "online_shopping", "social", "app", "subscription", "etc"]


class LedgerEntryIn(_Payload):
    """Business fields of a ledger entry as edited by the user."""

    type: EntryType
    amount: int
    date: str
    title: str
    category: str
    platform: Platform | None = None
    url: str | None = None
    merchant: str | None = None
    payment_method: str | None = None
    memo: str | None = None
    color: str | None = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("date")
    @classmethod
    def _check_date(cls, v: str) -> str:
        v = v.strip()
        if not _DATE_RE.match(v):
            raise ValueError("date must be formatted as YYYY-MM-DD")
        return v

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, v: list[str]) -> list[str]:
        return normalize_tags(v)


# ---------------------------------------------------------------------------
# Product meta
# ---------------------------------------------------------------------------


class ProductMetaIn(_Payload):
    memo: str | None = None
    url: str | None = None
    rating: int | None = Field(default=None, ge=1, le=5)
    tags: list[str] = Field(default_factory=list)
    category_ids: list[str] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, v: list[str]) -> list[str]:
        return normalize_tags(v)

    @field_validator("category_ids")
    @classmethod
    def _dedupe_category_ids(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(c for c in v if c))


__all__ = [
    "CoupangPaymentIn",
    "CoupangPaymentItemIn",
    "LedgerEntryIn",
    "NaverPaymentIn",
    "NaverPaymentItemIn",
    "ProductMetaIn",
    "normalize_tags",
]
