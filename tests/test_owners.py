from __future__ import annotations

import pytest
from sqlalchemy import func, select

from pocketbook import owners, payments
from pocketbook.errors import NotFoundError
from pocketbook.models import CoupangPaymentIn, NaverPaymentIn
from pocketbook_db.client import Database
from pocketbook_db.models import (
    CoupangPayment,
    CoupangPaymentItem,
    Credential,
    NaverPayment,
    NaverPaymentItem,
)
from tests.helpers.payloads import coupang_order, naver_payment


def _counts_for(db: Database, owner_id: str) -> dict[str, int]:
    with db.session_scope() as s:
        return {
            "credentials": s.scalar(
                select(func.count()).select_from(Credential).where(Credential.owner_id == owner_id)
            ),
            "naver": s.scalar(
                select(func.count())
                .select_from(NaverPayment)
                .where(NaverPayment.owner_id == owner_id)
            ),
            "naver_items": s.scalar(
                select(func.count())
                .select_from(NaverPaymentItem)
                .join(NaverPayment, NaverPaymentItem.payment_id == NaverPayment.id)
                .where(NaverPayment.owner_id == owner_id)
            ),
            "coupang": s.scalar(
                select(func.count())
                .select_from(CoupangPayment)
                .where(CoupangPayment.owner_id == owner_id)
            ),
            "coupang_items": s.scalar(
                select(func.count())
                .select_from(CoupangPaymentItem)
                .join(CoupangPayment, CoupangPaymentItem.payment_id == CoupangPayment.id)
                .where(CoupangPayment.owner_id == owner_id)
            ),
        }


def _seed_owner(db: Database, alias: str) -> str:
    with db.session_scope() as s:
        owner_id = owners.save_owner(
            s,
            provider="naver",
            alias=alias,
            auth_blob="cookie-jar",
            credentials={"NID_AUT": f"{alias}-aut", "NID_SES": f"{alias}-ses"},
        )
        payments.sync_naver_payment(
            s, owner_id, NaverPaymentIn.model_validate(naver_payment("SAME", n_items=2))
        )
        payments.sync_coupang_payment(
            s, owner_id, CoupangPaymentIn.model_validate(coupang_order("SAME", n_items=3))
        )
    return owner_id


def test_delete_owner_cascades_only_its_rows(db: Database) -> None:
    doomed = _seed_owner(db, "doomed")
    kept = _seed_owner(db, "kept")
    kept_before = _counts_for(db, kept)

    with db.session_scope() as s:
        owners.delete_owner(s, doomed)

    assert _counts_for(db, doomed) == {
        "credentials": 0,
        "naver": 0,
        "naver_items": 0,
        "coupang": 0,
        "coupang_items": 0,
    }
    assert _counts_for(db, kept) == kept_before
    assert kept_before == {
        "credentials": 2,
        "naver": 1,
        "naver_items": 2,
        "coupang": 1,
        "coupang_items": 3,
    }


def test_replace_credentials_swaps_whole_set(db: Database) -> None:
    owner_id = _seed_owner(db, "me")

    with db.session_scope() as s:
        owners.replace_credentials(s, owner_id, auth_blob="fresh", credentials={"token": "t1"})

    with db.session_scope() as s:
        assert owners.get_credentials(s, owner_id) == {"token": "t1"}
        assert owners.get_owner(s, owner_id).auth_blob == "fresh"


def test_replace_credentials_for_missing_owner(db: Database) -> None:
    with pytest.raises(NotFoundError):
        with db.session_scope() as s:
            owners.replace_credentials(s, "nobody", auth_blob="", credentials={"a": "b"})


def test_list_and_rename_owners(db: Database) -> None:
    with db.session_scope() as s:
        assert owners.has_owners(s) is False
        first = owners.save_owner(s, provider="naver", alias="one", auth_blob="", credentials={})
    with db.session_scope() as s:
        owners.save_owner(s, provider="coupang", alias="two", auth_blob="", credentials={})

    with db.session_scope() as s:
        assert owners.has_owners(s) is True
        assert {o["alias"] for o in owners.list_owners(s)} == {"one", "two"}
        renamed = owners.update_owner_alias(s, first, alias="uno")

    assert renamed["alias"] == "uno"
    with pytest.raises(NotFoundError):
        with db.session_scope() as s:
            owners.update_owner_alias(s, "missing", alias="x")
