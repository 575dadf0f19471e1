"""Command surface exposed to the GUI shell.

:class:`Backend` owns one :class:`~pocketbook.storage.StorageHandle`. Every
method is self-contained: it opens its own transactional scope on the
configured database and commits or rolls back before returning. Driver
``IntegrityError``s are re-raised as :class:`~pocketbook.errors.ConstraintError`
with the driver's message kept verbatim; other failures propagate unchanged.
"""

from __future__ import annotations

import os
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import timedelta
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import diagnostics, ledger, owners, payments, product_meta, search
from .errors import ConstraintError
from .logging_setup import get_logger
from .models import CoupangPaymentIn, LedgerEntryIn, NaverPaymentIn, ProductMetaIn
from .relay import Relay, RelayResponse
from .storage import DbStatus, StorageHandle

logger = get_logger("pocketbook.api")


class Backend:
    def __init__(self, storage: StorageHandle | None = None, relay: Relay | None = None) -> None:
        self.storage = storage or StorageHandle()
        self.relay = relay or Relay()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self.storage.database()
        try:
            with db.session_scope() as session:
                yield session
        except IntegrityError as e:
            logger.info("constraint violation: %s", e.orig)
            raise ConstraintError(str(e.orig)) from e

    @contextmanager
    def _ledger_session(self) -> Iterator[Session]:
        """Commit the expired-password purge, then open the operation's scope.

        The purge sticks even when the operation itself fails and rolls back.
        """

        with self._session() as s:
            ledger.purge_expired_passwords(s)
        with self._session() as s:
            yield s

    # ---- storage lifecycle ------------------------------------------------

    def status(self) -> DbStatus:
        return self.storage.status()

    def initialize(self, path: str | os.PathLike[str] | None = None) -> DbStatus:
        return self.storage.initialize(path)

    def load_existing(self, path: str | os.PathLike[str]) -> DbStatus:
        return self.storage.load_existing(path)

    def logout(self) -> None:
        self.storage.logout()

    # ---- owners + credentials --------------------------------------------

    def has_owners(self) -> bool:
        with self._session() as s:
            return owners.has_owners(s)

    def list_owners(self) -> list[owners.OwnerDict]:
        with self._session() as s:
            return owners.list_owners(s)

    def save_owner(
        self, *, provider: str, alias: str, auth_blob: str, credentials: Mapping[str, str]
    ) -> str:
        with self._session() as s:
            return owners.save_owner(
                s, provider=provider, alias=alias, auth_blob=auth_blob, credentials=credentials
            )

    def update_owner_alias(self, owner_id: str, alias: str) -> owners.OwnerDict:
        with self._session() as s:
            return owners.update_owner_alias(s, owner_id, alias=alias)

    def delete_owner(self, owner_id: str) -> None:
        with self._session() as s:
            owners.delete_owner(s, owner_id)

    def get_credentials(self, owner_id: str) -> dict[str, str]:
        with self._session() as s:
            return owners.get_credentials(s, owner_id)

    def replace_credentials(
        self, owner_id: str, *, auth_blob: str, credentials: Mapping[str, str]
    ) -> None:
        with self._session() as s:
            owners.replace_credentials(s, owner_id, auth_blob=auth_blob, credentials=credentials)

    # ---- payments ---------------------------------------------------------

    def sync_naver_payment(
        self, owner_id: str, payment: NaverPaymentIn | Mapping[str, Any]
    ) -> payments.SyncResult:
        model = NaverPaymentIn.model_validate(payment)
        with self._session() as s:
            return payments.sync_naver_payment(s, owner_id, model)

    def sync_coupang_payment(
        self, owner_id: str, payment: CoupangPaymentIn | Mapping[str, Any]
    ) -> payments.SyncResult:
        model = CoupangPaymentIn.model_validate(payment)
        with self._session() as s:
            return payments.sync_coupang_payment(s, owner_id, model)

    def list_naver_payments(
        self, owner_id: str, *, limit: int = 100, offset: int = 0
    ) -> list[dict[str, Any]]:
        with self._session() as s:
            return payments.list_payments(s, payments.NAVER, owner_id, limit=limit, offset=offset)

    def list_coupang_payments(
        self, owner_id: str, *, limit: int = 100, offset: int = 0
    ) -> list[dict[str, Any]]:
        with self._session() as s:
            return payments.list_payments(
                s, payments.COUPANG, owner_id, limit=limit, offset=offset
            )

    def latest_naver_payment(self, owner_id: str) -> payments.LatestPayment | None:
        with self._session() as s:
            return payments.latest_payment(s, payments.NAVER, owner_id)

    def latest_coupang_payment(self, owner_id: str) -> payments.LatestPayment | None:
        with self._session() as s:
            return payments.latest_payment(s, payments.COUPANG, owner_id)

    def search_products(self, query: str, *, limit: int = 50) -> search.SearchResponse:
        # A configured file that has gone missing reads as an empty catalogue.
        if not self.storage.require_path().exists():
            return {"items": [], "total": 0}
        with self._session() as s:
            return search.search_products(s, query, limit=limit)

    # ---- ledger -----------------------------------------------------------

    def create_ledger_account(
        self, nickname: str, password: str | None = None, *, ttl: timedelta | None = None
    ) -> ledger.AccountDict:
        with self._ledger_session() as s:
            return ledger.create_account(s, nickname=nickname, password=password, ttl=ttl)

    def list_ledger_accounts(self) -> list[ledger.AccountDict]:
        with self._ledger_session() as s:
            return ledger.list_accounts(s)

    def verify_ledger_password(self, account_id: str, password: str) -> bool:
        with self._ledger_session() as s:
            return ledger.verify_password(s, account_id, password)

    def update_ledger_password(
        self, account_id: str, password: str, *, ttl: timedelta | None = None
    ) -> None:
        with self._ledger_session() as s:
            ledger.update_password(s, account_id, password, ttl=ttl)

    def check_password_expiry(self) -> int:
        with self._session() as s:
            return ledger.check_password_expiry(s)

    def delete_ledger_account(self, account_id: str) -> None:
        with self._ledger_session() as s:
            ledger.delete_account(s, account_id)

    def create_ledger_entry(
        self, account_id: str, entry: LedgerEntryIn | Mapping[str, Any]
    ) -> str:
        model = LedgerEntryIn.model_validate(entry)
        with self._ledger_session() as s:
            return ledger.create_entry(s, account_id, model)

    def update_ledger_entry(self, entry_id: str, entry: LedgerEntryIn | Mapping[str, Any]) -> None:
        model = LedgerEntryIn.model_validate(entry)
        with self._ledger_session() as s:
            ledger.update_entry(s, entry_id, model)

    def delete_ledger_entry(self, entry_id: str) -> None:
        with self._ledger_session() as s:
            ledger.delete_entry(s, entry_id)

    def list_ledger_entries(self, account_id: str, year_month: str) -> list[ledger.EntryDict]:
        with self._ledger_session() as s:
            return ledger.list_entries(s, account_id, year_month)

    def get_ledger_entry(self, entry_id: str) -> ledger.EntryDict | None:
        with self._ledger_session() as s:
            return ledger.get_entry(s, entry_id)

    def list_ledger_history(self, entry_id: str) -> list[ledger.HistoryDict]:
        with self._ledger_session() as s:
            return ledger.list_history(s, entry_id)

    # ---- categories + product meta ---------------------------------------

    def list_categories(self) -> list[product_meta.CategoryDict]:
        with self._session() as s:
            return product_meta.list_categories(s)

    def create_category(self, name: str, color: str | None = None) -> product_meta.CategoryDict:
        with self._session() as s:
            return product_meta.create_category(s, name=name, color=color)

    def delete_category(self, category_id: str) -> None:
        with self._session() as s:
            product_meta.delete_category(s, category_id)

    def get_product_meta(
        self, provider: str, item_id: str | int
    ) -> product_meta.ProductMetaDict | None:
        with self._session() as s:
            return product_meta.get_product_meta(s, provider, str(item_id))

    def save_product_meta(
        self, provider: str, item_id: str | int, meta: ProductMetaIn | Mapping[str, Any]
    ) -> product_meta.ProductMetaDict:
        model = ProductMetaIn.model_validate(meta)
        with self._session() as s:
            return product_meta.save_product_meta(s, provider, str(item_id), model)

    def delete_product_meta(self, provider: str, item_id: str | int) -> None:
        with self._session() as s:
            product_meta.delete_product_meta(s, provider, str(item_id))

    def list_product_meta_summaries(self, provider: str) -> list[product_meta.ProductMetaSummary]:
        with self._session() as s:
            return product_meta.list_product_meta_summaries(s, provider)

    def search_tags(self, query: str, *, limit: int = 10) -> list[str]:
        with self._session() as s:
            return product_meta.search_tags(s, query, limit=limit)

    # ---- diagnostics ------------------------------------------------------

    def table_stats(self) -> list[diagnostics.TableStat]:
        with self._session() as s:
            return diagnostics.table_stats(s)

    def truncate_table(self, name: str) -> int:
        with self._session() as s:
            return diagnostics.truncate_table(s, name)

    def table_rows(self, name: str, *, limit: int = 50, offset: int = 0) -> diagnostics.TableRows:
        with self._session() as s:
            return diagnostics.table_rows(s, name, limit=limit, offset=offset)

    # ---- relay ------------------------------------------------------------

    def relay_request(
        self,
        url: str,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        body: str | None = None,
    ) -> RelayResponse:
        return self.relay.perform(url, method, headers, body)

    async def relay_request_async(
        self,
        url: str,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        body: str | None = None,
    ) -> RelayResponse:
        return await self.relay.perform_async(url, method, headers, body)

    def close(self) -> None:
        self.storage.close()


__all__ = ["Backend"]
