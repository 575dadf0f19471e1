"""SQLAlchemy models registry for the pocketbook database.

Grouped by concern: provider owners and their credentials, scraped payments,
the manual ledger, and product metadata/categories.
"""

from .base import Base, utcnow
from .ledger import LedgerAccount, LedgerEntry, LedgerEntryTag, LedgerHistory
from .owners import Credential, Owner
from .payments import CoupangPayment, CoupangPaymentItem, NaverPayment, NaverPaymentItem
from .product_meta import Category, ProductMeta, ProductMetaCategory, ProductMetaTag

__all__ = [
    "Base",
    "utcnow",
    "Owner",
    "Credential",
    "NaverPayment",
    "NaverPaymentItem",
    "CoupangPayment",
    "CoupangPaymentItem",
    "LedgerAccount",
    "LedgerEntry",
    "LedgerEntryTag",
    "LedgerHistory",
    "Category",
    "ProductMeta",
    "ProductMetaTag",
    "ProductMetaCategory",
]
