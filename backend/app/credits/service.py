"""Credit to dollar conversion and credit product lookup."""
from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Mapping, Optional, Protocol, Sequence

from .config import CreditConfig
from .models import LedgerEntry, Product

logger = logging.getLogger("credits")

_CENT = Decimal("0.01")


class CreditLedger(Protocol):
    """Read access to the host application's credit ledger."""

    def is_available(self) -> bool:
        """Return ``True`` when the ledger can be queried."""

    def balance(self, user_id: int) -> int:
        """Return the user's current balance in credits."""

    def list_entries(self, user_id: int, *, limit: int, offset: int = 0) -> Sequence[LedgerEntry]:
        """Return ledger entries for a user, newest first."""

    def count_entries(self, user_id: int) -> int:
        ...


class ProductCatalog(Protocol):
    """Enumerates purchasable products in their natural (primary key) order."""

    def list_products(self) -> Sequence[Product]:
        ...


class InvoiceDraft(Protocol):
    """Invoice under construction inside the host invoicing subsystem."""

    def add(self, product: Product, quantity: int) -> None:
        ...

    def set_user(self, user_id: int) -> None:
        ...

    def validate(self) -> List[str]:
        """Return validation errors, empty when the invoice can be saved."""

    def calculate(self) -> None:
        ...

    def insert(self) -> None:
        ...

    def get_secure_id(self, purpose: str) -> str:
        """Return an opaque token identifying the saved invoice for ``purpose``."""


class InvoiceFactory(Protocol):
    def new_invoice(self) -> InvoiceDraft:
        ...


class CreditSettingsStore(Protocol):
    """Persists add-on settings under a key prefix."""

    def load(self, prefix: str) -> Mapping[str, str]:
        ...

    def save(self, prefix: str, values: Mapping[str, str]) -> None:
        ...


def credits_to_dollars(value: int, credits_per_dollar: int) -> Decimal:
    return Decimal(int(value)) / Decimal(int(credits_per_dollar))


def format_dollar_amount(value: int, credits_per_dollar: int) -> str:
    """Format a credit amount as dollars, e.g. ``250`` at 100/$ is ``$2.50``."""

    dollars = credits_to_dollars(value, credits_per_dollar)
    return format_dollars(dollars)


def format_dollars(dollars: Decimal) -> str:
    rounded = Decimal(dollars).quantize(_CENT, rounding=ROUND_HALF_UP)
    if rounded < 0:
        return f"-${-rounded}"
    return f"${abs(rounded)}"  # drops the sign of -0.00


_dataclass_kwargs = {"slots": True} if sys.version_info >= (3, 10) else {}


@dataclass(**_dataclass_kwargs)
class CreditConversionService:
    """Converts ledger balances to dollars and finds the credit product."""

    config: CreditConfig
    ledger: Optional[CreditLedger]
    catalog: ProductCatalog

    @property
    def credits_per_dollar(self) -> int:
        return self.config.credits_per_dollar

    def is_configured(self) -> bool:
        if not self.config.has_ratio:
            return False
        return self.ledger is not None and self.ledger.is_available()

    def get_dollar_balance(self, user_id: int) -> Decimal:
        """Return the user's balance in dollars, ``0`` when not configured."""

        if not self.is_configured():
            return Decimal(0)
        return credits_to_dollars(self.ledger.balance(user_id), self.credits_per_dollar)

    def find_product_for_credit_purchase(self) -> Optional[Product]:
        """Return the first product that sells one dollar of credit.

        The product must grant ``credits_per_dollar`` credits, cost $1.00,
        not be recurring and allow the quantity to be chosen by the member.
        """

        if not self.is_configured():
            return None

        products = self.catalog.list_products()
        for product in products:
            if product.is_credit_purchase(self.credits_per_dollar):
                logger.debug("Credit product %s selected from %s products", product.product_id, len(products))
                return product

        logger.warning(
            "No product grants %s credits for $1.00; credit purchases are unavailable",
            self.credits_per_dollar,
        )
        return None


__all__ = [
    "CreditConversionService",
    "CreditLedger",
    "CreditSettingsStore",
    "InvoiceDraft",
    "InvoiceFactory",
    "ProductCatalog",
    "credits_to_dollars",
    "format_dollar_amount",
    "format_dollars",
]
