"""Domain models for credit balances, the product catalog and purchases."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

ONE_DOLLAR = Decimal("1.00")


class Product(BaseModel):
    """Catalog product as exposed by the host application."""

    product_id: int
    title: str = ""
    rebill_times: int = Field(default=0, ge=0, description="Number of recurring charges, 0 for one-time")
    is_variable_qty: bool = False
    first_price: Decimal = Decimal("0")
    credit: Optional[int] = Field(default=None, description="Credits granted per unit purchased")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def is_credit_purchase(self, credits_per_dollar: int) -> bool:
        """Return ``True`` when the product sells one dollar of credit per unit."""

        return (
            self.rebill_times == 0
            and self.is_variable_qty
            and self.first_price == ONE_DOLLAR
            and self.credit == credits_per_dollar
        )


class LedgerEntry(BaseModel):
    """Single credit transaction owned by the credit ledger."""

    entry_id: int
    user_id: int
    occurred_at: datetime
    value: int
    comment: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class InvoiceLine(BaseModel):
    product: Product
    quantity: int

    @property
    def total(self) -> Decimal:
        return self.product.first_price * self.quantity

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class LedgerEntryView(BaseModel):
    """Ledger entry formatted for display."""

    occurred_at: datetime
    amount: str
    description: str = ""

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class CreditHistory(BaseModel):
    """Balance plus one page of transaction history."""

    balance: Decimal
    formatted_balance: str
    entries: List[LedgerEntryView] = Field(default_factory=list)
    page: int = 1
    page_size: int = 20
    total: int = 0

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def page_count(self) -> int:
        if self.total <= 0:
            return 1
        return (self.total + self.page_size - 1) // self.page_size


class PurchaseForm(BaseModel):
    """State of the credit purchase form."""

    amount: Optional[str] = None
    balance: Decimal
    formatted_balance: str
    validation_error: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class PurchaseRedirect(BaseModel):
    """Result of a successful purchase submission."""

    secure_id: str
    quantity: int
    redirect_url: str

    model_config = ConfigDict(populate_by_name=True, frozen=True)
