"""API schemas for dollar credits endpoints."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..credits import CreditHistory, MenuEntry, PurchaseForm


class LedgerEntryResponse(BaseModel):
    occurred_at: datetime = Field(alias="occurredAt")
    amount: str
    description: str = ""

    model_config = ConfigDict(populate_by_name=True)


class CreditHistoryResponse(BaseModel):
    balance: Decimal
    formatted_balance: str = Field(alias="formattedBalance")
    entries: List[LedgerEntryResponse] = Field(default_factory=list)
    page: int = 1
    page_size: int = Field(alias="pageSize", default=20)
    page_count: int = Field(alias="pageCount", default=1)
    total: int = 0

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_history(cls, history: CreditHistory) -> "CreditHistoryResponse":
        return cls(
            balance=history.balance,
            formatted_balance=history.formatted_balance,
            entries=[
                LedgerEntryResponse(
                    occurred_at=entry.occurred_at,
                    amount=entry.amount,
                    description=entry.description,
                )
                for entry in history.entries
            ],
            page=history.page,
            page_size=history.page_size,
            page_count=history.page_count,
            total=history.total,
        )


class PurchaseFormResponse(BaseModel):
    amount: Optional[str] = None
    balance: Decimal
    formatted_balance: str = Field(alias="formattedBalance")
    validation_error: Optional[str] = Field(alias="validationError", default=None)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_form(cls, form: PurchaseForm) -> "PurchaseFormResponse":
        return cls(
            amount=form.amount,
            balance=form.balance,
            formatted_balance=form.formatted_balance,
            validation_error=form.validation_error,
        )


class CreditPurchaseRequest(BaseModel):
    amount: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("amount", mode="before")
    @classmethod
    def _stringify_amount(cls, value: Any) -> Any:
        # Numbers are checked with the same strict integer rule as form input.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class MenuEntryResponse(BaseModel):
    id: str
    label: str
    path: str
    order: int = 0

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_entry(cls, entry: MenuEntry) -> "MenuEntryResponse":
        return cls(id=entry.id, label=entry.label, path=entry.path, order=entry.order)


class MenuResponse(BaseModel):
    items: List[MenuEntryResponse]

    model_config = ConfigDict(populate_by_name=True)


class CreditSettings(BaseModel):
    credits_per_dollar: int = Field(alias="creditsPerDollar", ge=0)
    configured: bool = False

    model_config = ConfigDict(populate_by_name=True)


class CreditSettingsUpdate(BaseModel):
    credits_per_dollar: int = Field(alias="creditsPerDollar", ge=1)

    model_config = ConfigDict(populate_by_name=True)


class ReadmeResponse(BaseModel):
    title: str
    text: str

    model_config = ConfigDict(populate_by_name=True)
