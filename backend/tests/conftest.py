"""In-memory collaborators for dollar credits tests."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

import pytest

from backend.app.credits import (
    CreditConfig,
    CreditController,
    CreditConversionService,
    LedgerEntry,
    Product,
)
from backend.app.credits.service import CreditLedger, InvoiceDraft, InvoiceFactory, ProductCatalog


class InMemoryCreditLedger(CreditLedger):
    def __init__(self, *, available: bool = True) -> None:
        self.available = available
        self.entries: List[LedgerEntry] = []
        self.balance_calls = 0
        self.availability_checks = 0

    def record(self, user_id: int, value: int, comment: str = "", *, occurred_at: Optional[datetime] = None) -> LedgerEntry:
        entry = LedgerEntry(
            entry_id=len(self.entries) + 1,
            user_id=user_id,
            occurred_at=occurred_at or datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(hours=len(self.entries)),
            value=value,
            comment=comment,
        )
        self.entries.append(entry)
        return entry

    def is_available(self) -> bool:
        self.availability_checks += 1
        return self.available

    def balance(self, user_id: int) -> int:
        self.balance_calls += 1
        return sum(entry.value for entry in self.entries if entry.user_id == user_id)

    def list_entries(self, user_id: int, *, limit: int, offset: int = 0) -> Sequence[LedgerEntry]:
        matching = sorted(
            (entry for entry in self.entries if entry.user_id == user_id),
            key=lambda entry: entry.occurred_at,
            reverse=True,
        )
        return matching[offset:offset + limit]

    def count_entries(self, user_id: int) -> int:
        return sum(1 for entry in self.entries if entry.user_id == user_id)


class InMemoryProductCatalog(ProductCatalog):
    def __init__(self, products: Sequence[Product] = ()) -> None:
        self.products: List[Product] = list(products)

    def list_products(self) -> Sequence[Product]:
        return list(self.products)


class FakeInvoiceDraft(InvoiceDraft):
    def __init__(self, store: "FakeInvoiceFactory") -> None:
        self._store = store
        self.lines: List[tuple] = []
        self.user_id: Optional[int] = None
        self.calculated = False
        self.inserted = False
        self.total: Optional[Decimal] = None

    def add(self, product: Product, quantity: int) -> None:
        self.lines.append((product, quantity))

    def set_user(self, user_id: int) -> None:
        self.user_id = user_id

    def validate(self) -> List[str]:
        return list(self._store.validation_errors)

    def calculate(self) -> None:
        self.calculated = True
        self.total = sum((product.first_price * quantity for product, quantity in self.lines), Decimal("0"))

    def insert(self) -> None:
        self.inserted = True
        self._store.inserted.append(self)

    def get_secure_id(self, purpose: str) -> str:
        return f"{purpose}-{len(self._store.inserted)}"


class FakeInvoiceFactory(InvoiceFactory):
    def __init__(self) -> None:
        self.drafts: List[FakeInvoiceDraft] = []
        self.inserted: List[FakeInvoiceDraft] = []
        self.validation_errors: List[str] = []

    def new_invoice(self) -> FakeInvoiceDraft:
        draft = FakeInvoiceDraft(self)
        self.drafts.append(draft)
        return draft


def make_product(product_id: int, **overrides) -> Product:
    values: Dict[str, object] = {
        "product_id": product_id,
        "title": f"Product {product_id}",
        "rebill_times": 0,
        "is_variable_qty": True,
        "first_price": Decimal("1.00"),
        "credit": 100,
    }
    values.update(overrides)
    return Product(**values)


@pytest.fixture
def product_factory():
    return make_product


@pytest.fixture
def ledger() -> InMemoryCreditLedger:
    return InMemoryCreditLedger()


@pytest.fixture
def catalog() -> InMemoryProductCatalog:
    return InMemoryProductCatalog([make_product(1)])


@pytest.fixture
def invoices() -> FakeInvoiceFactory:
    return FakeInvoiceFactory()


@pytest.fixture
def config() -> CreditConfig:
    return CreditConfig(credits_per_dollar=100, history_page_size=2)


@pytest.fixture
def service(config, ledger, catalog) -> CreditConversionService:
    return CreditConversionService(config=config, ledger=ledger, catalog=catalog)


@pytest.fixture
def controller(service, invoices) -> CreditController:
    return CreditController(service=service, invoices=invoices)
