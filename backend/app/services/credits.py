"""Application wiring for the dollar credits service."""
from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Mapping

from ..credits import (
    CreditController,
    CreditConversionService,
    load_credit_config,
)
from ..credits.config import SETTINGS_PREFIX
from ..credits.repository import (
    PostgresCreditLedger,
    PostgresInvoiceFactory,
    PostgresProductCatalog,
    PostgresSettingsStore,
)


logger = logging.getLogger("credits")

README = """\
Shows members their credit balance in dollars and lets them buy credit in
whole-dollar amounts.

It is recommended to disable the user links of the built-in credits feature;
the "Credits" menu entry is replaced with this page.

A product must exist with the following characteristics:
* The number of credits awarded for purchasing the item equals "Credits per dollar"
* The cost of the product is $1.00
* The product is not recurring and has no second price
* The product allows a user-defined quantity to be purchased

It is also recommended to disable the product and make it a lifetime product.
"""


def get_settings_store() -> PostgresSettingsStore:
    return PostgresSettingsStore()


def _load_stored_settings() -> Mapping[str, str]:
    store = get_settings_store()
    return store.load(SETTINGS_PREFIX)


@lru_cache(maxsize=1)
def get_credit_service() -> CreditConversionService:
    config = load_credit_config(settings=_load_stored_settings())
    service = CreditConversionService(
        config=config,
        ledger=PostgresCreditLedger(),
        catalog=PostgresProductCatalog(),
    )
    if not service.is_configured():
        logger.warning(
            "Dollar credits is not configured (credits_per_dollar=%s); balances will show as $0.00",
            config.credits_per_dollar,
        )
    return service


@lru_cache(maxsize=1)
def get_credit_controller() -> CreditController:
    invoices = PostgresInvoiceFactory(
        secret=os.getenv("INVOICE_SECURE_ID_SECRET", "dev-secret-change-me"),
        currency=os.getenv("INVOICE_CURRENCY", "USD"),
    )
    return CreditController(service=get_credit_service(), invoices=invoices)


def save_credits_per_dollar(credits_per_dollar: int) -> None:
    """Persist the conversion ratio and drop the cached service."""

    if credits_per_dollar < 1:
        raise ValueError("credits_per_dollar must be >= 1")
    get_settings_store().save(SETTINGS_PREFIX, {"credits_per_dollar": str(credits_per_dollar)})
    reset_credit_service()
    logger.info("Dollar credits ratio updated to %s credits per dollar", credits_per_dollar)


def reset_credit_service() -> None:
    get_credit_controller.cache_clear()
    get_credit_service.cache_clear()


__all__ = [
    "README",
    "get_credit_controller",
    "get_credit_service",
    "reset_credit_service",
    "save_credits_per_dollar",
]
