"""Member facing credit history and purchase flow."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple, Union

from .config import CreditConfig
from .exceptions import InvalidPurchaseAmount, InvoiceValidationError, NoEligibleProductError
from .models import CreditHistory, LedgerEntryView, PurchaseForm, PurchaseRedirect
from .service import (
    CreditConversionService,
    InvoiceFactory,
    credits_to_dollars,
    format_dollar_amount,
    format_dollars,
)

logger = logging.getLogger("credits")

PAYMENT_LINK_PURPOSE = "payment-link"


def parse_purchase_amount(raw_amount: str) -> int:
    """Parse a purchase quantity, accepting only canonical positive integers.

    ``"10"`` parses, while ``"10.5"``, ``"010"``, ``"+3"``, ``" 4"`` and
    ``"0"`` are rejected because they do not survive a round trip through
    :func:`int` unchanged or do not buy anything. ``"0"`` and negative
    numbers therefore get the "Not a valid integer" message rather than the
    blank form shown for an empty amount.
    """

    try:
        quantity = int(raw_amount)
    except (TypeError, ValueError) as exc:
        raise InvalidPurchaseAmount(raw_amount=str(raw_amount)) from exc
    if str(quantity) != raw_amount or quantity < 1:
        raise InvalidPurchaseAmount(raw_amount=raw_amount)
    return quantity


@dataclass
class CreditController:
    """Builds the history view and turns purchase submissions into invoices."""

    service: CreditConversionService
    invoices: InvoiceFactory

    @property
    def config(self) -> CreditConfig:
        return self.service.config

    def _formatted_balance(self, user_id: int) -> Tuple[Decimal, str]:
        balance = self.service.get_dollar_balance(user_id)
        return balance, format_dollars(balance)

    def view_history(self, user_id: int, *, page: int = 1) -> CreditHistory:
        page = max(int(page), 1)
        page_size = self.config.history_page_size
        if not self.service.is_configured():
            balance = Decimal(0)
            return CreditHistory(
                balance=balance,
                formatted_balance=format_dollars(balance),
                page=page,
                page_size=page_size,
            )

        ledger = self.service.ledger
        ratio = self.service.credits_per_dollar
        balance = credits_to_dollars(ledger.balance(user_id), ratio)
        entries = ledger.list_entries(user_id, limit=page_size, offset=(page - 1) * page_size)
        return CreditHistory(
            balance=balance,
            formatted_balance=format_dollars(balance),
            entries=[
                LedgerEntryView(
                    occurred_at=entry.occurred_at,
                    amount=format_dollar_amount(entry.value, ratio),
                    description=entry.comment or "",
                )
                for entry in entries
            ],
            page=page,
            page_size=page_size,
            total=ledger.count_entries(user_id),
        )

    def purchase_form(
        self,
        user_id: int,
        *,
        amount: Optional[str] = None,
        validation_error: Optional[str] = None,
    ) -> PurchaseForm:
        balance, formatted_balance = self._formatted_balance(user_id)
        return PurchaseForm(
            amount=amount,
            balance=balance,
            formatted_balance=formatted_balance,
            validation_error=validation_error,
        )

    def submit_purchase(self, user_id: int, raw_amount: Optional[str]) -> Union[PurchaseForm, PurchaseRedirect]:
        """Create an invoice for ``raw_amount`` dollars of credit.

        Returns the form again when nothing was submitted or the amount is not
        a valid integer. Raises :class:`NoEligibleProductError` or
        :class:`InvoiceValidationError` when billing is misconfigured; those
        are not recovered here.
        """

        if raw_amount is None or raw_amount == "":
            return self.purchase_form(user_id)

        try:
            quantity = parse_purchase_amount(raw_amount)
        except InvalidPurchaseAmount as exc:
            return self.purchase_form(user_id, amount=raw_amount, validation_error=exc.message)

        product = self.service.find_product_for_credit_purchase()
        if product is None:
            raise NoEligibleProductError(self.service.credits_per_dollar)

        invoice = self.invoices.new_invoice()
        invoice.add(product, quantity)
        invoice.set_user(user_id)
        errors = invoice.validate()
        if errors:
            raise InvoiceValidationError(errors=list(errors))

        invoice.calculate()
        invoice.insert()

        secure_id = invoice.get_secure_id(PAYMENT_LINK_PURPOSE)
        logger.info(
            "Credit invoice created user=%s product=%s quantity=%s",
            user_id,
            product.product_id,
            quantity,
        )
        return PurchaseRedirect(
            secure_id=secure_id,
            quantity=quantity,
            redirect_url=f"{self.config.pay_base_url}/pay/{secure_id}",
        )


__all__ = ["CreditController", "PAYMENT_LINK_PURPOSE", "parse_purchase_amount"]
