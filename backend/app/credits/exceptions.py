"""Errors raised by the dollar credits add-on."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

INVALID_AMOUNT_MESSAGE = "Not a valid integer, please try again."


class CreditError(Exception):
    """Base class for credit purchase failures."""


@dataclass
class InvalidPurchaseAmount(CreditError):
    """The submitted amount is not a strict positive integer.

    Recoverable: the purchase form is shown again with :attr:`message`.
    """

    raw_amount: str
    message: str = INVALID_AMOUNT_MESSAGE

    def __post_init__(self) -> None:
        super().__init__(self.message)


class NoEligibleProductError(CreditError):
    """No catalog product sells one dollar of credit at the configured ratio."""

    def __init__(self, credits_per_dollar: int) -> None:
        self.credits_per_dollar = credits_per_dollar
        super().__init__(
            "No product found for credit purchase: expected a one-time, variable quantity "
            f"$1.00 product granting {credits_per_dollar} credits"
        )


@dataclass
class InvoiceValidationError(CreditError):
    """The invoicing collaborator rejected the draft invoice."""

    errors: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        super().__init__("Could not create invoice: " + "; ".join(self.errors))
