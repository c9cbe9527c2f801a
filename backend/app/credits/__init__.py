"""Dollar denominated credit balances and $1 credit purchases."""

from .config import CreditConfig, load_credit_config
from .controller import CreditController, parse_purchase_amount
from .exceptions import (
    CreditError,
    InvalidPurchaseAmount,
    InvoiceValidationError,
    NoEligibleProductError,
)
from .menu import MenuEntry, build_user_menu
from .models import (
    CreditHistory,
    InvoiceLine,
    LedgerEntry,
    LedgerEntryView,
    Product,
    PurchaseForm,
    PurchaseRedirect,
)
from .service import (
    CreditConversionService,
    CreditLedger,
    CreditSettingsStore,
    InvoiceDraft,
    InvoiceFactory,
    ProductCatalog,
    format_dollar_amount,
    format_dollars,
)

__all__ = [
    "CreditConfig",
    "CreditController",
    "CreditConversionService",
    "CreditError",
    "CreditHistory",
    "CreditLedger",
    "CreditSettingsStore",
    "InvalidPurchaseAmount",
    "InvoiceDraft",
    "InvoiceFactory",
    "InvoiceLine",
    "InvoiceValidationError",
    "LedgerEntry",
    "LedgerEntryView",
    "MenuEntry",
    "NoEligibleProductError",
    "Product",
    "ProductCatalog",
    "PurchaseForm",
    "PurchaseRedirect",
    "build_user_menu",
    "format_dollar_amount",
    "format_dollars",
    "load_credit_config",
    "parse_purchase_amount",
]
