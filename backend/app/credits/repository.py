"""PostgreSQL adapters for the host ledger, catalog, invoicing and settings tables."""
from __future__ import annotations

import hashlib
import logging
import secrets
from contextlib import contextmanager
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import psycopg2
import psycopg2.extras
from psycopg2.extensions import connection as PgConnection
from psycopg2.extensions import cursor as PgCursor

from .models import InvoiceLine, LedgerEntry, Product

try:  # pragma: no cover - resolve connection helper when imported from FastAPI app
    from backend.app_context import get_conn
except ModuleNotFoundError as exc:  # pragma: no cover
    if exc.name != "backend":
        raise
    from ...app_context import get_conn  # type: ignore[no-redef]

logger = logging.getLogger("credits")

_CENT = Decimal("0.01")


@contextmanager
def managed_connection(conn: Optional[PgConnection] = None):
    """Context manager that manages transaction boundaries for optional connections."""

    if conn is not None:
        yield conn, False
        return

    connection = get_conn()
    try:
        yield connection, True
        connection.commit()
    except Exception:
        connection.rollback()
        raise
    finally:
        connection.close()


def _row_to_ledger_entry(row: dict) -> LedgerEntry:
    return LedgerEntry(
        entry_id=int(row["credit_id"]),
        user_id=int(row["user_id"]),
        occurred_at=row["dattm"],
        value=int(row["value"]),
        comment=row.get("comment"),
    )


def _row_to_product(row: dict) -> Product:
    data = row.get("data") or {}
    credit = data.get("credit")
    if credit in (None, ""):
        credit = None
    else:
        try:
            credit = int(credit)
        except (TypeError, ValueError):
            # Hand-edited product data; such a product simply awards no credit.
            logger.debug("Ignoring non-integer credit %r on product %s", credit, row.get("product_id"))
            credit = None
    return Product(
        product_id=int(row["product_id"]),
        title=row.get("title") or "",
        rebill_times=int(row.get("rebill_times") or 0),
        is_variable_qty=bool(row.get("variable_qty")),
        first_price=Decimal(row.get("first_price") or 0),
        credit=credit,
    )


class _PostgresStore:
    def __init__(self, *, conn: Optional[PgConnection] = None) -> None:
        self._conn = conn

    @contextmanager
    def _cursor(self) -> Iterable[PgCursor]:
        with managed_connection(self._conn) as (connection, managed):
            cursor = connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            try:
                yield cursor
                if managed:
                    connection.commit()
            except Exception:
                if managed:
                    connection.rollback()
                raise
            finally:
                cursor.close()


class PostgresCreditLedger(_PostgresStore):
    """Reads the ``credit`` table maintained by the host credits feature."""

    def is_available(self) -> bool:
        with self._cursor() as cursor:
            cursor.execute("SELECT to_regclass('public.credit') IS NOT NULL AS available")
            row = cursor.fetchone()
            return bool(row and row["available"])

    def balance(self, user_id: int) -> int:
        with self._cursor() as cursor:
            cursor.execute(
                "SELECT COALESCE(SUM(value), 0) AS balance FROM credit WHERE user_id = %s",
                (user_id,),
            )
            row = cursor.fetchone()
            return int(row["balance"]) if row else 0

    def list_entries(self, user_id: int, *, limit: int, offset: int = 0) -> Sequence[LedgerEntry]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT credit_id, user_id, dattm, value, comment
                FROM credit
                WHERE user_id = %s
                ORDER BY dattm DESC, credit_id DESC
                LIMIT %s OFFSET %s
                """,
                (user_id, limit, offset),
            )
            rows = cursor.fetchall()
            return [_row_to_ledger_entry(row) for row in rows]

    def count_entries(self, user_id: int) -> int:
        with self._cursor() as cursor:
            cursor.execute("SELECT COUNT(*) AS total FROM credit WHERE user_id = %s", (user_id,))
            row = cursor.fetchone()
            return int(row["total"]) if row else 0


class PostgresProductCatalog(_PostgresStore):
    """Lists rows of the ``product`` table in primary key order."""

    def list_products(self) -> Sequence[Product]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT product_id, title, rebill_times, variable_qty, first_price, data
                FROM product
                ORDER BY product_id
                """
            )
            rows = cursor.fetchall()
            return [_row_to_product(row) for row in rows]


class PostgresInvoiceDraft(_PostgresStore):
    """Invoice being assembled before it is written to ``invoice``/``invoice_item``."""

    def __init__(self, *, secret: str, currency: str = "USD", conn: Optional[PgConnection] = None) -> None:
        super().__init__(conn=conn)
        self._secret = secret
        self.currency = currency
        self.lines: List[InvoiceLine] = []
        self.user_id: Optional[int] = None
        self.total: Optional[Decimal] = None
        self.invoice_id: Optional[int] = None
        self.public_id: Optional[str] = None

    def add(self, product: Product, quantity: int) -> None:
        self.lines.append(InvoiceLine(product=product, quantity=quantity))

    def set_user(self, user_id: int) -> None:
        self.user_id = user_id

    def validate(self) -> List[str]:
        errors: List[str] = []
        if not self.lines:
            errors.append("Invoice has no items")
        for line in self.lines:
            if line.quantity < 1:
                errors.append(f"Quantity for product {line.product.product_id} must be at least 1")
            elif line.quantity > 1 and not line.product.is_variable_qty:
                errors.append(f"Product {line.product.product_id} does not allow a custom quantity")
        if self.user_id is None:
            errors.append("Invoice has no user")
        else:
            with self._cursor() as cursor:
                cursor.execute("SELECT 1 FROM users WHERE id = %s", (self.user_id,))
                if cursor.fetchone() is None:
                    errors.append(f"User {self.user_id} does not exist")
        return errors

    def calculate(self) -> None:
        total = sum((line.total for line in self.lines), Decimal("0"))
        self.total = total.quantize(_CENT)

    def insert(self) -> None:
        if self.total is None:
            self.calculate()
        public_id = secrets.token_hex(16)
        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO invoice (public_id, user_id, currency, first_total, status)
                VALUES (%s, %s, %s, %s, 'pending')
                RETURNING invoice_id
                """,
                (public_id, self.user_id, self.currency, self.total),
            )
            row = cursor.fetchone()
            if not row:
                raise RuntimeError("Failed to persist invoice")
            invoice_id = int(row["invoice_id"])
            for line in self.lines:
                cursor.execute(
                    """
                    INSERT INTO invoice_item (invoice_id, product_id, qty, first_price, first_total)
                    VALUES (%s, %s, %s, %s, %s)
                    """,
                    (invoice_id, line.product.product_id, line.quantity, line.product.first_price, line.total),
                )
        self.invoice_id = invoice_id
        self.public_id = public_id

    def get_secure_id(self, purpose: str) -> str:
        if self.public_id is None:
            raise RuntimeError("Invoice must be inserted before requesting a secure id")
        digest = hashlib.sha256(f"{self._secret}:{purpose}:{self.public_id}".encode("utf-8")).hexdigest()
        return f"{self.public_id}-{digest[:16]}"


class PostgresInvoiceFactory:
    def __init__(self, *, secret: str, currency: str = "USD", conn: Optional[PgConnection] = None) -> None:
        self._secret = secret
        self._currency = currency
        self._conn = conn

    def new_invoice(self) -> PostgresInvoiceDraft:
        return PostgresInvoiceDraft(secret=self._secret, currency=self._currency, conn=self._conn)


class PostgresSettingsStore(_PostgresStore):
    """Key/value settings saved from the admin settings form."""

    def load(self, prefix: str) -> Mapping[str, str]:
        with self._cursor() as cursor:
            cursor.execute(
                "SELECT key, value FROM plugin_settings WHERE key LIKE %s ORDER BY key",
                (prefix + "%",),
            )
            rows = cursor.fetchall()
            settings: Dict[str, str] = {row["key"]: row["value"] for row in rows}
            return settings

    def save(self, prefix: str, values: Mapping[str, str]) -> None:
        with self._cursor() as cursor:
            for key, value in values.items():
                cursor.execute(
                    """
                    INSERT INTO plugin_settings (key, value)
                    VALUES (%s, %s)
                    ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value
                    """,
                    (prefix + key, str(value)),
                )
