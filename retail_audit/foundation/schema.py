"""Retail schema records and the in-memory dataset that enforces them.

The schema mirrors a normalised online retail store with four tables:

- ``Customers``: who bought (``CustomerID``, ``Country``)
- ``Products``: what was sold (``StockCode``, ``Description``, ``UnitPrice``)
- ``Invoices``: when and by whom (``InvoiceNo``, ``InvoiceDate``, ``CustomerID``)
- ``InvoiceDetails``: how many of each product per invoice

Line value (``UnitPrice * Quantity``) is never stored; it is derived at
query time by :mod:`retail_audit.analyses.queries`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

# Prices are DECIMAL(10, 2): two fractional digits.
MONEY_PRECISION = Decimal("0.01")


class ConstraintViolation(ValueError):
    """Raised when a write breaks a primary key or foreign key constraint.

    Attributes
    ----------
    table:
        Name of the table the write targeted (e.g. ``"InvoiceDetails"``).
    key:
        The offending key value.
    kind:
        ``"primary_key"`` for duplicates, ``"foreign_key"`` for dangling
        references.
    """

    def __init__(self, message: str, *, table: str, key: Any, kind: str) -> None:
        super().__init__(message)
        self.table = table
        self.key = key
        self.kind = kind


def to_money(value: Any) -> Decimal:
    """Coerce ``value`` to a Decimal quantised to two fractional digits."""

    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise TypeError(f"Cannot interpret {value!r} as a monetary amount") from exc
    if not amount.is_finite():
        raise ValueError(f"Monetary amount must be finite: {value!r}")
    return amount.quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Customer:
    """A customer row.

    Attributes
    ----------
    customer_id:
        Unique customer identifier.
    country:
        Free-text country name; ``None`` when unknown.
    """

    customer_id: int
    country: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.customer_id, bool) or not isinstance(self.customer_id, int):
            raise TypeError(
                "customer_id must be an integer",
                {"value": self.customer_id},
            )
        if self.country is not None and not isinstance(self.country, str):
            raise TypeError(
                "country must be a string or None",
                {"customer_id": self.customer_id, "value": self.country},
            )


@dataclass(frozen=True)
class Product:
    """A product row. ``unit_price`` is normalised to two decimal places."""

    stock_code: str
    description: str | None
    unit_price: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.stock_code, str) or not self.stock_code:
            raise ValueError(
                "stock_code must be a non-empty string",
                {"value": self.stock_code},
            )
        if self.description is not None and not isinstance(self.description, str):
            raise TypeError(
                "description must be a string or None",
                {"stock_code": self.stock_code, "value": self.description},
            )
        price = to_money(self.unit_price)
        if price < 0:
            raise ValueError(
                f"Unit price cannot be negative: {price} (stock_code={self.stock_code})"
            )
        object.__setattr__(self, "unit_price", price)


@dataclass(frozen=True)
class Invoice:
    """An invoice header.

    ``customer_id`` may be ``None`` for invoices whose customer is unknown in
    the source data; such invoices only drop out of customer-driven joins.

    ``invoice_date`` is stored as naive wall-clock time: a timezone-aware
    value keeps its local date and time and drops the offset, so
    ``2023-12-31T23:30:00-05:00`` falls in 2023-Q4.
    """

    invoice_no: str
    invoice_date: datetime
    customer_id: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.invoice_no, str) or not self.invoice_no:
            raise ValueError(
                "invoice_no must be a non-empty string",
                {"value": self.invoice_no},
            )
        if not isinstance(self.invoice_date, datetime):
            raise TypeError(
                "invoice_date must be a datetime instance",
                {"invoice_no": self.invoice_no, "value": self.invoice_date},
            )
        if self.invoice_date.tzinfo is not None:
            object.__setattr__(self, "invoice_date", self.invoice_date.replace(tzinfo=None))
        if self.customer_id is not None and (
            isinstance(self.customer_id, bool) or not isinstance(self.customer_id, int)
        ):
            raise TypeError(
                "customer_id must be an integer or None",
                {"invoice_no": self.invoice_no, "value": self.customer_id},
            )


@dataclass(frozen=True)
class InvoiceLine:
    """One product on one invoice. Keyed by ``(invoice_no, stock_code)``.

    Quantity may be negative: cancellations are recorded as negative lines.
    """

    invoice_no: str
    stock_code: str
    quantity: int

    def __post_init__(self) -> None:
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise TypeError(
                "quantity must be an integer",
                {"invoice_no": self.invoice_no, "stock_code": self.stock_code},
            )

    @property
    def key(self) -> tuple[str, str]:
        return (self.invoice_no, self.stock_code)


class RetailDataset:
    """In-memory store of the four retail tables.

    Every write checks primary key uniqueness and foreign key references
    and raises :class:`ConstraintViolation` on failure, so a dataset is
    always referentially consistent. Tables keep insertion order.
    """

    def __init__(self) -> None:
        self._customers: dict[int, Customer] = {}
        self._products: dict[str, Product] = {}
        self._invoices: dict[str, Invoice] = {}
        self._lines: dict[tuple[str, str], InvoiceLine] = {}
        self._lines_by_invoice: dict[str, list[tuple[str, str]]] = {}
        self._invoices_by_customer: dict[int, list[str]] = {}

    @classmethod
    def from_records(
        cls,
        *,
        customers: Iterable[Customer] = (),
        products: Iterable[Product] = (),
        invoices: Iterable[Invoice] = (),
        invoice_lines: Iterable[InvoiceLine] = (),
    ) -> RetailDataset:
        """Build a dataset, inserting tables in foreign key order."""

        dataset = cls()
        for customer in customers:
            dataset.add_customer(customer)
        for product in products:
            dataset.add_product(product)
        for invoice in invoices:
            dataset.add_invoice(invoice)
        for line in invoice_lines:
            dataset.add_invoice_line(line)
        return dataset

    # -- writes ---------------------------------------------------------

    def add_customer(self, customer: Customer) -> None:
        if customer.customer_id in self._customers:
            raise ConstraintViolation(
                f"Duplicate CustomerID {customer.customer_id}",
                table="Customers",
                key=customer.customer_id,
                kind="primary_key",
            )
        self._customers[customer.customer_id] = customer

    def add_product(self, product: Product) -> None:
        if product.stock_code in self._products:
            raise ConstraintViolation(
                f"Duplicate StockCode {product.stock_code!r}",
                table="Products",
                key=product.stock_code,
                kind="primary_key",
            )
        self._products[product.stock_code] = product

    def add_invoice(self, invoice: Invoice) -> None:
        if invoice.invoice_no in self._invoices:
            raise ConstraintViolation(
                f"Duplicate InvoiceNo {invoice.invoice_no!r}",
                table="Invoices",
                key=invoice.invoice_no,
                kind="primary_key",
            )
        if invoice.customer_id is not None and invoice.customer_id not in self._customers:
            raise ConstraintViolation(
                f"Invoice {invoice.invoice_no!r} references unknown "
                f"CustomerID {invoice.customer_id}",
                table="Invoices",
                key=invoice.invoice_no,
                kind="foreign_key",
            )
        self._invoices[invoice.invoice_no] = invoice
        if invoice.customer_id is not None:
            self._invoices_by_customer.setdefault(invoice.customer_id, []).append(
                invoice.invoice_no
            )

    def add_invoice_line(self, line: InvoiceLine) -> None:
        if line.key in self._lines:
            raise ConstraintViolation(
                f"Duplicate line for StockCode {line.stock_code!r} on invoice "
                f"{line.invoice_no!r}; use record_purchase to add quantity",
                table="InvoiceDetails",
                key=line.key,
                kind="primary_key",
            )
        self._check_line_references(line.invoice_no, line.stock_code)
        self._lines[line.key] = line
        self._lines_by_invoice.setdefault(line.invoice_no, []).append(line.key)

    def record_purchase(self, invoice_no: str, stock_code: str, quantity: int) -> InvoiceLine:
        """Add ``quantity`` of a product to an invoice.

        Buying a product again on the same invoice increments the existing
        line rather than adding a second one. Returns the resulting line.
        """

        key = (invoice_no, stock_code)
        existing = self._lines.get(key)
        if existing is None:
            line = InvoiceLine(invoice_no=invoice_no, stock_code=stock_code, quantity=quantity)
            self.add_invoice_line(line)
            return line

        updated = replace(existing, quantity=existing.quantity + quantity)
        self._lines[key] = updated
        return updated

    def _check_line_references(self, invoice_no: str, stock_code: str) -> None:
        if invoice_no not in self._invoices:
            raise ConstraintViolation(
                f"Invoice line references unknown InvoiceNo {invoice_no!r}",
                table="InvoiceDetails",
                key=(invoice_no, stock_code),
                kind="foreign_key",
            )
        if stock_code not in self._products:
            raise ConstraintViolation(
                f"Invoice line references unknown StockCode {stock_code!r}",
                table="InvoiceDetails",
                key=(invoice_no, stock_code),
                kind="foreign_key",
            )

    # -- reads ----------------------------------------------------------

    @property
    def customers(self) -> tuple[Customer, ...]:
        return tuple(self._customers.values())

    @property
    def products(self) -> tuple[Product, ...]:
        return tuple(self._products.values())

    @property
    def invoices(self) -> tuple[Invoice, ...]:
        return tuple(self._invoices.values())

    @property
    def invoice_lines(self) -> tuple[InvoiceLine, ...]:
        return tuple(self._lines.values())

    def get_product(self, stock_code: str) -> Product:
        return self._products[stock_code]

    def invoices_for_customer(self, customer_id: int) -> list[Invoice]:
        return [
            self._invoices[invoice_no]
            for invoice_no in self._invoices_by_customer.get(customer_id, [])
        ]

    def lines_for_invoice(self, invoice_no: str) -> list[InvoiceLine]:
        return [self._lines[key] for key in self._lines_by_invoice.get(invoice_no, [])]

    def summary(self) -> dict[str, int]:
        """Row counts per table."""

        return {
            "customers": len(self._customers),
            "products": len(self._products),
            "invoices": len(self._invoices),
            "invoice_lines": len(self._lines),
        }
