"""Load retail datasets from JSON documents.

The document layout uses the table column names::

    {
      "customers": [{"CustomerID": 1, "Country": "US"}],
      "products": [{"StockCode": "A1", "Description": "Widget", "UnitPrice": "10.00"}],
      "invoices": [{"InvoiceNo": "INV1", "InvoiceDate": "2023-11-15T10:00:00", "CustomerID": 1}],
      "invoice_lines": [{"InvoiceNo": "INV1", "StockCode": "A1", "Quantity": 3}]
    }

Records are validated with pydantic before they reach
:class:`~retail_audit.foundation.schema.RetailDataset`, which then applies
the key constraints.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from retail_audit.foundation.schema import (
    Customer,
    Invoice,
    InvoiceLine,
    Product,
    RetailDataset,
)

logger = logging.getLogger(__name__)


MAX_INPUT_BYTES = 25 * 1024 * 1024  # 25 MiB cap to avoid accidental OOM


class _Record(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )


class CustomerRecord(_Record):
    """A ``Customers`` row as it appears in a dataset document."""

    customer_id: int = Field(alias="CustomerID")
    country: str | None = Field(default=None, alias="Country")


class ProductRecord(_Record):
    """A ``Products`` row as it appears in a dataset document."""

    stock_code: str = Field(alias="StockCode", min_length=1)
    description: str | None = Field(default=None, alias="Description")
    unit_price: Decimal = Field(alias="UnitPrice", ge=0)


class InvoiceRecord(_Record):
    """An ``Invoices`` row as it appears in a dataset document."""

    invoice_no: str = Field(alias="InvoiceNo", min_length=1)
    invoice_date: datetime = Field(alias="InvoiceDate")
    customer_id: int | None = Field(default=None, alias="CustomerID")


class InvoiceLineRecord(_Record):
    """An ``InvoiceDetails`` row as it appears in a dataset document."""

    invoice_no: str = Field(alias="InvoiceNo", min_length=1)
    stock_code: str = Field(alias="StockCode", min_length=1)
    quantity: int = Field(alias="Quantity")


class DatasetPayload(_Record):
    """Top-level dataset document."""

    customers: list[CustomerRecord] = Field(default_factory=list)
    products: list[ProductRecord] = Field(default_factory=list)
    invoices: list[InvoiceRecord] = Field(default_factory=list)
    invoice_lines: list[InvoiceLineRecord] = Field(default_factory=list)


def dataset_from_payload(payload: Mapping[str, Any]) -> RetailDataset:
    """Validate a decoded JSON document and build a dataset from it.

    Raises
    ------
    ValueError
        If any record fails validation. The second argument carries the
        pydantic error list, including the location of each bad field.
    ConstraintViolation
        If the records break a primary key or foreign key constraint.
    """

    try:
        document = DatasetPayload.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(
            "Dataset document failed validation",
            {"errors": exc.errors(include_url=False)},
        ) from exc

    return RetailDataset.from_records(
        customers=(
            Customer(customer_id=record.customer_id, country=record.country)
            for record in document.customers
        ),
        products=(
            Product(
                stock_code=record.stock_code,
                description=record.description,
                unit_price=record.unit_price,
            )
            for record in document.products
        ),
        invoices=(
            Invoice(
                invoice_no=record.invoice_no,
                invoice_date=record.invoice_date,
                customer_id=record.customer_id,
            )
            for record in document.invoices
        ),
        invoice_lines=(
            InvoiceLine(
                invoice_no=record.invoice_no,
                stock_code=record.stock_code,
                quantity=record.quantity,
            )
            for record in document.invoice_lines
        ),
    )


def dataset_to_payload(dataset: RetailDataset) -> dict[str, Any]:
    """Return a JSON-serialisable document for ``dataset``.

    Prices are emitted as strings so they survive a round trip exactly.
    """

    document = DatasetPayload(
        customers=[
            CustomerRecord(customer_id=c.customer_id, country=c.country)
            for c in dataset.customers
        ],
        products=[
            ProductRecord(
                stock_code=p.stock_code,
                description=p.description,
                unit_price=p.unit_price,
            )
            for p in dataset.products
        ],
        invoices=[
            InvoiceRecord(
                invoice_no=i.invoice_no,
                invoice_date=i.invoice_date,
                customer_id=i.customer_id,
            )
            for i in dataset.invoices
        ],
        invoice_lines=[
            InvoiceLineRecord(
                invoice_no=line.invoice_no,
                stock_code=line.stock_code,
                quantity=line.quantity,
            )
            for line in dataset.invoice_lines
        ],
    )
    return document.model_dump(mode="json", by_alias=True)


def load_dataset(path: Path) -> RetailDataset:
    """Read a dataset document from ``path``."""

    resolved = Path(path).resolve()
    size = resolved.stat().st_size
    if size > MAX_INPUT_BYTES:
        raise ValueError(
            f"Input file {resolved} is {size} bytes; exceeds limit of {MAX_INPUT_BYTES} bytes"
        )
    with resolved.open("r", encoding="utf-8") as fh:
        try:
            payload = json.load(fh)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in dataset file {resolved}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Expected a JSON object with customers/products/invoices/invoice_lines")

    dataset = dataset_from_payload(payload)
    logger.info(f"Loaded dataset from {resolved}: {dataset.summary()}")
    return dataset
