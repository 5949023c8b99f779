from datetime import datetime
from decimal import Decimal

import pytest

from retail_audit.foundation import (
    Customer,
    Invoice,
    InvoiceLine,
    Product,
    RetailDataset,
)


@pytest.fixture
def sample_dataset():
    """Small dataset covering every join edge case.

    - Customer 3 has no country and an invoice without lines.
    - Customer 4 has no invoices.
    - INV5 has no customer.
    - Products A1 and C3 share the description "Widget"; D4 has none;
      E5 was never sold.
    """
    return RetailDataset.from_records(
        customers=[
            Customer(1, "US"),
            Customer(2, "UK"),
            Customer(3, None),
            Customer(4, "US"),
        ],
        products=[
            Product("A1", "Widget", Decimal("10.00")),
            Product("B2", "Gadget", Decimal("2.55")),
            Product("C3", "Widget", Decimal("5.00")),
            Product("D4", None, Decimal("1.00")),
            Product("E5", "Unsold", Decimal("99.99")),
        ],
        invoices=[
            Invoice("INV1", datetime(2023, 11, 15, 10, 30), 1),
            Invoice("INV2", datetime(2023, 2, 1, 9, 0), 1),
            Invoice("INV3", datetime(2023, 5, 20, 14, 0), 2),
            Invoice("INV4", datetime(2023, 8, 8, 16, 45), 3),
            Invoice("INV5", datetime(2023, 12, 24, 11, 0), None),
        ],
        invoice_lines=[
            InvoiceLine("INV1", "A1", 3),
            InvoiceLine("INV1", "B2", 4),
            InvoiceLine("INV2", "C3", 10),
            InvoiceLine("INV3", "A1", 50),
            InvoiceLine("INV3", "D4", 2),
            InvoiceLine("INV5", "B2", 100),
        ],
    )


@pytest.fixture
def minimal_dataset():
    """One customer buying three widgets on 2023-11-15."""
    return RetailDataset.from_records(
        customers=[Customer(1, "US")],
        products=[Product("A1", "Widget", Decimal("10.00"))],
        invoices=[Invoice("INV1", datetime(2023, 11, 15), 1)],
        invoice_lines=[InvoiceLine("INV1", "A1", 3)],
    )
