"""Foundational building blocks for retail analytics.

This package exposes the four-table retail schema, the in-memory dataset
that enforces its key constraints, and loaders for dataset documents.
"""

from .loader import (
    DatasetPayload,
    dataset_from_payload,
    dataset_to_payload,
    load_dataset,
)
from .schema import (
    MONEY_PRECISION,
    ConstraintViolation,
    Customer,
    Invoice,
    InvoiceLine,
    Product,
    RetailDataset,
    to_money,
)

__all__ = [
    "MONEY_PRECISION",
    "ConstraintViolation",
    "Customer",
    "DatasetPayload",
    "Invoice",
    "InvoiceLine",
    "Product",
    "RetailDataset",
    "dataset_from_payload",
    "dataset_to_payload",
    "load_dataset",
    "to_money",
]
