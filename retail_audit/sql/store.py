"""SQLite-backed store that runs the retail queries as SQL.

The database engine enforces the key constraints itself
(``PRAGMA foreign_keys = ON``); its ``IntegrityError`` is re-raised as
:class:`~retail_audit.foundation.schema.ConstraintViolation` so callers see
the same error whichever store they write to.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Sequence

import pandas as pd
import structlog

from retail_audit.analyses.queries import (
    DEFAULT_QUERY_NAMES,
    DEFAULT_TIER_THRESHOLDS,
    MONEY_COLUMNS,
    QUERY_COLUMNS,
    TierThresholds,
)
from retail_audit.foundation.schema import (
    ConstraintViolation,
    Customer,
    Invoice,
    InvoiceLine,
    Product,
    RetailDataset,
)
from retail_audit.pandas._utils import missing_to_none
from retail_audit.sql.queries import QUERIES, query_parameters
from retail_audit.sql.schema import create_schema

logger = structlog.get_logger(__name__)

# Stored without timezone so quarter labels follow the recorded wall-clock date.
SQL_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def _constraint_violation(
    exc: sqlite3.IntegrityError, *, table: str, key: Any
) -> ConstraintViolation:
    message = str(exc)
    kind = "foreign_key" if "FOREIGN KEY" in message.upper() else "primary_key"
    return ConstraintViolation(f"{table}: {message}", table=table, key=key, kind=kind)


class SqliteStore:
    """Retail tables in an SQLite database.

    Parameters
    ----------
    database:
        Path of the database file, or ``":memory:"`` (the default).

    Examples
    --------
    >>> with SqliteStore() as store:
    ...     store.load(dataset)
    ...     top_spenders = store.query("money_spent")
    """

    def __init__(self, database: str | Path = ":memory:") -> None:
        self.database = str(database)
        self._conn: sqlite3.Connection | None = None

    def __enter__(self) -> SqliteStore:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        if self._conn is not None:
            return
        conn = sqlite3.connect(self.database)
        conn.execute("PRAGMA foreign_keys = ON")
        create_schema(conn)
        self._conn = conn
        logger.debug("sqlite_store_opened", database=self.database)

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("SqliteStore is not open; use it as a context manager")
        return self._conn

    # -- writes ---------------------------------------------------------

    def _insert(self, statement: str, params: tuple, *, table: str, key: Any) -> None:
        try:
            self.connection.execute(statement, params)
        except sqlite3.IntegrityError as exc:
            raise _constraint_violation(exc, table=table, key=key) from exc

    def _write_customer(self, customer: Customer) -> None:
        self._insert(
            "INSERT INTO Customers (CustomerID, Country) VALUES (?, ?)",
            (customer.customer_id, customer.country),
            table="Customers",
            key=customer.customer_id,
        )

    def _write_product(self, product: Product) -> None:
        self._insert(
            "INSERT INTO Products (StockCode, Description, UnitPrice) VALUES (?, ?, ?)",
            (product.stock_code, product.description, str(product.unit_price)),
            table="Products",
            key=product.stock_code,
        )

    def _write_invoice(self, invoice: Invoice) -> None:
        self._insert(
            "INSERT INTO Invoices (InvoiceNo, InvoiceDate, CustomerID) VALUES (?, ?, ?)",
            (
                invoice.invoice_no,
                invoice.invoice_date.strftime(SQL_DATETIME_FORMAT),
                invoice.customer_id,
            ),
            table="Invoices",
            key=invoice.invoice_no,
        )

    def _write_invoice_line(self, line: InvoiceLine) -> None:
        self._insert(
            "INSERT INTO InvoiceDetails (InvoiceNo, StockCode, Quantity) VALUES (?, ?, ?)",
            (line.invoice_no, line.stock_code, line.quantity),
            table="InvoiceDetails",
            key=line.key,
        )

    def insert_customer(self, customer: Customer) -> None:
        with self.connection:
            self._write_customer(customer)

    def insert_product(self, product: Product) -> None:
        with self.connection:
            self._write_product(product)

    def insert_invoice(self, invoice: Invoice) -> None:
        with self.connection:
            self._write_invoice(invoice)

    def insert_invoice_line(self, line: InvoiceLine) -> None:
        with self.connection:
            self._write_invoice_line(line)

    def load(self, dataset: RetailDataset) -> None:
        """Insert every row of ``dataset`` in one transaction.

        Tables are written in foreign key order. If any row is rejected the
        whole load is rolled back and the tables keep their previous rows.
        """

        with self.connection:
            for customer in dataset.customers:
                self._write_customer(customer)
            for product in dataset.products:
                self._write_product(product)
            for invoice in dataset.invoices:
                self._write_invoice(invoice)
            for line in dataset.invoice_lines:
                self._write_invoice_line(line)
        logger.info("dataset_loaded", database=self.database, **dataset.summary())

    # -- reads ----------------------------------------------------------

    def query(
        self,
        name: str,
        thresholds: TierThresholds = DEFAULT_TIER_THRESHOLDS,
    ) -> pd.DataFrame:
        """Run the named query and return its rows as a DataFrame.

        Raises
        ------
        KeyError
            If ``name`` is not a known query.
        """

        if name not in QUERIES:
            raise KeyError(f"Unknown query: {name}")

        frame = pd.read_sql_query(
            QUERIES[name](),
            self.connection,
            params=query_parameters(name, thresholds),
        )
        columns = list(QUERY_COLUMNS[name])
        frame = frame[columns].copy()
        for column in columns:
            if column in MONEY_COLUMNS:
                frame[column] = frame[column].astype("float64").round(2)
            elif column == "CustomerID" or column == columns[-1]:
                frame[column] = frame[column].astype("int64")
            else:
                frame[column] = missing_to_none(frame[column])
        logger.debug("sql_query_completed", query=name, rows=len(frame))
        return frame

    def run_queries(
        self,
        names: Sequence[str] = DEFAULT_QUERY_NAMES,
        thresholds: TierThresholds = DEFAULT_TIER_THRESHOLDS,
    ) -> dict[str, pd.DataFrame]:
        return {name: self.query(name, thresholds) for name in names}
