"""DDL for the four retail tables."""

from __future__ import annotations

import sqlite3

TABLE_NAMES = ("Customers", "Products", "Invoices", "InvoiceDetails")

CREATE_CUSTOMERS = """
CREATE TABLE IF NOT EXISTS Customers (
  CustomerID INT NOT NULL PRIMARY KEY,
  Country VARCHAR(255)
)
"""

CREATE_PRODUCTS = """
CREATE TABLE IF NOT EXISTS Products (
  StockCode VARCHAR(20) NOT NULL PRIMARY KEY,
  Description VARCHAR(255),
  UnitPrice DECIMAL(10, 2)
)
"""

CREATE_INVOICES = """
CREATE TABLE IF NOT EXISTS Invoices (
  InvoiceNo VARCHAR(20) NOT NULL PRIMARY KEY,
  InvoiceDate DATETIME,
  CustomerID INT,
  FOREIGN KEY (CustomerID) REFERENCES Customers (CustomerID)
)
"""

CREATE_INVOICE_DETAILS = """
CREATE TABLE IF NOT EXISTS InvoiceDetails (
  InvoiceNo VARCHAR(20) NOT NULL,
  StockCode VARCHAR(20) NOT NULL,
  Quantity INT,
  PRIMARY KEY (InvoiceNo, StockCode),
  FOREIGN KEY (InvoiceNo) REFERENCES Invoices (InvoiceNo),
  FOREIGN KEY (StockCode) REFERENCES Products (StockCode)
)
"""

# Referenced tables first.
SCHEMA_STATEMENTS = (
    CREATE_CUSTOMERS,
    CREATE_PRODUCTS,
    CREATE_INVOICES,
    CREATE_INVOICE_DETAILS,
)


def create_schema(conn: sqlite3.Connection) -> None:
    """Create the retail tables on ``conn`` if they do not exist yet."""

    with conn:
        for statement in SCHEMA_STATEMENTS:
            conn.execute(statement)
