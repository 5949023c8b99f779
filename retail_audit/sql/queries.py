"""SQL text for the retail queries.

Each builder returns a statement for the schema in
:mod:`retail_audit.sql.schema`. Sums are wrapped in ``COALESCE(..., 0)`` so
an empty group reports zero, and every ``ORDER BY`` ends with the group
keys (NULLs last) so ties come back in a fixed order.
"""

from __future__ import annotations

from typing import Any, Callable

from retail_audit.analyses.queries import DEFAULT_TIER_THRESHOLDS, TierThresholds

# Calendar quarter label, e.g. '2023-Q4'. NULL dates give NULL.
QUARTER_EXPR = (
    "strftime('%Y', i.InvoiceDate) || '-Q' || "
    "((CAST(strftime('%m', i.InvoiceDate) AS INTEGER) + 2) / 3)"
)


def q_money_spent() -> str:
    return """
    SELECT
      c.CustomerID,
      ROUND(COALESCE(SUM(p.UnitPrice * d.Quantity), 0), 2) AS money_spent
    FROM Customers c
    LEFT JOIN Invoices i ON c.CustomerID = i.CustomerID
    LEFT JOIN InvoiceDetails d ON i.InvoiceNo = d.InvoiceNo
    LEFT JOIN Products p ON d.StockCode = p.StockCode
    GROUP BY c.CustomerID
    ORDER BY money_spent DESC, c.CustomerID
    """


def q_transaction_count() -> str:
    # COUNT(*) counts the NULL row of a customer without invoices.
    return """
    SELECT
      c.CustomerID,
      COUNT(*) AS transaction_count
    FROM Customers c
    LEFT JOIN Invoices i ON c.CustomerID = i.CustomerID
    GROUP BY c.CustomerID
    ORDER BY transaction_count DESC, c.CustomerID
    """


def q_invoice_count() -> str:
    return """
    SELECT
      c.CustomerID,
      COUNT(DISTINCT i.InvoiceNo) AS invoice_count
    FROM Customers c
    LEFT JOIN Invoices i ON c.CustomerID = i.CustomerID
    GROUP BY c.CustomerID
    ORDER BY invoice_count DESC, c.CustomerID
    """


def q_purchase_count() -> str:
    return """
    SELECT
      p.Description,
      COUNT(d.StockCode) AS purchase_count
    FROM Products p
    LEFT JOIN InvoiceDetails d ON p.StockCode = d.StockCode
    GROUP BY p.Description
    ORDER BY purchase_count DESC, p.Description IS NULL, p.Description
    """


def q_total_purchases() -> str:
    return """
    SELECT
      c.Country,
      COUNT(d.StockCode) AS total_purchases
    FROM Customers c
    LEFT JOIN Invoices i ON c.CustomerID = i.CustomerID
    LEFT JOIN InvoiceDetails d ON i.InvoiceNo = d.InvoiceNo
    GROUP BY c.Country
    ORDER BY total_purchases DESC, c.Country IS NULL, c.Country
    """


def q_spending_tiers() -> str:
    # Category is derived from the per-country total, one row per country.
    return """
    SELECT
      Country,
      CASE
        WHEN TotalSpending < :low_below THEN 'Low'
        WHEN TotalSpending <= :high_above THEN 'Medium'
        ELSE 'High'
      END AS category,
      TotalSpending
    FROM (
      SELECT
        c.Country AS Country,
        ROUND(SUM(d.Quantity * p.UnitPrice), 2) AS TotalSpending
      FROM Customers c
      JOIN Invoices i ON c.CustomerID = i.CustomerID
      JOIN InvoiceDetails d ON i.InvoiceNo = d.InvoiceNo
      JOIN Products p ON d.StockCode = p.StockCode
      GROUP BY c.Country
    ) AS per_country
    ORDER BY TotalSpending DESC, Country IS NULL, Country
    """


def q_quarterly_product_trends() -> str:
    return f"""
    SELECT
      p.Description,
      {QUARTER_EXPR} AS Quarter,
      COALESCE(SUM(d.Quantity), 0) AS TotalQuantity
    FROM Customers c
    LEFT JOIN Invoices i ON c.CustomerID = i.CustomerID
    LEFT JOIN InvoiceDetails d ON i.InvoiceNo = d.InvoiceNo
    LEFT JOIN Products p ON d.StockCode = p.StockCode
    GROUP BY p.Description, Quarter
    ORDER BY TotalQuantity DESC,
      p.Description IS NULL, p.Description,
      Quarter IS NULL, Quarter
    """


QUERIES: dict[str, Callable[[], str]] = {
    "money_spent": q_money_spent,
    "transaction_count": q_transaction_count,
    "purchase_count": q_purchase_count,
    "total_purchases": q_total_purchases,
    "spending_tiers": q_spending_tiers,
    "quarterly_product_trends": q_quarterly_product_trends,
    "invoice_count": q_invoice_count,
}


def query_parameters(
    name: str, thresholds: TierThresholds = DEFAULT_TIER_THRESHOLDS
) -> dict[str, Any]:
    """Bind parameters for the named query (only Q5 takes any).

    Q5 compares the ``ROUND(..., 2)`` total against cent-valued bounds, so
    the classification matches the exact Decimal comparison whatever the
    precision of the thresholds.
    """

    if name == "spending_tiers":
        low_below, high_above = thresholds.money_bounds()
        return {"low_below": float(low_below), "high_above": float(high_above)}
    return {}
