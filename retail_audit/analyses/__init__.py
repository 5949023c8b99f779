"""Retail analytics queries.

- Q1 money_spent: top spenders
- Q2 transaction_count: most active customers
- Q3 purchase_count: trending products
- Q4 total_purchases: top purchasing countries
- Q5 spending_tiers: spending tier breakdown by country
- Q6 quarterly_product_trends: product quantity per quarter
"""

from .queries import (
    CORE_QUERIES,
    DEFAULT_QUERY_NAMES,
    DEFAULT_TIER_THRESHOLDS,
    MONEY_COLUMNS,
    QUERY_COLUMNS,
    CountryPurchasesRow,
    InvoiceCountRow,
    MoneySpentRow,
    PurchaseCountRow,
    QuarterlyTrendRow,
    SpendingTier,
    SpendingTierRow,
    TierThresholds,
    TransactionCountRow,
    classify_spending,
    invoice_count,
    money_spent,
    purchase_count,
    quarter_label,
    quarterly_product_trends,
    records_to_money,
    rows_to_records,
    run_all_queries,
    spending_tiers,
    total_purchases,
    transaction_count,
)

__all__ = [
    "CORE_QUERIES",
    "DEFAULT_QUERY_NAMES",
    "DEFAULT_TIER_THRESHOLDS",
    "MONEY_COLUMNS",
    "QUERY_COLUMNS",
    "CountryPurchasesRow",
    "InvoiceCountRow",
    "MoneySpentRow",
    "PurchaseCountRow",
    "QuarterlyTrendRow",
    "SpendingTier",
    "SpendingTierRow",
    "TierThresholds",
    "TransactionCountRow",
    "classify_spending",
    "invoice_count",
    "money_spent",
    "purchase_count",
    "quarter_label",
    "quarterly_product_trends",
    "records_to_money",
    "rows_to_records",
    "run_all_queries",
    "spending_tiers",
    "total_purchases",
    "transaction_count",
]
