"""Pandas DataFrame engine for the retail queries."""

from .frames import (
    RetailFrames,
    dataset_to_frames,
    rows_to_dataframe,
)
from .queries import (
    DATAFRAME_QUERIES,
    invoice_count_df,
    money_spent_df,
    purchase_count_df,
    quarterly_product_trends_df,
    run_queries_df,
    spending_tiers_df,
    total_purchases_df,
    transaction_count_df,
)

__all__ = [
    # Conversions
    "RetailFrames",
    "dataset_to_frames",
    "rows_to_dataframe",
    # Queries
    "DATAFRAME_QUERIES",
    "invoice_count_df",
    "money_spent_df",
    "purchase_count_df",
    "quarterly_product_trends_df",
    "run_queries_df",
    "spending_tiers_df",
    "total_purchases_df",
    "transaction_count_df",
]
