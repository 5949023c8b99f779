"""Retail queries expressed as DataFrame merges and group-bys.

Outer-preserving joins are ``merge(how="left")`` starting from the preserved
table; Q5 uses ``how="inner"``. Results match the core engine in
:mod:`retail_audit.analyses.queries`: same rows, same order, money rounded to
two decimal places (as floats), missing group keys as None.
"""

from typing import Callable, Sequence

import numpy as np
import pandas as pd  # type: ignore

from retail_audit.analyses.queries import (
    DEFAULT_TIER_THRESHOLDS,
    QUERY_COLUMNS,
    SpendingTier,
    TierThresholds,
    quarter_label,
)
from .frames import RetailFrames
from ._utils import decimal_to_float, missing_to_none


def _finalise(grouped: pd.DataFrame, query_name: str) -> pd.DataFrame:
    """Order by aggregate descending, keys ascending (missing last)."""
    columns = list(QUERY_COLUMNS[query_name])
    keys, aggregate = columns[:-1], columns[-1]

    result = grouped[columns].sort_values(
        by=[aggregate, *keys],
        ascending=[False] + [True] * len(keys),
        na_position="last",
        kind="mergesort",
    )
    result = result.reset_index(drop=True)
    for key in keys:
        if key == "CustomerID":
            result[key] = result[key].astype("int64")
        else:
            result[key] = missing_to_none(result[key])
    return result


def _customers_through_lines(frames: RetailFrames) -> pd.DataFrame:
    return frames.customers.merge(
        frames.invoices, on="CustomerID", how="left"
    ).merge(frames.invoice_lines, on="InvoiceNo", how="left")


def money_spent_df(frames: RetailFrames) -> pd.DataFrame:
    """Q1: ``CustomerID``, ``money_spent``.

    Example:
        >>> money_spent_df(dataset_to_frames(dataset)).head(10)
    """
    joined = _customers_through_lines(frames).merge(
        frames.products, on="StockCode", how="left"
    )
    joined["line_value"] = joined["UnitPrice"] * joined["Quantity"]
    grouped = (
        joined.groupby("CustomerID", sort=False)["line_value"]
        .sum(min_count=0)
        .round(2)
        .rename("money_spent")
        .reset_index()
    )
    return _finalise(grouped, "money_spent")


def transaction_count_df(frames: RetailFrames) -> pd.DataFrame:
    """Q2: ``CustomerID``, ``transaction_count`` (joined rows, so never 0)."""
    joined = frames.customers.merge(frames.invoices, on="CustomerID", how="left")
    grouped = (
        joined.groupby("CustomerID", sort=False)
        .size()
        .rename("transaction_count")
        .reset_index()
    )
    grouped["transaction_count"] = grouped["transaction_count"].astype("int64")
    return _finalise(grouped, "transaction_count")


def invoice_count_df(frames: RetailFrames) -> pd.DataFrame:
    """``CustomerID``, ``invoice_count`` (distinct invoices, 0 when none)."""
    joined = frames.customers.merge(frames.invoices, on="CustomerID", how="left")
    grouped = (
        joined.groupby("CustomerID", sort=False)["InvoiceNo"]
        .nunique()
        .rename("invoice_count")
        .reset_index()
    )
    grouped["invoice_count"] = grouped["invoice_count"].astype("int64")
    return _finalise(grouped, "invoice_count")


def purchase_count_df(frames: RetailFrames) -> pd.DataFrame:
    """Q3: ``Description``, ``purchase_count`` (invoice lines, not quantity)."""
    joined = frames.products.merge(frames.invoice_lines, on="StockCode", how="left")
    grouped = (
        joined.groupby("Description", sort=False, dropna=False)["InvoiceNo"]
        .count()
        .rename("purchase_count")
        .reset_index()
    )
    grouped["purchase_count"] = grouped["purchase_count"].astype("int64")
    return _finalise(grouped, "purchase_count")


def total_purchases_df(frames: RetailFrames) -> pd.DataFrame:
    """Q4: ``Country``, ``total_purchases``."""
    joined = _customers_through_lines(frames)
    grouped = (
        joined.groupby("Country", sort=False, dropna=False)["StockCode"]
        .count()
        .rename("total_purchases")
        .reset_index()
    )
    grouped["total_purchases"] = grouped["total_purchases"].astype("int64")
    return _finalise(grouped, "total_purchases")


def spending_tiers_df(
    frames: RetailFrames,
    thresholds: TierThresholds = DEFAULT_TIER_THRESHOLDS,
) -> pd.DataFrame:
    """Q5: ``Country``, ``category``, ``TotalSpending`` over inner joins.

    Totals are rounded before classification so a total of exactly 500.00
    is ``Medium`` regardless of float summation error.
    """
    joined = (
        frames.invoices.merge(frames.customers, on="CustomerID", how="inner")
        .merge(frames.invoice_lines, on="InvoiceNo", how="inner")
        .merge(frames.products, on="StockCode", how="inner")
    )
    joined["line_value"] = joined["Quantity"] * joined["UnitPrice"]
    grouped = (
        joined.groupby("Country", sort=False, dropna=False)["line_value"]
        .sum()
        .round(2)
        .rename("TotalSpending")
        .reset_index()
    )
    totals = grouped["TotalSpending"]
    low_below, high_above = thresholds.money_bounds()
    grouped["category"] = np.select(
        [
            totals < decimal_to_float(low_below),
            totals <= decimal_to_float(high_above),
        ],
        [SpendingTier.LOW.value, SpendingTier.MEDIUM.value],
        default=SpendingTier.HIGH.value,
    )
    return _finalise(grouped, "spending_tiers")


def quarterly_product_trends_df(frames: RetailFrames) -> pd.DataFrame:
    """Q6: ``Description``, ``Quarter``, ``TotalQuantity``."""
    joined = _customers_through_lines(frames).merge(
        frames.products, on="StockCode", how="left"
    )
    joined["Quarter"] = joined["InvoiceDate"].map(
        lambda ts: quarter_label(ts) if pd.notna(ts) else None
    )
    grouped = (
        joined.groupby(["Description", "Quarter"], sort=False, dropna=False)["Quantity"]
        .sum(min_count=0)
        .rename("TotalQuantity")
        .reset_index()
    )
    grouped["TotalQuantity"] = grouped["TotalQuantity"].astype("int64")
    return _finalise(grouped, "quarterly_product_trends")


DATAFRAME_QUERIES: dict[str, Callable[[RetailFrames], pd.DataFrame]] = {
    "money_spent": money_spent_df,
    "transaction_count": transaction_count_df,
    "purchase_count": purchase_count_df,
    "total_purchases": total_purchases_df,
    "spending_tiers": spending_tiers_df,
    "quarterly_product_trends": quarterly_product_trends_df,
    "invoice_count": invoice_count_df,
}


def run_queries_df(
    frames: RetailFrames,
    names: Sequence[str],
    thresholds: TierThresholds = DEFAULT_TIER_THRESHOLDS,
) -> dict[str, pd.DataFrame]:
    """Run the named queries, keyed by query name."""
    unknown = [name for name in names if name not in DATAFRAME_QUERIES]
    if unknown:
        raise KeyError(f"Unknown queries: {unknown}")

    results = {}
    for name in names:
        if name == "spending_tiers":
            results[name] = spending_tiers_df(frames, thresholds)
        else:
            results[name] = DATAFRAME_QUERIES[name](frames)
    return results
