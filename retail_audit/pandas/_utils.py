"""Shared utilities for pandas conversion operations."""

from decimal import Decimal

import pandas as pd  # type: ignore


def decimal_to_float(value: Decimal) -> float:
    """Convert Decimal to float for pandas compatibility."""
    return float(value)


def missing_to_none(series: pd.Series) -> pd.Series:
    """Return an object Series with NaN/NA replaced by None.

    Group keys produced by ``groupby(dropna=False)`` come back as NaN; the
    query outputs report missing keys as None.
    """
    as_object = series.astype(object)
    return as_object.where(as_object.notna(), None)
