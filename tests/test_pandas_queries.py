"""Tests for the pandas query engine."""

import pandas as pd  # type: ignore
import pytest

from retail_audit.analyses import money_spent, records_to_money, rows_to_records
from retail_audit.foundation import RetailDataset
from retail_audit.pandas import (
    dataset_to_frames,
    invoice_count_df,
    money_spent_df,
    purchase_count_df,
    quarterly_product_trends_df,
    rows_to_dataframe,
    run_queries_df,
    spending_tiers_df,
    total_purchases_df,
    transaction_count_df,
)


@pytest.fixture
def frames(sample_dataset):
    return dataset_to_frames(sample_dataset)


class TestDatasetToFrames:
    def test_columns_and_dtypes(self, frames):
        assert list(frames.customers.columns) == ["CustomerID", "Country"]
        assert list(frames.products.columns) == ["StockCode", "Description", "UnitPrice"]
        assert list(frames.invoices.columns) == ["InvoiceNo", "InvoiceDate", "CustomerID"]
        assert list(frames.invoice_lines.columns) == ["InvoiceNo", "StockCode", "Quantity"]
        assert str(frames.invoices["CustomerID"].dtype) == "Int64"
        assert frames.invoices["CustomerID"].isna().sum() == 1
        assert pd.api.types.is_datetime64_any_dtype(frames.invoices["InvoiceDate"])

    def test_empty_dataset(self):
        frames = dataset_to_frames(RetailDataset())
        assert frames.customers.empty
        assert money_spent_df(frames).empty


def test_money_spent_df(frames):
    df = money_spent_df(frames)

    assert list(df.columns) == ["CustomerID", "money_spent"]
    assert df["CustomerID"].tolist() == [2, 1, 3, 4]
    assert df["money_spent"].tolist() == pytest.approx([502.0, 90.2, 0.0, 0.0])


def test_transaction_count_df(frames):
    df = transaction_count_df(frames)

    assert df.to_dict(orient="records") == [
        {"CustomerID": 1, "transaction_count": 2},
        {"CustomerID": 2, "transaction_count": 1},
        {"CustomerID": 3, "transaction_count": 1},
        {"CustomerID": 4, "transaction_count": 1},
    ]


def test_invoice_count_df(frames):
    df = invoice_count_df(frames)

    assert df.set_index("CustomerID")["invoice_count"].to_dict() == {
        1: 2,
        2: 1,
        3: 1,
        4: 0,
    }


def test_purchase_count_df(frames):
    df = purchase_count_df(frames)

    assert df.to_dict(orient="records") == [
        {"Description": "Widget", "purchase_count": 3},
        {"Description": "Gadget", "purchase_count": 2},
        {"Description": None, "purchase_count": 1},
        {"Description": "Unsold", "purchase_count": 0},
    ]


def test_total_purchases_df(frames):
    df = total_purchases_df(frames)

    assert df.to_dict(orient="records") == [
        {"Country": "US", "total_purchases": 3},
        {"Country": "UK", "total_purchases": 2},
        {"Country": None, "total_purchases": 0},
    ]


def test_spending_tiers_df(frames):
    df = spending_tiers_df(frames)

    assert list(df.columns) == ["Country", "category", "TotalSpending"]
    assert df["Country"].tolist() == ["UK", "US"]
    assert df["category"].tolist() == ["High", "Low"]
    assert df["TotalSpending"].tolist() == pytest.approx([502.0, 90.2])


def test_quarterly_product_trends_df(frames):
    df = quarterly_product_trends_df(frames)

    assert df.to_dict(orient="records") == [
        {"Description": "Widget", "Quarter": "2023-Q2", "TotalQuantity": 50},
        {"Description": "Widget", "Quarter": "2023-Q1", "TotalQuantity": 10},
        {"Description": "Gadget", "Quarter": "2023-Q4", "TotalQuantity": 4},
        {"Description": "Widget", "Quarter": "2023-Q4", "TotalQuantity": 3},
        {"Description": None, "Quarter": "2023-Q2", "TotalQuantity": 2},
        {"Description": None, "Quarter": "2023-Q3", "TotalQuantity": 0},
        {"Description": None, "Quarter": None, "TotalQuantity": 0},
    ]


def test_run_queries_df_rejects_unknown(frames):
    with pytest.raises(KeyError):
        run_queries_df(frames, ["money_spent", "bogus"])


def test_rows_to_dataframe(sample_dataset):
    df = rows_to_dataframe("money_spent", money_spent(sample_dataset))

    assert list(df.columns) == ["CustomerID", "money_spent"]
    assert df["money_spent"].tolist() == pytest.approx([502.0, 90.2, 0.0, 0.0])


def test_rows_to_dataframe_empty():
    df = rows_to_dataframe("spending_tiers", [])
    assert list(df.columns) == ["Country", "category", "TotalSpending"]
    assert df.empty


def test_float_money_converts_back_to_core_records(sample_dataset, frames):
    records = money_spent_df(frames).to_dict(orient="records")

    assert records_to_money(records) == rows_to_records(money_spent(sample_dataset))
