"""Convert retail datasets and query rows to pandas DataFrames."""

from dataclasses import dataclass
from typing import Any, Sequence

import pandas as pd  # type: ignore

from retail_audit.analyses.queries import MONEY_COLUMNS, QUERY_COLUMNS
from retail_audit.foundation.schema import RetailDataset
from ._utils import decimal_to_float


@dataclass(frozen=True)
class RetailFrames:
    """The four retail tables as DataFrames, using the table column names.

    Attributes:
        customers: ``CustomerID`` (Int64), ``Country``
        products: ``StockCode``, ``Description``, ``UnitPrice`` (float)
        invoices: ``InvoiceNo``, ``InvoiceDate`` (datetime64), ``CustomerID`` (Int64)
        invoice_lines: ``InvoiceNo``, ``StockCode``, ``Quantity`` (int64)
    """

    customers: pd.DataFrame
    products: pd.DataFrame
    invoices: pd.DataFrame
    invoice_lines: pd.DataFrame


def dataset_to_frames(dataset: RetailDataset) -> RetailFrames:
    """Convert a RetailDataset into four DataFrames.

    Customer IDs use the nullable ``Int64`` dtype so invoices without a
    customer keep a missing key instead of becoming floats.

    Example:
        >>> frames = dataset_to_frames(dataset)
        >>> frames.customers.head()
    """
    customers = pd.DataFrame(
        {
            "CustomerID": pd.array(
                [c.customer_id for c in dataset.customers], dtype="Int64"
            ),
            "Country": pd.Series([c.country for c in dataset.customers], dtype=object),
        }
    )
    products = pd.DataFrame(
        {
            "StockCode": pd.Series([p.stock_code for p in dataset.products], dtype=object),
            "Description": pd.Series(
                [p.description for p in dataset.products], dtype=object
            ),
            "UnitPrice": pd.Series(
                [decimal_to_float(p.unit_price) for p in dataset.products],
                dtype="float64",
            ),
        }
    )
    invoices = pd.DataFrame(
        {
            "InvoiceNo": pd.Series([i.invoice_no for i in dataset.invoices], dtype=object),
            "InvoiceDate": pd.to_datetime(
                pd.Series([i.invoice_date for i in dataset.invoices], dtype=object)
            ),
            "CustomerID": pd.array(
                [i.customer_id for i in dataset.invoices], dtype="Int64"
            ),
        }
    )
    invoice_lines = pd.DataFrame(
        {
            "InvoiceNo": pd.Series(
                [line.invoice_no for line in dataset.invoice_lines], dtype=object
            ),
            "StockCode": pd.Series(
                [line.stock_code for line in dataset.invoice_lines], dtype=object
            ),
            "Quantity": pd.Series(
                [line.quantity for line in dataset.invoice_lines], dtype="int64"
            ),
        }
    )
    return RetailFrames(
        customers=customers,
        products=products,
        invoices=invoices,
        invoice_lines=invoice_lines,
    )


def rows_to_dataframe(query_name: str, rows: Sequence[Any]) -> pd.DataFrame:
    """Convert core query rows to a DataFrame with the query's output columns.

    Money columns are converted from Decimal to float.

    Example:
        >>> rows = money_spent(dataset)
        >>> rows_to_dataframe("money_spent", rows).to_csv("top_spenders.csv", index=False)
    """
    columns = list(QUERY_COLUMNS[query_name])
    if not rows:
        return pd.DataFrame(columns=columns)

    records = []
    for row in rows:
        record = row.to_record()
        for column in MONEY_COLUMNS & record.keys():
            record[column] = decimal_to_float(record[column])
        records.append(record)
    return pd.DataFrame(records, columns=columns)
