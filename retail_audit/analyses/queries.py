"""Retail aggregation queries over a :class:`RetailDataset`.

Six read-only reports answer the standard retail audit questions:

- Q1 ``money_spent``: who spends the most?
- Q2 ``transaction_count``: who transacts the most?
- Q3 ``purchase_count``: which products are trending?
- Q4 ``total_purchases``: which countries buy the most?
- Q5 ``spending_tiers``: how does each country's spend classify?
- Q6 ``quarterly_product_trends``: how does each product sell per quarter?

Join semantics follow the relational definitions exactly. Q1, Q2, Q4 and
Q6 preserve every customer (outer joins starting at ``Customers``), Q3
preserves every product, and Q5 uses inner joins only.

Null policy
-----------
- A sum over zero matching rows is zero (``Decimal("0.00")`` for money).
- A count of invoice lines for a customer or product with none is zero.
- Q2 counts joined rows, so a customer with no invoices still counts 1.
  :func:`invoice_count` is the distinct-invoice alternative.
- Missing group keys (a customer without a country, the null row produced
  by an outer join) are ``None`` and form their own group.

Ordering
--------
Rows are ordered by the aggregate, descending. Ties are broken by the
group key(s) ascending with ``None`` last, so results are reproducible.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP
from enum import Enum
from typing import Any, Callable, Hashable, Iterable, Mapping, Sequence

from retail_audit.foundation.schema import MONEY_PRECISION, RetailDataset, to_money

logger = logging.getLogger(__name__)

ZERO_MONEY = Decimal("0.00")

#: Output columns per query, with the aggregate column last.
QUERY_COLUMNS: dict[str, tuple[str, ...]] = {
    "money_spent": ("CustomerID", "money_spent"),
    "transaction_count": ("CustomerID", "transaction_count"),
    "purchase_count": ("Description", "purchase_count"),
    "total_purchases": ("Country", "total_purchases"),
    "spending_tiers": ("Country", "category", "TotalSpending"),
    "quarterly_product_trends": ("Description", "Quarter", "TotalQuantity"),
    "invoice_count": ("CustomerID", "invoice_count"),
}

#: The six reports, in report order. ``invoice_count`` is opt-in.
DEFAULT_QUERY_NAMES = (
    "money_spent",
    "transaction_count",
    "purchase_count",
    "total_purchases",
    "spending_tiers",
    "quarterly_product_trends",
)

#: Columns that hold money and are rounded to two decimal places.
MONEY_COLUMNS = frozenset({"money_spent", "TotalSpending"})


class SpendingTier(str, Enum):
    """Spending classification of a country's total spend."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


@dataclass(frozen=True)
class TierThresholds:
    """Boundaries for :class:`SpendingTier`.

    Attributes
    ----------
    low_below:
        Totals strictly below this are ``Low``.
    high_above:
        Totals strictly above this are ``High``. Totals between the two
        bounds, inclusive on both ends, are ``Medium``.
    """

    low_below: Decimal = Decimal("100")
    high_above: Decimal = Decimal("500")

    def __post_init__(self) -> None:
        low = Decimal(str(self.low_below))
        high = Decimal(str(self.high_above))
        if low > high:
            raise ValueError(
                f"low_below ({low}) cannot exceed high_above ({high})"
            )
        object.__setattr__(self, "low_below", low)
        object.__setattr__(self, "high_above", high)

    def money_bounds(self) -> tuple[Decimal, Decimal]:
        """Equivalent bounds for totals rounded to whole cents.

        A cent total is below ``low_below`` exactly when it is below the
        bound rounded up to a cent, and at most ``high_above`` exactly when
        it is at most the bound rounded down to a cent. Engines comparing
        float totals use these so every threshold is an exact cent value.
        """
        return (
            self.low_below.quantize(MONEY_PRECISION, rounding=ROUND_CEILING),
            self.high_above.quantize(MONEY_PRECISION, rounding=ROUND_FLOOR),
        )


DEFAULT_TIER_THRESHOLDS = TierThresholds()


@dataclass(frozen=True)
class MoneySpentRow:
    customer_id: int
    money_spent: Decimal

    def to_record(self) -> dict[str, Any]:
        return {"CustomerID": self.customer_id, "money_spent": self.money_spent}


@dataclass(frozen=True)
class TransactionCountRow:
    customer_id: int
    transaction_count: int

    def to_record(self) -> dict[str, Any]:
        return {
            "CustomerID": self.customer_id,
            "transaction_count": self.transaction_count,
        }


@dataclass(frozen=True)
class InvoiceCountRow:
    customer_id: int
    invoice_count: int

    def to_record(self) -> dict[str, Any]:
        return {"CustomerID": self.customer_id, "invoice_count": self.invoice_count}


@dataclass(frozen=True)
class PurchaseCountRow:
    description: str | None
    purchase_count: int

    def to_record(self) -> dict[str, Any]:
        return {"Description": self.description, "purchase_count": self.purchase_count}


@dataclass(frozen=True)
class CountryPurchasesRow:
    country: str | None
    total_purchases: int

    def to_record(self) -> dict[str, Any]:
        return {"Country": self.country, "total_purchases": self.total_purchases}


@dataclass(frozen=True)
class SpendingTierRow:
    country: str | None
    category: SpendingTier
    total_spending: Decimal

    def to_record(self) -> dict[str, Any]:
        return {
            "Country": self.country,
            "category": self.category.value,
            "TotalSpending": self.total_spending,
        }


@dataclass(frozen=True)
class QuarterlyTrendRow:
    description: str | None
    quarter: str | None
    total_quantity: int

    def to_record(self) -> dict[str, Any]:
        return {
            "Description": self.description,
            "Quarter": self.quarter,
            "TotalQuantity": self.total_quantity,
        }


def quarter_label(ts: date | datetime) -> str:
    """Return the calendar quarter of ``ts`` as ``"YYYY-Qn"``.

    >>> quarter_label(datetime(2023, 11, 15))
    '2023-Q4'
    """

    return f"{ts.year:04d}-Q{(ts.month - 1) // 3 + 1}"


def classify_spending(
    total: Decimal | float | int,
    thresholds: TierThresholds = DEFAULT_TIER_THRESHOLDS,
) -> SpendingTier:
    """Classify a spend total. Both boundaries belong to ``Medium``."""

    amount = Decimal(str(total))
    if amount < thresholds.low_below:
        return SpendingTier.LOW
    if amount <= thresholds.high_above:
        return SpendingTier.MEDIUM
    return SpendingTier.HIGH


def group_sort_key(aggregate: Any, *keys: Hashable) -> tuple:
    """Sort key: aggregate descending, then keys ascending with None last."""

    return (-aggregate, *((key is None, key) for key in keys))


def _money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


def money_spent(dataset: RetailDataset) -> list[MoneySpentRow]:
    """Q1: total spend per customer, every customer included."""

    rows: list[MoneySpentRow] = []
    for customer in dataset.customers:
        total = ZERO_MONEY
        for invoice in dataset.invoices_for_customer(customer.customer_id):
            for line in dataset.lines_for_invoice(invoice.invoice_no):
                product = dataset.get_product(line.stock_code)
                total += product.unit_price * line.quantity
        rows.append(MoneySpentRow(customer.customer_id, _money(total)))

    rows.sort(key=lambda row: group_sort_key(row.money_spent, row.customer_id))
    return rows


def transaction_count(dataset: RetailDataset) -> list[TransactionCountRow]:
    """Q2: joined ``Customers``/``Invoices`` rows per customer.

    A customer without invoices still yields one (null) joined row and is
    therefore counted as 1. Use :func:`invoice_count` for the number of
    invoices.
    """

    rows = [
        TransactionCountRow(
            customer.customer_id,
            max(1, len(dataset.invoices_for_customer(customer.customer_id))),
        )
        for customer in dataset.customers
    ]
    rows.sort(key=lambda row: group_sort_key(row.transaction_count, row.customer_id))
    return rows


def invoice_count(dataset: RetailDataset) -> list[InvoiceCountRow]:
    """Distinct invoices per customer; customers without invoices count 0."""

    rows = [
        InvoiceCountRow(
            customer.customer_id,
            len(dataset.invoices_for_customer(customer.customer_id)),
        )
        for customer in dataset.customers
    ]
    rows.sort(key=lambda row: group_sort_key(row.invoice_count, row.customer_id))
    return rows


def purchase_count(dataset: RetailDataset) -> list[PurchaseCountRow]:
    """Q3: invoice lines per product description.

    Counts line occurrences, not quantity. Products sharing a description
    are grouped together; products never sold count 0.
    """

    lines_per_product = Counter(line.stock_code for line in dataset.invoice_lines)
    counts: dict[str | None, int] = {}
    for product in dataset.products:
        counts[product.description] = (
            counts.get(product.description, 0) + lines_per_product[product.stock_code]
        )

    rows = [PurchaseCountRow(description, count) for description, count in counts.items()]
    rows.sort(key=lambda row: group_sort_key(row.purchase_count, row.description))
    return rows


def total_purchases(dataset: RetailDataset) -> list[CountryPurchasesRow]:
    """Q4: invoice lines per customer country, every customer included."""

    counts: dict[str | None, int] = {}
    for customer in dataset.customers:
        line_total = sum(
            len(dataset.lines_for_invoice(invoice.invoice_no))
            for invoice in dataset.invoices_for_customer(customer.customer_id)
        )
        counts[customer.country] = counts.get(customer.country, 0) + line_total

    rows = [CountryPurchasesRow(country, count) for country, count in counts.items()]
    rows.sort(key=lambda row: group_sort_key(row.total_purchases, row.country))
    return rows


def spending_tiers(
    dataset: RetailDataset,
    thresholds: TierThresholds = DEFAULT_TIER_THRESHOLDS,
) -> list[SpendingTierRow]:
    """Q5: total spend and spending tier per country.

    Only complete chains count: invoices without a customer, customers
    without invoices and invoices without lines are excluded. The tier is
    derived from each country's total, giving one row per country.
    """

    totals: dict[str | None, Decimal] = {}
    customers = {customer.customer_id: customer for customer in dataset.customers}
    for invoice in dataset.invoices:
        if invoice.customer_id is None:
            continue
        country = customers[invoice.customer_id].country
        for line in dataset.lines_for_invoice(invoice.invoice_no):
            product = dataset.get_product(line.stock_code)
            totals[country] = totals.get(country, ZERO_MONEY) + line.quantity * product.unit_price

    rows = [
        SpendingTierRow(
            country=country,
            category=classify_spending(total, thresholds),
            total_spending=_money(total),
        )
        for country, total in totals.items()
    ]
    rows.sort(key=lambda row: group_sort_key(row.total_spending, row.country))
    return rows


def quarterly_product_trends(dataset: RetailDataset) -> list[QuarterlyTrendRow]:
    """Q6: quantity sold per (product description, quarter).

    Starts from every customer, so customers without invoices and invoices
    without lines contribute zero-quantity rows with ``None`` keys, exactly
    as the outer joins produce them.
    """

    totals: dict[tuple[str | None, str | None], int] = {}
    for customer in dataset.customers:
        invoices = dataset.invoices_for_customer(customer.customer_id)
        if not invoices:
            totals[(None, None)] = totals.get((None, None), 0)
            continue
        for invoice in invoices:
            quarter = quarter_label(invoice.invoice_date)
            lines = dataset.lines_for_invoice(invoice.invoice_no)
            if not lines:
                totals[(None, quarter)] = totals.get((None, quarter), 0)
                continue
            for line in lines:
                key = (dataset.get_product(line.stock_code).description, quarter)
                totals[key] = totals.get(key, 0) + line.quantity

    rows = [
        QuarterlyTrendRow(description, quarter, quantity)
        for (description, quarter), quantity in totals.items()
    ]
    rows.sort(
        key=lambda row: group_sort_key(row.total_quantity, row.description, row.quarter)
    )
    return rows


CORE_QUERIES: dict[str, Callable[[RetailDataset], list[Any]]] = {
    "money_spent": money_spent,
    "transaction_count": transaction_count,
    "purchase_count": purchase_count,
    "total_purchases": total_purchases,
    "spending_tiers": spending_tiers,
    "quarterly_product_trends": quarterly_product_trends,
    "invoice_count": invoice_count,
}


def run_all_queries(
    dataset: RetailDataset,
    names: Sequence[str] = DEFAULT_QUERY_NAMES,
    thresholds: TierThresholds = DEFAULT_TIER_THRESHOLDS,
) -> dict[str, list[Any]]:
    """Run the named queries and return their rows keyed by query name.

    Raises
    ------
    KeyError
        If a name is not a known query.
    """

    unknown = [name for name in names if name not in CORE_QUERIES]
    if unknown:
        raise KeyError(f"Unknown queries: {unknown}")

    results: dict[str, list[Any]] = {}
    for name in names:
        if name == "spending_tiers":
            results[name] = spending_tiers(dataset, thresholds)
        else:
            results[name] = CORE_QUERIES[name](dataset)
        logger.debug(f"{name}: {len(results[name])} rows")
    return results


def rows_to_records(rows: Iterable[Any]) -> list[dict[str, Any]]:
    """Convert query rows into plain dictionaries keyed by output column."""

    return [row.to_record() for row in rows]


def records_to_money(records: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Normalise money columns of ``records`` to two-place Decimals."""

    normalised = []
    for record in records:
        item = dict(record)
        for column in MONEY_COLUMNS & item.keys():
            item[column] = to_money(item[column])
        normalised.append(item)
    return normalised
