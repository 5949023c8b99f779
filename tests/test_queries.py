"""Tests for the core retail queries."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from retail_audit.analyses import (
    DEFAULT_QUERY_NAMES,
    DEFAULT_TIER_THRESHOLDS,
    SpendingTier,
    TierThresholds,
    classify_spending,
    invoice_count,
    money_spent,
    purchase_count,
    quarter_label,
    quarterly_product_trends,
    rows_to_records,
    run_all_queries,
    spending_tiers,
    total_purchases,
    transaction_count,
)
from retail_audit.foundation import Customer, Invoice, InvoiceLine, Product, RetailDataset


class TestEndToEnd:
    """The one-customer, one-invoice example."""

    def test_money_spent(self, minimal_dataset):
        assert rows_to_records(money_spent(minimal_dataset)) == [
            {"CustomerID": 1, "money_spent": Decimal("30.00")}
        ]

    def test_quarterly_product_trends(self, minimal_dataset):
        assert rows_to_records(quarterly_product_trends(minimal_dataset)) == [
            {"Description": "Widget", "Quarter": "2023-Q4", "TotalQuantity": 3}
        ]


class TestMoneySpent:
    def test_totals_and_order(self, sample_dataset):
        rows = money_spent(sample_dataset)

        assert [(r.customer_id, r.money_spent) for r in rows] == [
            (2, Decimal("502.00")),
            (1, Decimal("90.20")),
            (3, Decimal("0.00")),
            (4, Decimal("0.00")),
        ]

    def test_customers_without_invoices_spend_zero(self, sample_dataset):
        rows = {r.customer_id: r.money_spent for r in money_spent(sample_dataset)}
        assert rows[4] == Decimal("0.00")

    def test_orphan_invoices_are_ignored(self, sample_dataset):
        total = sum(r.money_spent for r in money_spent(sample_dataset))
        assert total == Decimal("592.20")  # INV5 (255.00) has no customer


class TestTransactionCount:
    def test_counts_joined_rows(self, sample_dataset):
        rows = transaction_count(sample_dataset)

        assert [(r.customer_id, r.transaction_count) for r in rows] == [
            (1, 2),
            (2, 1),
            (3, 1),
            (4, 1),  # no invoices, still one outer-join row
        ]

    def test_invoice_count_reports_zero_for_inactive(self, sample_dataset):
        rows = invoice_count(sample_dataset)

        assert [(r.customer_id, r.invoice_count) for r in rows] == [
            (1, 2),
            (2, 1),
            (3, 1),
            (4, 0),
        ]


class TestPurchaseCount:
    def test_counts_lines_per_description(self, sample_dataset):
        rows = purchase_count(sample_dataset)

        assert [(r.description, r.purchase_count) for r in rows] == [
            ("Widget", 3),
            ("Gadget", 2),
            (None, 1),
            ("Unsold", 0),
        ]

    def test_counts_line_occurrences_not_quantity(self, sample_dataset):
        sample_dataset.record_purchase("INV1", "B2", 1000)

        rows = {r.description: r.purchase_count for r in purchase_count(sample_dataset)}
        assert rows["Gadget"] == 2


class TestTotalPurchases:
    def test_counts_lines_per_country(self, sample_dataset):
        rows = total_purchases(sample_dataset)

        assert [(r.country, r.total_purchases) for r in rows] == [
            ("US", 3),
            ("UK", 2),
            (None, 0),
        ]


class TestSpendingTiers:
    def test_inner_join_totals(self, sample_dataset):
        rows = spending_tiers(sample_dataset)

        assert [(r.country, r.category, r.total_spending) for r in rows] == [
            ("UK", SpendingTier.HIGH, Decimal("502.00")),
            ("US", SpendingTier.LOW, Decimal("90.20")),
        ]

    def test_record_uses_plain_category(self, sample_dataset):
        record = spending_tiers(sample_dataset)[0].to_record()
        assert record == {
            "Country": "UK",
            "category": "High",
            "TotalSpending": Decimal("502.00"),
        }

    @pytest.mark.parametrize(
        "total, expected",
        [
            (Decimal("99.99"), SpendingTier.LOW),
            (Decimal("100"), SpendingTier.MEDIUM),
            (Decimal("100.00"), SpendingTier.MEDIUM),
            (Decimal("500"), SpendingTier.MEDIUM),
            (Decimal("500.01"), SpendingTier.HIGH),
            (Decimal("-5.00"), SpendingTier.LOW),
        ],
    )
    def test_classify_boundaries(self, total, expected):
        assert classify_spending(total) is expected

    def test_custom_thresholds(self, sample_dataset):
        rows = spending_tiers(
            sample_dataset, TierThresholds(low_below=Decimal("50"), high_above=Decimal("600"))
        )
        assert {r.country: r.category for r in rows} == {
            "UK": SpendingTier.MEDIUM,
            "US": SpendingTier.MEDIUM,
        }

    def test_money_bounds_snap_to_cents(self):
        thresholds = TierThresholds(
            low_below=Decimal("100.0000000000000000001"),
            high_above=Decimal("499.99999999999999999"),
        )
        assert thresholds.money_bounds() == (Decimal("100.01"), Decimal("499.99"))
        assert DEFAULT_TIER_THRESHOLDS.money_bounds() == (
            Decimal("100.00"),
            Decimal("500.00"),
        )

    def test_equal_totals_are_ordered_by_country(self):
        dataset = RetailDataset.from_records(
            customers=[Customer(1, "US"), Customer(2, None), Customer(3, "FR")],
            products=[Product("A1", "Widget", Decimal("25.00"))],
            invoices=[
                Invoice(f"INV{i}", datetime(2023, 3, 1), i) for i in (1, 2, 3)
            ],
            invoice_lines=[InvoiceLine(f"INV{i}", "A1", 2) for i in (1, 2, 3)],
        )

        rows = spending_tiers(dataset)

        assert [(r.country, r.total_spending) for r in rows] == [
            ("FR", Decimal("50.00")),
            ("US", Decimal("50.00")),
            (None, Decimal("50.00")),
        ]

    def test_threshold_order_is_validated(self):
        with pytest.raises(ValueError):
            TierThresholds(low_below=Decimal("600"), high_above=Decimal("500"))


class TestQuarterlyProductTrends:
    def test_quarter_label(self):
        assert quarter_label(datetime(2023, 11, 15)) == "2023-Q4"
        assert quarter_label(date(2024, 1, 1)) == "2024-Q1"
        assert quarter_label(datetime(2024, 6, 30, 23, 59)) == "2024-Q2"
        assert quarter_label(date(999, 7, 1)) == "0999-Q3"

    def test_groups_and_null_rows(self, sample_dataset):
        rows = quarterly_product_trends(sample_dataset)

        assert [(r.description, r.quarter, r.total_quantity) for r in rows] == [
            ("Widget", "2023-Q2", 50),
            ("Widget", "2023-Q1", 10),
            ("Gadget", "2023-Q4", 4),
            ("Widget", "2023-Q4", 3),
            (None, "2023-Q2", 2),
            (None, "2023-Q3", 0),  # INV4 has no lines
            (None, None, 0),  # customer 4 has no invoices
        ]


class TestRunAllQueries:
    def test_runs_six_reports_in_order(self, sample_dataset):
        results = run_all_queries(sample_dataset)
        assert tuple(results) == DEFAULT_QUERY_NAMES

    def test_is_idempotent(self, sample_dataset):
        first = run_all_queries(sample_dataset)
        second = run_all_queries(sample_dataset)
        assert first == second

    def test_unknown_query_raises(self, sample_dataset):
        with pytest.raises(KeyError):
            run_all_queries(sample_dataset, names=["nope"])

    def test_empty_dataset(self):
        results = run_all_queries(RetailDataset())
        assert all(rows == [] for rows in results.values())

    def test_customers_only_dataset(self):
        dataset = RetailDataset.from_records(customers=[Customer(7, "FR")])
        results = run_all_queries(dataset, names=list(DEFAULT_QUERY_NAMES) + ["invoice_count"])

        assert rows_to_records(results["money_spent"]) == [
            {"CustomerID": 7, "money_spent": Decimal("0.00")}
        ]
        assert rows_to_records(results["transaction_count"]) == [
            {"CustomerID": 7, "transaction_count": 1}
        ]
        assert rows_to_records(results["invoice_count"]) == [
            {"CustomerID": 7, "invoice_count": 0}
        ]
        assert rows_to_records(results["total_purchases"]) == [
            {"Country": "FR", "total_purchases": 0}
        ]
        assert results["spending_tiers"] == []
        assert rows_to_records(results["quarterly_product_trends"]) == [
            {"Description": None, "Quarter": None, "TotalQuantity": 0}
        ]
