"""Integration tests for the command line entry points.

Tests the workflow from a dataset JSON file through the CLI to query
results on stdout, JSON/CSV files and SQLite databases.
"""

import json
import sqlite3

import pandas as pd
import pytest

from retail_audit.cli import export_sqlite_cli, run_queries_cli
from retail_audit.foundation import dataset_to_payload


@pytest.fixture
def dataset_json(tmp_path, sample_dataset):
    """Write the sample dataset to a JSON file."""
    path = tmp_path / "dataset.json"
    path.write_text(json.dumps(dataset_to_payload(sample_dataset)), encoding="utf-8")
    return path


class TestRunQueriesCLI:
    """Test the run-queries command."""

    def test_json_to_stdout(self, dataset_json, capsys):
        exit_code = run_queries_cli([str(dataset_json)])

        assert exit_code == 0
        payload = json.loads(capsys.readouterr().out)
        assert list(payload) == [
            "money_spent",
            "transaction_count",
            "purchase_count",
            "total_purchases",
            "spending_tiers",
            "quarterly_product_trends",
        ]
        assert payload["money_spent"][0] == {"CustomerID": 2, "money_spent": 502.0}
        assert payload["spending_tiers"][1] == {
            "Country": "US",
            "category": "Low",
            "TotalSpending": 90.2,
        }
        assert payload["quarterly_product_trends"][-1] == {
            "Description": None,
            "Quarter": None,
            "TotalQuantity": 0,
        }

    @pytest.mark.parametrize("engine", ["core", "pandas", "sql"])
    def test_engines_write_same_json(self, dataset_json, tmp_path, engine):
        output = tmp_path / engine / "results.json"

        exit_code = run_queries_cli(
            [str(dataset_json), "--engine", engine, "--output", str(output)]
        )

        assert exit_code == 0
        payload = json.loads(output.read_text(encoding="utf-8"))
        assert payload["total_purchases"] == [
            {"Country": "US", "total_purchases": 3},
            {"Country": "UK", "total_purchases": 2},
            {"Country": None, "total_purchases": 0},
        ]

    def test_selected_queries(self, dataset_json, capsys):
        exit_code = run_queries_cli(
            [
                str(dataset_json),
                "--query",
                "invoice_count",
                "--query",
                "transaction_count",
            ]
        )

        assert exit_code == 0
        payload = json.loads(capsys.readouterr().out)
        assert list(payload) == ["invoice_count", "transaction_count"]
        assert payload["invoice_count"][-1] == {"CustomerID": 4, "invoice_count": 0}

    def test_csv_output(self, dataset_json, tmp_path):
        output_dir = tmp_path / "csv"

        exit_code = run_queries_cli(
            [str(dataset_json), "--format", "csv", "--output", str(output_dir)]
        )

        assert exit_code == 0
        assert len(list(output_dir.glob("*.csv"))) == 6
        df = pd.read_csv(output_dir / "purchase_count.csv")
        assert list(df.columns) == ["Description", "purchase_count"]
        assert df["purchase_count"].tolist() == [3, 2, 1, 0]

    def test_csv_requires_output(self, dataset_json):
        with pytest.raises(SystemExit):
            run_queries_cli([str(dataset_json), "--format", "csv"])

    def test_custom_thresholds(self, dataset_json, capsys):
        exit_code = run_queries_cli(
            [
                str(dataset_json),
                "--query",
                "spending_tiers",
                "--low-threshold",
                "50",
                "--high-threshold",
                "600",
            ]
        )

        assert exit_code == 0
        payload = json.loads(capsys.readouterr().out)
        assert [row["category"] for row in payload["spending_tiers"]] == [
            "Medium",
            "Medium",
        ]

    def test_invalid_threshold_is_rejected(self, dataset_json):
        with pytest.raises(SystemExit):
            run_queries_cli([str(dataset_json), "--low-threshold", "lots"])

    @pytest.mark.parametrize("engine", ["core", "sql"])
    def test_empty_dataset_yields_empty_results(self, tmp_path, capsys, engine):
        path = tmp_path / "empty.json"
        path.write_text("{}", encoding="utf-8")

        exit_code = run_queries_cli([str(path), "--engine", engine, "--json-logs"])

        assert exit_code == 0
        captured = capsys.readouterr()
        payload = json.loads(captured.out)
        assert len(payload) == 6
        assert all(rows == [] for rows in payload.values())
        assert '"empty_dataset"' in captured.err

    def test_json_logs_go_to_stderr(self, dataset_json, capsys):
        exit_code = run_queries_cli([str(dataset_json), "--json-logs"])

        assert exit_code == 0
        captured = capsys.readouterr()
        json.loads(captured.out)
        events = [
            json.loads(line) for line in captured.err.splitlines() if line.startswith("{")
        ]
        assert any(event["event"] == "queries_completed" for event in events)


class TestExportSqliteCLI:
    """Test the export-sqlite command."""

    def test_export_creates_database(self, dataset_json, tmp_path):
        output = tmp_path / "retail.db"

        exit_code = export_sqlite_cli([str(dataset_json), "--output", str(output)])

        assert exit_code == 0
        with sqlite3.connect(output) as conn:
            counts = {
                table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
                for table in ("Customers", "Products", "Invoices", "InvoiceDetails")
            }
        assert counts == {
            "Customers": 4,
            "Products": 5,
            "Invoices": 5,
            "InvoiceDetails": 6,
        }

    def test_existing_database_requires_overwrite(self, dataset_json, tmp_path):
        output = tmp_path / "retail.db"
        output.write_bytes(b"")

        assert export_sqlite_cli([str(dataset_json), "--output", str(output)]) == 1
        assert (
            export_sqlite_cli(
                [str(dataset_json), "--output", str(output), "--overwrite"]
            )
            == 0
        )
