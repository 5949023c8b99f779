"""Command line entry points for the retail audit toolkit."""

from __future__ import annotations

import argparse
import json
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Sequence

import pandas as pd
import structlog

from retail_audit.analyses.queries import (
    CORE_QUERIES,
    DEFAULT_QUERY_NAMES,
    TierThresholds,
    run_all_queries,
)
from retail_audit.foundation.loader import load_dataset
from retail_audit.foundation.schema import RetailDataset
from retail_audit.observability import configure_logging
from retail_audit.pandas import dataset_to_frames, rows_to_dataframe, run_queries_df
from retail_audit.sql import SqliteStore

logger = structlog.get_logger(__name__)

ENGINES = ("core", "pandas", "sql")


def _decimal_arg(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"not a decimal number: {value!r}") from exc


def _add_logging_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for stderr output (default: INFO)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit log events as JSON lines",
    )


def run_queries(
    dataset: RetailDataset,
    names: Sequence[str],
    engine: str,
    thresholds: TierThresholds,
) -> dict[str, pd.DataFrame]:
    """Run ``names`` on ``dataset`` with ``engine``; results as DataFrames."""

    if engine == "core":
        rows = run_all_queries(dataset, names, thresholds)
        return {name: rows_to_dataframe(name, rows[name]) for name in names}
    if engine == "pandas":
        return run_queries_df(dataset_to_frames(dataset), names, thresholds)
    if engine == "sql":
        with SqliteStore() as store:
            store.load(dataset)
            return store.run_queries(names, thresholds)
    raise ValueError(f"Unknown engine: {engine}")


def _results_payload(results: dict[str, pd.DataFrame]) -> dict[str, list[dict[str, Any]]]:
    payload = {}
    for name, frame in results.items():
        records = frame.astype(object).where(frame.notna(), None).to_dict(orient="records")
        payload[name] = records
    return payload


def run_queries_cli(argv: list[str] | None = None) -> int:
    """Run the retail queries over a dataset JSON file.

    Results are written as one JSON document keyed by query name (stdout or
    ``--output``), or as one CSV per query into the ``--output`` directory.

    Args:
        argv: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = argparse.ArgumentParser(
        description="Run retail analytics queries over a dataset"
    )
    parser.add_argument("input", type=Path, help="Path to the dataset JSON file")
    parser.add_argument(
        "--query",
        dest="queries",
        action="append",
        choices=list(CORE_QUERIES),
        help="Query to run; repeat for several (defaults to the six reports)",
    )
    parser.add_argument(
        "--engine",
        choices=ENGINES,
        default="core",
        help="Engine evaluating the queries (default: core)",
    )
    parser.add_argument(
        "--format",
        dest="output_format",
        choices=["json", "csv"],
        default="json",
        help="Output format (default: json)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="JSON file path, or directory for CSV output (required for csv)",
    )
    parser.add_argument(
        "--low-threshold",
        type=_decimal_arg,
        default=Decimal("100"),
        help="Spending below this is Low (default: 100)",
    )
    parser.add_argument(
        "--high-threshold",
        type=_decimal_arg,
        default=Decimal("500"),
        help="Spending above this is High (default: 500)",
    )
    _add_logging_args(parser)

    args = parser.parse_args(argv)
    configure_logging(args.log_level, args.json_logs)

    if args.output_format == "csv" and args.output is None:
        parser.error("--output is required for csv output")

    thresholds = TierThresholds(
        low_below=args.low_threshold, high_above=args.high_threshold
    )
    names = tuple(dict.fromkeys(args.queries)) if args.queries else DEFAULT_QUERY_NAMES

    logger.info("loading_dataset", path=str(args.input))
    dataset = load_dataset(args.input)
    summary = dataset.summary()
    if summary["customers"] == 0 and summary["products"] == 0:
        logger.warning("empty_dataset", path=str(args.input))

    results = run_queries(dataset, names, args.engine, thresholds)
    logger.info(
        "queries_completed",
        engine=args.engine,
        query_count=len(results),
        rows={name: len(frame) for name, frame in results.items()},
    )

    if args.output_format == "csv":
        output_dir = args.output
        output_dir.mkdir(parents=True, exist_ok=True)
        for name, frame in results.items():
            frame.to_csv(output_dir / f"{name}.csv", index=False)
        logger.info("csv_exported", directory=str(output_dir), files=len(results))
    elif args.output:
        output_path = args.output
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("w", encoding="utf-8") as fh:
            json.dump(_results_payload(results), fh, indent=2, default=str)
        logger.info("json_exported", path=str(output_path))
    else:  # stdout fallback enables piping in shell usage.
        json.dump(_results_payload(results), fp=sys.stdout, indent=2, default=str)
        print()

    return 0


def export_sqlite_cli(argv: list[str] | None = None) -> int:
    """Write a dataset JSON file into an SQLite database with the retail schema."""

    parser = argparse.ArgumentParser(description=export_sqlite_cli.__doc__)
    parser.add_argument("input", type=Path, help="Path to the dataset JSON file")
    parser.add_argument(
        "--output", type=Path, required=True, help="Path of the SQLite database to create"
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace the database file if it already exists",
    )
    _add_logging_args(parser)

    args = parser.parse_args(argv)
    configure_logging(args.log_level, args.json_logs)

    output_path = args.output
    if output_path.exists():
        if not args.overwrite:
            logger.error("database_exists", path=str(output_path))
            return 1
        output_path.unlink()

    dataset = load_dataset(args.input)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with SqliteStore(output_path) as store:
        store.load(dataset)

    logger.info("sqlite_exported", path=str(output_path), **dataset.summary())
    return 0


def main() -> None:
    raise SystemExit(run_queries_cli())


if __name__ == "__main__":  # pragma: no cover
    main()
