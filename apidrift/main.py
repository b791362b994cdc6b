#!/usr/bin/env python3
"""
apidrift command line entry point.

Usage:
    apidrift --config config/comparison.yaml --output-dir reports
    apidrift --list-baselines --storage-dir baselines [--service NAME] [--date YYYYMMDD]

Exit codes:
    0 - every result matched (or listing succeeded)
    1 - at least one mismatch or error
    2 - configuration could not be loaded
"""

import argparse
import logging
import os
import sys
from typing import List, Optional, Sequence

from apidrift.config.settings import (
    DEFAULT_STORAGE_DIR,
    LOG_LEVEL_ENV,
    ConfigurationError,
    SecretRedactionFilter,
    load_config,
    setup_logging_redaction,
)
from apidrift.domain.result import ComparisonResult, ComparisonStatus
from apidrift.orchestration.service import ComparisonService
from apidrift.reporting.diff_reporter import DiffReporter, summarize
from apidrift.storage.baseline_store import FileSystemBaselineStore
from apidrift.storage.exceptions import BaselineStoreException
from apidrift.utils.logger import get_logger

logger = get_logger(__name__)

PACKAGE_LOGGER_PREFIX = "apidrift"


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Compare two API implementations, live or against captured baselines."
    )
    parser.add_argument(
        "--config",
        help="Path to the YAML comparison configuration.",
    )
    parser.add_argument(
        "--output-dir",
        default="reports",
        help="Directory for results.json and SUMMARY.md (default: reports).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override the log level for apidrift loggers.",
    )
    parser.add_argument(
        "--list-baselines",
        action="store_true",
        help="List stored baselines instead of running a comparison.",
    )
    parser.add_argument(
        "--storage-dir",
        default=DEFAULT_STORAGE_DIR,
        help=f"Baseline storage directory for --list-baselines (default: {DEFAULT_STORAGE_DIR}).",
    )
    parser.add_argument("--service", help="Service to list dates or runs for.")
    parser.add_argument("--date", help="Capture date (YYYYMMDD) to list runs for.")

    args = parser.parse_args(argv)
    if not args.list_baselines and not args.config:
        parser.error("--config is required unless --list-baselines is given")
    return args


def _package_loggers() -> List[logging.Logger]:
    names = [name for name in logging.root.manager.loggerDict if name.startswith(PACKAGE_LOGGER_PREFIX)]
    return [logging.getLogger(name) for name in names]


def configure_logging(level: Optional[str], redaction_filter: Optional[SecretRedactionFilter] = None) -> None:
    """Apply a level override and secret redaction to every apidrift logger."""
    if level:
        os.environ[LOG_LEVEL_ENV] = level
    for package_logger in _package_loggers():
        if level:
            package_logger.setLevel(getattr(logging, level))
        if redaction_filter is not None:
            package_logger.addFilter(redaction_filter)
            for handler in package_logger.handlers:
                handler.addFilter(redaction_filter)


def list_baselines(storage_dir: str, service: Optional[str], date: Optional[str]) -> int:
    store = FileSystemBaselineStore(storage_dir)
    try:
        if service and date:
            runs = store.list_runs(service, date)
            print(f"Runs for {service} on {date}: {len(runs)}")
            for run in runs:
                tags = f" [{', '.join(run.tags)}]" if run.tags else ""
                print(f"  - {run.run_id} ({run.total_iterations} iterations, {run.timestamp}){tags}")
                if run.description:
                    print(f"      {run.description}")
        elif service:
            dates = store.list_dates(service)
            print(f"Capture dates for {service}: {len(dates)}")
            for capture_date in dates:
                print(f"  - {capture_date}")
        else:
            services = store.list_services()
            print(f"Services in {storage_dir}: {len(services)}")
            for name in services:
                print(f"  - {name}")
    except BaselineStoreException as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    return 0


def exit_code_for(results: List[ComparisonResult]) -> int:
    if results and all(r.status is ComparisonStatus.MATCH for r in results):
        return 0
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)

    if args.list_baselines:
        return list_baselines(args.storage_dir, args.service, args.date)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 2

    redaction_filter = setup_logging_redaction(config)
    configure_logging(args.log_level, redaction_filter)

    logger.info(
        "Comparison started",
        operation="main",
        context={"config": args.config, "mode": config.comparison_mode, "test_type": config.test_type},
    )
    results = ComparisonService().execute(config)

    run_context = {
        "config": str(args.config),
        "mode": config.comparison_mode,
        "test_type": config.test_type,
    }
    if config.baseline is not None:
        run_context["baseline_operation"] = config.baseline.operation
    DiffReporter(args.output_dir).write_reports(results, run_context)

    stats = summarize(results)
    print(
        f"[{stats['parity_status']}] {stats['total_results']} results: "
        f"{stats['matches']} match, {stats['mismatches']} mismatch, {stats['errors']} error"
    )
    return exit_code_for(results)


if __name__ == "__main__":
    sys.exit(main())
