#!/usr/bin/env python3
"""
Compute the capital gains tax due for a ledger of trades.

This script:
1. Reads raw trade records from a file or stdin (one trade per line)
2. Groups them by security and matches sales against buy lots (FIFO)
3. Aggregates the per-security tax concurrently
4. Prints the formatted total, optionally with a per-security breakdown

Usage:
    python scripts/compute_tax.py [INPUT] [--config CONFIG] [--strategy {blocking,polling}] [--has-header] [--timeout SECONDS] [--report] [--verbose]

Examples:
    # Plain lines, no header row
    python scripts/compute_tax.py resources/trades.txt

    # Read from stdin and show the per-security breakdown
    cat resources/trades.txt | python scripts/compute_tax.py --report

    # CSV export with a header row, polling join for comparison
    python scripts/compute_tax.py trades.csv --has-header --strategy polling
"""

import argparse
import logging
import sys
from dataclasses import replace

import yaml

from tax_engine.config import DEFAULT_CONFIG_PATH, load_config
from tax_engine.exceptions import ConcurrencyFault, TaxEngineError
from tax_engine.line_reader import (
    open_text_stream,
    read_csv_data_rows,
    read_csv_data_rows_from_stream,
    read_lines_from_file,
    read_lines_from_stream,
)
from tax_engine.pipeline import run_tax_pipeline

logger = logging.getLogger(__name__)


def setup_logging(level=logging.INFO):
    """Set up logging configuration."""
    # stdout carries the result
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Compute capital gains tax due for a ledger of trades',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Record format (no header row unless --has-header):
  date,symbol,side,quantity,price     e.g. 2018-01-02,AAPL,b,10,150.00

Examples:
  python scripts/compute_tax.py resources/trades.txt
  cat resources/trades.txt | python scripts/compute_tax.py --report
  python scripts/compute_tax.py trades.csv --has-header --strategy polling
        """
    )

    parser.add_argument(
        'input',
        nargs='?',
        default='-',
        help="Trade records file ('-' or omitted reads stdin)"
    )

    parser.add_argument(
        '--config',
        type=str,
        default=DEFAULT_CONFIG_PATH,
        help=f'Path to settings file (default: {DEFAULT_CONFIG_PATH})'
    )

    parser.add_argument(
        '--strategy',
        choices=['blocking', 'polling'],
        help='Aggregator join strategy (default: from settings)'
    )

    parser.add_argument(
        '--has-header',
        action='store_true',
        help='Input is a CSV file whose first row is a header'
    )

    parser.add_argument(
        '--timeout',
        type=float,
        help='Seconds to wait for per-security workers (default: from settings)'
    )

    parser.add_argument(
        '--report',
        action='store_true',
        help='Print the per-security breakdown'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    return parser.parse_args(argv)


def read_records(source: str, has_header: bool):
    """Read raw records from a path or stdin using the configured convention."""
    if source == '-':
        stream = open_text_stream(sys.stdin)
        if has_header:
            return read_csv_data_rows_from_stream(stream)
        return read_lines_from_stream(stream)

    if has_header:
        return read_csv_data_rows(source)
    return read_lines_from_file(source)


def print_report(result):
    """Print the per-security breakdown."""
    report = result.report
    print("\n" + "="*60, file=sys.stderr)
    print("CAPITAL GAINS BY SECURITY", file=sys.stderr)
    print("="*60, file=sys.stderr)
    if report.securities:
        print(report.to_dataframe().to_string(float_format=lambda v: f"{v:,.2f}"), file=sys.stderr)
    else:
        print("No securities", file=sys.stderr)
    print(f"\nJoin strategy: {report.strategy.value} ({report.elapsed_seconds:.3f}s)", file=sys.stderr)
    print(f"Records skipped: {len(result.parse_errors)}", file=sys.stderr)
    print("="*60, file=sys.stderr)


def main(argv=None):
    """Main function."""
    args = parse_arguments(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        config = load_config(args.config)
        if args.has_header:
            config = replace(config, has_header=True)
        if args.timeout is not None:
            config = replace(config, timeout=args.timeout)

        records = read_records(args.input, config.has_header)
        result = run_tax_pipeline(records, config, strategy=args.strategy)

    except ConcurrencyFault as e:
        logger.error(f"Tax aggregation failed: {e}")
        return 1
    except yaml.YAMLError as e:
        logger.error(f"Invalid settings file {args.config}: {e}")
        return 1
    except TaxEngineError as e:
        cause = f" ({e.__cause__})" if e.__cause__ else ""
        logger.error(f"Error computing tax: {e}{cause}")
        return 1

    if args.report:
        print_report(result)

    print(result.formatted_tax)
    return 0


if __name__ == "__main__":
    sys.exit(main())
