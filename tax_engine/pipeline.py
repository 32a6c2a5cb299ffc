"""
End-to-end tax run: raw records -> ledger book -> aggregated tax -> formatted string.

Author: Your Name
Date: 2024
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Union

from tax_engine.config import JoinStrategy, TaxConfig
from tax_engine.currency import format_currency
from tax_engine.exceptions import RecordParseError
from tax_engine.ledger_book import LedgerBook, build_ledger_book
from tax_engine.tax_aggregator import TaxAggregator, TaxReport

# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Outcome of one tax run."""
    formatted_tax: str
    total_tax: float
    report: TaxReport
    book: LedgerBook
    parse_errors: List[RecordParseError] = field(default_factory=list)


def run_tax_pipeline(records: Iterable[str],
                     config: Optional[TaxConfig] = None,
                     strategy: Optional[Union[str, JoinStrategy]] = None) -> PipelineResult:
    """
    Compute and format the total tax due for a sequence of raw records.

    Args:
        records: Raw trade records, one per element, no header row
        config: Engine configuration
        strategy: Join strategy override

    Returns:
        PipelineResult with the formatted total and the underlying report

    Raises:
        ConcurrencyFault: If aggregation fails
    """
    config = config or TaxConfig()

    book = build_ledger_book(records, config)
    report = TaxAggregator(config).compute_report(book, strategy=strategy)
    formatted = format_currency(report.total_tax, config.currency_symbol)

    logger.info(f"Total tax due: {formatted}")
    return PipelineResult(
        formatted_tax=formatted,
        total_tax=report.total_tax,
        report=report,
        book=book,
        parse_errors=list(book.parse_errors)
    )
