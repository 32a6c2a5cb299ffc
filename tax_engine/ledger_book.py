"""
Ledger Book: partitions a trade stream by security.

Author: Your Name
Date: 2024
"""

import logging
from typing import Dict, Iterable, Iterator, List, Optional

from tax_engine.config import TaxConfig
from tax_engine.exceptions import RecordParseError
from tax_engine.security_ledger import SecurityLedger
from tax_engine.trade_parser import Trade, parse_trade

# Configure logging
logger = logging.getLogger(__name__)


def normalize_symbol(symbol: str) -> str:
    """Case-fold a symbol. Whitespace is significant and left untouched."""
    return symbol.casefold()


class LedgerBook:
    """
    Mapping of normalized symbol to SecurityLedger.

    Also keeps the parse errors of the records that were skipped while the
    book was built.
    """

    def __init__(self):
        self.ledgers: Dict[str, SecurityLedger] = {}
        self.parse_errors: List[RecordParseError] = []

    def __len__(self) -> int:
        return len(self.ledgers)

    def __contains__(self, symbol: str) -> bool:
        return normalize_symbol(symbol) in self.ledgers

    def __getitem__(self, symbol: str) -> SecurityLedger:
        return self.ledgers[normalize_symbol(symbol)]

    def __iter__(self) -> Iterator[SecurityLedger]:
        return iter(self.ledgers.values())

    @property
    def symbols(self) -> List[str]:
        return list(self.ledgers.keys())

    @property
    def trade_count(self) -> int:
        return sum(len(ledger) for ledger in self.ledgers.values())

    def add_trade(self, trade: Trade) -> SecurityLedger:
        """File a trade under its normalized symbol, creating the ledger on first sight."""
        symbol = normalize_symbol(trade.symbol)
        ledger = self.ledgers.get(symbol)
        if ledger is None:
            ledger = SecurityLedger(symbol)
            self.ledgers[symbol] = ledger
            logger.debug(f"Created ledger for {symbol}")
        ledger.append(trade)
        return ledger


def build_ledger_book(records: Iterable[str], config: Optional[TaxConfig] = None) -> LedgerBook:
    """
    Parse raw records and group the resulting trades by security.

    A malformed record is logged, kept in `parse_errors` and skipped; it
    never aborts the run. Empty records are ignored; whitespace-only records
    are malformed.

    Args:
        records: Raw trade records, in input order
        config: Engine configuration (buy indicator)

    Returns:
        LedgerBook
    """
    config = config or TaxConfig()
    book = LedgerBook()

    for line_number, record in enumerate(records, 1):
        record = record.rstrip("\r\n")
        if not record:
            logger.debug(f"Skipping empty record at line {line_number}")
            continue

        try:
            trade = parse_trade(record, buy_indicator=config.buy_indicator)
        except RecordParseError as e:
            logger.warning(f"Skipping record at line {line_number}: {e}")
            book.parse_errors.append(e)
            continue

        book.add_trade(trade)

    logger.info(f"Ledger book built: {book.trade_count} trades across {len(book)} securities, "
                f"{len(book.parse_errors)} records skipped")
    return book
