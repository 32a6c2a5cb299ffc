"""
Capital gains tax engine.

Parses buy/sell trade records, groups them by security, computes realized
FIFO profit per security and aggregates the tax due concurrently.
"""

from tax_engine.config import JoinStrategy, TaxConfig, load_config
from tax_engine.currency import format_currency
from tax_engine.exceptions import (
    ConcurrencyFault,
    ConfigError,
    LedgerAlreadySettled,
    LineSourceError,
    ParseError,
    RecordParseError,
    TaxEngineError,
)
from tax_engine.ledger_book import LedgerBook, build_ledger_book
from tax_engine.pipeline import PipelineResult, run_tax_pipeline
from tax_engine.security_ledger import FifoMatch, LotConsumption, SecurityLedger
from tax_engine.tax_aggregator import SecurityTax, TaxAggregator, TaxReport
from tax_engine.trade_parser import Trade, parse_trade

__version__ = "1.0.0"
__author__ = "capital_gains_tax team"

__all__ = [
    'ConcurrencyFault',
    'ConfigError',
    'FifoMatch',
    'JoinStrategy',
    'LedgerAlreadySettled',
    'LedgerBook',
    'LineSourceError',
    'LotConsumption',
    'ParseError',
    'PipelineResult',
    'RecordParseError',
    'SecurityLedger',
    'SecurityTax',
    'TaxAggregator',
    'TaxConfig',
    'TaxEngineError',
    'TaxReport',
    'Trade',
    'build_ledger_book',
    'format_currency',
    'load_config',
    'parse_trade',
    'run_tax_pipeline',
]
