"""
Exception hierarchy for the capital gains tax engine.

Author: Your Name
Date: 2024
"""

from typing import Optional


class TaxEngineError(Exception):
    """Base class for all tax engine errors."""


class ConfigError(TaxEngineError, ValueError):
    """Raised when a configuration value is missing or out of range."""


class RecordParseError(TaxEngineError, ValueError):
    """
    A single raw trade record could not be parsed.

    Attributes:
        field: Name of the offending field ('record' for a field count mismatch)
        value: Offending raw value
        record: Full raw record
    """

    def __init__(self, field: str, value: str, record: str, reason: str = ""):
        self.field = field
        self.value = value
        self.record = record
        self.reason = reason
        message = f"invalid {field} '{value}' in record '{record}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


# Short name used by callers that only care about the parse stage
ParseError = RecordParseError


class ConcurrencyFault(TaxEngineError):
    """
    A per-security worker failed or did not report in time.

    Attributes:
        symbols: Symbols whose results are missing or failed
    """

    def __init__(self, message: str, symbols: Optional[list] = None):
        self.symbols = sorted(symbols or [])
        super().__init__(message)


class LedgerAlreadySettled(TaxEngineError):
    """Raised when lot consumption is committed twice on the same ledger."""


class LineSourceError(TaxEngineError):
    """Raised when the raw record source cannot be read."""
