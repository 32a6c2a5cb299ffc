"""
Trade record parsing.

Converts one raw comma-separated record (date, symbol, side, quantity,
price) into a Trade.

Author: Your Name
Date: 2024
"""

import logging
import math
import re
import sys
from dataclasses import dataclass
from typing import Dict

from tax_engine.exceptions import RecordParseError

# Configure logging
logger = logging.getLogger(__name__)

FIELD_COUNT = 5
FIELD_SEPARATOR = ","
DEFAULT_BUY_INDICATOR = "b"

# ASCII digits only: no underscores, no surrounding whitespace, no inf/nan
QUANTITY_PATTERN = re.compile(r"[+-]?[0-9]+")
PRICE_PATTERN = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


@dataclass
class Trade:
    """
    A single buy or sell record.

    `remaining` is only meaningful for buys: it starts at `quantity` and
    shrinks as sales consume the lot. Sells always carry 0.
    """
    date: str
    symbol: str
    is_buy: bool
    quantity: int
    price: float
    remaining: int = 0

    @property
    def value(self) -> float:
        """Gross value of the trade."""
        return self.price * self.quantity

    @property
    def side(self) -> str:
        return "BUY" if self.is_buy else "SELL"

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        return {
            'date': self.date,
            'symbol': self.symbol,
            'side': self.side,
            'quantity': self.quantity,
            'price': self.price,
            'remaining': self.remaining
        }


def _parse_quantity(value: str, record: str) -> int:
    if not QUANTITY_PATTERN.fullmatch(value):
        raise RecordParseError("quantity", value, record, "not an integer")

    quantity = int(value, 10)
    if quantity < 0:
        raise RecordParseError("quantity", value, record, "must be non-negative")
    if quantity > sys.maxsize:
        raise RecordParseError("quantity", value, record, "out of range")
    return quantity


def _parse_price(value: str, record: str) -> float:
    if not PRICE_PATTERN.fullmatch(value):
        raise RecordParseError("price", value, record, "not a decimal number")

    price = float(value)
    if not math.isfinite(price):
        raise RecordParseError("price", value, record, "must be finite")
    if price < 0:
        raise RecordParseError("price", value, record, "must be non-negative")
    return price


def _printable(text: str) -> str:
    return text.encode('utf-8', 'surrogateescape').decode('utf-8', 'replace')


def parse_trade(record: str, buy_indicator: str = DEFAULT_BUY_INDICATOR) -> Trade:
    """
    Parse one raw record into a Trade.

    Any side other than the buy indicator (compared case-insensitively) is a
    sell. The symbol is kept exactly as written; normalization happens when
    the trade is filed into a ledger.

    Args:
        record: Raw record "date,symbol,side,quantity,price"
        buy_indicator: Side token marking a buy

    Returns:
        Parsed Trade

    Raises:
        RecordParseError: On a wrong field count or a bad quantity or price
    """
    try:
        record.encode('utf-8')
    except UnicodeEncodeError as e:
        printable = _printable(record)
        raise RecordParseError("record", printable, printable, "not valid UTF-8") from e

    fields = record.split(FIELD_SEPARATOR)
    if len(fields) != FIELD_COUNT:
        raise RecordParseError(
            "record", record, record,
            f"expected {FIELD_COUNT} fields, got {len(fields)}"
        )

    date, symbol, side, raw_quantity, raw_price = fields
    is_buy = side.casefold() == buy_indicator.casefold()
    quantity = _parse_quantity(raw_quantity, record)
    price = _parse_price(raw_price, record)

    return Trade(
        date=date,
        symbol=symbol,
        is_buy=is_buy,
        quantity=quantity,
        price=price,
        remaining=quantity if is_buy else 0
    )
