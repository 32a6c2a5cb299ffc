"""
Security Ledger with FIFO Lot Matching

Per-security trade ledger and realized profit computation:
- FIFO cost basis: every sale is matched against buy lots in record order
- Short sales: a sale may be covered by a buy that appears later in the ledger
- Unmatched sale quantity contributes zero cost basis
- Lot consumption trace produced as a separate output
- Single commit of consumed quantities back onto the buy trades

Author: Your Name
Date: 2024
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from tax_engine.exceptions import LedgerAlreadySettled
from tax_engine.trade_parser import Trade

# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class LotConsumption:
    """Record of one sale drawing units from one buy lot."""
    sale_index: int
    lot_index: int
    quantity: int
    lot_price: float
    sale_date: str = ""
    lot_date: str = ""

    @property
    def basis(self) -> float:
        return self.lot_price * self.quantity

    @property
    def is_short_cover(self) -> bool:
        """True when the covering buy comes after the sale in record order."""
        return self.lot_index > self.sale_index

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        return {
            'sale_index': self.sale_index,
            'lot_index': self.lot_index,
            'quantity': self.quantity,
            'lot_price': self.lot_price,
            'basis': self.basis,
            'sale_date': self.sale_date,
            'lot_date': self.lot_date,
            'is_short_cover': self.is_short_cover
        }


@dataclass
class SaleResult:
    """Realized result of one sale."""
    sale_index: int
    quantity: int
    proceeds: float
    basis: float
    unmatched_quantity: int = 0

    @property
    def profit(self) -> float:
        return self.proceeds - self.basis


@dataclass
class FifoMatch:
    """
    Output of FIFO matching for one ledger.

    Attributes:
        symbol: Normalized symbol
        profit: Realized profit across all sales
        sales: One SaleResult per sale, in record order
        consumptions: Lot consumption trace, in matching order
        remaining: Remaining quantity per buy trade index after matching
    """
    symbol: str
    profit: float = 0.0
    sales: List[SaleResult] = field(default_factory=list)
    consumptions: List[LotConsumption] = field(default_factory=list)
    remaining: Dict[int, int] = field(default_factory=dict)

    @property
    def unmatched_quantity(self) -> int:
        return sum(sale.unmatched_quantity for sale in self.sales)

    @property
    def proceeds(self) -> float:
        return sum(sale.proceeds for sale in self.sales)

    @property
    def basis(self) -> float:
        return sum(sale.basis for sale in self.sales)


class SecurityLedger:
    """
    Ordered trades for a single security.

    Insertion order is the order the trades appeared in the input and drives
    FIFO matching. Matching runs against a working copy of the lot quantities,
    so it can be repeated; `settle` writes the outcome back onto the buy
    trades and may only happen once.
    """

    def __init__(self, symbol: str, trades: Optional[List[Trade]] = None):
        self.symbol = symbol
        self.trades: List[Trade] = list(trades) if trades else []
        self.settled = False

    def __len__(self) -> int:
        return len(self.trades)

    def __iter__(self):
        return iter(self.trades)

    def __repr__(self) -> str:
        return f"SecurityLedger(symbol={self.symbol!r}, trades={len(self.trades)})"

    def append(self, trade: Trade) -> None:
        """Append a trade, keeping input order."""
        if self.settled:
            raise LedgerAlreadySettled(f"Ledger {self.symbol} is already settled")
        self.trades.append(trade)

    @property
    def buys(self) -> List[Trade]:
        return [trade for trade in self.trades if trade.is_buy]

    @property
    def sells(self) -> List[Trade]:
        return [trade for trade in self.trades if not trade.is_buy]

    def match_lots(self) -> FifoMatch:
        """
        Match every sale against buy lots in FIFO order.

        For each sale (in record order) the buy lots are scanned from the
        start of the ledger, skipping exhausted lots. Lots that come after
        the sale are eligible, which is what covers short sales. Quantity
        left over once every lot is exhausted carries no cost basis.

        Returns:
            FifoMatch with realized profit and the consumption trace
        """
        lot_remaining = {
            index: trade.remaining
            for index, trade in enumerate(self.trades)
            if trade.is_buy
        }
        result = FifoMatch(symbol=self.symbol)

        for sale_index, sale in enumerate(self.trades):
            if sale.is_buy:
                continue

            proceeds = sale.price * sale.quantity
            need_to_find = sale.quantity
            basis = 0.0

            for lot_index, available in lot_remaining.items():
                if need_to_find == 0:
                    break
                if available <= 0:
                    continue

                lot = self.trades[lot_index]
                consumed = min(available, need_to_find)
                lot_remaining[lot_index] = available - consumed
                need_to_find -= consumed
                basis += lot.price * consumed

                result.consumptions.append(LotConsumption(
                    sale_index=sale_index,
                    lot_index=lot_index,
                    quantity=consumed,
                    lot_price=lot.price,
                    sale_date=sale.date,
                    lot_date=lot.date
                ))

            if need_to_find > 0:
                logger.debug(f"{self.symbol}: sale #{sale_index} left {need_to_find} units "
                             f"unmatched, treated as zero cost basis")

            result.sales.append(SaleResult(
                sale_index=sale_index,
                quantity=sale.quantity,
                proceeds=proceeds,
                basis=basis,
                unmatched_quantity=need_to_find
            ))
            result.profit += proceeds - basis

        result.remaining = lot_remaining
        logger.debug(f"{self.symbol}: matched {len(result.sales)} sales, profit {result.profit:.2f}")
        return result

    def compute_profit(self) -> float:
        """Realized FIFO profit for this security."""
        return self.match_lots().profit

    def compute_tax(self, tax_rate: float = 0.25) -> float:
        """
        Tax due for this security.

        Non-positive profit contributes exactly zero; losses are not carried
        forward or netted against other securities.
        """
        return tax_due(self.compute_profit(), tax_rate)

    def settle(self, match: FifoMatch) -> None:
        """
        Commit a matching outcome onto the buy trades.

        Args:
            match: Result of `match_lots` on this ledger

        Raises:
            LedgerAlreadySettled: If the ledger was already settled
            ValueError: If the match belongs to another ledger
        """
        if self.settled:
            raise LedgerAlreadySettled(f"Ledger {self.symbol} is already settled")
        if match.symbol != self.symbol:
            raise ValueError(f"Match for {match.symbol} cannot settle ledger {self.symbol}")

        for lot_index, remaining in match.remaining.items():
            self.trades[lot_index].remaining = remaining
        self.settled = True
        logger.debug(f"{self.symbol}: settled {len(match.remaining)} buy lots")

    def open_lots(self) -> List[Trade]:
        """Buy trades that still hold unconsumed units."""
        return [trade for trade in self.trades if trade.is_buy and trade.remaining > 0]


def tax_due(profit: float, tax_rate: float) -> float:
    """Tax on a realized profit; zero when the profit is not positive."""
    if profit > 0:
        return profit * tax_rate
    return 0.0
