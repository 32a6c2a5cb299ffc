"""
Tax Aggregator for the Capital Gains Tax Engine

Concurrent per-security tax computation reduced into a single liability:
- One daemon worker thread per security, at most max_workers running at once
- Shared many-producer/single-consumer result queue
- Blocking join: workers count down a latch, the aggregator waits, then drains
- Polling join: the aggregator polls the queue with a fixed sleep between
  empty reads (kept as a measured baseline, not the default)
- Worker failures and timeouts surface as ConcurrencyFault, never a silent hang
- Order-independent reduction

Author: Your Name
Date: 2024
"""

import logging
import os
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

import pandas as pd

from tax_engine.config import JoinStrategy, TaxConfig
from tax_engine.exceptions import ConcurrencyFault, LedgerAlreadySettled
from tax_engine.ledger_book import LedgerBook
from tax_engine.security_ledger import FifoMatch, SecurityLedger, tax_due

# Configure logging
logger = logging.getLogger(__name__)

# Sentinel distinguishing "use the configured timeout" from an explicit None
_CONFIGURED = object()


def default_max_workers() -> int:
    """Worker cap used when none is configured, sized like ThreadPoolExecutor's."""
    return min(32, (os.cpu_count() or 1) + 4)


@dataclass
class SecurityTax:
    """Tax contribution of one security."""
    symbol: str
    profit: float
    tax: float
    trade_count: int = 0
    match: Optional[FifoMatch] = None

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        match = self.match
        return {
            'symbol': self.symbol,
            'trades': self.trade_count,
            'sales': len(match.sales) if match else 0,
            'proceeds': match.proceeds if match else 0.0,
            'basis': match.basis if match else 0.0,
            'unmatched_quantity': match.unmatched_quantity if match else 0,
            'profit': self.profit,
            'tax': self.tax
        }


@dataclass
class TaxReport:
    """Aggregated tax liability with its per-security breakdown."""
    total_tax: float
    securities: Dict[str, SecurityTax] = field(default_factory=dict)
    strategy: JoinStrategy = JoinStrategy.BLOCKING
    elapsed_seconds: float = 0.0

    @property
    def total_profit(self) -> float:
        return sum(self.securities[symbol].profit for symbol in sorted(self.securities))

    def to_dataframe(self) -> pd.DataFrame:
        """Per-security breakdown as a DataFrame indexed by symbol."""
        columns = ['symbol', 'trades', 'sales', 'proceeds', 'basis',
                   'unmatched_quantity', 'profit', 'tax']
        rows = [self.securities[symbol].to_dict() for symbol in sorted(self.securities)]
        return pd.DataFrame(rows, columns=columns).set_index('symbol')


@dataclass
class _WorkerOutcome:
    symbol: str
    result: Optional[SecurityTax] = None
    error: Optional[BaseException] = None


class CountdownLatch:
    """Blocks waiters until `count_down` has been called `count` times."""

    def __init__(self, count: int):
        if count < 0:
            raise ValueError("Latch count must be non-negative")
        self._count = count
        self._condition = threading.Condition()

    @property
    def count(self) -> int:
        with self._condition:
            return self._count

    def count_down(self) -> None:
        with self._condition:
            if self._count > 0:
                self._count -= 1
                if self._count == 0:
                    self._condition.notify_all()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for the count to reach zero. Returns False on timeout."""
        with self._condition:
            return self._condition.wait_for(lambda: self._count == 0, timeout=timeout)


class TaxAggregator:
    """
    Fan-out/reduce of per-security tax.

    Each SecurityLedger is handled by exactly one worker; ledgers are
    disjoint, so workers share nothing but the result queue.
    """

    def __init__(self, config: Optional[TaxConfig] = None):
        """
        Initialize the aggregator.

        Args:
            config: Engine configuration (tax rate, join strategy, workers,
                poll interval, timeout)
        """
        self.config = config or TaxConfig()

        logger.info(f"Tax Aggregator initialized (strategy: {self.config.join_strategy.value}, "
                    f"rate: {self.config.tax_rate:.2%}, max workers: {self.config.max_workers or 'default'})")

    def compute_security_tax(self, ledger: SecurityLedger) -> SecurityTax:
        """Match lots and compute the tax contribution of one security."""
        match = ledger.match_lots()
        return SecurityTax(
            symbol=ledger.symbol,
            profit=match.profit,
            tax=tax_due(match.profit, self.config.tax_rate),
            trade_count=len(ledger),
            match=match
        )

    def _run_worker(self, ledger: SecurityLedger, results: queue.Queue,
                    slots: threading.Semaphore,
                    latch: Optional[CountdownLatch] = None) -> None:
        with slots:
            try:
                outcome = _WorkerOutcome(symbol=ledger.symbol, result=self.compute_security_tax(ledger))
            except Exception as e:
                logger.error(f"Worker for {ledger.symbol} failed: {e}")
                outcome = _WorkerOutcome(symbol=ledger.symbol, error=e)

        results.put(outcome)
        if latch is not None:
            latch.count_down()

    def _start_workers(self, ledgers: List[SecurityLedger], results: queue.Queue,
                       latch: Optional[CountdownLatch] = None) -> None:
        # Daemon threads: a hung worker left behind by a timeout must not
        # keep the interpreter alive at exit
        max_workers = self.config.max_workers or default_max_workers()
        slots = threading.BoundedSemaphore(max_workers)
        for ledger in ledgers:
            worker = threading.Thread(
                target=self._run_worker,
                args=(ledger, results, slots, latch),
                name=f"tax-worker-{ledger.symbol}",
                daemon=True
            )
            worker.start()

    def _blocking_join(self, ledgers: List[SecurityLedger],
                       timeout: Optional[float]) -> List[_WorkerOutcome]:
        results: queue.Queue = queue.Queue()
        latch = CountdownLatch(len(ledgers))

        self._start_workers(ledgers, results, latch)

        completed = latch.wait(timeout=timeout)

        outcomes = []
        while True:
            try:
                outcomes.append(results.get_nowait())
            except queue.Empty:
                break

        if not completed:
            self._raise_missing(ledgers, outcomes, timeout)
        return outcomes

    def _polling_join(self, ledgers: List[SecurityLedger],
                      timeout: Optional[float]) -> List[_WorkerOutcome]:
        results: queue.Queue = queue.Queue()

        self._start_workers(ledgers, results)

        deadline = time.monotonic() + timeout if timeout is not None else None
        outcomes = []
        empty_polls = 0

        while len(outcomes) < len(ledgers):
            try:
                outcomes.append(results.get_nowait())
                continue
            except queue.Empty:
                empty_polls += 1

            if deadline is not None and time.monotonic() >= deadline:
                self._raise_missing(ledgers, outcomes, timeout)
            time.sleep(self.config.poll_interval)

        logger.debug(f"Polling join finished after {empty_polls} empty polls")
        return outcomes

    def _raise_missing(self, ledgers: List[SecurityLedger], outcomes: List[_WorkerOutcome],
                       timeout: Optional[float]) -> None:
        reported = {outcome.symbol for outcome in outcomes}
        missing = [ledger.symbol for ledger in ledgers if ledger.symbol not in reported]
        logger.error(f"Timed out after {timeout}s waiting for {len(missing)} workers: {sorted(missing)}")
        raise ConcurrencyFault(
            f"{len(missing)} of {len(ledgers)} workers did not report within {timeout}s",
            symbols=missing
        )

    def compute_report(self, book: LedgerBook,
                       strategy: Optional[Union[str, JoinStrategy]] = None,
                       timeout=_CONFIGURED,
                       settle: bool = True) -> TaxReport:
        """
        Compute every security's tax concurrently and sum the contributions.

        Args:
            book: Ledger book to process
            strategy: Join strategy; defaults to the configured one
            timeout: Seconds to wait for all workers; None waits forever.
                Defaults to the configured timeout.
            settle: Commit lot consumption onto the buy trades afterwards

        Returns:
            TaxReport

        Raises:
            ConcurrencyFault: If a worker fails or the timeout expires
            LedgerAlreadySettled: If settling and a ledger was already settled
        """
        strategy = JoinStrategy.validate(strategy or self.config.join_strategy)
        if timeout is _CONFIGURED:
            timeout = self.config.timeout

        ledgers = list(book)
        if settle:
            already_settled = [ledger.symbol for ledger in ledgers if ledger.settled]
            if already_settled:
                raise LedgerAlreadySettled(f"Ledgers already settled: {sorted(already_settled)}")

        if not ledgers:
            logger.info("No securities to aggregate")
            return TaxReport(total_tax=0.0, strategy=strategy)

        start = time.perf_counter()
        if strategy is JoinStrategy.BLOCKING:
            outcomes = self._blocking_join(ledgers, timeout)
        else:
            outcomes = self._polling_join(ledgers, timeout)
        elapsed = time.perf_counter() - start

        failures = [outcome for outcome in outcomes if outcome.error is not None]
        if failures:
            symbols = [outcome.symbol for outcome in failures]
            raise ConcurrencyFault(
                f"{len(failures)} of {len(ledgers)} workers failed: {sorted(symbols)}",
                symbols=symbols
            ) from failures[0].error

        securities = {outcome.symbol: outcome.result for outcome in outcomes}
        total_tax = sum(securities[symbol].tax for symbol in sorted(securities))

        if settle:
            for ledger in ledgers:
                ledger.settle(securities[ledger.symbol].match)

        logger.info(f"Aggregated tax over {len(securities)} securities with {strategy.value} join: "
                    f"{total_tax:.2f} ({elapsed:.3f}s)")
        return TaxReport(
            total_tax=total_tax,
            securities=securities,
            strategy=strategy,
            elapsed_seconds=elapsed
        )

    def compute_total_tax(self, book: LedgerBook,
                          strategy: Optional[Union[str, JoinStrategy]] = None,
                          timeout=_CONFIGURED) -> float:
        """Total tax due across every security in the book."""
        return self.compute_report(book, strategy=strategy, timeout=timeout).total_tax
