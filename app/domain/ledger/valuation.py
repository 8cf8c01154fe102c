"""
Domain service: portfolio valuation history.

Replays an account's cash and trade history from genesis and turns it
into a daily net-worth series. Pure business logic: no IO, no clock
reads (``now`` is always passed in).

Valuation marks each symbol at its last *traded* price, taken from the
account's own BUY and SELL executions, not from a live quote.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterator, Sequence, Union

from dateutil.relativedelta import relativedelta

from app.domain.ledger.entities import (
    HistoryRange,
    Trade,
    TradeDirection,
    Transaction,
    ValuationPoint,
)
from app.domain.ledger.money import quantize

LedgerRecord = Union[Transaction, Trade]


def window_start(history_range: HistoryRange, now: datetime) -> datetime:
    """Return the inclusive start of a look-back window ending at ``now``."""
    if history_range is HistoryRange.SEVEN_DAYS:
        return now - timedelta(days=7)
    if history_range is HistoryRange.THIRTY_DAYS:
        return now - timedelta(days=30)
    return now - relativedelta(months=12)


def merge_events(
    transactions: Sequence[Transaction], trades: Sequence[Trade]
) -> list[LedgerRecord]:
    """Merge both record kinds into one timeline, oldest first.

    The sort is stable over ``transactions + trades``, so at equal
    timestamps transactions come before trades and each kind keeps its
    own insertion order.
    """
    combined: list[LedgerRecord] = [*transactions, *trades]
    return sorted(combined, key=lambda record: record.timestamp)


@dataclass
class _ReplayState:
    cash: Decimal
    holdings_qty: dict[str, int]
    last_price: dict[str, Decimal]

    def apply(self, record: LedgerRecord, account_number: str) -> None:
        if isinstance(record, Transaction):
            if record.receiver_account == account_number:
                self.cash += record.amount
            if record.sender_account == account_number:
                self.cash -= record.amount
            return

        if record.direction is TradeDirection.BUY:
            self.cash -= record.total
            self.holdings_qty[record.symbol] = (
                self.holdings_qty.get(record.symbol, 0) + record.quantity
            )
        else:
            self.cash += record.total
            self.holdings_qty[record.symbol] = (
                self.holdings_qty.get(record.symbol, 0) - record.quantity
            )
        self.last_price[record.symbol] = record.price

    def total_value(self) -> Decimal:
        marked = sum(
            (
                Decimal(qty) * self.last_price.get(symbol, Decimal("0"))
                for symbol, qty in self.holdings_qty.items()
            ),
            Decimal("0"),
        )
        return quantize(self.cash + marked)


class PortfolioHistory:
    """A finite, lazy, restartable valuation series for one account.

    Each iteration replays the full event list from scratch, so the same
    object can be iterated any number of times with identical results.

    Args:
        account_number: Account whose perspective is replayed.
        events: Merged, time-ordered transactions and trades.
        start: Inclusive window start; earlier events update state only.
        now: Valuation instant for the trailing point.
    """

    def __init__(
        self,
        account_number: str,
        events: Sequence[LedgerRecord],
        start: datetime,
        now: datetime,
    ) -> None:
        self._account_number = account_number
        self._events = tuple(events)
        self._start = start
        self._now = now

    @property
    def account_number(self) -> str:
        return self._account_number

    def __iter__(self) -> Iterator[ValuationPoint]:
        state = _ReplayState(cash=Decimal("0"), holdings_qty={}, last_price={})
        pending: ValuationPoint | None = None
        last_date: date | None = None

        for record in self._events:
            state.apply(record, self._account_number)

            if record.timestamp < self._start:
                continue
            current_date = record.timestamp.date()
            if last_date is not None and current_date == last_date:
                continue

            if pending is not None:
                yield pending
            pending = ValuationPoint(date=current_date, total_value=state.total_value())
            last_date = current_date

        final = ValuationPoint(date=self._now.date(), total_value=state.total_value())
        if pending is not None and pending.date != final.date:
            yield pending
        yield final


class HistoryReconstructor:
    """Builds valuation histories from raw ledger records."""

    def reconstruct(
        self,
        account_number: str,
        transactions: Sequence[Transaction],
        trades: Sequence[Trade],
        history_range: HistoryRange,
        now: datetime,
    ) -> PortfolioHistory:
        """Return the valuation series for a look-back window.

        Args:
            account_number: Canonical account number.
            transactions: Every transaction where the account is a party.
            trades: Every trade of the account.
            history_range: Requested look-back window.
            now: Current instant; the series always ends on ``now.date()``.

        Returns:
            A re-iterable series of ValuationPoint. An empty history yields
            a single point for today valued at zero.
        """
        return PortfolioHistory(
            account_number=account_number,
            events=merge_events(transactions, trades),
            start=window_start(history_range, now),
            now=now,
        )
