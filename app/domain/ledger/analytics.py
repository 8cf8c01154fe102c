"""
Domain service: portfolio analytics.

Pure calculations over holdings, quotes and ledger records:
unrealized performance, monthly cash flow, and long-term lot status.
"""

from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Sequence

from dateutil.relativedelta import relativedelta

from app.domain.ledger.entities import (
    Holding,
    InvestmentClass,
    Trade,
    TradeDirection,
    Transaction,
    TransactionType,
)
from app.domain.ledger.money import quantize

INCOME_TRANSACTION_TYPES = frozenset({TransactionType.TRANSFER, TransactionType.DEPOSIT})
EXPENSE_TRANSACTION_TYPES = frozenset({TransactionType.TRANSFER, TransactionType.WITHDRAW})


@dataclass(frozen=True)
class PerformanceSummary:
    """Unrealized performance of all lots at current prices."""

    total_invested: Decimal
    current_value: Decimal
    profit_loss: Decimal
    profit_loss_pct: Decimal


@dataclass(frozen=True)
class CashFlowSummary:
    """Income and expense for one calendar month."""

    month: int
    year: int
    total_income: Decimal
    total_expense: Decimal


@dataclass(frozen=True)
class LongTermLot:
    """A LONG_TERM lot with its holding period."""

    symbol: str
    quantity: int
    acquired_at: datetime
    days_held: int
    long_term_qualified: bool


def month_bounds(
    month: int, year: int, tz: tzinfo = timezone.utc
) -> tuple[datetime, datetime]:
    """Return ``[start, end)`` bounds for a calendar month."""
    start = datetime(year, month, 1, tzinfo=tz)
    return start, start + relativedelta(months=1)


class PortfolioAnalytics:
    """Stateless analytics over an account's lots and history."""

    def performance(
        self, holdings: Sequence[Holding], prices: Mapping[str, Decimal]
    ) -> PerformanceSummary:
        """Compare cost basis with market value.

        Args:
            holdings: Lots of one account.
            prices: Current price per symbol; every lot's symbol must be present.
        """
        invested = Decimal("0")
        current = Decimal("0")
        for holding in holdings:
            invested += holding.average_cost * holding.quantity
            current += prices[holding.symbol] * holding.quantity

        invested = quantize(invested)
        current = quantize(current)
        profit_loss = current - invested

        pct = Decimal("0")
        if invested > 0:
            ratio = (profit_loss / invested).quantize(
                Decimal("0.0001"), rounding=ROUND_HALF_UP
            )
            pct = ratio * 100

        return PerformanceSummary(
            total_invested=invested,
            current_value=current,
            profit_loss=profit_loss,
            profit_loss_pct=pct,
        )

    def monthly_cash_flow(
        self,
        account_number: str,
        month: int,
        year: int,
        transactions: Sequence[Transaction],
        trades: Sequence[Trade],
    ) -> CashFlowSummary:
        """Sum income and expense for records already filtered to the month.

        Incoming TRANSFER/DEPOSIT and SELL proceeds count as income;
        outgoing TRANSFER/WITHDRAW and BUY costs count as expense.
        Reversals and opening deposits are neither.
        """
        income = Decimal("0")
        expense = Decimal("0")

        for txn in transactions:
            if txn.receiver_account == account_number:
                if txn.type in INCOME_TRANSACTION_TYPES:
                    income += txn.amount
            elif txn.type in EXPENSE_TRANSACTION_TYPES:
                expense += txn.amount

        for trade in trades:
            if trade.direction is TradeDirection.SELL:
                income += trade.total
            else:
                expense += trade.total

        return CashFlowSummary(
            month=month,
            year=year,
            total_income=quantize(income),
            total_expense=quantize(expense),
        )

    def long_term_lots(
        self, holdings: Sequence[Holding], now: datetime
    ) -> list[LongTermLot]:
        """Return LONG_TERM lots with days held and one-year qualification."""
        one_year_ago = now - relativedelta(years=1)
        lots = []
        for holding in holdings:
            if holding.investment_class is not InvestmentClass.LONG_TERM:
                continue
            lots.append(
                LongTermLot(
                    symbol=holding.symbol,
                    quantity=holding.quantity,
                    acquired_at=holding.acquired_at,
                    days_held=(now - holding.acquired_at).days,
                    long_term_qualified=holding.acquired_at < one_year_ago,
                )
            )
        return lots
