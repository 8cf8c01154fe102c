"""
Tests for PortfolioAnalytics: performance, monthly cash flow, long-term lots.
"""

from datetime import datetime, timezone
from decimal import Decimal

from app.domain.ledger.analytics import PortfolioAnalytics, month_bounds
from app.domain.ledger.entities import (
    Holding,
    InvestmentClass,
    SYSTEM_ACCOUNT,
    Trade,
    TradeDirection,
    Transaction,
    TransactionType,
)

ACCOUNT = "0000000001"
OTHER = "0000000002"
NOW = datetime(2024, 6, 15, tzinfo=timezone.utc)


def _holding(symbol, qty, avg, cls=InvestmentClass.SHORT_TERM, acquired=NOW) -> Holding:
    return Holding(
        account_number=ACCOUNT,
        symbol=symbol,
        investment_class=cls,
        quantity=qty,
        average_cost=Decimal(avg),
        acquired_at=acquired,
    )


def _txn(sender, receiver, amount, kind) -> Transaction:
    return Transaction(
        sender_account=sender,
        receiver_account=receiver,
        amount=Decimal(amount),
        type=kind,
        description="",
        timestamp=NOW,
    )


def _trade(direction, total) -> Trade:
    return Trade(
        account_number=ACCOUNT,
        symbol="AAPL",
        direction=direction,
        quantity=1,
        price=Decimal(total),
        total=Decimal(total),
        investment_class=InvestmentClass.SHORT_TERM,
        timestamp=NOW,
    )


class TestPerformance:
    """Tests for unrealized profit and loss."""

    def test_gain_percentage(self) -> None:
        """10 AAPL bought at 100, now 110: +100, +10%."""
        summary = PortfolioAnalytics().performance(
            [_holding("AAPL", 10, "100")], {"AAPL": Decimal("110")}
        )
        assert summary.total_invested == Decimal("1000")
        assert summary.current_value == Decimal("1100")
        assert summary.profit_loss == Decimal("100")
        assert summary.profit_loss_pct == Decimal("10")

    def test_loss_across_symbols(self) -> None:
        summary = PortfolioAnalytics().performance(
            [_holding("AAPL", 1, "300"), _holding("MSFT", 2, "100")],
            {"AAPL": Decimal("200"), "MSFT": Decimal("100")},
        )
        assert summary.profit_loss == Decimal("-100")
        assert summary.profit_loss_pct == Decimal("-20")

    def test_ratio_rounded_before_scaling(self) -> None:
        """1/3 becomes 0.3333 before × 100."""
        summary = PortfolioAnalytics().performance(
            [_holding("AAPL", 3, "1")], {"AAPL": Decimal("1.3333")}
        )
        assert summary.profit_loss_pct == Decimal("33.33")

    def test_nothing_invested(self) -> None:
        summary = PortfolioAnalytics().performance([], {})
        assert summary.total_invested == Decimal("0")
        assert summary.profit_loss_pct == Decimal("0")


class TestMonthlyCashFlow:
    """Tests for income/expense classification."""

    def test_classification(self) -> None:
        txns = [
            _txn(OTHER, ACCOUNT, "200", TransactionType.TRANSFER),
            _txn(SYSTEM_ACCOUNT, ACCOUNT, "50", TransactionType.DEPOSIT),
            _txn(ACCOUNT, OTHER, "30", TransactionType.TRANSFER),
            _txn(ACCOUNT, SYSTEM_ACCOUNT, "20", TransactionType.WITHDRAW),
            _txn(SYSTEM_ACCOUNT, ACCOUNT, "1000", TransactionType.INITIAL_DEPOSIT),
            _txn(OTHER, ACCOUNT, "5", TransactionType.REVERSAL),
        ]
        trades = [_trade(TradeDirection.SELL, "80"), _trade(TradeDirection.BUY, "120")]

        summary = PortfolioAnalytics().monthly_cash_flow(ACCOUNT, 6, 2024, txns, trades)

        assert summary.total_income == Decimal("330")
        assert summary.total_expense == Decimal("170")
        assert (summary.month, summary.year) == (6, 2024)

    def test_month_bounds(self) -> None:
        start, end = month_bounds(12, 2024)
        assert start == datetime(2024, 12, 1, tzinfo=timezone.utc)
        assert end == datetime(2025, 1, 1, tzinfo=timezone.utc)


class TestLongTermLots:
    """Tests for long-term lot reporting."""

    def test_only_long_term_lots_listed(self) -> None:
        lots = PortfolioAnalytics().long_term_lots(
            [
                _holding("AAPL", 1, "1"),
                _holding("MSFT", 2, "1", InvestmentClass.LONG_TERM, datetime(2024, 6, 5, tzinfo=timezone.utc)),
            ],
            NOW,
        )
        assert [lot.symbol for lot in lots] == ["MSFT"]
        assert lots[0].days_held == 10
        assert lots[0].long_term_qualified is False

    def test_qualifies_after_one_year(self) -> None:
        acquired = datetime(2023, 6, 14, tzinfo=timezone.utc)
        lots = PortfolioAnalytics().long_term_lots(
            [_holding("AAPL", 1, "1", InvestmentClass.LONG_TERM, acquired)], NOW
        )
        assert lots[0].long_term_qualified is True
        assert lots[0].days_held == 367
