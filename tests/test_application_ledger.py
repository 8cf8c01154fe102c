"""
Tests for the ledger application layer (use cases).

Use cases run against real SQL adapters on a per-test SQLite file, with a
fixed clock, a constant price source and a recording event sink.
"""

import random
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from app.application.ledger.account_queries import (
    GetBalanceUseCase,
    ListHoldingsUseCase,
    ListTransactionsUseCase,
)
from app.application.ledger.cash_movements import DepositUseCase, WithdrawUseCase
from app.application.ledger.dtos import (
    CashMovementCommand,
    HistoryQuery,
    MonthlyAnalyticsQuery,
    OpenAccountCommand,
    TradeCommand,
    TransferCommand,
)
from app.application.ledger.execute_trade import ExecuteTradeUseCase
from app.application.ledger.get_portfolio_history import GetPortfolioHistoryUseCase
from app.application.ledger.open_account import OpenAccountUseCase, hash_pin
from app.application.ledger.portfolio_analytics import (
    GetLongTermHoldingsUseCase,
    GetMonthlyAnalyticsUseCase,
    GetPerformanceUseCase,
)
from app.application.ledger.reverse_transaction import ReverseTransactionUseCase
from app.application.ledger.transfer_funds import TransferFundsUseCase
from app.domain.ledger.entities import (
    EventKind,
    HistoryRange,
    InvestmentClass,
    TradeDirection,
    TransactionType,
)
from app.domain.ledger.errors import (
    AccountNotFoundError,
    HoldingNotFoundError,
    InsufficientFundsError,
    InsufficientSharesError,
    InvalidAmountError,
    NotReversibleError,
    TransactionNotFoundError,
)
from app.infrastructure.ledger.account_directory import SqlAccountDirectory
from app.infrastructure.ledger.history_repository import SqlLedgerHistoryRepository

A = "0000000001"
B = "0000000002"


@pytest.fixture
def trader(uow_factory, prices, sink, clock) -> ExecuteTradeUseCase:
    return ExecuteTradeUseCase(uow_factory, prices, sink, clock)


@pytest.fixture
def transfers(uow_factory, sink, clock) -> TransferFundsUseCase:
    return TransferFundsUseCase(uow_factory, sink, clock)


@pytest.fixture
def reversals(uow_factory, sink, clock) -> ReverseTransactionUseCase:
    return ReverseTransactionUseCase(uow_factory, sink, clock)


@pytest.fixture
def directory(engine) -> SqlAccountDirectory:
    return SqlAccountDirectory(engine)


@pytest.fixture
def history_repo(engine) -> SqlLedgerHistoryRepository:
    return SqlLedgerHistoryRepository(engine)


def _trades(history_repo, account=A):
    return history_repo.list_trades(account)


# ══════════════════════════════════════════════════════════════════════
# Accounts and cash movements
# ══════════════════════════════════════════════════════════════════════


class TestOpenAccountUseCase:
    """Tests for account opening."""

    def test_opens_with_default_deposit(self, uow_factory, sink, clock, history_repo) -> None:
        use_case = OpenAccountUseCase(uow_factory, sink, rng=random.Random(7), clock=clock)
        result = use_case.execute(OpenAccountCommand(pin="1234"))

        assert len(result.account_number) == 10
        assert result.account_number.isdigit()
        assert result.initial_balance == Decimal("1000.00")

        txns = history_repo.list_transactions(result.account_number)
        assert len(txns) == 1
        assert txns[0].type is TransactionType.INITIAL_DEPOSIT
        assert txns[0].description == "Initial Account Opening Deposit"
        assert sink.kinds() == [EventKind.ACCOUNT_OPENED]

    def test_pin_is_stored_hashed(self, uow_factory, sink, clock) -> None:
        use_case = OpenAccountUseCase(uow_factory, sink, clock=clock)
        result = use_case.execute(OpenAccountCommand(pin="4321"))
        with uow_factory() as uow:
            account = uow.get_account(result.account_number)
        assert account.pin_hash == hash_pin("4321")
        assert "4321" not in account.pin_hash

    def test_zero_deposit_records_nothing(self, uow_factory, sink, clock, history_repo) -> None:
        use_case = OpenAccountUseCase(uow_factory, sink, clock=clock)
        result = use_case.execute(OpenAccountCommand(pin="1234", initial_deposit=Decimal("0")))
        assert result.initial_balance == Decimal("0")
        assert history_repo.list_transactions(result.account_number) == []

    def test_number_collision_retried(self, uow_factory, sink, clock, make_account) -> None:
        """A generated number that already exists is skipped."""
        make_account("0000000005")
        rng = MagicMock()
        rng.randrange.side_effect = [5, 5, 6]
        use_case = OpenAccountUseCase(uow_factory, sink, rng=rng, clock=clock)
        assert use_case.execute(OpenAccountCommand(pin="1234")).account_number == "0000000006"

    @pytest.mark.parametrize("pin", ["12", "1234567", "12a4", ""])
    def test_bad_pin_rejected(self, uow_factory, sink, pin) -> None:
        with pytest.raises(InvalidAmountError):
            OpenAccountUseCase(uow_factory, sink).execute(OpenAccountCommand(pin=pin))

    def test_negative_deposit_rejected(self, uow_factory, sink) -> None:
        with pytest.raises(InvalidAmountError):
            OpenAccountUseCase(uow_factory, sink).execute(
                OpenAccountCommand(pin="1234", initial_deposit=Decimal("-1"))
            )


class TestCashMovements:
    """Tests for deposits and withdrawals."""

    def test_deposit(self, uow_factory, sink, clock, make_account, history_repo) -> None:
        make_account(A, "10.00")
        result = DepositUseCase(uow_factory, sink, clock).execute(
            CashMovementCommand(account_number="1", amount=Decimal("5.25"))
        )
        assert result.account_number == A
        assert result.new_balance == Decimal("15.25")
        latest = history_repo.list_transactions(A)[0]
        assert latest.type is TransactionType.DEPOSIT
        assert latest.description == "Self Deposit"
        assert sink.kinds() == [EventKind.DEPOSIT_RECEIVED]

    def test_withdraw(self, uow_factory, sink, clock, make_account, history_repo) -> None:
        make_account(A, "10.00")
        result = WithdrawUseCase(uow_factory, sink, clock).execute(
            CashMovementCommand(account_number=A, amount=Decimal("4"))
        )
        assert result.new_balance == Decimal("6.00")
        latest = history_repo.list_transactions(A)[0]
        assert latest.type is TransactionType.WITHDRAW
        assert latest.description == "ATM Withdrawal"

    def test_overdraw_leaves_no_trace(
        self, uow_factory, sink, clock, make_account, balance_of, history_repo
    ) -> None:
        make_account(A, "10.00")
        with pytest.raises(InsufficientFundsError):
            WithdrawUseCase(uow_factory, sink, clock).execute(
                CashMovementCommand(account_number=A, amount=Decimal("10.01"))
            )
        assert balance_of(A) == Decimal("10.00")
        assert len(history_repo.list_transactions(A)) == 1
        assert sink.events == []

    def test_unknown_account(self, uow_factory, sink) -> None:
        with pytest.raises(AccountNotFoundError):
            DepositUseCase(uow_factory, sink).execute(
                CashMovementCommand(account_number="999", amount=Decimal("1"))
            )


# ══════════════════════════════════════════════════════════════════════
# Transfers and reversals
# ══════════════════════════════════════════════════════════════════════


class TestTransferFundsUseCase:
    """Tests for peer-to-peer transfers."""

    def test_transfer_moves_money(
        self, transfers, make_account, balance_of, history_repo, sink
    ) -> None:
        make_account(A, "500.00")
        make_account(B, "100.00")

        result = transfers.execute(TransferCommand(A, B, Decimal("500")))

        assert result.new_balance == Decimal("0")
        assert balance_of(A) == Decimal("0")
        assert balance_of(B) == Decimal("600")
        txn = history_repo.list_transactions(A)[0]
        assert txn.type is TransactionType.TRANSFER
        assert (txn.sender_account, txn.receiver_account) == (A, B)
        assert txn.description == f"Transfer to {B}"
        assert sink.kinds() == [EventKind.TRANSFER_SENT, EventKind.TRANSFER_RECEIVED]

    def test_second_transfer_fails_without_funds(
        self, transfers, make_account, balance_of, history_repo
    ) -> None:
        make_account(A, "500.00")
        make_account(B, "100.00")
        transfers.execute(TransferCommand(A, B, Decimal("500")))

        with pytest.raises(InsufficientFundsError):
            transfers.execute(TransferCommand(A, B, Decimal("500")))

        assert balance_of(A) == Decimal("0")
        assert balance_of(B) == Decimal("600")
        transfer_records = [
            t for t in history_repo.list_transactions(A) if t.type is TransactionType.TRANSFER
        ]
        assert len(transfer_records) == 1

    def test_unpadded_ids_accepted(self, transfers, make_account, balance_of) -> None:
        make_account(A, "10.00")
        make_account(B, "0")
        transfers.execute(TransferCommand("1", "2", Decimal("1")))
        assert balance_of(B) == Decimal("1")

    def test_self_transfer_rejected_after_normalization(self, transfers, make_account) -> None:
        make_account(A)
        with pytest.raises(InvalidAmountError):
            transfers.execute(TransferCommand("1", A, Decimal("1")))

    @pytest.mark.parametrize("amount", ["0", "-10"])
    def test_non_positive_amount_rejected(self, transfers, make_account, amount) -> None:
        make_account(A)
        make_account(B)
        with pytest.raises(InvalidAmountError):
            transfers.execute(TransferCommand(A, B, Decimal(amount)))

    def test_missing_receiver_leaves_sender_untouched(
        self, transfers, make_account, balance_of
    ) -> None:
        make_account(A, "50.00")
        with pytest.raises(AccountNotFoundError):
            transfers.execute(TransferCommand(A, "0000000404", Decimal("10")))
        assert balance_of(A) == Decimal("50.00")

    def test_conservation_over_random_transfers(
        self, transfers, make_account, balance_of
    ) -> None:
        """Total money is constant and no balance goes negative."""
        accounts = [make_account(f"{i:010d}", "100.00") for i in range(1, 5)]
        rng = random.Random(1234)
        for _ in range(60):
            sender, receiver = rng.sample(accounts, 2)
            amount = Decimal(rng.randint(1, 8000)) / 100
            try:
                transfers.execute(TransferCommand(sender, receiver, amount))
            except InsufficientFundsError:
                pass
        balances = [balance_of(a) for a in accounts]
        assert sum(balances) == Decimal("400.00")
        assert all(b >= 0 for b in balances)


class TestReverseTransactionUseCase:
    """Tests for compensating reversals."""

    def test_reversal_restores_balances(
        self, transfers, reversals, make_account, balance_of, history_repo, sink
    ) -> None:
        make_account(A, "300.00")
        make_account(B, "0")
        original = transfers.execute(TransferCommand(A, B, Decimal("120")))
        sink.events.clear()

        result = reversals.execute(original.transaction_id)

        assert balance_of(A) == Decimal("300.00")
        assert balance_of(B) == Decimal("0")
        assert result.new_balance == Decimal("300.00")
        assert result.original_id == original.transaction_id
        reversal = history_repo.list_transactions(A)[0]
        assert reversal.type is TransactionType.REVERSAL
        assert (reversal.sender_account, reversal.receiver_account) == (B, A)
        assert reversal.description == f"Reversal of transaction #{original.transaction_id}"
        assert sink.kinds() == [EventKind.TRANSFER_REVERSED] * 2

    def test_reversal_needs_receiver_funds(
        self, transfers, reversals, make_account, balance_of, uow_factory, sink, clock
    ) -> None:
        """Receiver spent the money: reversal fails and nothing changes."""
        make_account(A, "100.00")
        make_account(B, "0")
        original = transfers.execute(TransferCommand(A, B, Decimal("100")))
        WithdrawUseCase(uow_factory, sink, clock).execute(
            CashMovementCommand(account_number=B, amount=Decimal("60"))
        )

        with pytest.raises(InsufficientFundsError):
            reversals.execute(original.transaction_id)

        assert balance_of(A) == Decimal("0")
        assert balance_of(B) == Decimal("40")

    def test_only_transfers_reversible(self, reversals, make_account, history_repo) -> None:
        make_account(A, "10.00")
        opening = history_repo.list_transactions(A)[0]
        with pytest.raises(NotReversibleError):
            reversals.execute(opening.id)

    def test_reversal_itself_not_reversible(
        self, transfers, reversals, make_account
    ) -> None:
        make_account(A, "10.00")
        make_account(B, "0")
        original = transfers.execute(TransferCommand(A, B, Decimal("5")))
        reversal = reversals.execute(original.transaction_id)
        with pytest.raises(NotReversibleError):
            reversals.execute(reversal.reversal_id)

    def test_unknown_transaction(self, reversals) -> None:
        with pytest.raises(TransactionNotFoundError):
            reversals.execute(987654)


# ══════════════════════════════════════════════════════════════════════
# Trading
# ══════════════════════════════════════════════════════════════════════


class TestExecuteTradeUseCase:
    """Tests for buy/sell orchestration."""

    def test_buy_then_sell_round_trip(
        self, trader, prices, make_account, balance_of, history_repo, uow_factory
    ) -> None:
        make_account(A, "1000.00")

        bought = trader.buy(TradeCommand(A, "aapl", 5))
        assert bought.symbol == "AAPL"
        assert bought.price == Decimal("150.00")
        assert bought.total == Decimal("750.00")
        assert bought.new_balance == Decimal("250.00")
        assert bought.message == "Successfully bought 5 shares of AAPL"
        with uow_factory() as uow:
            lot = uow.get_holding(A, "AAPL", InvestmentClass.SHORT_TERM)
        assert (lot.quantity, lot.average_cost) == (5, Decimal("150.00"))

        prices.set_price("AAPL", Decimal("160.00"))
        sold = trader.sell(TradeCommand(A, "AAPL", 5))
        assert sold.total == Decimal("800.00")
        assert balance_of(A) == Decimal("1050.00")
        with uow_factory() as uow:
            assert uow.get_holding(A, "AAPL", InvestmentClass.SHORT_TERM) is None

        directions = [t.direction for t in reversed(_trades(history_repo))]
        assert directions == [TradeDirection.BUY, TradeDirection.SELL]

    def test_sell_uses_market_price_not_cost(self, trader, prices, make_account, balance_of) -> None:
        make_account(A, "1000.00")
        trader.buy(TradeCommand(A, "AAPL", 2))
        prices.set_price("AAPL", Decimal("90.00"))
        summary = trader.sell(TradeCommand(A, "AAPL", 1))
        assert summary.total == Decimal("90.00")
        assert balance_of(A) == Decimal("790.00")

    def test_buy_without_funds_leaves_no_trace(
        self, trader, make_account, balance_of, history_repo, uow_factory, sink
    ) -> None:
        make_account(A, "100.00")
        with pytest.raises(InsufficientFundsError):
            trader.buy(TradeCommand(A, "AAPL", 1))
        assert balance_of(A) == Decimal("100.00")
        assert _trades(history_repo) == []
        with uow_factory() as uow:
            assert uow.get_holding(A, "AAPL", InvestmentClass.SHORT_TERM) is None
        assert sink.events == []

    def test_oversell_leaves_no_trace(
        self, trader, make_account, balance_of, history_repo
    ) -> None:
        make_account(A, "1000.00")
        trader.buy(TradeCommand(A, "AAPL", 2))
        with pytest.raises(InsufficientSharesError):
            trader.sell(TradeCommand(A, "AAPL", 3))
        assert balance_of(A) == Decimal("700.00")
        assert len(_trades(history_repo)) == 1

    def test_sell_other_class_not_found(self, trader, make_account) -> None:
        make_account(A, "1000.00")
        trader.buy(TradeCommand(A, "AAPL", 1, InvestmentClass.LONG_TERM))
        with pytest.raises(HoldingNotFoundError):
            trader.sell(TradeCommand(A, "AAPL", 1))

    def test_average_cost_over_two_buys(self, trader, prices, make_account, uow_factory) -> None:
        make_account(A, "5000.00")
        prices.set_price("MSFT", Decimal("100"))
        trader.buy(TradeCommand(A, "MSFT", 10))
        prices.set_price("MSFT", Decimal("110"))
        trader.buy(TradeCommand(A, "MSFT", 10))
        with uow_factory() as uow:
            lot = uow.get_holding(A, "MSFT", InvestmentClass.SHORT_TERM)
        assert (lot.quantity, lot.average_cost) == (20, Decimal("105"))

    @pytest.mark.parametrize("action", ["buy", "Buy", " BUY "])
    def test_execute_dispatches_case_insensitively(self, trader, make_account, action) -> None:
        make_account(A, "1000.00")
        summary = trader.execute(action, TradeCommand(A, "AAPL", 1))
        assert summary.action is TradeDirection.BUY

    def test_execute_rejects_unknown_action(self, trader, make_account) -> None:
        make_account(A)
        with pytest.raises(InvalidAmountError):
            trader.execute("HOLD", TradeCommand(A, "AAPL", 1))

    def test_unknown_account(self, trader) -> None:
        with pytest.raises(AccountNotFoundError):
            trader.buy(TradeCommand("0000000404", "AAPL", 1))

    def test_trade_event_published(self, trader, make_account, sink) -> None:
        make_account(A)
        trader.buy(TradeCommand(A, "AAPL", 1))
        assert sink.kinds() == [EventKind.TRADE_EXECUTED]
        assert sink.events[0].payload["symbol"] == "AAPL"

    def test_failing_sink_does_not_fail_trade(
        self, uow_factory, prices, clock, make_account, balance_of
    ) -> None:
        """Committed money stays committed when notification blows up."""
        make_account(A, "1000.00")
        broken = MagicMock()
        broken.publish.side_effect = RuntimeError("sink down")
        ExecuteTradeUseCase(uow_factory, prices, broken, clock).buy(TradeCommand(A, "AAPL", 1))
        assert balance_of(A) == Decimal("850.00")

    def test_random_trading_keeps_invariants(
        self, trader, prices, make_account, balance_of, uow_factory
    ) -> None:
        """Balances never go negative and lot quantities stay positive."""
        make_account(A, "2000.00")
        rng = random.Random(99)
        for _ in range(50):
            prices.set_price("AAPL", Decimal(rng.randint(50, 250)))
            action = rng.choice(["BUY", "SELL"])
            try:
                trader.execute(action, TradeCommand(A, "AAPL", rng.randint(1, 6)))
            except (InsufficientFundsError, InsufficientSharesError, HoldingNotFoundError):
                pass
            assert balance_of(A) >= 0
            with uow_factory() as uow:
                lot = uow.get_holding(A, "AAPL", InvestmentClass.SHORT_TERM)
            assert lot is None or lot.quantity > 0


# ══════════════════════════════════════════════════════════════════════
# Queries, history and analytics
# ══════════════════════════════════════════════════════════════════════


class TestQueries:
    """Tests for balance, statement and holdings queries."""

    def test_balance(self, directory, make_account) -> None:
        make_account(A, "12.34")
        result = GetBalanceUseCase(directory).execute("1")
        assert result.account_number == A
        assert result.balance == Decimal("12.34")

    def test_unknown_account(self, directory) -> None:
        with pytest.raises(AccountNotFoundError):
            GetBalanceUseCase(directory).execute("77")

    def test_statement_newest_first(
        self, directory, history_repo, transfers, make_account, clock
    ) -> None:
        make_account(A, "100.00")
        make_account(B, "0")
        clock.advance(hours=1)
        transfers.execute(TransferCommand(A, B, Decimal("10")))

        items = ListTransactionsUseCase(directory, history_repo).execute(A)

        assert [i.type for i in items] == ["TRANSFER", "INITIAL_DEPOSIT"]

    def test_holdings(self, directory, history_repo, trader, make_account) -> None:
        make_account(A, "1000.00")
        trader.buy(TradeCommand(A, "MSFT", 1))
        trader.buy(TradeCommand(A, "AAPL", 1, InvestmentClass.LONG_TERM))
        items = ListHoldingsUseCase(directory, history_repo).execute(A)
        assert [(i.symbol, i.investment_class) for i in items] == [
            ("AAPL", "LONG_TERM"),
            ("MSFT", "SHORT_TERM"),
        ]


class TestGetPortfolioHistoryUseCase:
    """Tests for history reconstruction from stored records."""

    def test_deposit_then_buy(
        self, directory, history_repo, trader, prices, make_account, clock
    ) -> None:
        make_account(A, "1000.00")
        day1 = clock().date()
        clock.advance(days=2)
        prices.set_price("AAPL", Decimal("50"))
        trader.buy(TradeCommand(A, "AAPL", 2))
        day3 = clock().date()
        clock.advance(days=2)

        history = GetPortfolioHistoryUseCase(directory, history_repo, clock=clock).execute(
            HistoryQuery(A, HistoryRange.THIRTY_DAYS)
        )

        points = list(history)
        assert [p.date for p in points] == [day1, day3, clock().date()]
        assert all(p.total_value == Decimal("1000") for p in points)

    def test_empty_account(self, directory, history_repo, make_account, clock) -> None:
        make_account(A, "0")
        points = list(
            GetPortfolioHistoryUseCase(directory, history_repo, clock=clock).execute(
                HistoryQuery(A)
            )
        )
        assert [(p.date, p.total_value) for p in points] == [(clock().date(), Decimal("0"))]

    def test_unknown_account(self, directory, history_repo) -> None:
        with pytest.raises(AccountNotFoundError):
            GetPortfolioHistoryUseCase(directory, history_repo).execute(HistoryQuery("9"))


class TestAnalyticsUseCases:
    """Tests for performance, monthly analytics and long-term lots."""

    def test_performance_quotes_each_symbol_once(
        self, directory, history_repo, trader, prices, make_account
    ) -> None:
        make_account(A, "1000.00")
        prices.set_price("AAPL", Decimal("100"))
        trader.buy(TradeCommand(A, "AAPL", 2))
        trader.buy(TradeCommand(A, "AAPL", 1, InvestmentClass.LONG_TERM))
        prices.set_price("AAPL", Decimal("110"))

        spy = MagicMock(wraps=prices)
        summary = GetPerformanceUseCase(directory, history_repo, spy).execute(A)

        spy.current_price.assert_called_once_with("AAPL")
        assert summary.total_invested == Decimal("300")
        assert summary.current_value == Decimal("330")
        assert summary.profit_loss_pct == Decimal("10")

    def test_monthly(self, directory, history_repo, transfers, make_account, clock) -> None:
        make_account(A, "100.00")
        make_account(B, "100.00")
        transfers.execute(TransferCommand(B, A, Decimal("40")))
        transfers.execute(TransferCommand(A, B, Decimal("15")))
        clock.advance(days=40)
        transfers.execute(TransferCommand(B, A, Decimal("1")))

        summary = GetMonthlyAnalyticsUseCase(directory, history_repo).execute(
            MonthlyAnalyticsQuery(A, month=3, year=2024)
        )

        assert summary.total_income == Decimal("40")
        assert summary.total_expense == Decimal("15")

    def test_monthly_rejects_bad_month(self, directory, history_repo, make_account) -> None:
        make_account(A)
        with pytest.raises(InvalidAmountError):
            GetMonthlyAnalyticsUseCase(directory, history_repo).execute(
                MonthlyAnalyticsQuery(A, month=13, year=2024)
            )

    def test_long_term_lots(self, directory, history_repo, trader, make_account, clock) -> None:
        make_account(A, "1000.00")
        trader.buy(TradeCommand(A, "AAPL", 1, InvestmentClass.LONG_TERM))
        trader.buy(TradeCommand(A, "MSFT", 1))
        clock.advance(days=400)

        lots = GetLongTermHoldingsUseCase(directory, history_repo, clock).execute(A)

        assert [lot.symbol for lot in lots] == ["AAPL"]
        assert lots[0].days_held == 400
        assert lots[0].long_term_qualified is True
        assert lots[0].acquired_at.date() == date(2024, 3, 1)
