"""
Concurrency tests for money-moving use cases.

Several threads hit the same SQLite file; every unit of work opens with
BEGIN IMMEDIATE, so writers serialize the way row locks serialize them
on PostgreSQL.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from app.application.ledger.cash_movements import WithdrawUseCase
from app.application.ledger.dtos import CashMovementCommand, TradeCommand, TransferCommand
from app.application.ledger.execute_trade import ExecuteTradeUseCase
from app.application.ledger.transfer_funds import TransferFundsUseCase
from app.domain.ledger.entities import InvestmentClass, TransactionType
from app.domain.ledger.errors import InsufficientFundsError
from app.infrastructure.ledger.history_repository import SqlLedgerHistoryRepository

A = "0000000001"
B = "0000000002"


def _run_together(workers: int, fn) -> list[object]:
    """Start ``workers`` calls of ``fn`` at the same instant; collect outcomes."""
    barrier = threading.Barrier(workers)

    def _call(i: int) -> object:
        barrier.wait()
        try:
            return fn(i)
        except InsufficientFundsError as exc:
            return exc

    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(_call, range(workers)))


class TestConcurrentTransfers:
    """Tests for races on the same sender."""

    def test_only_one_of_two_full_transfers_succeeds(
        self, engine, uow_factory, sink, clock, make_account, balance_of
    ) -> None:
        """A=500, B=100; two concurrent 500 transfers: one wins, one fails."""
        make_account(A, "500.00")
        make_account(B, "100.00")
        use_case = TransferFundsUseCase(uow_factory, sink, clock)

        outcomes = _run_together(
            2, lambda _i: use_case.execute(TransferCommand(A, B, Decimal("500")))
        )

        failures = [o for o in outcomes if isinstance(o, InsufficientFundsError)]
        assert len(failures) == 1
        assert balance_of(A) == Decimal("0")
        assert balance_of(B) == Decimal("600")
        records = [
            t
            for t in SqlLedgerHistoryRepository(engine).list_transactions(A)
            if t.type is TransactionType.TRANSFER
        ]
        assert len(records) == 1

    def test_opposite_directions_do_not_deadlock(
        self, uow_factory, sink, clock, make_account, balance_of
    ) -> None:
        make_account(A, "1000.00")
        make_account(B, "1000.00")
        use_case = TransferFundsUseCase(uow_factory, sink, clock)

        def _transfer(i: int):
            if i % 2:
                return use_case.execute(TransferCommand(A, B, Decimal("10")))
            return use_case.execute(TransferCommand(B, A, Decimal("7")))

        outcomes = _run_together(8, _transfer)

        assert not any(isinstance(o, Exception) for o in outcomes)
        assert balance_of(A) + balance_of(B) == Decimal("2000.00")
        assert balance_of(A) == Decimal("1000.00") - 4 * Decimal("10") + 4 * Decimal("7")


class TestConcurrentDebits:
    """Tests for lost updates on a single balance."""

    def test_withdrawals_never_overdraw(
        self, uow_factory, sink, clock, make_account, balance_of
    ) -> None:
        make_account(A, "100.00")
        use_case = WithdrawUseCase(uow_factory, sink, clock)

        outcomes = _run_together(
            6,
            lambda _i: use_case.execute(
                CashMovementCommand(account_number=A, amount=Decimal("30"))
            ),
        )

        successes = [o for o in outcomes if not isinstance(o, Exception)]
        assert len(successes) == 3
        assert balance_of(A) == Decimal("10.00")

    def test_concurrent_buys_respect_balance(
        self, uow_factory, prices, sink, clock, make_account, balance_of
    ) -> None:
        make_account(A, "400.00")
        use_case = ExecuteTradeUseCase(uow_factory, prices, sink, clock)

        outcomes = _run_together(
            4, lambda _i: use_case.buy(TradeCommand(A, "AAPL", 1))
        )

        successes = [o for o in outcomes if not isinstance(o, Exception)]
        assert len(successes) == 2
        assert balance_of(A) == Decimal("100.00")
        with uow_factory() as uow:
            lot = uow.get_holding(A, "AAPL", InvestmentClass.SHORT_TERM)
        assert lot.quantity == 2
