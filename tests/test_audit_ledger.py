"""
Tests for the audit trail of money-moving operations.

Use cases write through the real SqlAuditTrail on a per-test SQLite file;
a MagicMock trail stands in where a failing store is needed.
"""

import time
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from app.application.ledger.audit import (
    GetAuditEntryUseCase,
    ListAuditLogUseCase,
    record_audit,
)
from app.application.ledger.cash_movements import DepositUseCase, WithdrawUseCase
from app.application.ledger.dtos import (
    AuditLogQuery,
    CashMovementCommand,
    TradeCommand,
    TransferCommand,
)
from app.application.ledger.execute_trade import ExecuteTradeUseCase
from app.application.ledger.reverse_transaction import ReverseTransactionUseCase
from app.application.ledger.transfer_funds import TransferFundsUseCase
from app.domain.ledger.entities import AUDIT_TEXT_LIMIT, AuditEntry
from app.domain.ledger.errors import (
    AuditEntryNotFoundError,
    InsufficientFundsError,
    InvalidAmountError,
)
from app.infrastructure.ledger.audit_trail import SqlAuditTrail

A = "0000000001"
B = "0000000002"


@pytest.fixture
def trail(engine) -> SqlAuditTrail:
    return SqlAuditTrail(engine)


def _entry(clock, operation="deposit", account=A, parameters="p") -> AuditEntry:
    return AuditEntry(
        operation=operation,
        account_number=account,
        parameters=parameters,
        result="r",
        execution_time_ms=3,
        timestamp=clock(),
    )


# ══════════════════════════════════════════════════════════════════════
# Adapter
# ══════════════════════════════════════════════════════════════════════


class TestSqlAuditTrail:
    """Tests for the audit_logs adapter."""

    def test_record_and_get(self, trail, clock) -> None:
        stored = trail.record(_entry(clock))
        assert stored.id is not None
        fetched = trail.get(stored.id)
        assert fetched == stored
        assert fetched.timestamp.tzinfo is not None

    def test_get_unknown(self, trail) -> None:
        assert trail.get(404) is None

    def test_recent_newest_first_and_filtered(self, trail, clock) -> None:
        trail.record(_entry(clock, "deposit", A))
        clock.advance(minutes=1)
        trail.record(_entry(clock, "withdraw", B))
        clock.advance(minutes=1)
        trail.record(_entry(clock, "transfer", A))

        assert [e.operation for e in trail.recent(10)] == ["transfer", "withdraw", "deposit"]
        assert [e.operation for e in trail.recent(10, A)] == ["transfer", "deposit"]
        assert len(trail.recent(1)) == 1
        assert trail.count() == 3
        assert trail.count(B) == 1

    def test_long_text_truncated(self, trail, clock) -> None:
        stored = trail.record(_entry(clock, parameters="x" * (AUDIT_TEXT_LIMIT + 50)))
        assert len(trail.get(stored.id).parameters) == AUDIT_TEXT_LIMIT


# ══════════════════════════════════════════════════════════════════════
# Recording from use cases
# ══════════════════════════════════════════════════════════════════════


class TestAuditedOperations:
    """Tests that each money-moving use case leaves one entry."""

    def test_deposit_and_withdraw(self, uow_factory, sink, clock, trail, make_account) -> None:
        make_account(A, "100.00")
        DepositUseCase(uow_factory, sink, clock, audit=trail).execute(
            CashMovementCommand(account_number=A, amount=Decimal("5"))
        )
        WithdrawUseCase(uow_factory, sink, clock, audit=trail).execute(
            CashMovementCommand(account_number="1", amount=Decimal("2"))
        )

        entries = trail.recent(10)
        assert [e.operation for e in entries] == ["withdraw", "deposit"]
        assert {e.account_number for e in entries} == {A}
        assert "Deposit successful" in entries[1].result
        assert entries[0].execution_time_ms >= 0
        assert entries[0].timestamp == clock()

    def test_transfer_and_reversal(self, uow_factory, sink, clock, trail, make_account) -> None:
        make_account(A, "100.00")
        make_account(B, "0")
        result = TransferFundsUseCase(uow_factory, sink, clock, audit=trail).execute(
            TransferCommand(A, B, Decimal("40"))
        )
        ReverseTransactionUseCase(uow_factory, sink, clock, audit=trail).execute(
            result.transaction_id
        )

        reversal, transfer = trail.recent(10)
        assert (transfer.operation, transfer.account_number) == ("transfer", A)
        assert (reversal.operation, reversal.account_number) == ("reversal", B)
        assert f"'transaction_id': {result.transaction_id}" in reversal.parameters

    def test_buy_and_sell(self, uow_factory, prices, sink, clock, trail, make_account) -> None:
        make_account(A)
        trader = ExecuteTradeUseCase(uow_factory, prices, sink, clock, audit=trail)
        trader.buy(TradeCommand(A, "AAPL", 2))
        trader.sell(TradeCommand(A, "AAPL", 1))

        entries = trail.recent(10)
        assert [e.operation for e in entries] == ["sell", "buy"]
        assert "AAPL" in entries[1].parameters

    def test_failed_operation_not_audited(self, uow_factory, sink, clock, trail, make_account) -> None:
        make_account(A, "10.00")
        with pytest.raises(InsufficientFundsError):
            WithdrawUseCase(uow_factory, sink, clock, audit=trail).execute(
                CashMovementCommand(account_number=A, amount=Decimal("11"))
            )
        assert trail.count() == 0

    def test_failing_trail_does_not_fail_operation(
        self, uow_factory, sink, clock, make_account, balance_of
    ) -> None:
        make_account(A, "10.00")
        broken = MagicMock()
        broken.record.side_effect = RuntimeError("audit store down")

        result = DepositUseCase(uow_factory, sink, clock, audit=broken).execute(
            CashMovementCommand(account_number=A, amount=Decimal("1"))
        )

        assert result.new_balance == Decimal("11.00")
        assert balance_of(A) == Decimal("11.00")
        broken.record.assert_called_once()

    def test_no_trail_configured(self, clock) -> None:
        record_audit(None, "deposit", A, {}, {}, time.monotonic(), clock)


# ══════════════════════════════════════════════════════════════════════
# Queries
# ══════════════════════════════════════════════════════════════════════


class TestAuditQueries:
    """Tests for listing and fetching audit entries."""

    def test_list_with_total(self, trail, clock) -> None:
        for _ in range(3):
            trail.record(_entry(clock))
        trail.record(_entry(clock, account=B))

        page = ListAuditLogUseCase(trail).execute(AuditLogQuery(limit=2, account_number="1"))

        assert page.total == 3
        assert len(page.entries) == 2
        assert all(e.account_number == A for e in page.entries)

    @pytest.mark.parametrize("limit", [0, 501])
    def test_limit_bounds(self, trail, limit) -> None:
        with pytest.raises(InvalidAmountError):
            ListAuditLogUseCase(trail).execute(AuditLogQuery(limit=limit))

    def test_get_entry(self, trail, clock) -> None:
        stored = trail.record(_entry(clock))
        assert GetAuditEntryUseCase(trail).execute(stored.id) == stored

    def test_get_unknown_entry(self, trail) -> None:
        with pytest.raises(AuditEntryNotFoundError):
            GetAuditEntryUseCase(trail).execute(999)
