"""
Use cases: Deposit and withdraw cash against the SYSTEM counterparty.

Input: CashMovementCommand (account, amount)
Output: CashMovementResult
Side effects: One balance mutation and one DEPOSIT/WITHDRAW record,
    committed together; a notification and an audit entry after commit.
Failure cases: InvalidAmountError, AccountNotFoundError,
    InsufficientFundsError (withdraw).
"""

import logging
import time
from typing import Callable, Optional

from app.application.ledger.audit import record_audit
from app.application.ledger.dtos import CashMovementCommand, CashMovementResult
from app.application.ledger.events import publish_after_commit
from app.domain.ledger.account_ledger import AccountLedger
from app.domain.ledger.entities import (
    SYSTEM_ACCOUNT,
    EventKind,
    Transaction,
    TransactionType,
)
from app.domain.ledger.money import canonical_account_number, require_positive_amount
from app.domain.ledger.ports import AuditTrail, EventSink, LedgerUnitOfWork
from app.shared.clock import Clock, utcnow

logger = logging.getLogger(__name__)


class DepositUseCase:
    """Credits an account with money coming from outside the ledger."""

    def __init__(
        self,
        uow_factory: Callable[[], LedgerUnitOfWork],
        events: EventSink,
        clock: Clock = utcnow,
        audit: Optional[AuditTrail] = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._events = events
        self._clock = clock
        self._audit = audit

    def execute(self, command: CashMovementCommand) -> CashMovementResult:
        started = time.monotonic()
        account_number = canonical_account_number(command.account_number)
        amount = require_positive_amount(command.amount)
        logger.info("Deposit requested: account=%s amount=%s", account_number, amount)

        with self._uow_factory() as uow:
            new_balance = AccountLedger(uow).credit(account_number, amount)
            txn = uow.append_transaction(
                Transaction(
                    sender_account=SYSTEM_ACCOUNT,
                    receiver_account=account_number,
                    amount=amount,
                    type=TransactionType.DEPOSIT,
                    description="Self Deposit",
                    timestamp=self._clock(),
                )
            )

        publish_after_commit(
            self._events,
            account_number,
            EventKind.DEPOSIT_RECEIVED,
            {"transaction_id": txn.id, "amount": amount},
        )
        result = CashMovementResult(
            transaction_id=txn.id,
            account_number=account_number,
            amount=amount,
            new_balance=new_balance,
            message="Deposit successful",
        )
        record_audit(
            self._audit, "deposit", account_number, command, result, started, self._clock
        )
        return result


class WithdrawUseCase:
    """Debits an account with money leaving the ledger."""

    def __init__(
        self,
        uow_factory: Callable[[], LedgerUnitOfWork],
        events: EventSink,
        clock: Clock = utcnow,
        audit: Optional[AuditTrail] = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._events = events
        self._clock = clock
        self._audit = audit

    def execute(self, command: CashMovementCommand) -> CashMovementResult:
        """Run the withdrawal.

        Raises:
            InsufficientFundsError: If the balance is below the amount.
        """
        started = time.monotonic()
        account_number = canonical_account_number(command.account_number)
        amount = require_positive_amount(command.amount)
        logger.info("Withdrawal requested: account=%s amount=%s", account_number, amount)

        with self._uow_factory() as uow:
            new_balance = AccountLedger(uow).debit(account_number, amount)
            txn = uow.append_transaction(
                Transaction(
                    sender_account=account_number,
                    receiver_account=SYSTEM_ACCOUNT,
                    amount=amount,
                    type=TransactionType.WITHDRAW,
                    description="ATM Withdrawal",
                    timestamp=self._clock(),
                )
            )

        publish_after_commit(
            self._events,
            account_number,
            EventKind.WITHDRAWAL_MADE,
            {"transaction_id": txn.id, "amount": amount},
        )
        result = CashMovementResult(
            transaction_id=txn.id,
            account_number=account_number,
            amount=amount,
            new_balance=new_balance,
            message="Withdrawal successful",
        )
        record_audit(
            self._audit, "withdraw", account_number, command, result, started, self._clock
        )
        return result
