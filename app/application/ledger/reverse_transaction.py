"""
Use case: Reverse a TRANSFER with a compensating REVERSAL record.

Input: transaction id
Output: ReversalResult
Side effects: Debit of the original receiver, credit of the original
    sender and a new REVERSAL record, committed together. The original
    record is never modified. Notifications and an audit entry after commit.
Failure cases: TransactionNotFoundError, NotReversibleError,
    AccountNotFoundError, InsufficientFundsError (receiver already spent it).
"""

import logging
import time
from typing import Callable, Optional

from app.application.ledger.audit import record_audit
from app.application.ledger.dtos import ReversalResult
from app.application.ledger.events import publish_after_commit
from app.domain.ledger.account_ledger import AccountLedger
from app.domain.ledger.entities import EventKind, Transaction, TransactionType
from app.domain.ledger.errors import (
    AccountNotFoundError,
    NotReversibleError,
    TransactionNotFoundError,
)
from app.domain.ledger.ports import AuditTrail, EventSink, LedgerUnitOfWork
from app.shared.clock import Clock, utcnow

logger = logging.getLogger(__name__)


class ReverseTransactionUseCase:
    """Undoes a transfer by moving the amount back.

    Only the receiver's current balance is checked; whatever the receiver
    did with the money in between is not examined.
    """

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

    def execute(self, transaction_id: int) -> ReversalResult:
        """Run the reversal.

        Raises:
            TransactionNotFoundError: If the id is unknown.
            NotReversibleError: If the transaction is not a TRANSFER.
            InsufficientFundsError: If the receiver's balance is below the amount.
        """
        started = time.monotonic()
        logger.info("Reversal requested for transaction #%s", transaction_id)

        with self._uow_factory() as uow:
            original = uow.get_transaction(transaction_id)
            if original is None:
                raise TransactionNotFoundError(transaction_id)
            if original.type is not TransactionType.TRANSFER:
                raise NotReversibleError(transaction_id, original.type.value)

            sender = original.sender_account
            receiver = original.receiver_account
            locked = uow.lock_accounts([sender, receiver])
            for number in (sender, receiver):
                if number not in locked:
                    raise AccountNotFoundError(number)

            ledger = AccountLedger(uow)
            ledger.debit(receiver, original.amount)
            new_balance = ledger.credit(sender, original.amount)
            reversal = uow.append_transaction(
                Transaction(
                    sender_account=receiver,
                    receiver_account=sender,
                    amount=original.amount,
                    type=TransactionType.REVERSAL,
                    description=f"Reversal of transaction #{transaction_id}",
                    timestamp=self._clock(),
                )
            )

        logger.info(
            "Transaction #%s reversed by #%s", transaction_id, reversal.id
        )

        for number in (sender, receiver):
            publish_after_commit(
                self._events,
                number,
                EventKind.TRANSFER_REVERSED,
                {
                    "transaction_id": transaction_id,
                    "reversal_id": reversal.id,
                    "amount": original.amount,
                },
            )

        result = ReversalResult(
            reversal_id=reversal.id,
            original_id=transaction_id,
            amount=original.amount,
            new_balance=new_balance,
            message="Transaction reversed successfully",
        )
        record_audit(
            self._audit,
            "reversal",
            receiver,
            {"transaction_id": transaction_id},
            result,
            started,
            self._clock,
        )
        return result
