"""
Use case: Transfer money between two accounts.

Input: TransferCommand (from_account, to_account, amount)
Output: TransferResult
Side effects: Debit + credit + TRANSFER record committed together;
    TRANSFER_SENT / TRANSFER_RECEIVED notifications and an audit entry
    after commit.
Failure cases: InvalidAmountError (non-positive amount, self-transfer),
    AccountNotFoundError, InsufficientFundsError.
"""

import logging
import time
from typing import Callable, Optional

from app.application.ledger.audit import record_audit
from app.application.ledger.dtos import TransferCommand, TransferResult
from app.application.ledger.events import publish_after_commit
from app.domain.ledger.account_ledger import AccountLedger
from app.domain.ledger.entities import EventKind, Transaction, TransactionType
from app.domain.ledger.errors import AccountNotFoundError, InvalidAmountError
from app.domain.ledger.money import canonical_account_number, require_positive_amount
from app.domain.ledger.ports import AuditTrail, EventSink, LedgerUnitOfWork
from app.shared.clock import Clock, utcnow

logger = logging.getLogger(__name__)


class TransferFundsUseCase:
    """Moves cash from one account to another atomically.

    Both account rows are locked in ascending account-number order, so
    two transfers running in opposite directions cannot deadlock.
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

    def execute(self, command: TransferCommand) -> TransferResult:
        """Run the transfer.

        Raises:
            InvalidAmountError: If amount <= 0 or both accounts are the same.
            AccountNotFoundError: If either account does not exist.
            InsufficientFundsError: If the sender cannot cover the amount.
        """
        started = time.monotonic()
        sender = canonical_account_number(command.from_account)
        receiver = canonical_account_number(command.to_account)
        if sender == receiver:
            raise InvalidAmountError("cannot transfer money to the same account")
        amount = require_positive_amount(command.amount)

        logger.info("Transfer requested: %s -> %s amount=%s", sender, receiver, amount)

        with self._uow_factory() as uow:
            locked = uow.lock_accounts([sender, receiver])
            for number in (sender, receiver):
                if number not in locked:
                    raise AccountNotFoundError(number)

            ledger = AccountLedger(uow)
            new_balance = ledger.debit(sender, amount)
            ledger.credit(receiver, amount)
            txn = uow.append_transaction(
                Transaction(
                    sender_account=sender,
                    receiver_account=receiver,
                    amount=amount,
                    type=TransactionType.TRANSFER,
                    description=f"Transfer to {receiver}",
                    timestamp=self._clock(),
                )
            )

        logger.info("Transfer #%s committed: %s -> %s", txn.id, sender, receiver)

        publish_after_commit(
            self._events,
            sender,
            EventKind.TRANSFER_SENT,
            {"transaction_id": txn.id, "amount": amount, "counterparty": receiver},
        )
        publish_after_commit(
            self._events,
            receiver,
            EventKind.TRANSFER_RECEIVED,
            {"transaction_id": txn.id, "amount": amount, "counterparty": sender},
        )

        result = TransferResult(
            transaction_id=txn.id,
            from_account=sender,
            to_account=receiver,
            amount=amount,
            new_balance=new_balance,
            message="Transfer successful",
        )
        record_audit(self._audit, "transfer", sender, command, result, started, self._clock)
        return result
