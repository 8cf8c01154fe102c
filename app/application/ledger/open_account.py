"""
Use case: Open a new cash account.

Input: OpenAccountCommand (pin, optional initial deposit, role)
Output: OpenAccountResult
Side effects: New account row and, for a non-zero opening balance, an
    INITIAL_DEPOSIT record from SYSTEM; an ACCOUNT_OPENED notification.
Failure cases: InvalidAmountError (negative deposit, malformed PIN).
"""

import hashlib
import logging
import random
from decimal import Decimal
from typing import Callable, Optional

from app.application.ledger.dtos import OpenAccountCommand, OpenAccountResult
from app.application.ledger.events import publish_after_commit
from app.domain.ledger.entities import (
    SYSTEM_ACCOUNT,
    Account,
    EventKind,
    Transaction,
    TransactionType,
)
from app.domain.ledger.errors import InvalidAmountError
from app.domain.ledger.money import ACCOUNT_NUMBER_WIDTH, to_money
from app.domain.ledger.ports import EventSink, LedgerUnitOfWork
from app.shared.clock import Clock, utcnow

logger = logging.getLogger(__name__)


def hash_pin(pin: str) -> str:
    """Return the SHA-256 hex digest stored in place of the PIN."""
    return hashlib.sha256(pin.encode("utf-8")).hexdigest()


class OpenAccountUseCase:
    """Creates an account with a unique random 10-digit number.

    Args:
        uow_factory: Builds a unit of work per call.
        events: Post-commit notification sink.
        default_deposit: Opening balance when the command gives none.
        rng: Number generator for account numbers.
        clock: Timestamp source.
    """

    def __init__(
        self,
        uow_factory: Callable[[], LedgerUnitOfWork],
        events: EventSink,
        default_deposit: Decimal = Decimal("1000.00"),
        rng: Optional[random.Random] = None,
        clock: Clock = utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self._events = events
        self._default_deposit = default_deposit
        self._rng = rng or random.SystemRandom()
        self._clock = clock

    def execute(self, command: OpenAccountCommand) -> OpenAccountResult:
        pin = (command.pin or "").strip()
        if not (pin.isascii() and pin.isdigit()) or not 4 <= len(pin) <= 6:
            raise InvalidAmountError("PIN must be 4 to 6 digits")

        deposit = to_money(
            self._default_deposit
            if command.initial_deposit is None
            else command.initial_deposit
        )
        if deposit < 0:
            raise InvalidAmountError("initial deposit cannot be negative")

        now = self._clock()
        with self._uow_factory() as uow:
            account_number = self._new_account_number(uow)
            uow.add_account(
                Account(
                    account_number=account_number,
                    balance=deposit,
                    role=command.role,
                    pin_hash=hash_pin(pin),
                    created_at=now,
                )
            )
            if deposit > 0:
                uow.append_transaction(
                    Transaction(
                        sender_account=SYSTEM_ACCOUNT,
                        receiver_account=account_number,
                        amount=deposit,
                        type=TransactionType.INITIAL_DEPOSIT,
                        description="Initial Account Opening Deposit",
                        timestamp=now,
                    )
                )

        logger.info("Account %s opened with %s", account_number, deposit)
        publish_after_commit(
            self._events,
            account_number,
            EventKind.ACCOUNT_OPENED,
            {"initial_balance": deposit},
        )
        return OpenAccountResult(
            account_number=account_number,
            initial_balance=deposit,
            created_at=now,
        )

    def _new_account_number(self, uow: LedgerUnitOfWork) -> str:
        upper = 10**ACCOUNT_NUMBER_WIDTH
        while True:
            candidate = f"{self._rng.randrange(upper):0{ACCOUNT_NUMBER_WIDTH}d}"
            if uow.get_account(candidate) is None:
                return candidate
