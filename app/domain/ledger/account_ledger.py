"""
Account Ledger: the only code that changes a cash balance.

Both operations run inside a caller-owned unit of work. The account row
is locked before it is read, so concurrent debits on the same account
serialize instead of both reading the pre-mutation balance.
"""

import logging
from decimal import Decimal

from app.domain.ledger.errors import AccountNotFoundError, InsufficientFundsError
from app.domain.ledger.money import quantize, require_positive_amount
from app.domain.ledger.ports import LedgerUnitOfWork

logger = logging.getLogger(__name__)


class AccountLedger:
    """Atomic credit/debit over account balances.

    Args:
        uow: The open unit of work the mutations belong to.
    """

    def __init__(self, uow: LedgerUnitOfWork) -> None:
        self._uow = uow

    def credit(self, account_number: str, amount: Decimal) -> Decimal:
        """Increase a balance and return the new balance.

        Raises:
            InvalidAmountError: If amount is not > 0.
            AccountNotFoundError: If the account does not exist.
        """
        amount = require_positive_amount(amount)
        account = self._uow.get_account(account_number, for_update=True)
        if account is None:
            raise AccountNotFoundError(account_number)

        new_balance = quantize(account.balance + amount)
        self._uow.set_balance(account_number, new_balance)
        logger.debug("Credited %s to %s -> %s", amount, account_number, new_balance)
        return new_balance

    def debit(self, account_number: str, amount: Decimal) -> Decimal:
        """Decrease a balance and return the new balance.

        The balance is untouched when the debit is rejected.

        Raises:
            InvalidAmountError: If amount is not > 0.
            AccountNotFoundError: If the account does not exist.
            InsufficientFundsError: If the balance is lower than amount.
        """
        amount = require_positive_amount(amount)
        account = self._uow.get_account(account_number, for_update=True)
        if account is None:
            raise AccountNotFoundError(account_number)
        if account.balance < amount:
            raise InsufficientFundsError(required=amount, available=account.balance)

        new_balance = quantize(account.balance - amount)
        self._uow.set_balance(account_number, new_balance)
        logger.debug("Debited %s from %s -> %s", amount, account_number, new_balance)
        return new_balance
