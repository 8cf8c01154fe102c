"""
Use cases: Read-only account queries (balance, statement, holdings).

Side effects: None.
Failure cases: AccountNotFoundError.
"""

import logging

from app.application.ledger.dtos import (
    BalanceResult,
    HoldingItem,
    TransactionItem,
)
from app.domain.ledger.entities import Account
from app.domain.ledger.errors import AccountNotFoundError
from app.domain.ledger.money import canonical_account_number
from app.domain.ledger.ports import AccountDirectory, LedgerHistoryRepository

logger = logging.getLogger(__name__)


def resolve_account(directory: AccountDirectory, identifier: str) -> Account:
    """Normalize an identifier and look it up.

    Raises:
        AccountNotFoundError: If no such account exists.
    """
    account_number = canonical_account_number(identifier)
    account = directory.resolve(account_number)
    if account is None:
        raise AccountNotFoundError(account_number)
    return account


class GetBalanceUseCase:
    """Returns an account's current cash balance."""

    def __init__(self, directory: AccountDirectory) -> None:
        self._directory = directory

    def execute(self, account_number: str) -> BalanceResult:
        account = resolve_account(self._directory, account_number)
        return BalanceResult(
            account_number=account.account_number,
            balance=account.balance,
            role=account.role,
            created_at=account.created_at,
        )


class ListTransactionsUseCase:
    """Returns every transaction the account took part in, newest first."""

    def __init__(
        self, directory: AccountDirectory, history_repo: LedgerHistoryRepository
    ) -> None:
        self._directory = directory
        self._history_repo = history_repo

    def execute(self, account_number: str) -> list[TransactionItem]:
        account = resolve_account(self._directory, account_number)
        txns = self._history_repo.list_transactions(account.account_number)
        logger.debug("Listing %d transactions for %s", len(txns), account.account_number)
        return [
            TransactionItem(
                id=t.id,
                sender_account=t.sender_account,
                receiver_account=t.receiver_account,
                amount=t.amount,
                type=t.type.value,
                description=t.description,
                timestamp=t.timestamp,
            )
            for t in txns
        ]


class ListHoldingsUseCase:
    """Returns the account's open lots."""

    def __init__(
        self, directory: AccountDirectory, history_repo: LedgerHistoryRepository
    ) -> None:
        self._directory = directory
        self._history_repo = history_repo

    def execute(self, account_number: str) -> list[HoldingItem]:
        account = resolve_account(self._directory, account_number)
        return [
            HoldingItem(
                symbol=h.symbol,
                investment_class=h.investment_class.value,
                quantity=h.quantity,
                average_cost=h.average_cost,
                acquired_at=h.acquired_at,
            )
            for h in self._history_repo.list_holdings(account.account_number)
        ]
