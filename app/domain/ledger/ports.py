"""
Port interfaces (ABCs) for the ledger bounded context.

Ports define the contracts that the domain requires from the outside world.
Infrastructure adapters implement these interfaces.
The domain layer never depends on concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Sequence

from app.domain.ledger.entities import (
    Account,
    AuditEntry,
    EventKind,
    Holding,
    InvestmentClass,
    PriceQuote,
    Trade,
    Transaction,
)


class PriceSource(ABC):
    """Port for obtaining the current market price of a symbol.

    Implementations may be stateful (a simulated feed drifts on every
    call) but must never return a non-positive price. Unknown symbols
    are the adapter's problem, not the caller's.
    """

    @abstractmethod
    def current_price(self, symbol: str) -> PriceQuote:
        """Return the current quote for a symbol."""
        raise NotImplementedError


class AccountDirectory(ABC):
    """Port for resolving account identifiers outside a write transaction."""

    @abstractmethod
    def resolve(self, account_number: str) -> Optional[Account]:
        """Return the account for a canonical account number, or None."""
        raise NotImplementedError


class EventSink(ABC):
    """Port for fire-and-forget notifications.

    Called only after the owning financial transaction has committed.
    Implementations must swallow (and log) their own failures.
    """

    @abstractmethod
    def publish(
        self, account_number: str, kind: EventKind, payload: dict[str, Any]
    ) -> None:
        """Queue a notification for one account."""
        raise NotImplementedError


class LedgerUnitOfWork(ABC):
    """Port for one atomic unit of ledger work.

    Used as a context manager: everything done inside the ``with`` block
    commits together on a clean exit and is rolled back if any exception
    escapes. Reads marked ``for_update`` lock the row until the unit ends.
    """

    def __enter__(self) -> "LedgerUnitOfWork":
        return self

    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None:
        """Commit on a clean exit, roll back if an exception escaped."""
        raise NotImplementedError

    # -- accounts -------------------------------------------------------

    @abstractmethod
    def get_account(
        self, account_number: str, for_update: bool = False
    ) -> Optional[Account]:
        """Return an account by number, optionally locking its row."""
        raise NotImplementedError

    @abstractmethod
    def lock_accounts(self, account_numbers: Sequence[str]) -> dict[str, Account]:
        """Lock several account rows in ascending account-number order.

        Returns the accounts that exist, keyed by account number.
        """
        raise NotImplementedError

    @abstractmethod
    def add_account(self, account: Account) -> None:
        """Insert a new account row."""
        raise NotImplementedError

    @abstractmethod
    def set_balance(self, account_number: str, balance: Decimal) -> None:
        """Overwrite a (locked) account's balance."""
        raise NotImplementedError

    # -- holdings -------------------------------------------------------

    @abstractmethod
    def get_holding(
        self,
        account_number: str,
        symbol: str,
        investment_class: InvestmentClass,
        for_update: bool = False,
    ) -> Optional[Holding]:
        """Return the lot for (account, symbol, class), or None."""
        raise NotImplementedError

    @abstractmethod
    def save_holding(self, holding: Holding) -> Holding:
        """Insert a new lot (id is None) or update an existing one."""
        raise NotImplementedError

    @abstractmethod
    def delete_holding(self, holding: Holding) -> None:
        """Remove a lot entirely."""
        raise NotImplementedError

    # -- append-only records --------------------------------------------

    @abstractmethod
    def append_transaction(self, transaction: Transaction) -> Transaction:
        """Append a Transaction and return it with its assigned id."""
        raise NotImplementedError

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Return a Transaction by id, or None."""
        raise NotImplementedError

    @abstractmethod
    def append_trade(self, trade: Trade) -> Trade:
        """Append a Trade and return it with its assigned id."""
        raise NotImplementedError


class LedgerHistoryRepository(ABC):
    """Port for read-side queries over the ledger's append-only history."""

    @abstractmethod
    def load_activity(
        self, account_number: str
    ) -> tuple[list[Transaction], list[Trade]]:
        """Return all transactions and trades involving an account.

        Both lists come from one consistent snapshot and are ordered by
        timestamp ascending, then by id.
        """
        raise NotImplementedError

    @abstractmethod
    def list_transactions(
        self,
        account_number: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Transaction]:
        """Return transactions where the account is sender or receiver.

        Ordered newest first. ``start`` is inclusive, ``end`` exclusive.
        """
        raise NotImplementedError

    @abstractmethod
    def list_trades(
        self,
        account_number: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Trade]:
        """Return trades for an account, newest first."""
        raise NotImplementedError

    @abstractmethod
    def list_holdings(self, account_number: str) -> list[Holding]:
        """Return all lots currently held by an account."""
        raise NotImplementedError


class AuditTrail(ABC):
    """Port for the audit log of money-moving operations.

    Written after the operation has committed, in its own transaction.
    """

    @abstractmethod
    def record(self, entry: AuditEntry) -> AuditEntry:
        """Persist an entry and return it with its assigned id."""
        raise NotImplementedError

    @abstractmethod
    def get(self, entry_id: int) -> Optional[AuditEntry]:
        raise NotImplementedError

    @abstractmethod
    def recent(
        self, limit: int, account_number: Optional[str] = None
    ) -> list[AuditEntry]:
        """Return up to ``limit`` entries, newest first."""
        raise NotImplementedError

    @abstractmethod
    def count(self, account_number: Optional[str] = None) -> int:
        raise NotImplementedError
