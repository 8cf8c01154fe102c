"""
Adapter: SQL unit of work.

Implements the LedgerUnitOfWork port on a single SQLAlchemy connection
and transaction. Everything executed between ``__enter__`` and
``__exit__`` commits together or not at all.
"""

import dataclasses
import logging
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import Connection, Engine, RootTransaction

from app.domain.ledger.entities import (
    Account,
    Holding,
    InvestmentClass,
    Trade,
    Transaction,
)
from app.domain.ledger.ports import LedgerUnitOfWork
from app.infrastructure.ledger.row_mapping import (
    row_to_account,
    row_to_holding,
    row_to_transaction,
)
from app.infrastructure.ledger.schema import accounts, holdings, trades, transactions

logger = logging.getLogger(__name__)


class SqlUnitOfWork(LedgerUnitOfWork):
    """Concrete unit of work backed by one database transaction.

    Not reusable: create one per business operation.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._conn: Optional[Connection] = None
        self._txn: Optional[RootTransaction] = None

    def __enter__(self) -> "SqlUnitOfWork":
        self._conn = self._engine.connect()
        self._txn = self._conn.begin()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None:
                self._txn.commit()
            else:
                self._txn.rollback()
                logger.debug("Rolled back unit of work after %s", exc_type.__name__)
        finally:
            self._conn.close()
            self._conn = None
            self._txn = None

    @property
    def _connection(self) -> Connection:
        if self._conn is None:
            raise RuntimeError("SqlUnitOfWork used outside of a 'with' block")
        return self._conn

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def get_account(
        self, account_number: str, for_update: bool = False
    ) -> Optional[Account]:
        query = select(accounts).where(accounts.c.account_number == account_number)
        if for_update:
            query = query.with_for_update()
        row = self._connection.execute(query).fetchone()
        return row_to_account(row) if row else None

    def lock_accounts(self, account_numbers: Sequence[str]) -> dict[str, Account]:
        locked: dict[str, Account] = {}
        for number in sorted(set(account_numbers)):
            account = self.get_account(number, for_update=True)
            if account is not None:
                locked[number] = account
        return locked

    def add_account(self, account: Account) -> None:
        self._connection.execute(
            insert(accounts).values(
                account_number=account.account_number,
                balance=account.balance,
                role=account.role,
                pin_hash=account.pin_hash,
                created_at=account.created_at,
            )
        )

    def set_balance(self, account_number: str, balance: Decimal) -> None:
        self._connection.execute(
            update(accounts)
            .where(accounts.c.account_number == account_number)
            .values(balance=balance)
        )

    # ------------------------------------------------------------------
    # Holdings
    # ------------------------------------------------------------------

    def get_holding(
        self,
        account_number: str,
        symbol: str,
        investment_class: InvestmentClass,
        for_update: bool = False,
    ) -> Optional[Holding]:
        query = select(holdings).where(
            holdings.c.account_number == account_number,
            holdings.c.symbol == symbol,
            holdings.c.investment_class == investment_class.value,
        )
        if for_update:
            query = query.with_for_update()
        row = self._connection.execute(query).fetchone()
        return row_to_holding(row) if row else None

    def save_holding(self, holding: Holding) -> Holding:
        values = {
            "account_number": holding.account_number,
            "symbol": holding.symbol,
            "investment_class": holding.investment_class.value,
            "quantity": holding.quantity,
            "average_cost": holding.average_cost,
            "acquired_at": holding.acquired_at,
        }
        if holding.id is None:
            result = self._connection.execute(insert(holdings).values(**values))
            return dataclasses.replace(holding, id=result.inserted_primary_key[0])

        self._connection.execute(
            update(holdings).where(holdings.c.id == holding.id).values(**values)
        )
        return holding

    def delete_holding(self, holding: Holding) -> None:
        self._connection.execute(delete(holdings).where(holdings.c.id == holding.id))

    # ------------------------------------------------------------------
    # Append-only records
    # ------------------------------------------------------------------

    def append_transaction(self, transaction: Transaction) -> Transaction:
        result = self._connection.execute(
            insert(transactions).values(
                sender_account=transaction.sender_account,
                receiver_account=transaction.receiver_account,
                amount=transaction.amount,
                type=transaction.type.value,
                description=transaction.description,
                timestamp=transaction.timestamp,
            )
        )
        return dataclasses.replace(transaction, id=result.inserted_primary_key[0])

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        row = self._connection.execute(
            select(transactions).where(transactions.c.id == transaction_id)
        ).fetchone()
        return row_to_transaction(row) if row else None

    def append_trade(self, trade: Trade) -> Trade:
        result = self._connection.execute(
            insert(trades).values(
                account_number=trade.account_number,
                symbol=trade.symbol,
                direction=trade.direction.value,
                quantity=trade.quantity,
                price=trade.price,
                total=trade.total,
                investment_class=trade.investment_class.value,
                timestamp=trade.timestamp,
            )
        )
        return dataclasses.replace(trade, id=result.inserted_primary_key[0])
