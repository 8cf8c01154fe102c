"""
Adapter: Ledger history repository.

Implements LedgerHistoryRepository port.
Read-only queries over transactions, trades and holdings.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.engine import Connection, Engine

from app.domain.ledger.entities import Holding, Trade, Transaction
from app.domain.ledger.ports import LedgerHistoryRepository
from app.infrastructure.ledger.row_mapping import (
    row_to_holding,
    row_to_trade,
    row_to_transaction,
)
from app.infrastructure.ledger.schema import holdings, trades, transactions

logger = logging.getLogger(__name__)


class SqlLedgerHistoryRepository(LedgerHistoryRepository):
    """Reads append-only ledger history from the database.

    Takes no locks. ``load_activity`` reads both tables inside one
    transaction so the replay sees a single committed snapshot.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def load_activity(
        self, account_number: str
    ) -> tuple[list[Transaction], list[Trade]]:
        """Return every transaction and trade for an account, oldest first."""
        with self._engine.begin() as conn:
            txns = self._select_transactions(conn, account_number, ascending=True)
            account_trades = self._select_trades(conn, account_number, ascending=True)

        logger.debug(
            "Loaded %d transactions and %d trades for %s",
            len(txns),
            len(account_trades),
            account_number,
        )
        return txns, account_trades

    def list_transactions(
        self,
        account_number: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Transaction]:
        """Return transactions for an account, newest first."""
        with self._engine.begin() as conn:
            return self._select_transactions(
                conn, account_number, ascending=False, start=start, end=end
            )

    def list_trades(
        self,
        account_number: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Trade]:
        """Return trades for an account, newest first."""
        with self._engine.begin() as conn:
            return self._select_trades(
                conn, account_number, ascending=False, start=start, end=end
            )

    def list_holdings(self, account_number: str) -> list[Holding]:
        """Return all lots of an account ordered by symbol then class."""
        query = (
            select(holdings)
            .where(holdings.c.account_number == account_number)
            .order_by(holdings.c.symbol, holdings.c.investment_class)
        )
        with self._engine.begin() as conn:
            rows = conn.execute(query).fetchall()
        return [row_to_holding(r) for r in rows]

    # ------------------------------------------------------------------
    # Query builders
    # ------------------------------------------------------------------

    @staticmethod
    def _select_transactions(
        conn: Connection,
        account_number: str,
        ascending: bool,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Transaction]:
        query = select(transactions).where(
            or_(
                transactions.c.sender_account == account_number,
                transactions.c.receiver_account == account_number,
            )
        )
        if start is not None:
            query = query.where(transactions.c.timestamp >= start)
        if end is not None:
            query = query.where(transactions.c.timestamp < end)

        if ascending:
            query = query.order_by(transactions.c.timestamp.asc(), transactions.c.id.asc())
        else:
            query = query.order_by(transactions.c.timestamp.desc(), transactions.c.id.desc())
        return [row_to_transaction(r) for r in conn.execute(query).fetchall()]

    @staticmethod
    def _select_trades(
        conn: Connection,
        account_number: str,
        ascending: bool,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Trade]:
        query = select(trades).where(trades.c.account_number == account_number)
        if start is not None:
            query = query.where(trades.c.timestamp >= start)
        if end is not None:
            query = query.where(trades.c.timestamp < end)

        if ascending:
            query = query.order_by(trades.c.timestamp.asc(), trades.c.id.asc())
        else:
            query = query.order_by(trades.c.timestamp.desc(), trades.c.id.desc())
        return [row_to_trade(r) for r in conn.execute(query).fetchall()]
