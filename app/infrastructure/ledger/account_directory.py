"""
Adapter: Account directory.

Implements AccountDirectory port with a plain, unlocked read.
Callers pass the canonical account number.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.engine import Engine

from app.domain.ledger.entities import Account
from app.domain.ledger.ports import AccountDirectory
from app.infrastructure.ledger.row_mapping import row_to_account
from app.infrastructure.ledger.schema import accounts


class SqlAccountDirectory(AccountDirectory):
    """Looks accounts up by account number."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def resolve(self, account_number: str) -> Optional[Account]:
        """Return the account, or None if it does not exist."""
        with self._engine.begin() as conn:
            row = conn.execute(
                select(accounts).where(accounts.c.account_number == account_number)
            ).fetchone()
        return row_to_account(row) if row else None
