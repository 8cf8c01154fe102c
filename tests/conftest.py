"""
Shared fixtures for the ledger test-suite.

Every test gets its own file-backed SQLite database, so concurrent
tests can open several connections against the same store.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

import pytest

from app.domain.ledger.entities import (
    Account,
    EventKind,
    LedgerEvent,
    Transaction,
    TransactionType,
    SYSTEM_ACCOUNT,
)
from app.domain.ledger.ports import EventSink
from app.infrastructure.ledger.database import create_db_engine
from app.infrastructure.ledger.price_source import FixedPriceSource
from app.infrastructure.ledger.schema import init_schema
from app.infrastructure.ledger.unit_of_work import SqlUnitOfWork

START = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingSink(EventSink):
    """EventSink that keeps every published event in memory."""

    def __init__(self) -> None:
        self.events: list[LedgerEvent] = []

    def publish(
        self, account_number: str, kind: EventKind, payload: dict[str, Any]
    ) -> None:
        self.events.append(
            LedgerEvent(account_number=account_number, kind=kind, payload=dict(payload))
        )

    def kinds(self) -> list[EventKind]:
        return [e.kind for e in self.events]


@pytest.fixture
def engine(tmp_path):
    """Fresh SQLite database with the ledger schema."""
    db_engine = create_db_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}", sqlite_busy_timeout=10.0
    )
    init_schema(db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture
def uow_factory(engine):
    return lambda: SqlUnitOfWork(engine)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def prices(clock) -> FixedPriceSource:
    return FixedPriceSource(
        {"AAPL": Decimal("150.00"), "MSFT": Decimal("300.00")}, clock=clock
    )


@pytest.fixture
def make_account(uow_factory, clock):
    """Insert an account with a given balance and its opening record."""

    def _make(account_number: str, balance: str = "1000.00") -> str:
        amount = Decimal(balance)
        with uow_factory() as uow:
            uow.add_account(
                Account(
                    account_number=account_number,
                    balance=amount,
                    pin_hash="0" * 64,
                    created_at=clock(),
                )
            )
            if amount > 0:
                uow.append_transaction(
                    Transaction(
                        sender_account=SYSTEM_ACCOUNT,
                        receiver_account=account_number,
                        amount=amount,
                        type=TransactionType.INITIAL_DEPOSIT,
                        description="Initial Account Opening Deposit",
                        timestamp=clock(),
                    )
                )
        return account_number

    return _make


@pytest.fixture
def balance_of(uow_factory):
    """Read an account balance in its own transaction."""

    def _balance(account_number: str) -> Decimal:
        with uow_factory() as uow:
            return uow.get_account(account_number).balance

    return _balance
