"""
Row-to-entity mapping for ledger tables.

SQLite hands back naive datetimes; every timestamp is normalized to
aware UTC here so the domain only ever compares aware values.
"""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.engine import Row

from app.domain.ledger.entities import (
    Account,
    AuditEntry,
    Holding,
    InvestmentClass,
    Trade,
    TradeDirection,
    Transaction,
    TransactionType,
)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _money(value) -> Decimal:
    return Decimal(str(value))


def row_to_account(row: Row) -> Account:
    return Account(
        account_number=row.account_number,
        balance=_money(row.balance),
        role=row.role,
        pin_hash=row.pin_hash,
        created_at=as_utc(row.created_at),
    )


def row_to_holding(row: Row) -> Holding:
    return Holding(
        id=row.id,
        account_number=row.account_number,
        symbol=row.symbol,
        investment_class=InvestmentClass(row.investment_class),
        quantity=int(row.quantity),
        average_cost=_money(row.average_cost),
        acquired_at=as_utc(row.acquired_at),
    )


def row_to_transaction(row: Row) -> Transaction:
    return Transaction(
        id=row.id,
        sender_account=row.sender_account,
        receiver_account=row.receiver_account,
        amount=_money(row.amount),
        type=TransactionType(row.type),
        description=row.description,
        timestamp=as_utc(row.timestamp),
    )


def row_to_trade(row: Row) -> Trade:
    return Trade(
        id=row.id,
        account_number=row.account_number,
        symbol=row.symbol,
        direction=TradeDirection(row.direction),
        quantity=int(row.quantity),
        price=_money(row.price),
        total=_money(row.total),
        investment_class=InvestmentClass(row.investment_class),
        timestamp=as_utc(row.timestamp),
    )


def row_to_audit_entry(row: Row) -> AuditEntry:
    return AuditEntry(
        id=row.id,
        operation=row.operation,
        account_number=row.account_number,
        parameters=row.parameters,
        result=row.result,
        execution_time_ms=int(row.execution_time_ms),
        timestamp=as_utc(row.timestamp),
    )
