"""
Domain entities for the ledger bounded context.

Entities represent core business objects with identity and lifecycle.
They contain no framework imports and no IO operations.
Ledger records (Transaction, Trade) are immutable once written.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

SYSTEM_ACCOUNT = "SYSTEM"
"""Counterparty sentinel for deposits and withdrawals."""


class InvestmentClass(Enum):
    """Tax-style tag carried by holdings and trades.

    Has no effect on money movement; it only partitions lots.
    """

    SHORT_TERM = "SHORT_TERM"
    LONG_TERM = "LONG_TERM"


class TradeDirection(Enum):
    """Side of a security trade."""

    BUY = "BUY"
    SELL = "SELL"


class TransactionType(Enum):
    """Kind of cash movement recorded in the ledger."""

    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    TRANSFER = "TRANSFER"
    REVERSAL = "REVERSAL"
    INITIAL_DEPOSIT = "INITIAL_DEPOSIT"


class HistoryRange(Enum):
    """Look-back windows supported by the valuation history."""

    SEVEN_DAYS = "7d"
    THIRTY_DAYS = "30d"
    TWELVE_MONTHS = "12m"


class EventKind(Enum):
    """Notification events published after a committed ledger operation."""

    ACCOUNT_OPENED = "ACCOUNT_OPENED"
    DEPOSIT_RECEIVED = "DEPOSIT_RECEIVED"
    WITHDRAWAL_MADE = "WITHDRAWAL_MADE"
    TRANSFER_SENT = "TRANSFER_SENT"
    TRANSFER_RECEIVED = "TRANSFER_RECEIVED"
    TRANSFER_REVERSED = "TRANSFER_REVERSED"
    TRADE_EXECUTED = "TRADE_EXECUTED"


@dataclass
class Account:
    """A cash account identified by its canonical account number."""

    account_number: str
    balance: Decimal
    role: str = "USER"
    pin_hash: str = ""
    created_at: Optional[datetime] = None


@dataclass
class Holding:
    """One lot: the position for an (account, symbol, investment class) triple."""

    account_number: str
    symbol: str
    investment_class: InvestmentClass
    quantity: int
    average_cost: Decimal
    acquired_at: datetime
    id: Optional[int] = None


@dataclass(frozen=True)
class Transaction:
    """An append-only cash movement between two parties (or SYSTEM)."""

    sender_account: str
    receiver_account: str
    amount: Decimal
    type: TransactionType
    description: str
    timestamp: datetime
    id: Optional[int] = None


@dataclass(frozen=True)
class Trade:
    """An append-only security movement for one account."""

    account_number: str
    symbol: str
    direction: TradeDirection
    quantity: int
    price: Decimal
    total: Decimal
    investment_class: InvestmentClass
    timestamp: datetime
    id: Optional[int] = None


@dataclass(frozen=True)
class PriceQuote:
    """An immutable price observation for a symbol."""

    symbol: str
    price: Decimal
    as_of: datetime


@dataclass(frozen=True)
class ValuationPoint:
    """Net worth of an account (cash + marked holdings) on a calendar date."""

    date: date
    total_value: Decimal


@dataclass(frozen=True)
class LedgerEvent:
    """A notification about a committed ledger operation."""

    account_number: str
    kind: EventKind
    payload: dict[str, Any] = field(default_factory=dict)
    occurred_at: Optional[datetime] = None


@dataclass(frozen=True)
class AuditEntry:
    """A record of one completed money-moving operation.

    ``parameters`` and ``result`` are text renderings, capped at
    ``AUDIT_TEXT_LIMIT`` characters.
    """

    operation: str
    account_number: str
    parameters: str
    result: str
    execution_time_ms: int
    timestamp: datetime
    id: Optional[int] = None


AUDIT_TEXT_LIMIT = 4000
