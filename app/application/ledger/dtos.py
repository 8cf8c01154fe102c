"""
Data Transfer Objects for the ledger application layer.

DTOs carry data between the interface and application layers.
They are plain dataclasses with no behavior.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from app.domain.ledger.entities import (
    AuditEntry,
    HistoryRange,
    InvestmentClass,
    TradeDirection,
)


@dataclass(frozen=True)
class OpenAccountCommand:
    """Input DTO for opening an account.

    Attributes:
        pin: Secondary PIN credential; only its hash is stored.
        initial_deposit: Opening balance. None means the configured default.
        role: Account role.
    """

    pin: str
    initial_deposit: Optional[Decimal] = None
    role: str = "USER"


@dataclass(frozen=True)
class OpenAccountResult:
    account_number: str
    initial_balance: Decimal
    created_at: datetime


@dataclass(frozen=True)
class CashMovementCommand:
    """Input DTO for a deposit or withdrawal.

    Attributes:
        account_number: Account identifier (normalized by the use case).
        amount: Positive amount to move.
    """

    account_number: str
    amount: Decimal


@dataclass(frozen=True)
class CashMovementResult:
    transaction_id: int
    account_number: str
    amount: Decimal
    new_balance: Decimal
    message: str


@dataclass(frozen=True)
class TransferCommand:
    """Input DTO for a peer-to-peer transfer.

    Attributes:
        from_account: Sender account identifier.
        to_account: Receiver account identifier.
        amount: Positive amount to transfer.
    """

    from_account: str
    to_account: str
    amount: Decimal


@dataclass(frozen=True)
class TransferResult:
    transaction_id: int
    from_account: str
    to_account: str
    amount: Decimal
    new_balance: Decimal
    message: str


@dataclass(frozen=True)
class ReversalResult:
    """Output DTO for a compensating reversal.

    Attributes:
        reversal_id: Id of the new REVERSAL transaction.
        original_id: Id of the reversed TRANSFER.
        new_balance: Original sender's balance after the reversal.
    """

    reversal_id: int
    original_id: int
    amount: Decimal
    new_balance: Decimal
    message: str


@dataclass(frozen=True)
class TradeCommand:
    """Input DTO for a buy or sell.

    Attributes:
        account_number: Trading account identifier.
        symbol: Ticker, upper-cased by the use case.
        quantity: Whole number of shares (> 0).
        investment_class: Lot tag; SHORT_TERM unless stated.
    """

    account_number: str
    symbol: str
    quantity: int
    investment_class: InvestmentClass = InvestmentClass.SHORT_TERM


@dataclass(frozen=True)
class ExecutionSummary:
    """Output DTO for an executed trade.

    Attributes:
        total: Cost of a BUY or proceeds of a SELL (price × quantity).
        new_balance: Cash balance after the trade.
    """

    trade_id: int
    action: TradeDirection
    symbol: str
    quantity: int
    price: Decimal
    total: Decimal
    new_balance: Decimal
    message: str


@dataclass(frozen=True)
class HistoryQuery:
    account_number: str
    history_range: HistoryRange = HistoryRange.TWELVE_MONTHS


@dataclass(frozen=True)
class BalanceResult:
    account_number: str
    balance: Decimal
    role: str
    created_at: datetime


@dataclass(frozen=True)
class TransactionItem:
    id: int
    sender_account: str
    receiver_account: str
    amount: Decimal
    type: str
    description: str
    timestamp: datetime


@dataclass(frozen=True)
class HoldingItem:
    symbol: str
    investment_class: str
    quantity: int
    average_cost: Decimal
    acquired_at: datetime


@dataclass(frozen=True)
class MonthlyAnalyticsQuery:
    account_number: str
    month: int
    year: int


@dataclass(frozen=True)
class AuditLogQuery:
    """Input DTO for listing audit entries.

    Attributes:
        limit: Maximum number of entries, newest first (1-500).
        account_number: Restrict to one account when given.
    """

    limit: int = 50
    account_number: Optional[str] = None


@dataclass(frozen=True)
class AuditLogPage:
    total: int
    entries: list[AuditEntry]
