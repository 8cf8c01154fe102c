"""
Pydantic schemas for ledger API request/response validation.

These schemas enforce input validation and define the API contract.
Business rules (positive amounts, whole quantities, sufficient funds)
are enforced again by the use cases. No business logic belongs here.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from app.domain.ledger.entities import HistoryRange, InvestmentClass

SYMBOL_DESCRIPTION = "Stock ticker symbol"
SYMBOL_PATTERN = r"^[A-Za-z0-9.]+$"
SYMBOL_MIN_LEN = 1
SYMBOL_MAX_LEN = 10
PIN_PATTERN = r"^[0-9]{4,6}$"


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str


class ErrorResponse(BaseModel):
    """Standard error response returned by all error handlers."""

    error: str
    detail: str | None = None


# ------------------------------------------------------------------
# Accounts
# ------------------------------------------------------------------


class OpenAccountRequest(BaseModel):
    """Request schema for opening an account.

    Attributes:
        pin: 4-6 digit PIN. The configured default is used when omitted.
        initial_deposit: Opening balance (>= 0). Defaults to the configured amount.
    """

    pin: str | None = Field(default=None, pattern=PIN_PATTERN, description="4-6 digit PIN")
    initial_deposit: Decimal | None = Field(
        default=None, ge=0, description="Opening balance"
    )


class OpenAccountResponse(BaseModel):
    account_number: str
    initial_balance: Decimal
    created_at: datetime


class BalanceResponse(BaseModel):
    """Response schema for the account balance endpoint."""

    account_number: str
    balance: Decimal
    role: str
    created_at: datetime | None = None


class TransactionItemSchema(BaseModel):
    id: int
    sender_account: str
    receiver_account: str
    amount: Decimal
    type: str
    description: str
    timestamp: datetime


class TransactionListResponse(BaseModel):
    account_number: str
    transactions: list[TransactionItemSchema]


# ------------------------------------------------------------------
# Cash movements
# ------------------------------------------------------------------


class CashMovementRequest(BaseModel):
    """Request schema for deposits and withdrawals."""

    amount: Decimal = Field(..., gt=0, description="Amount to move (> 0)")


class CashMovementResponse(BaseModel):
    transaction_id: int
    account_number: str
    amount: Decimal
    new_balance: Decimal
    message: str


class TransferRequest(BaseModel):
    """Request schema for a peer-to-peer transfer.

    Attributes:
        from_account: Sender account number.
        to_account: Receiver account number (must differ from sender).
        amount: Amount to transfer (> 0).
    """

    from_account: str = Field(..., min_length=1, max_length=20)
    to_account: str = Field(..., min_length=1, max_length=20)
    amount: Decimal = Field(..., gt=0, description="Amount to transfer (> 0)")


class TransferResponse(BaseModel):
    transaction_id: int
    from_account: str
    to_account: str
    amount: Decimal
    new_balance: Decimal
    message: str


class ReversalResponse(BaseModel):
    reversal_id: int
    original_id: int
    amount: Decimal
    new_balance: Decimal
    message: str


# ------------------------------------------------------------------
# Trading
# ------------------------------------------------------------------


class TradeRequest(BaseModel):
    """Request schema for a buy or sell.

    Attributes:
        action: BUY or SELL (case-insensitive).
        symbol: Ticker symbol; upper-cased by the service.
        quantity: Whole number of shares (> 0).
        investment_class: Lot tag, SHORT_TERM unless stated.
    """

    action: str = Field(..., min_length=1, max_length=10)
    symbol: str = Field(
        ...,
        min_length=SYMBOL_MIN_LEN,
        max_length=SYMBOL_MAX_LEN,
        pattern=SYMBOL_PATTERN,
        description=SYMBOL_DESCRIPTION,
    )
    quantity: int = Field(..., gt=0, description="Number of shares (> 0)")
    investment_class: InvestmentClass = InvestmentClass.SHORT_TERM


class TradeResponse(BaseModel):
    trade_id: int
    action: str
    symbol: str
    quantity: int
    price: Decimal
    total: Decimal
    new_balance: Decimal
    message: str


class HoldingItemSchema(BaseModel):
    symbol: str
    investment_class: str
    quantity: int
    average_cost: Decimal
    acquired_at: datetime


class HoldingListResponse(BaseModel):
    account_number: str
    holdings: list[HoldingItemSchema]


class LongTermLotSchema(BaseModel):
    symbol: str
    quantity: int
    acquired_at: datetime
    days_held: int
    long_term_qualified: bool


class LongTermHoldingsResponse(BaseModel):
    account_number: str
    lots: list[LongTermLotSchema]


# ------------------------------------------------------------------
# Valuation and analytics
# ------------------------------------------------------------------


class ValuationPointSchema(BaseModel):
    """One point of the net-worth series."""

    date: date
    total_value: Decimal


class PortfolioHistoryResponse(BaseModel):
    account_number: str
    range: HistoryRange
    points: list[ValuationPointSchema]


class PerformanceResponse(BaseModel):
    """Unrealized performance of all lots at current prices."""

    account_number: str
    total_invested: Decimal
    current_value: Decimal
    profit_loss: Decimal
    profit_loss_pct: Decimal


class MonthlyAnalyticsResponse(BaseModel):
    account_number: str
    month: int
    year: int
    total_income: Decimal
    total_expense: Decimal


# ------------------------------------------------------------------
# Audit
# ------------------------------------------------------------------


class AuditEntrySchema(BaseModel):
    """One audited money-moving operation."""

    id: int
    operation: str
    account_number: str
    parameters: str
    result: str
    execution_time_ms: int
    timestamp: datetime


class AuditLogResponse(BaseModel):
    total: int
    entries: list[AuditEntrySchema]
