"""
FastAPI router for the ledger bounded context.

All routes delegate to use cases. No business logic here.
Input validation is handled by Pydantic schemas.
Error mapping is handled by centralized error handlers.
Money-moving routes carry the tighter mutation rate limit.
"""

from fastapi import APIRouter, Depends, Query, Request

from app.application.ledger.account_queries import (
    GetBalanceUseCase,
    ListHoldingsUseCase,
    ListTransactionsUseCase,
)
from app.application.ledger.audit import GetAuditEntryUseCase, ListAuditLogUseCase
from app.application.ledger.cash_movements import DepositUseCase, WithdrawUseCase
from app.application.ledger.dtos import (
    AuditLogQuery,
    CashMovementCommand,
    HistoryQuery,
    MonthlyAnalyticsQuery,
    OpenAccountCommand,
    TradeCommand,
    TransferCommand,
)
from app.application.ledger.execute_trade import ExecuteTradeUseCase
from app.application.ledger.get_portfolio_history import GetPortfolioHistoryUseCase
from app.application.ledger.open_account import OpenAccountUseCase
from app.application.ledger.portfolio_analytics import (
    GetLongTermHoldingsUseCase,
    GetMonthlyAnalyticsUseCase,
    GetPerformanceUseCase,
)
from app.application.ledger.reverse_transaction import ReverseTransactionUseCase
from app.application.ledger.transfer_funds import TransferFundsUseCase
from app.core.config import settings
from app.domain.ledger.entities import HistoryRange
from app.domain.ledger.money import canonical_account_number
from app.interfaces.ledger.dependencies import (
    get_audit_entry_use_case,
    get_balance_use_case,
    get_deposit_use_case,
    get_execute_trade_use_case,
    get_list_audit_log_use_case,
    get_list_holdings_use_case,
    get_list_transactions_use_case,
    get_long_term_holdings_use_case,
    get_monthly_analytics_use_case,
    get_open_account_use_case,
    get_performance_use_case,
    get_portfolio_history_use_case,
    get_reverse_transaction_use_case,
    get_transfer_use_case,
    get_withdraw_use_case,
)
from app.interfaces.ledger.schemas import (
    AuditEntrySchema,
    AuditLogResponse,
    BalanceResponse,
    CashMovementRequest,
    CashMovementResponse,
    ErrorResponse,
    HoldingItemSchema,
    HoldingListResponse,
    LongTermHoldingsResponse,
    LongTermLotSchema,
    MonthlyAnalyticsResponse,
    OpenAccountRequest,
    OpenAccountResponse,
    PerformanceResponse,
    PortfolioHistoryResponse,
    ReversalResponse,
    TradeRequest,
    TradeResponse,
    TransactionItemSchema,
    TransactionListResponse,
    TransferRequest,
    TransferResponse,
    ValuationPointSchema,
)
from app.shared.security.rate_limiting import MUTATION_RATE_LIMIT, limiter

router = APIRouter(tags=["ledger"])

NOT_FOUND = {404: {"model": ErrorResponse}}
MUTATION_ERRORS = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


# ------------------------------------------------------------------
# Accounts
# ------------------------------------------------------------------


@router.post(
    "/accounts",
    response_model=OpenAccountResponse,
    status_code=201,
    responses={422: {"model": ErrorResponse}},
    summary="Open an account",
    description="Create an account with a random 10-digit number and an opening deposit.",
)
@limiter.limit(MUTATION_RATE_LIMIT)
def open_account(
    request: Request,
    body: OpenAccountRequest,
    use_case: OpenAccountUseCase = Depends(get_open_account_use_case),
) -> OpenAccountResponse:
    """Open a new account."""
    result = use_case.execute(
        OpenAccountCommand(
            pin=body.pin or settings.default_pin,
            initial_deposit=body.initial_deposit,
        )
    )
    return OpenAccountResponse(
        account_number=result.account_number,
        initial_balance=result.initial_balance,
        created_at=result.created_at,
    )


@router.get(
    "/accounts/{account_number}",
    response_model=BalanceResponse,
    responses=NOT_FOUND,
    summary="Get account balance",
)
def get_balance(
    account_number: str,
    use_case: GetBalanceUseCase = Depends(get_balance_use_case),
) -> BalanceResponse:
    """Return the cash balance of an account."""
    result = use_case.execute(account_number)
    return BalanceResponse(
        account_number=result.account_number,
        balance=result.balance,
        role=result.role,
        created_at=result.created_at,
    )


@router.get(
    "/accounts/{account_number}/transactions",
    response_model=TransactionListResponse,
    responses=NOT_FOUND,
    summary="List transactions",
    description="Every transaction the account sent or received, newest first.",
)
def list_transactions(
    account_number: str,
    use_case: ListTransactionsUseCase = Depends(get_list_transactions_use_case),
) -> TransactionListResponse:
    """List the account's statement."""
    items = use_case.execute(account_number)
    return TransactionListResponse(
        account_number=canonical_account_number(account_number),
        transactions=[
            TransactionItemSchema(
                id=t.id,
                sender_account=t.sender_account,
                receiver_account=t.receiver_account,
                amount=t.amount,
                type=t.type,
                description=t.description,
                timestamp=t.timestamp,
            )
            for t in items
        ],
    )


# ------------------------------------------------------------------
# Cash movements
# ------------------------------------------------------------------


@router.post(
    "/accounts/{account_number}/deposits",
    response_model=CashMovementResponse,
    responses=MUTATION_ERRORS,
    summary="Deposit cash",
)
@limiter.limit(MUTATION_RATE_LIMIT)
def deposit(
    request: Request,
    account_number: str,
    body: CashMovementRequest,
    use_case: DepositUseCase = Depends(get_deposit_use_case),
) -> CashMovementResponse:
    """Credit cash from outside the ledger."""
    result = use_case.execute(
        CashMovementCommand(account_number=account_number, amount=body.amount)
    )
    return CashMovementResponse(**vars(result))


@router.post(
    "/accounts/{account_number}/withdrawals",
    response_model=CashMovementResponse,
    responses=MUTATION_ERRORS,
    summary="Withdraw cash",
)
@limiter.limit(MUTATION_RATE_LIMIT)
def withdraw(
    request: Request,
    account_number: str,
    body: CashMovementRequest,
    use_case: WithdrawUseCase = Depends(get_withdraw_use_case),
) -> CashMovementResponse:
    """Debit cash out of the ledger."""
    result = use_case.execute(
        CashMovementCommand(account_number=account_number, amount=body.amount)
    )
    return CashMovementResponse(**vars(result))


@router.post(
    "/transfers",
    response_model=TransferResponse,
    responses=MUTATION_ERRORS,
    summary="Transfer funds",
    description="Move cash between two distinct accounts atomically.",
)
@limiter.limit(MUTATION_RATE_LIMIT)
def transfer(
    request: Request,
    body: TransferRequest,
    use_case: TransferFundsUseCase = Depends(get_transfer_use_case),
) -> TransferResponse:
    """Transfer funds between accounts."""
    result = use_case.execute(
        TransferCommand(
            from_account=body.from_account,
            to_account=body.to_account,
            amount=body.amount,
        )
    )
    return TransferResponse(**vars(result))


@router.post(
    "/transactions/{transaction_id}/reversal",
    response_model=ReversalResponse,
    responses=MUTATION_ERRORS,
    summary="Reverse a transfer",
    description="Append a compensating REVERSAL for a TRANSFER.",
)
@limiter.limit(MUTATION_RATE_LIMIT)
def reverse_transaction(
    request: Request,
    transaction_id: int,
    use_case: ReverseTransactionUseCase = Depends(get_reverse_transaction_use_case),
) -> ReversalResponse:
    """Reverse a transfer."""
    result = use_case.execute(transaction_id)
    return ReversalResponse(**vars(result))


# ------------------------------------------------------------------
# Trading
# ------------------------------------------------------------------


@router.post(
    "/accounts/{account_number}/trades",
    response_model=TradeResponse,
    responses=MUTATION_ERRORS,
    summary="Buy or sell shares",
)
@limiter.limit(MUTATION_RATE_LIMIT)
def execute_trade(
    request: Request,
    account_number: str,
    body: TradeRequest,
    use_case: ExecuteTradeUseCase = Depends(get_execute_trade_use_case),
) -> TradeResponse:
    """Execute a market order at the current price."""
    result = use_case.execute(
        body.action,
        TradeCommand(
            account_number=account_number,
            symbol=body.symbol,
            quantity=body.quantity,
            investment_class=body.investment_class,
        ),
    )
    return TradeResponse(
        trade_id=result.trade_id,
        action=result.action.value,
        symbol=result.symbol,
        quantity=result.quantity,
        price=result.price,
        total=result.total,
        new_balance=result.new_balance,
        message=result.message,
    )


@router.get(
    "/accounts/{account_number}/holdings",
    response_model=HoldingListResponse,
    responses=NOT_FOUND,
    summary="List holdings",
)
def list_holdings(
    account_number: str,
    use_case: ListHoldingsUseCase = Depends(get_list_holdings_use_case),
) -> HoldingListResponse:
    """List the account's open lots."""
    items = use_case.execute(account_number)
    return HoldingListResponse(
        account_number=canonical_account_number(account_number),
        holdings=[HoldingItemSchema(**vars(h)) for h in items],
    )


@router.get(
    "/accounts/{account_number}/holdings/long-term",
    response_model=LongTermHoldingsResponse,
    responses=NOT_FOUND,
    summary="List long-term lots",
    description="LONG_TERM lots with days held and whether they passed one year.",
)
def list_long_term_holdings(
    account_number: str,
    use_case: GetLongTermHoldingsUseCase = Depends(get_long_term_holdings_use_case),
) -> LongTermHoldingsResponse:
    lots = use_case.execute(account_number)
    return LongTermHoldingsResponse(
        account_number=canonical_account_number(account_number),
        lots=[LongTermLotSchema(**vars(lot)) for lot in lots],
    )


# ------------------------------------------------------------------
# Valuation and analytics
# ------------------------------------------------------------------


@router.get(
    "/accounts/{account_number}/history",
    response_model=PortfolioHistoryResponse,
    responses=NOT_FOUND,
    summary="Portfolio history",
    description="Daily net worth (cash + holdings at last traded price).",
)
def get_history(
    account_number: str,
    history_range: HistoryRange = Query(HistoryRange.TWELVE_MONTHS, alias="range"),
    use_case: GetPortfolioHistoryUseCase = Depends(get_portfolio_history_use_case),
) -> PortfolioHistoryResponse:
    """Reconstruct the account's net-worth series."""
    history = use_case.execute(
        HistoryQuery(account_number=account_number, history_range=history_range)
    )
    return PortfolioHistoryResponse(
        account_number=history.account_number,
        range=history_range,
        points=[
            ValuationPointSchema(date=p.date, total_value=p.total_value)
            for p in history
        ],
    )


@router.get(
    "/accounts/{account_number}/performance",
    response_model=PerformanceResponse,
    responses=NOT_FOUND,
    summary="Portfolio performance",
)
def get_performance(
    account_number: str,
    use_case: GetPerformanceUseCase = Depends(get_performance_use_case),
) -> PerformanceResponse:
    """Unrealized profit and loss at current prices."""
    summary = use_case.execute(account_number)
    return PerformanceResponse(
        account_number=canonical_account_number(account_number),
        total_invested=summary.total_invested,
        current_value=summary.current_value,
        profit_loss=summary.profit_loss,
        profit_loss_pct=summary.profit_loss_pct,
    )


@router.get(
    "/accounts/{account_number}/analytics/monthly",
    response_model=MonthlyAnalyticsResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    summary="Monthly cash flow",
)
def get_monthly_analytics(
    account_number: str,
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=1970, le=9999),
    use_case: GetMonthlyAnalyticsUseCase = Depends(get_monthly_analytics_use_case),
) -> MonthlyAnalyticsResponse:
    """Income and expense for one calendar month."""
    summary = use_case.execute(
        MonthlyAnalyticsQuery(account_number=account_number, month=month, year=year)
    )
    return MonthlyAnalyticsResponse(
        account_number=canonical_account_number(account_number),
        month=summary.month,
        year=summary.year,
        total_income=summary.total_income,
        total_expense=summary.total_expense,
    )


# ------------------------------------------------------------------
# Audit
# ------------------------------------------------------------------


@router.get(
    "/audit",
    response_model=AuditLogResponse,
    responses={422: {"model": ErrorResponse}},
    summary="Recent audit entries",
    description="Money-moving operations, newest first, optionally for one account.",
)
def list_audit_log(
    limit: int = Query(50, ge=1, le=500),
    account: str | None = Query(None, description="Restrict to one account"),
    use_case: ListAuditLogUseCase = Depends(get_list_audit_log_use_case),
) -> AuditLogResponse:
    page = use_case.execute(AuditLogQuery(limit=limit, account_number=account))
    return AuditLogResponse(
        total=page.total,
        entries=[AuditEntrySchema(**vars(entry)) for entry in page.entries],
    )


@router.get(
    "/audit/{entry_id}",
    response_model=AuditEntrySchema,
    responses=NOT_FOUND,
    summary="Get one audit entry",
)
def get_audit_entry(
    entry_id: int,
    use_case: GetAuditEntryUseCase = Depends(get_audit_entry_use_case),
) -> AuditEntrySchema:
    return AuditEntrySchema(**vars(use_case.execute(entry_id)))
