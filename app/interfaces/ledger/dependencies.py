"""
Dependency injection for the ledger bounded context.

Provides FastAPI dependency functions that wire infrastructure
adapters into use cases via constructor injection.
These are the composition root for the ledger context.

Engine, price source and event sink are process-wide singletons;
tests replace them through ``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.engine import Engine

from app.application.ledger.audit import GetAuditEntryUseCase, ListAuditLogUseCase
from app.application.ledger.account_queries import (
    GetBalanceUseCase,
    ListHoldingsUseCase,
    ListTransactionsUseCase,
)
from app.application.ledger.cash_movements import DepositUseCase, WithdrawUseCase
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
from app.domain.ledger.ports import AuditTrail, EventSink, PriceSource
from app.infrastructure.ledger.account_directory import SqlAccountDirectory
from app.infrastructure.ledger.audit_trail import SqlAuditTrail
from app.infrastructure.ledger.database import create_db_engine
from app.infrastructure.ledger.history_repository import SqlLedgerHistoryRepository
from app.infrastructure.ledger.notifications import (
    NotificationDispatcher,
    QueuedEventSink,
)
from app.infrastructure.ledger.price_source import SimulatedPriceSource
from app.infrastructure.ledger.unit_of_work import SqlUnitOfWork
from app.shared.clock import Clock, utcnow


@lru_cache
def get_engine() -> Engine:
    """Build the SQLAlchemy engine from application settings (once)."""
    return create_db_engine(
        settings.get_database_dsn(),
        pool_pre_ping=settings.db_pool_pre_ping,
        sqlite_busy_timeout=settings.sqlite_busy_timeout_seconds,
    )


@lru_cache
def get_price_source() -> PriceSource:
    return SimulatedPriceSource(
        default_price=settings.default_stock_price,
        drift=settings.price_drift_pct,
    )


@lru_cache
def get_event_sink() -> QueuedEventSink:
    return QueuedEventSink()


@lru_cache
def get_notification_dispatcher() -> NotificationDispatcher:
    """Build the dispatcher draining the shared event sink."""
    return NotificationDispatcher(
        sink=get_event_sink(),
        webhook_urls=settings.notification_webhook_urls,
        poll_seconds=settings.notification_poll_seconds,
        batch_size=settings.notification_batch_size,
        timeout=settings.notification_timeout_seconds,
    )


def get_clock() -> Clock:
    return utcnow


def get_audit_trail(engine: Engine = Depends(get_engine)) -> AuditTrail:
    return SqlAuditTrail(engine)


def _uow_factory(engine: Engine):
    return lambda: SqlUnitOfWork(engine)


# ------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------


def get_open_account_use_case(
    engine: Engine = Depends(get_engine),
    events: EventSink = Depends(get_event_sink),
    clock: Clock = Depends(get_clock),
) -> OpenAccountUseCase:
    """Build OpenAccountUseCase with its infrastructure dependencies."""
    return OpenAccountUseCase(
        uow_factory=_uow_factory(engine),
        events=events,
        default_deposit=settings.default_opening_deposit,
        clock=clock,
    )


def get_deposit_use_case(
    engine: Engine = Depends(get_engine),
    events: EventSink = Depends(get_event_sink),
    clock: Clock = Depends(get_clock),
    audit: AuditTrail = Depends(get_audit_trail),
) -> DepositUseCase:
    return DepositUseCase(
        uow_factory=_uow_factory(engine), events=events, clock=clock, audit=audit
    )


def get_withdraw_use_case(
    engine: Engine = Depends(get_engine),
    events: EventSink = Depends(get_event_sink),
    clock: Clock = Depends(get_clock),
    audit: AuditTrail = Depends(get_audit_trail),
) -> WithdrawUseCase:
    return WithdrawUseCase(
        uow_factory=_uow_factory(engine), events=events, clock=clock, audit=audit
    )


def get_transfer_use_case(
    engine: Engine = Depends(get_engine),
    events: EventSink = Depends(get_event_sink),
    clock: Clock = Depends(get_clock),
    audit: AuditTrail = Depends(get_audit_trail),
) -> TransferFundsUseCase:
    """Build TransferFundsUseCase with its infrastructure dependencies."""
    return TransferFundsUseCase(
        uow_factory=_uow_factory(engine), events=events, clock=clock, audit=audit
    )


def get_reverse_transaction_use_case(
    engine: Engine = Depends(get_engine),
    events: EventSink = Depends(get_event_sink),
    clock: Clock = Depends(get_clock),
    audit: AuditTrail = Depends(get_audit_trail),
) -> ReverseTransactionUseCase:
    return ReverseTransactionUseCase(
        uow_factory=_uow_factory(engine), events=events, clock=clock, audit=audit
    )


def get_execute_trade_use_case(
    engine: Engine = Depends(get_engine),
    price_source: PriceSource = Depends(get_price_source),
    events: EventSink = Depends(get_event_sink),
    clock: Clock = Depends(get_clock),
    audit: AuditTrail = Depends(get_audit_trail),
) -> ExecuteTradeUseCase:
    """Build ExecuteTradeUseCase with its infrastructure dependencies."""
    return ExecuteTradeUseCase(
        uow_factory=_uow_factory(engine),
        price_source=price_source,
        events=events,
        clock=clock,
        audit=audit,
    )


# ------------------------------------------------------------------
# Queries
# ------------------------------------------------------------------


def get_balance_use_case(engine: Engine = Depends(get_engine)) -> GetBalanceUseCase:
    return GetBalanceUseCase(directory=SqlAccountDirectory(engine))


def get_list_transactions_use_case(
    engine: Engine = Depends(get_engine),
) -> ListTransactionsUseCase:
    return ListTransactionsUseCase(
        directory=SqlAccountDirectory(engine),
        history_repo=SqlLedgerHistoryRepository(engine),
    )


def get_list_holdings_use_case(
    engine: Engine = Depends(get_engine),
) -> ListHoldingsUseCase:
    return ListHoldingsUseCase(
        directory=SqlAccountDirectory(engine),
        history_repo=SqlLedgerHistoryRepository(engine),
    )


def get_portfolio_history_use_case(
    engine: Engine = Depends(get_engine),
    clock: Clock = Depends(get_clock),
) -> GetPortfolioHistoryUseCase:
    """Build GetPortfolioHistoryUseCase with its infrastructure dependencies."""
    return GetPortfolioHistoryUseCase(
        directory=SqlAccountDirectory(engine),
        history_repo=SqlLedgerHistoryRepository(engine),
        clock=clock,
    )


def get_performance_use_case(
    engine: Engine = Depends(get_engine),
    price_source: PriceSource = Depends(get_price_source),
) -> GetPerformanceUseCase:
    return GetPerformanceUseCase(
        directory=SqlAccountDirectory(engine),
        history_repo=SqlLedgerHistoryRepository(engine),
        price_source=price_source,
    )


def get_monthly_analytics_use_case(
    engine: Engine = Depends(get_engine),
) -> GetMonthlyAnalyticsUseCase:
    return GetMonthlyAnalyticsUseCase(
        directory=SqlAccountDirectory(engine),
        history_repo=SqlLedgerHistoryRepository(engine),
    )


def get_long_term_holdings_use_case(
    engine: Engine = Depends(get_engine),
    clock: Clock = Depends(get_clock),
) -> GetLongTermHoldingsUseCase:
    return GetLongTermHoldingsUseCase(
        directory=SqlAccountDirectory(engine),
        history_repo=SqlLedgerHistoryRepository(engine),
        clock=clock,
    )


def get_list_audit_log_use_case(
    trail: AuditTrail = Depends(get_audit_trail),
) -> ListAuditLogUseCase:
    return ListAuditLogUseCase(trail)


def get_audit_entry_use_case(
    trail: AuditTrail = Depends(get_audit_trail),
) -> GetAuditEntryUseCase:
    return GetAuditEntryUseCase(trail)
