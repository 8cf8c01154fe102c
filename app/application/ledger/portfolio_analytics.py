"""
Use cases: Portfolio analytics (performance, monthly cash flow,
long-term lots).

Side effects: Performance quotes every held symbol, which drifts the
    simulated price source; nothing is written.
Failure cases: AccountNotFoundError, InvalidAmountError (bad month).
"""

import logging

from app.application.ledger.account_queries import resolve_account
from app.application.ledger.dtos import MonthlyAnalyticsQuery
from app.domain.ledger.analytics import (
    CashFlowSummary,
    LongTermLot,
    PerformanceSummary,
    PortfolioAnalytics,
    month_bounds,
)
from app.domain.ledger.errors import InvalidAmountError
from app.domain.ledger.ports import (
    AccountDirectory,
    LedgerHistoryRepository,
    PriceSource,
)
from app.shared.clock import Clock, utcnow

logger = logging.getLogger(__name__)


class GetPerformanceUseCase:
    """Marks every lot at the current market price."""

    def __init__(
        self,
        directory: AccountDirectory,
        history_repo: LedgerHistoryRepository,
        price_source: PriceSource,
    ) -> None:
        self._directory = directory
        self._history_repo = history_repo
        self._price_source = price_source
        self._analytics = PortfolioAnalytics()

    def execute(self, account_number: str) -> PerformanceSummary:
        account = resolve_account(self._directory, account_number)
        holdings = self._history_repo.list_holdings(account.account_number)
        prices = {
            symbol: self._price_source.current_price(symbol).price
            for symbol in {h.symbol for h in holdings}
        }
        return self._analytics.performance(holdings, prices)


class GetMonthlyAnalyticsUseCase:
    """Sums income and expense for one calendar month."""

    def __init__(
        self, directory: AccountDirectory, history_repo: LedgerHistoryRepository
    ) -> None:
        self._directory = directory
        self._history_repo = history_repo
        self._analytics = PortfolioAnalytics()

    def execute(self, query: MonthlyAnalyticsQuery) -> CashFlowSummary:
        if not 1 <= query.month <= 12:
            raise InvalidAmountError(f"month must be 1-12, got {query.month}")
        account = resolve_account(self._directory, query.account_number)
        start, end = month_bounds(query.month, query.year)

        transactions = self._history_repo.list_transactions(
            account.account_number, start=start, end=end
        )
        trades = self._history_repo.list_trades(account.account_number, start=start, end=end)
        logger.debug(
            "Monthly analytics %s %04d-%02d: %d transactions, %d trades",
            account.account_number,
            query.year,
            query.month,
            len(transactions),
            len(trades),
        )
        return self._analytics.monthly_cash_flow(
            account.account_number, query.month, query.year, transactions, trades
        )


class GetLongTermHoldingsUseCase:
    """Lists LONG_TERM lots with their holding period."""

    def __init__(
        self,
        directory: AccountDirectory,
        history_repo: LedgerHistoryRepository,
        clock: Clock = utcnow,
    ) -> None:
        self._directory = directory
        self._history_repo = history_repo
        self._clock = clock
        self._analytics = PortfolioAnalytics()

    def execute(self, account_number: str) -> list[LongTermLot]:
        account = resolve_account(self._directory, account_number)
        holdings = self._history_repo.list_holdings(account.account_number)
        return self._analytics.long_term_lots(holdings, self._clock())
