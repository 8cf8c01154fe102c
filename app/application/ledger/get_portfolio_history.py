"""
Use case: Reconstruct an account's daily net-worth series.

Input: HistoryQuery (account, range 7d/30d/12m)
Output: PortfolioHistory (lazy, re-iterable ValuationPoint series)
Side effects: None (read-only query, no locks).
Failure cases: AccountNotFoundError. Missing history is not an error:
    an account with no records yields one zero-valued point for today.
"""

import logging

from app.application.ledger.account_queries import resolve_account
from app.application.ledger.dtos import HistoryQuery
from app.domain.ledger.ports import AccountDirectory, LedgerHistoryRepository
from app.domain.ledger.valuation import HistoryReconstructor, PortfolioHistory
from app.shared.clock import Clock, utcnow

logger = logging.getLogger(__name__)


class GetPortfolioHistoryUseCase:
    """Loads one snapshot of an account's records and replays it."""

    def __init__(
        self,
        directory: AccountDirectory,
        history_repo: LedgerHistoryRepository,
        reconstructor: HistoryReconstructor | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._directory = directory
        self._history_repo = history_repo
        self._reconstructor = reconstructor or HistoryReconstructor()
        self._clock = clock

    def execute(self, query: HistoryQuery) -> PortfolioHistory:
        account = resolve_account(self._directory, query.account_number)
        transactions, trades = self._history_repo.load_activity(account.account_number)

        logger.info(
            "Replaying history for %s: range=%s transactions=%d trades=%d",
            account.account_number,
            query.history_range.value,
            len(transactions),
            len(trades),
        )
        return self._reconstructor.reconstruct(
            account.account_number,
            transactions,
            trades,
            query.history_range,
            self._clock(),
        )
