"""
Use case: Execute a stock buy or sell against the account's cash.

Input: TradeCommand (account, symbol, quantity, investment class)
Output: ExecutionSummary
Side effects: One ledger mutation, one holdings mutation and one Trade
    record, committed together; a TRADE_EXECUTED notification and an
    audit entry after commit.
Failure cases: InvalidAmountError, AccountNotFoundError,
    InsufficientFundsError (buy), HoldingNotFoundError and
    InsufficientSharesError (sell). Failures leave no trace except a
    possibly drifted simulated price.
"""

import logging
import time
from typing import Callable, Optional

from app.application.ledger.audit import record_audit
from app.application.ledger.dtos import ExecutionSummary, TradeCommand
from app.application.ledger.events import publish_after_commit
from app.domain.ledger.account_ledger import AccountLedger
from app.domain.ledger.entities import EventKind, Trade, TradeDirection
from app.domain.ledger.errors import AccountNotFoundError, InvalidAmountError
from app.domain.ledger.holdings_book import HoldingsBook
from app.domain.ledger.money import (
    canonical_account_number,
    quantize,
    require_positive_quantity,
)
from app.domain.ledger.ports import AuditTrail, EventSink, LedgerUnitOfWork, PriceSource
from app.shared.clock import Clock, utcnow

logger = logging.getLogger(__name__)


def _normalize_symbol(symbol: str) -> str:
    normalized = (symbol or "").strip().upper()
    if not normalized:
        raise InvalidAmountError("symbol is required")
    return normalized


class ExecuteTradeUseCase:
    """Orchestrates buys and sells as single atomic units.

    The price is fetched before the unit of work opens; everything that
    touches balances, lots or the trade log happens inside it.
    """

    def __init__(
        self,
        uow_factory: Callable[[], LedgerUnitOfWork],
        price_source: PriceSource,
        events: EventSink,
        clock: Clock = utcnow,
        audit: Optional[AuditTrail] = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._price_source = price_source
        self._events = events
        self._clock = clock
        self._audit = audit

    def buy(self, command: TradeCommand) -> ExecutionSummary:
        """Buy shares at the current price.

        Raises:
            InsufficientFundsError: If the balance cannot cover price × quantity.
        """
        started = time.monotonic()
        account_number = canonical_account_number(command.account_number)
        symbol = _normalize_symbol(command.symbol)
        quantity = require_positive_quantity(command.quantity)

        logger.info(
            "BUY requested: account=%s symbol=%s qty=%d class=%s",
            account_number,
            symbol,
            quantity,
            command.investment_class.value,
        )

        quote = self._price_source.current_price(symbol)
        total_cost = quantize(quote.price * quantity)
        now = self._clock()

        with self._uow_factory() as uow:
            if uow.get_account(account_number, for_update=True) is None:
                raise AccountNotFoundError(account_number)

            new_balance = AccountLedger(uow).debit(account_number, total_cost)
            HoldingsBook(uow).increase(
                account_number,
                symbol,
                command.investment_class,
                quantity,
                quote.price,
                now,
            )
            trade = uow.append_trade(
                Trade(
                    account_number=account_number,
                    symbol=symbol,
                    direction=TradeDirection.BUY,
                    quantity=quantity,
                    price=quote.price,
                    total=total_cost,
                    investment_class=command.investment_class,
                    timestamp=now,
                )
            )

        return self._finish(trade, new_balance, command, started)

    def sell(self, command: TradeCommand) -> ExecutionSummary:
        """Sell shares at the current price, never at cost.

        Raises:
            HoldingNotFoundError: If the account has no such lot.
            InsufficientSharesError: If the lot holds fewer shares.
        """
        started = time.monotonic()
        account_number = canonical_account_number(command.account_number)
        symbol = _normalize_symbol(command.symbol)
        quantity = require_positive_quantity(command.quantity)

        logger.info(
            "SELL requested: account=%s symbol=%s qty=%d class=%s",
            account_number,
            symbol,
            quantity,
            command.investment_class.value,
        )

        quote = self._price_source.current_price(symbol)
        now = self._clock()

        with self._uow_factory() as uow:
            if uow.get_account(account_number, for_update=True) is None:
                raise AccountNotFoundError(account_number)

            HoldingsBook(uow).decrease(
                account_number, symbol, command.investment_class, quantity
            )
            proceeds = quantize(quote.price * quantity)
            new_balance = AccountLedger(uow).credit(account_number, proceeds)
            trade = uow.append_trade(
                Trade(
                    account_number=account_number,
                    symbol=symbol,
                    direction=TradeDirection.SELL,
                    quantity=quantity,
                    price=quote.price,
                    total=proceeds,
                    investment_class=command.investment_class,
                    timestamp=now,
                )
            )

        return self._finish(trade, new_balance, command, started)

    def execute(self, action: str, command: TradeCommand) -> ExecutionSummary:
        """Dispatch on a textual action ("BUY" or "SELL", any case).

        Raises:
            InvalidAmountError: For any other action.
        """
        normalized = (action or "").strip().upper()
        if normalized == TradeDirection.BUY.value:
            return self.buy(command)
        if normalized == TradeDirection.SELL.value:
            return self.sell(command)
        raise InvalidAmountError(f"invalid trade action: {action}")

    def _finish(
        self, trade: Trade, new_balance, command: TradeCommand, started: float
    ) -> ExecutionSummary:
        verb = "bought" if trade.direction is TradeDirection.BUY else "sold"
        logger.info(
            "%s executed: account=%s symbol=%s qty=%d price=%s total=%s",
            trade.direction.value,
            trade.account_number,
            trade.symbol,
            trade.quantity,
            trade.price,
            trade.total,
        )

        publish_after_commit(
            self._events,
            trade.account_number,
            EventKind.TRADE_EXECUTED,
            {
                "trade_id": trade.id,
                "action": trade.direction.value,
                "symbol": trade.symbol,
                "quantity": trade.quantity,
                "price": trade.price,
                "total": trade.total,
            },
        )

        summary = ExecutionSummary(
            trade_id=trade.id,
            action=trade.direction,
            symbol=trade.symbol,
            quantity=trade.quantity,
            price=trade.price,
            total=trade.total,
            new_balance=new_balance,
            message=f"Successfully {verb} {trade.quantity} shares of {trade.symbol}",
        )
        record_audit(
            self._audit,
            trade.direction.value.lower(),
            trade.account_number,
            command,
            summary,
            started,
            self._clock,
        )
        return summary
