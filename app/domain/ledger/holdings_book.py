"""
Holdings Book: per-account, per-class share lots.

A lot carries a running quantity-weighted average cost, recomputed on
every buy and left alone on every sell. Driving a lot to zero removes it,
so the next buy of the same (symbol, class) starts a fresh lot.
"""

import logging
from datetime import datetime
from decimal import Decimal

from app.domain.ledger.entities import Holding, InvestmentClass
from app.domain.ledger.errors import HoldingNotFoundError, InsufficientSharesError
from app.domain.ledger.money import quantize, require_positive_amount, require_positive_quantity
from app.domain.ledger.ports import LedgerUnitOfWork

logger = logging.getLogger(__name__)


def weighted_average_cost(
    old_average: Decimal, old_quantity: int, unit_price: Decimal, quantity: int
) -> Decimal:
    """Return the new average cost after adding ``quantity`` at ``unit_price``."""
    total_value = old_average * old_quantity + unit_price * quantity
    return quantize(total_value / Decimal(old_quantity + quantity))


class HoldingsBook:
    """Atomic increase/decrease of share lots inside a unit of work."""

    def __init__(self, uow: LedgerUnitOfWork) -> None:
        self._uow = uow

    def increase(
        self,
        account_number: str,
        symbol: str,
        investment_class: InvestmentClass,
        quantity: int,
        unit_price: Decimal,
        now: datetime,
    ) -> Holding:
        """Add shares to a lot, creating it if needed.

        Returns:
            The lot as it stands after the increase.
        """
        require_positive_quantity(quantity)
        unit_price = require_positive_amount(unit_price)

        holding = self._uow.get_holding(
            account_number, symbol, investment_class, for_update=True
        )
        if holding is None:
            holding = Holding(
                account_number=account_number,
                symbol=symbol,
                investment_class=investment_class,
                quantity=quantity,
                average_cost=unit_price,
                acquired_at=now,
            )
        else:
            holding.average_cost = weighted_average_cost(
                holding.average_cost, holding.quantity, unit_price, quantity
            )
            holding.quantity += quantity

        saved = self._uow.save_holding(holding)
        logger.debug(
            "Lot %s/%s/%s now qty=%d avg=%s",
            account_number,
            symbol,
            investment_class.value,
            saved.quantity,
            saved.average_cost,
        )
        return saved

    def decrease(
        self,
        account_number: str,
        symbol: str,
        investment_class: InvestmentClass,
        quantity: int,
    ) -> Holding | None:
        """Remove shares from a lot.

        Returns:
            The remaining lot, or None when the lot was emptied and removed.

        Raises:
            HoldingNotFoundError: If no lot exists.
            InsufficientSharesError: If quantity exceeds the held quantity.
        """
        require_positive_quantity(quantity)

        holding = self._uow.get_holding(
            account_number, symbol, investment_class, for_update=True
        )
        if holding is None:
            raise HoldingNotFoundError(account_number, symbol, investment_class.value)
        if quantity > holding.quantity:
            raise InsufficientSharesError(symbol, quantity, holding.quantity)

        holding.quantity -= quantity
        if holding.quantity == 0:
            self._uow.delete_holding(holding)
            logger.debug("Lot %s/%s/%s closed", account_number, symbol, investment_class.value)
            return None
        return self._uow.save_holding(holding)
