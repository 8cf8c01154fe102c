"""
Adapter: Simulated price source.

Implements PriceSource port with an in-memory random-walk feed.
Every quote drifts the stored price by up to ``drift`` in either
direction, so two consecutive trades rarely execute at the same price.
"""

import logging
import random
import threading
from decimal import Decimal
from typing import Mapping, Optional

from app.domain.ledger.entities import PriceQuote
from app.domain.ledger.money import quantize
from app.domain.ledger.ports import PriceSource
from app.shared.clock import Clock, utcnow

logger = logging.getLogger(__name__)

INITIAL_PRICES: dict[str, Decimal] = {
    "AAPL": Decimal("150.00"),
    "GOOGL": Decimal("2800.00"),
    "AMZN": Decimal("3400.00"),
    "MSFT": Decimal("300.00"),
    "TSLA": Decimal("700.00"),
}

MIN_PRICE = Decimal("0.0001")


class SimulatedPriceSource(PriceSource):
    """Thread-safe random-walk price feed.

    Args:
        initial_prices: Seed prices per symbol.
        default_price: Starting price for symbols not seeded.
        drift: Maximum relative move per quote (0.01 = ±1%).
        rng: Random generator; pass a seeded one for reproducible runs.
        clock: Source of quote timestamps.
    """

    def __init__(
        self,
        initial_prices: Optional[Mapping[str, Decimal]] = None,
        default_price: Decimal = Decimal("100.00"),
        drift: Decimal = Decimal("0.01"),
        rng: Optional[random.Random] = None,
        clock: Clock = utcnow,
    ) -> None:
        seeds = INITIAL_PRICES if initial_prices is None else initial_prices
        self._prices = {s.upper(): quantize(p) for s, p in seeds.items()}
        self._default_price = quantize(default_price)
        self._drift = drift
        self._rng = rng or random.Random()
        self._clock = clock
        self._lock = threading.Lock()

    def current_price(self, symbol: str) -> PriceQuote:
        """Drift the symbol's price and return the new quote."""
        symbol = symbol.upper()
        with self._lock:
            old_price = self._prices.get(symbol, self._default_price)
            factor = Decimal(str(self._rng.uniform(-1.0, 1.0))) * self._drift + 1
            new_price = max(quantize(old_price * factor), MIN_PRICE)
            self._prices[symbol] = new_price

        logger.debug("Quote %s: %s -> %s", symbol, old_price, new_price)
        return PriceQuote(symbol=symbol, price=new_price, as_of=self._clock())

    def peek(self, symbol: str) -> PriceQuote:
        """Return the current quote without moving the price."""
        symbol = symbol.upper()
        with self._lock:
            price = self._prices.get(symbol, self._default_price)
        return PriceQuote(symbol=symbol, price=price, as_of=self._clock())


class FixedPriceSource(PriceSource):
    """Price source that quotes constant prices; for demos and tests.

    Prices can be changed between calls with :meth:`set_price`.
    """

    def __init__(
        self,
        prices: Mapping[str, Decimal],
        default_price: Decimal = Decimal("100.00"),
        clock: Clock = utcnow,
    ) -> None:
        self._prices = {s.upper(): quantize(p) for s, p in prices.items()}
        self._default_price = quantize(default_price)
        self._clock = clock
        self._lock = threading.Lock()

    def set_price(self, symbol: str, price: Decimal) -> None:
        with self._lock:
            self._prices[symbol.upper()] = quantize(price)

    def current_price(self, symbol: str) -> PriceQuote:
        symbol = symbol.upper()
        with self._lock:
            price = self._prices.get(symbol, self._default_price)
        return PriceQuote(symbol=symbol, price=price, as_of=self._clock())
