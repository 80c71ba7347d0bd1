"""
Simulated market feed for paper runs.

Generates binary markets whose YES price follows a bounded random walk
and keeps the per-market price history used by the indicators.
"""

import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Optional

import structlog

from prediction_engine.core.context import PricePoint, StrategyContext
from prediction_engine.models.market import Market, MarketStatus, Outcome
from prediction_engine.models.order import Order
from prediction_engine.models.position import Position

logger = structlog.get_logger()

PRICE_QUANTUM = Decimal("0.001")
MIN_PRICE = Decimal("0.02")
MAX_PRICE = Decimal("0.98")


class SimulatedMarketFeed:
    """
    Random-walk market generator.

    Features:
    - Configurable number of markets, volatility and spread
    - Warm-up history so moving averages are available from the first tick
    - Bounded price history per market
    """

    def __init__(
        self,
        num_markets: int = 3,
        volatility: float = 0.02,
        spread: Decimal = Decimal("0.02"),
        warmup: int = 30,
        history_length: int = 200,
        liquidity: Decimal = Decimal("5000"),
        volume: Decimal = Decimal("2000"),
        seed: Optional[int] = None,
    ):
        self.volatility = volatility
        self.spread = spread
        self.history_length = history_length
        self.liquidity = liquidity
        self.volume = volume
        self._rng = random.Random(seed)

        self._prices: dict[str, Decimal] = {}
        self._history: dict[str, list[PricePoint]] = {}
        self._now = datetime.now(timezone.utc) - timedelta(seconds=warmup)

        for n in range(1, num_markets + 1):
            market_id = f"SIM-{n}"
            start = Decimal(str(round(self._rng.uniform(0.2, 0.8), 3)))
            self._prices[market_id] = start
            self._history[market_id] = []

        for _ in range(warmup):
            self.tick()

    @staticmethod
    def _clamp(price: Decimal) -> Decimal:
        return min(max(price, MIN_PRICE), MAX_PRICE).quantize(PRICE_QUANTUM)

    def tick(self) -> None:
        """Advance every market by one step."""
        self._now += timedelta(seconds=1)
        for market_id, price in self._prices.items():
            step = Decimal(str(round(self._rng.gauss(0, self.volatility), 4)))
            new_price = self._clamp(price + step)
            self._prices[market_id] = new_price

            history = self._history[market_id]
            history.append(PricePoint(timestamp=self._now, price=new_price, volume=self.volume))
            if len(history) > self.history_length:
                del history[: len(history) - self.history_length]

    def _market(self, market_id: str) -> Market:
        yes = self._prices[market_id]
        half = self.spread / 2
        no = Decimal("1") - yes
        return Market(
            id=market_id,
            question=f"Simulated market {market_id}?",
            status=MarketStatus.ACTIVE,
            outcomes=[
                Outcome(token_id=f"{market_id}-YES", name="Yes", bid=yes - half, ask=yes + half, last_price=yes),
                Outcome(token_id=f"{market_id}-NO", name="No", bid=no - half, ask=no + half, last_price=no),
            ],
            volume=self.volume,
            liquidity=self.liquidity,
        )

    def markets(self) -> list[Market]:
        return [self._market(market_id) for market_id in self._prices]

    def price_history(self) -> dict[str, list[PricePoint]]:
        return {market_id: list(points) for market_id, points in self._history.items()}

    def mark_prices(self) -> dict[str, Decimal]:
        """Mid price per token ID."""
        prices = {}
        for market in self.markets():
            for outcome in market.outcomes:
                prices[outcome.token_id] = outcome.mid_price
        return prices

    def build_context(
        self,
        positions: Iterable[Position],
        orders: Iterable[Order],
        balance: Decimal,
    ) -> StrategyContext:
        return StrategyContext.from_state(
            markets=self.markets(),
            positions=positions,
            orders=orders,
            balance=balance,
            price_history=self.price_history(),
        )
