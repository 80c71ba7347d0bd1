"""
Strategy: Spread / Market Making

Quotes both sides around the YES mid price in liquid markets with a
wide enough spread, leaning against accumulated inventory.

Inventory per market moves with executed signals: buys add their size,
sells subtract it.
"""

from decimal import Decimal

import structlog

from prediction_engine.core.context import StrategyContext
from prediction_engine.models.order import OrderSide
from prediction_engine.models.signal import Signal, SignalStrength, SignalType
from prediction_engine.strategies.base import (
    BaseStrategy,
    ParameterDef,
    ParameterType,
    StrategyRegistry,
)

logger = structlog.get_logger()

QUOTE_TTL_SECS = 300
MIN_QUOTE_SIZE = Decimal("0.1")
MAX_SIZE_REDUCTION = Decimal("0.8")


@StrategyRegistry.register
class SpreadStrategy(BaseStrategy):
    """Two-sided quoting with inventory-aware sizing."""

    PARAMETERS = (
        ParameterDef(
            name="min_spread",
            description="Minimum spread required to place orders",
            param_type=ParameterType.FLOAT,
            default=Decimal("0.02"),
            min=Decimal("0.005"),
            max=Decimal("0.20"),
        ),
        ParameterDef(
            name="bid_offset",
            description="Offset below mid-price for bid orders",
            param_type=ParameterType.FLOAT,
            default=Decimal("0.01"),
            min=Decimal("0.001"),
            max=Decimal("0.10"),
        ),
        ParameterDef(
            name="ask_offset",
            description="Offset above mid-price for ask orders",
            param_type=ParameterType.FLOAT,
            default=Decimal("0.01"),
            min=Decimal("0.001"),
            max=Decimal("0.10"),
        ),
        ParameterDef(
            name="order_size",
            description="Size of each order",
            param_type=ParameterType.FLOAT,
            default=Decimal("5"),
            min=Decimal("1"),
            max=Decimal("100"),
        ),
        ParameterDef(
            name="max_inventory_imbalance",
            description="Maximum inventory imbalance before quoting stops",
            param_type=ParameterType.FLOAT,
            default=Decimal("50"),
            min=Decimal("10"),
            max=Decimal("500"),
        ),
    )

    def __init__(
        self,
        min_spread: Decimal = Decimal("0.02"),
        bid_offset: Decimal = Decimal("0.01"),
        ask_offset: Decimal = Decimal("0.01"),
        order_size: Decimal = Decimal("5"),
        min_liquidity: Decimal = Decimal("1000"),
        max_inventory_imbalance: Decimal = Decimal("50"),
    ):
        self.min_spread = min_spread
        self.bid_offset = bid_offset
        self.ask_offset = ask_offset
        self.order_size = order_size
        self.min_liquidity = min_liquidity
        self.max_inventory_imbalance = max_inventory_imbalance
        self.inventory: dict[str, Decimal] = {}

    @property
    def name(self) -> str:
        return "spread"

    @property
    def description(self) -> str:
        return "Provides liquidity by placing orders on both sides of the spread"

    @property
    def tags(self) -> list[str]:
        return ["market-making", "spread", "liquidity"]

    def get_inventory(self, market_id: str) -> Decimal:
        return self.inventory.get(market_id, Decimal("0"))

    def adjust_size_for_inventory(
        self,
        base_size: Decimal,
        inventory: Decimal,
        side: OrderSide,
    ) -> Decimal:
        """Shrink the side that would grow the current imbalance."""
        if self.max_inventory_imbalance == 0:
            return base_size

        ratio = min(abs(inventory) / self.max_inventory_imbalance, MAX_SIZE_REDUCTION)
        if side == OrderSide.BUY and inventory > 0:
            return base_size * (1 - ratio)
        if side == OrderSide.SELL and inventory < 0:
            return base_size * (1 - ratio)
        return base_size

    @staticmethod
    def _estimate_spread(mid: Decimal) -> Decimal:
        # Wider near the extremes
        return Decimal("0.02") + abs(mid - Decimal("0.5")) * Decimal("0.1")

    def evaluate(self, context: StrategyContext) -> list[Signal]:
        signals = []

        for market in context.active_markets():
            if market.liquidity < self.min_liquidity:
                continue

            mid = market.yes_price
            if mid is None:
                continue

            spread = market.spread if market.spread is not None else self._estimate_spread(mid)
            if spread < self.min_spread:
                continue

            bid_price = mid - self.bid_offset
            ask_price = mid + self.ask_offset
            if bid_price <= 0 or ask_price >= 1:
                continue

            inventory = self.get_inventory(market.condition_id)
            if abs(inventory) >= self.max_inventory_imbalance:
                continue

            token_id = market.yes_token_id
            quotes = (
                (OrderSide.BUY, bid_price, "bid"),
                (OrderSide.SELL, ask_price, "ask"),
            )
            for side, price, label in quotes:
                size = self.adjust_size_for_inventory(self.order_size, inventory, side)
                if size <= MIN_QUOTE_SIZE:
                    continue
                signals.append(
                    Signal.for_side(side, market.condition_id, token_id, size)
                    .with_strategy(self.name)
                    .with_type(SignalType.ENTRY)
                    .with_strength(SignalStrength.WEAK)
                    .with_price(price)
                    .with_ttl(QUOTE_TTL_SECS)
                    .with_reason(
                        f"Spread {label}: {price:.4f} (mid: {mid:.4f}, spread: {spread * 100:.2f}%)"
                    )
                )

        return signals

    def on_signal_executed(self, signal: Signal, success: bool) -> None:
        if not success:
            return

        delta = signal.size if signal.side == OrderSide.BUY else -signal.size
        inventory = self.get_inventory(signal.market_id) + delta
        self.inventory[signal.market_id] = inventory
        logger.debug(
            "spread_inventory_updated",
            market_id=signal.market_id,
            inventory=str(inventory),
            delta=str(delta),
        )

    def on_order_filled(self, order_id: str, price: Decimal, size: Decimal) -> None:
        logger.debug("spread_order_filled", order_id=order_id, price=str(price), size=str(size))

    async def shutdown(self) -> None:
        self.inventory.clear()
