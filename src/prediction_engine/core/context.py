"""
Strategy context: the per-tick view of markets, positions and orders.

An external aggregator builds a fresh StrategyContext every tick with
`StrategyContext.from_state`. Strategies only ever read it; the engine
hands each strategy a filtered copy.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field

from prediction_engine.models.market import Market, MarketStatus
from prediction_engine.models.order import Order, OrderSide, OrderStatus
from prediction_engine.models.position import Position


class PricePoint(BaseModel):
    """A single point of price history."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    price: Decimal
    volume: Optional[Decimal] = None


class MarketSnapshot(BaseModel):
    """Snapshot of market state for strategy evaluation."""

    model_config = ConfigDict(frozen=True)

    condition_id: str
    question: str = ""
    status: MarketStatus = MarketStatus.ACTIVE
    token_ids: list[str] = Field(default_factory=list)
    token_names: list[str] = Field(default_factory=list)
    token_prices: list[Decimal] = Field(default_factory=list)
    volume_24h: Decimal = Decimal("0")
    liquidity: Decimal = Decimal("0")
    spread: Optional[Decimal] = None
    end_date: Optional[datetime] = None

    @classmethod
    def from_market(cls, market: Market) -> "MarketSnapshot":
        first = market.outcomes[0] if market.outcomes else None
        return cls(
            condition_id=market.id,
            question=market.question,
            status=market.status,
            token_ids=[o.token_id for o in market.outcomes],
            token_names=[o.name for o in market.outcomes],
            token_prices=[o.mid_price for o in market.outcomes],
            volume_24h=market.volume,
            liquidity=market.liquidity,
            spread=first.spread if first is not None else None,
            end_date=market.end_date,
        )

    @property
    def yes_price(self) -> Optional[Decimal]:
        """Price of the first outcome."""
        return self.token_prices[0] if self.token_prices else None

    @property
    def no_price(self) -> Optional[Decimal]:
        """Price of the second outcome."""
        return self.token_prices[1] if len(self.token_prices) > 1 else None

    @property
    def yes_token_id(self) -> str:
        return self.token_ids[0] if self.token_ids else ""

    @property
    def implied_probability(self) -> Optional[Decimal]:
        return self.yes_price

    def is_tradeable(self) -> bool:
        return self.status == MarketStatus.ACTIVE


class PositionSnapshot(BaseModel):
    """Snapshot of a position."""

    model_config = ConfigDict(frozen=True)

    market_id: str
    token_id: str
    size: Decimal
    avg_price: Decimal
    current_price: Decimal
    current_value: Decimal
    unrealized_pnl: Decimal
    pnl_percent: Decimal

    @classmethod
    def from_position(cls, position: Position) -> "PositionSnapshot":
        return cls(
            market_id=position.market_id,
            token_id=position.token_id,
            size=position.size,
            avg_price=position.avg_price,
            current_price=position.current_price,
            current_value=position.market_value,
            unrealized_pnl=position.unrealized_pnl,
            pnl_percent=position.unrealized_pnl_percent,
        )

    def is_profitable(self) -> bool:
        return self.unrealized_pnl > 0


class OrderSnapshot(BaseModel):
    """Snapshot of an order."""

    model_config = ConfigDict(frozen=True)

    order_id: str
    market_id: str
    token_id: str
    side: OrderSide
    price: Decimal
    original_size: Decimal
    remaining_size: Decimal
    filled_size: Decimal
    status: OrderStatus
    created_at: datetime

    @classmethod
    def from_order(cls, order: Order) -> "OrderSnapshot":
        return cls(
            order_id=order.id,
            market_id=order.market_id,
            token_id=order.token_id,
            side=order.side,
            price=order.price,
            original_size=order.original_size,
            remaining_size=order.remaining_size,
            filled_size=order.filled_size,
            status=order.status,
            created_at=order.created_at,
        )

    def is_open(self) -> bool:
        return self.status in {OrderStatus.OPEN, OrderStatus.PARTIALLY_FILLED}

    def fill_percent(self) -> Decimal:
        if self.original_size == 0:
            return Decimal("0")
        return self.filled_size / self.original_size * 100


class StrategyContext(BaseModel):
    """
    Context provided to strategies during evaluation.

    Markets are keyed by condition ID, positions by token ID and orders
    by order ID. Price history is keyed by condition ID and must be in
    chronological order.
    """

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    markets: dict[str, MarketSnapshot] = Field(default_factory=dict)
    positions: dict[str, PositionSnapshot] = Field(default_factory=dict)
    orders: dict[str, OrderSnapshot] = Field(default_factory=dict)
    available_balance: Decimal = Decimal("0")
    total_value: Decimal = Decimal("0")
    price_history: dict[str, list[PricePoint]] = Field(default_factory=dict)

    @classmethod
    def from_state(
        cls,
        markets: Iterable[Market],
        positions: Iterable[Position],
        orders: Iterable[Order],
        balance: Decimal,
        price_history: Optional[dict[str, list[PricePoint]]] = None,
    ) -> "StrategyContext":
        """Build a context from the aggregates of the current tick."""
        market_snaps = {m.id: MarketSnapshot.from_market(m) for m in markets}
        position_snaps = {p.token_id: PositionSnapshot.from_position(p) for p in positions}
        order_snaps = {o.id: OrderSnapshot.from_order(o) for o in orders}

        total_value = sum(
            (p.current_value for p in position_snaps.values()),
            Decimal("0"),
        ) + balance

        return cls(
            markets=market_snaps,
            positions=position_snaps,
            orders=order_snaps,
            available_balance=balance,
            total_value=total_value,
            price_history=dict(price_history or {}),
        )

    # ─────────────────────────────────────────────────────────────────────────
    # QUERIES
    # ─────────────────────────────────────────────────────────────────────────

    def all_markets(self) -> list[MarketSnapshot]:
        return list(self.markets.values())

    def active_markets(self) -> list[MarketSnapshot]:
        return [m for m in self.markets.values() if m.status == MarketStatus.ACTIVE]

    def get_market(self, condition_id: str) -> Optional[MarketSnapshot]:
        return self.markets.get(condition_id)

    def all_positions(self) -> list[PositionSnapshot]:
        return list(self.positions.values())

    def get_position(self, token_id: str) -> Optional[PositionSnapshot]:
        return self.positions.get(token_id)

    def has_position_in_market(self, condition_id: str) -> bool:
        return any(
            p.market_id == condition_id and p.size > 0
            for p in self.positions.values()
        )

    def total_exposure(self) -> Decimal:
        """Sum of current position values."""
        return sum((p.current_value for p in self.positions.values()), Decimal("0"))

    def open_orders(self) -> list[OrderSnapshot]:
        return [o for o in self.orders.values() if o.is_open()]

    def orders_for_market(self, condition_id: str) -> list[OrderSnapshot]:
        return [o for o in self.orders.values() if o.market_id == condition_id]

    def get_price_history(self, condition_id: str) -> Optional[list[PricePoint]]:
        return self.price_history.get(condition_id)

    def latest_price(self, condition_id: str, token_index: int = 0) -> Optional[Decimal]:
        market = self.markets.get(condition_id)
        if market is None or token_index >= len(market.token_prices):
            return None
        return market.token_prices[token_index]

    # ─────────────────────────────────────────────────────────────────────────
    # INDICATORS
    # ─────────────────────────────────────────────────────────────────────────

    def sma(self, condition_id: str, periods: int) -> Optional[Decimal]:
        """Simple moving average of the most recent `periods` prices."""
        history = self.price_history.get(condition_id)
        if history is None or periods <= 0 or len(history) < periods:
            return None
        window = history[-periods:]
        return sum((p.price for p in window), Decimal("0")) / periods

    def ema(self, condition_id: str, periods: int) -> Optional[Decimal]:
        """
        Exponential moving average.

        Seeded with the SMA of the *first* `periods` points, then the
        smoothing factor 2 / (periods + 1) is applied forward over the
        remaining history.
        """
        history = self.price_history.get(condition_id)
        if history is None or periods <= 0 or len(history) < periods:
            return None

        multiplier = Decimal(2) / Decimal(periods + 1)
        ema = sum((p.price for p in history[:periods]), Decimal("0")) / periods

        for point in history[periods:]:
            ema = (point.price - ema) * multiplier + ema

        return ema

    def price_change(self, condition_id: str, periods: int) -> Optional[Decimal]:
        """Relative change between the latest price and the one `periods` points earlier."""
        history = self.price_history.get(condition_id)
        if history is None or periods < 0 or len(history) <= periods:
            return None

        current = history[-1].price
        past = history[-1 - periods].price
        if past == 0:
            return None
        return (current - past) / past

    # ─────────────────────────────────────────────────────────────────────────
    # FILTERING
    # ─────────────────────────────────────────────────────────────────────────

    def filtered(
        self,
        include_markets: Optional[list[str]] = None,
        exclude_markets: Optional[list[str]] = None,
    ) -> "StrategyContext":
        """
        Copy of this context restricted to the given markets.

        A non-empty include list keeps only those markets; the exclude
        list is applied afterwards. The original is never mutated.
        """
        markets = dict(self.markets)
        if include_markets:
            allowed = set(include_markets)
            markets = {k: v for k, v in markets.items() if k in allowed}
        if exclude_markets:
            blocked = set(exclude_markets)
            markets = {k: v for k, v in markets.items() if k not in blocked}

        return self.model_copy(update={
            "markets": markets,
            "positions": dict(self.positions),
            "orders": dict(self.orders),
            "price_history": dict(self.price_history),
        })
