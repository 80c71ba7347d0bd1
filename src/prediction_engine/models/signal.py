"""Strategy signal data model."""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from prediction_engine.models.order import OrderSide

DEFAULT_SIGNAL_TTL_SECS = 60


class SignalType(str, Enum):
    """What the signal intends to do with a position."""
    ENTRY = "entry"
    EXIT = "exit"
    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"
    SCALE_IN = "scale_in"
    SCALE_OUT = "scale_out"

    @property
    def is_exit(self) -> bool:
        return self in {SignalType.EXIT, SignalType.STOP_LOSS, SignalType.TAKE_PROFIT}


class SignalStrength(str, Enum):
    """Conviction of the strategy in the signal."""
    WEAK = "weak"
    MEDIUM = "medium"
    STRONG = "strong"
    VERY_STRONG = "very_strong"


class SignalMetadata(BaseModel):
    """Free-form context attached by the strategy."""

    indicators: dict[str, float] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)


class Signal(BaseModel):
    """
    A strategy's proposed trade.

    Signals are immutable; the `with_*` helpers return modified copies.
    The engine re-tags `strategy_name` with the registry key.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    strategy_name: str = Field(default="")
    market_id: str
    token_id: str
    side: OrderSide
    signal_type: SignalType = SignalType.ENTRY
    strength: SignalStrength = SignalStrength.MEDIUM
    price: Optional[Decimal] = Field(default=None, description="Limit price (0-1)")
    size: Decimal
    stop_loss: Optional[Decimal] = Field(default=None)
    take_profit: Optional[Decimal] = Field(default=None)
    ttl: int = Field(default=DEFAULT_SIGNAL_TTL_SECS, description="Seconds until expiry")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    reason: str = Field(default="")
    metadata: SignalMetadata = Field(default_factory=SignalMetadata)

    @classmethod
    def buy(cls, market_id: str, token_id: str, size: Decimal) -> "Signal":
        return cls(market_id=market_id, token_id=token_id, side=OrderSide.BUY, size=size)

    @classmethod
    def sell(cls, market_id: str, token_id: str, size: Decimal) -> "Signal":
        return cls(market_id=market_id, token_id=token_id, side=OrderSide.SELL, size=size)

    @classmethod
    def for_side(cls, side: OrderSide, market_id: str, token_id: str, size: Decimal) -> "Signal":
        return cls(market_id=market_id, token_id=token_id, side=side, size=size)

    def with_strategy(self, name: str) -> "Signal":
        return self.model_copy(update={"strategy_name": name})

    def with_type(self, signal_type: SignalType) -> "Signal":
        return self.model_copy(update={"signal_type": signal_type})

    def with_strength(self, strength: SignalStrength) -> "Signal":
        return self.model_copy(update={"strength": strength})

    def with_price(self, price: Decimal) -> "Signal":
        return self.model_copy(update={"price": price})

    def with_stop_loss(self, price: Decimal) -> "Signal":
        return self.model_copy(update={"stop_loss": price})

    def with_take_profit(self, price: Decimal) -> "Signal":
        return self.model_copy(update={"take_profit": price})

    def with_ttl(self, seconds: int) -> "Signal":
        return self.model_copy(update={"ttl": seconds})

    def with_reason(self, reason: str) -> "Signal":
        return self.model_copy(update={"reason": reason})

    def with_indicator(self, name: str, value: float) -> "Signal":
        indicators = {**self.metadata.indicators, name: value}
        metadata = self.metadata.model_copy(update={"indicators": indicators})
        return self.model_copy(update={"metadata": metadata})

    @property
    def value(self) -> Decimal:
        """Notional value; a missing price counts as 1."""
        return self.size * (self.price if self.price is not None else Decimal("1"))

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        now = now or datetime.now(timezone.utc)
        return (now - self.created_at).total_seconds()

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """A signal expires once its age reaches its TTL."""
        return self.age_seconds(now) >= self.ttl
