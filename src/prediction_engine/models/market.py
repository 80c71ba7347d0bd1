"""Market and outcome data models."""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field


class MarketStatus(str, Enum):
    """Market lifecycle status."""
    ACTIVE = "active"
    CLOSED = "closed"
    RESOLVED = "resolved"
    PAUSED = "paused"


class Outcome(BaseModel):
    """One tradeable outcome (token) of a binary market."""

    token_id: str = Field(description="Token/asset ID for this outcome")
    name: str = Field(default="", description="Outcome label, e.g. Yes or No")
    bid: Decimal = Field(default=Decimal("0"), description="Best bid (0-1)")
    ask: Decimal = Field(default=Decimal("0"), description="Best ask (0-1)")
    last_price: Decimal = Field(default=Decimal("0"))
    volume_24h: Decimal = Field(default=Decimal("0"))
    price_change_24h: Decimal = Field(default=Decimal("0"))

    @computed_field
    @property
    def mid_price(self) -> Decimal:
        """Mid-point of bid and ask."""
        return (self.bid + self.ask) / 2

    @computed_field
    @property
    def spread(self) -> Decimal:
        """Ask minus bid."""
        return self.ask - self.bid

    @property
    def spread_percent(self) -> Decimal:
        """Spread as a percentage of the mid price (0 when mid is 0)."""
        if self.mid_price == 0:
            return Decimal("0")
        return self.spread / self.mid_price * 100


class Market(BaseModel):
    """Prediction market as delivered by the upstream aggregator."""

    id: str = Field(description="Market (condition) ID")
    question: str = Field(default="")
    description: str = Field(default="")
    status: MarketStatus = Field(default=MarketStatus.ACTIVE)
    end_date: Optional[datetime] = Field(default=None)
    tags: list[str] = Field(default_factory=list)
    outcomes: list[Outcome] = Field(default_factory=list)

    volume: Decimal = Field(default=Decimal("0"), description="Total volume traded")
    liquidity: Decimal = Field(default=Decimal("0"), description="Total liquidity")

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def best_bid(self, outcome_index: int = 0) -> Optional[Decimal]:
        if outcome_index >= len(self.outcomes):
            return None
        return self.outcomes[outcome_index].bid

    def best_ask(self, outcome_index: int = 0) -> Optional[Decimal]:
        if outcome_index >= len(self.outcomes):
            return None
        return self.outcomes[outcome_index].ask

    def mid_price(self, outcome_index: int = 0) -> Optional[Decimal]:
        if outcome_index >= len(self.outcomes):
            return None
        return self.outcomes[outcome_index].mid_price

    def spread(self, outcome_index: int = 0) -> Optional[Decimal]:
        if outcome_index >= len(self.outcomes):
            return None
        return self.outcomes[outcome_index].spread

    def is_tradeable(self) -> bool:
        """Check if the market accepts orders."""
        return self.status == MarketStatus.ACTIVE
