"""Order, order request and action data models."""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class OrderSide(str, Enum):
    """Order side."""
    BUY = "buy"
    SELL = "sell"

    @property
    def opposite(self) -> "OrderSide":
        return OrderSide.SELL if self is OrderSide.BUY else OrderSide.BUY


class OrderType(str, Enum):
    """Order type."""
    LIMIT = "limit"
    MARKET = "market"


class OrderStatus(str, Enum):
    """Order lifecycle status."""
    PENDING = "pending"          # Created, not yet acknowledged
    OPEN = "open"                # Resting on the book
    PARTIALLY_FILLED = "partial" # Some size filled
    FILLED = "filled"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    FAILED = "failed"


class Order(BaseModel):
    """Exchange order as delivered by the upstream aggregator."""

    id: str
    market_id: str
    token_id: str
    side: OrderSide
    order_type: OrderType = OrderType.LIMIT
    price: Decimal
    original_size: Decimal
    remaining_size: Decimal = Field(default=Decimal("0"))
    filled_size: Decimal = Field(default=Decimal("0"))
    status: OrderStatus = OrderStatus.PENDING

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: Optional[datetime] = Field(default=None)

    @property
    def is_active(self) -> bool:
        """Check if the order can still be filled."""
        return self.status in {OrderStatus.OPEN, OrderStatus.PARTIALLY_FILLED}

    @property
    def fill_percent(self) -> Decimal:
        if self.original_size == 0:
            return Decimal("0")
        return self.filled_size / self.original_size * 100


class OrderRequest(BaseModel):
    """Outbound order placement request built from an approved signal."""

    market_id: str
    token_id: str
    side: OrderSide
    price: Optional[Decimal] = Field(default=None, description="Required for limit orders")
    size: Decimal
    order_type: OrderType = OrderType.LIMIT

    # Correlation back to the originating signal
    strategy_name: str = Field(default="")
    signal_id: Optional[str] = Field(default=None)

    @property
    def notional_value(self) -> Decimal:
        return self.size * (self.price if self.price is not None else Decimal("1"))


class PlaceOrder(BaseModel):
    """Action asking the sink to place an order."""

    request: OrderRequest


class CancelOrder(BaseModel):
    """Action asking the sink to cancel an order."""

    order_id: str
