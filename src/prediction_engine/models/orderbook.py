"""
Order book depth analytics.

Pure calculations over bid/ask ladders:
- Mid price, spread and spread percentage
- VWAP and slippage for a given fill size
- Volume, liquidity and imbalance over the top N levels
- Cumulative depth curves

Bids are expected best-first (price descending) and asks best-first
(price ascending); the upstream feed guarantees ordering, nothing here
re-sorts. Every ratio that would divide by zero returns None.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class PriceLevel(BaseModel):
    """Single level in the order book."""

    price: Decimal = Field(ge=0, le=1, description="Price (0-1)")
    size: Decimal = Field(ge=0, description="Total size resting at this price")

    @property
    def value(self) -> Decimal:
        """Notional value at this level."""
        return self.price * self.size


class OrderBookDepth(BaseModel):
    """Order book depth for a single outcome token."""

    market_id: str
    token_id: str
    hash: str = Field(default="", description="Book hash for synchronization")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    bids: list[PriceLevel] = Field(default_factory=list)
    asks: list[PriceLevel] = Field(default_factory=list)
    last_trade_price: Optional[Decimal] = Field(default=None)

    @property
    def best_bid(self) -> Optional[PriceLevel]:
        """Best (highest) bid level."""
        return self.bids[0] if self.bids else None

    @property
    def best_ask(self) -> Optional[PriceLevel]:
        """Best (lowest) ask level."""
        return self.asks[0] if self.asks else None

    @property
    def best_bid_price(self) -> Optional[Decimal]:
        return self.best_bid.price if self.best_bid else None

    @property
    def best_ask_price(self) -> Optional[Decimal]:
        return self.best_ask.price if self.best_ask else None

    def mid_price(self) -> Optional[Decimal]:
        """
        Mid-point of the best bid and ask.

        Falls back to whichever side is present, then to the last
        trade price when the book is empty.
        """
        bid = self.best_bid_price
        ask = self.best_ask_price
        if bid is not None and ask is not None:
            return (bid + ask) / 2
        if bid is not None:
            return bid
        if ask is not None:
            return ask
        return self.last_trade_price

    def spread(self) -> Optional[Decimal]:
        """Bid-ask spread; requires both sides."""
        bid = self.best_bid_price
        ask = self.best_ask_price
        if bid is None or ask is None:
            return None
        return ask - bid

    def spread_percent(self) -> Optional[Decimal]:
        """Spread as a percentage of the mid price."""
        spread = self.spread()
        mid = self.mid_price()
        if spread is None or mid is None or mid == 0:
            return None
        return spread / mid * 100

    # ─────────────────────────────────────────────────────────────────────────
    # VOLUME & LIQUIDITY
    # ─────────────────────────────────────────────────────────────────────────

    def bid_volume(self, depth: int) -> Decimal:
        """Total bid size over the first `depth` levels."""
        return sum((level.size for level in self.bids[:depth]), Decimal("0"))

    def ask_volume(self, depth: int) -> Decimal:
        """Total ask size over the first `depth` levels."""
        return sum((level.size for level in self.asks[:depth]), Decimal("0"))

    def bid_liquidity(self, depth: int) -> Decimal:
        """Total bid value (price x size) over the first `depth` levels."""
        return sum((level.value for level in self.bids[:depth]), Decimal("0"))

    def ask_liquidity(self, depth: int) -> Decimal:
        """Total ask value (price x size) over the first `depth` levels."""
        return sum((level.value for level in self.asks[:depth]), Decimal("0"))

    def total_liquidity(self, depth: int) -> Decimal:
        return self.bid_liquidity(depth) + self.ask_liquidity(depth)

    def imbalance(self, depth: int) -> Optional[Decimal]:
        """
        Order book imbalance over the first `depth` levels per side.

        Positive values indicate buy pressure, negative sell pressure.
        Range: -1 to 1.
        """
        bid_vol = self.bid_volume(depth)
        ask_vol = self.ask_volume(depth)
        total = bid_vol + ask_vol
        if total == 0:
            return None
        return (bid_vol - ask_vol) / total

    # ─────────────────────────────────────────────────────────────────────────
    # VWAP & SLIPPAGE
    # ─────────────────────────────────────────────────────────────────────────

    def vwap_buy(self, size: Decimal) -> Optional[Decimal]:
        """
        Average price paid to buy `size` by walking the asks.

        If `size` exceeds the available ask size, returns the VWAP of
        the partial fill.
        """
        return _calculate_vwap(self.asks, size)

    def vwap_sell(self, size: Decimal) -> Optional[Decimal]:
        """
        Average price received to sell `size` by walking the bids.

        If `size` exceeds the available bid size, returns the VWAP of
        the partial fill.
        """
        return _calculate_vwap(self.bids, size)

    def slippage_buy(self, size: Decimal) -> Optional[Decimal]:
        """Percent by which a market buy of `size` fills above the best ask."""
        vwap = self.vwap_buy(size)
        best = self.best_ask_price
        if vwap is None or best is None or best == 0:
            return None
        return (vwap - best) / best * 100

    def slippage_sell(self, size: Decimal) -> Optional[Decimal]:
        """Percent by which a market sell of `size` fills below the best bid."""
        vwap = self.vwap_sell(size)
        best = self.best_bid_price
        if vwap is None or best is None or best == 0:
            return None
        return (best - vwap) / best * 100

    # ─────────────────────────────────────────────────────────────────────────
    # SHAPE
    # ─────────────────────────────────────────────────────────────────────────

    def bid_depth(self) -> int:
        """Number of bid levels."""
        return len(self.bids)

    def ask_depth(self) -> int:
        """Number of ask levels."""
        return len(self.asks)

    def is_empty(self) -> bool:
        return not self.bids and not self.asks

    def cumulative_bids(self) -> list[tuple[Decimal, Decimal]]:
        """(price, running total size) for each bid level."""
        return _cumulative(self.bids)

    def cumulative_asks(self) -> list[tuple[Decimal, Decimal]]:
        """(price, running total size) for each ask level."""
        return _cumulative(self.asks)


def _calculate_vwap(levels: list[PriceLevel], target_size: Decimal) -> Optional[Decimal]:
    if not levels or target_size == 0:
        return None

    remaining = target_size
    total_value = Decimal("0")
    total_size = Decimal("0")

    for level in levels:
        fill_size = min(remaining, level.size)
        total_value += level.price * fill_size
        total_size += fill_size
        remaining -= fill_size
        if remaining == 0:
            break

    if total_size == 0:
        return None
    return total_value / total_size


def _cumulative(levels: list[PriceLevel]) -> list[tuple[Decimal, Decimal]]:
    running = Decimal("0")
    result = []
    for level in levels:
        running += level.size
        result.append((level.price, running))
    return result


@dataclass
class OrderBookStats:
    """Summary statistics of one order book."""

    best_bid: Optional[Decimal] = None
    best_ask: Optional[Decimal] = None
    mid_price: Optional[Decimal] = None
    spread: Optional[Decimal] = None
    spread_percent: Optional[Decimal] = None
    bid_liquidity: Decimal = Decimal("0")
    ask_liquidity: Decimal = Decimal("0")
    imbalance: Optional[Decimal] = None
    bid_depth: int = 0
    ask_depth: int = 0

    @classmethod
    def from_orderbook(cls, book: OrderBookDepth, depth: int) -> "OrderBookStats":
        return cls(
            best_bid=book.best_bid_price,
            best_ask=book.best_ask_price,
            mid_price=book.mid_price(),
            spread=book.spread(),
            spread_percent=book.spread_percent(),
            bid_liquidity=book.bid_liquidity(depth),
            ask_liquidity=book.ask_liquidity(depth),
            imbalance=book.imbalance(depth),
            bid_depth=book.bid_depth(),
            ask_depth=book.ask_depth(),
        )
