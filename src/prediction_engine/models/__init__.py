"""Data models for the strategy engine."""

from prediction_engine.models.market import Market, MarketStatus, Outcome
from prediction_engine.models.order import (
    CancelOrder,
    Order,
    OrderRequest,
    OrderSide,
    OrderStatus,
    OrderType,
    PlaceOrder,
)
from prediction_engine.models.orderbook import OrderBookDepth, OrderBookStats, PriceLevel
from prediction_engine.models.position import Position
from prediction_engine.models.signal import Signal, SignalMetadata, SignalStrength, SignalType

__all__ = [
    "Market",
    "MarketStatus",
    "Outcome",
    "Order",
    "OrderRequest",
    "OrderSide",
    "OrderStatus",
    "OrderType",
    "PlaceOrder",
    "CancelOrder",
    "OrderBookDepth",
    "OrderBookStats",
    "PriceLevel",
    "Position",
    "Signal",
    "SignalMetadata",
    "SignalStrength",
    "SignalType",
]
