"""Core engine modules: context, risk and the strategy engine."""

from prediction_engine.core.context import (
    MarketSnapshot,
    OrderSnapshot,
    PositionSnapshot,
    PricePoint,
    StrategyContext,
)
from prediction_engine.core.risk import RiskCheck, RiskConfig, RiskGuard, RiskViolation, ViolationKind

__all__ = [
    "MarketSnapshot",
    "OrderSnapshot",
    "PositionSnapshot",
    "PricePoint",
    "StrategyContext",
    "RiskCheck",
    "RiskConfig",
    "RiskGuard",
    "RiskViolation",
    "ViolationKind",
]
