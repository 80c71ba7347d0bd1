"""Trading strategies as plug-ins."""

from prediction_engine.strategies.base import (
    BaseStrategy,
    ParameterDef,
    ParameterType,
    StrategyConfig,
    StrategyMetadata,
    StrategyRegistry,
)
from prediction_engine.strategies.mean_reversion import MeanReversionStrategy
from prediction_engine.strategies.momentum import MomentumStrategy
from prediction_engine.strategies.spread import SpreadStrategy

__all__ = [
    "BaseStrategy",
    "ParameterDef",
    "ParameterType",
    "StrategyConfig",
    "StrategyMetadata",
    "StrategyRegistry",
    "MeanReversionStrategy",
    "MomentumStrategy",
    "SpreadStrategy",
]
