"""
Strategy: Momentum

Trend-following on EMA crossovers of the YES price.

momentum = (EMA_short - EMA_long) / EMA_long

A tracked position is checked for stop loss / take profit first; a
breach emits the exit and skips entry logic for that market on the
same tick. Bearish momentum only ever exits an existing position.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import structlog

from prediction_engine.core.context import StrategyContext
from prediction_engine.errors import InvalidInputError
from prediction_engine.models.order import OrderSide
from prediction_engine.models.signal import Signal, SignalStrength, SignalType
from prediction_engine.strategies.base import (
    BaseStrategy,
    ParameterDef,
    ParameterType,
    StrategyRegistry,
)

logger = structlog.get_logger()


@dataclass
class MomentumPosition:
    entry_price: Decimal
    side: OrderSide
    stop_loss: Decimal
    take_profit: Decimal


@StrategyRegistry.register
class MomentumStrategy(BaseStrategy):
    """Momentum strategy with per-market stop loss and take profit."""

    PARAMETERS = (
        ParameterDef(
            name="short_ema_periods",
            description="Short EMA period",
            param_type=ParameterType.INTEGER,
            default=9,
            min=3,
            max=50,
        ),
        ParameterDef(
            name="long_ema_periods",
            description="Long EMA period",
            param_type=ParameterType.INTEGER,
            default=21,
            min=10,
            max=100,
        ),
        ParameterDef(
            name="momentum_threshold",
            description="Minimum momentum for entry (as decimal)",
            param_type=ParameterType.FLOAT,
            default=Decimal("0.05"),
            min=Decimal("0.01"),
            max=Decimal("0.30"),
        ),
        ParameterDef(
            name="stop_loss_pct",
            description="Stop loss percentage (as decimal)",
            param_type=ParameterType.FLOAT,
            default=Decimal("0.10"),
            min=Decimal("0.02"),
            max=Decimal("0.50"),
        ),
        ParameterDef(
            name="take_profit_pct",
            description="Take profit percentage (as decimal)",
            param_type=ParameterType.FLOAT,
            default=Decimal("0.20"),
            min=Decimal("0.05"),
            max=Decimal("1.0"),
        ),
        ParameterDef(
            name="position_size",
            description="Default position size",
            param_type=ParameterType.DECIMAL,
            default=Decimal("10"),
            min=Decimal("1"),
            max=Decimal("1000"),
        ),
        ParameterDef(
            name="min_volume",
            description="Minimum 24h volume",
            param_type=ParameterType.DECIMAL,
            default=Decimal("500"),
            min=Decimal("0"),
            max=Decimal("100000"),
        ),
    )

    def __init__(
        self,
        short_ema_periods: int = 9,
        long_ema_periods: int = 21,
        momentum_threshold: Decimal = Decimal("0.05"),
        position_size: Decimal = Decimal("10"),
        min_volume: Decimal = Decimal("500"),
        stop_loss_pct: Decimal = Decimal("0.10"),
        take_profit_pct: Decimal = Decimal("0.20"),
    ):
        self.short_ema_periods = short_ema_periods
        self.long_ema_periods = long_ema_periods
        self.momentum_threshold = momentum_threshold
        self.position_size = position_size
        self.min_volume = min_volume
        self.stop_loss_pct = stop_loss_pct
        self.take_profit_pct = take_profit_pct
        self.positions: dict[str, MomentumPosition] = {}

    @property
    def name(self) -> str:
        return "momentum"

    @property
    def description(self) -> str:
        return "Trend-following strategy using EMA crossovers to identify momentum"

    @property
    def tags(self) -> list[str]:
        return ["momentum", "trend-following"]

    def validate(self) -> None:
        if self.short_ema_periods >= self.long_ema_periods:
            raise InvalidInputError(
                f"short_ema_periods ({self.short_ema_periods}) must be below "
                f"long_ema_periods ({self.long_ema_periods})"
            )

    def _momentum(self, context: StrategyContext, condition_id: str) -> Optional[Decimal]:
        short_ema = context.ema(condition_id, self.short_ema_periods)
        long_ema = context.ema(condition_id, self.long_ema_periods)
        if short_ema is None or long_ema is None or long_ema == 0:
            return None
        return (short_ema - long_ema) / long_ema

    @staticmethod
    def _check_exit(position: MomentumPosition, price: Decimal) -> Optional[SignalType]:
        if position.side == OrderSide.BUY:
            if price <= position.stop_loss:
                return SignalType.STOP_LOSS
            if price >= position.take_profit:
                return SignalType.TAKE_PROFIT
        else:
            if price >= position.stop_loss:
                return SignalType.STOP_LOSS
            if price <= position.take_profit:
                return SignalType.TAKE_PROFIT
        return None

    def _levels(self, side: OrderSide, entry_price: Decimal) -> tuple[Decimal, Decimal]:
        """(stop_loss, take_profit) for an entry at `entry_price`."""
        if side == OrderSide.BUY:
            return (
                entry_price * (1 - self.stop_loss_pct),
                entry_price * (1 + self.take_profit_pct),
            )
        return (
            entry_price * (1 + self.stop_loss_pct),
            entry_price * (1 - self.take_profit_pct),
        )

    def evaluate(self, context: StrategyContext) -> list[Signal]:
        signals = []

        for market in context.active_markets():
            if market.volume_24h < self.min_volume:
                continue

            price = market.yes_price
            if price is None:
                continue

            condition_id = market.condition_id
            token_id = market.yes_token_id
            position = self.positions.get(condition_id)

            if position is not None:
                exit_type = self._check_exit(position, price)
                if exit_type is not None:
                    if exit_type == SignalType.STOP_LOSS:
                        strength = SignalStrength.VERY_STRONG
                        reason = f"Stop loss triggered at {price:.4f} (entry: {position.entry_price:.4f})"
                    else:
                        strength = SignalStrength.STRONG
                        reason = f"Take profit triggered at {price:.4f} (entry: {position.entry_price:.4f})"

                    signals.append(
                        Signal.for_side(position.side.opposite, condition_id, token_id, self.position_size)
                        .with_strategy(self.name)
                        .with_type(exit_type)
                        .with_strength(strength)
                        .with_price(price)
                        .with_reason(reason)
                    )
                    continue

            momentum = self._momentum(context, condition_id)
            if momentum is None or position is not None:
                continue

            threshold = self.momentum_threshold
            if momentum > threshold:
                stop_loss, take_profit = self._levels(OrderSide.BUY, price)
                strength = SignalStrength.STRONG if momentum > threshold * 2 else SignalStrength.MEDIUM
                signals.append(
                    Signal.buy(condition_id, token_id, self.position_size)
                    .with_strategy(self.name)
                    .with_type(SignalType.ENTRY)
                    .with_strength(strength)
                    .with_price(price)
                    .with_stop_loss(stop_loss)
                    .with_take_profit(take_profit)
                    .with_reason(
                        f"Bullish momentum: {momentum * 100:.2f}% "
                        f"(threshold: {threshold * 100:.2f}%)"
                    )
                    .with_indicator("momentum", float(momentum))
                )
            elif momentum < -threshold and context.has_position_in_market(condition_id):
                strength = SignalStrength.STRONG if momentum < -threshold * 2 else SignalStrength.MEDIUM
                signals.append(
                    Signal.sell(condition_id, token_id, self.position_size)
                    .with_strategy(self.name)
                    .with_type(SignalType.EXIT)
                    .with_strength(strength)
                    .with_price(price)
                    .with_reason(f"Bearish momentum: {momentum * 100:.2f}%")
                    .with_indicator("momentum", float(momentum))
                )

        return signals

    def on_signal_executed(self, signal: Signal, success: bool) -> None:
        if not success:
            return

        if signal.signal_type == SignalType.ENTRY:
            entry_price = signal.price if signal.price is not None else Decimal("0")
            stop_loss, take_profit = self._levels(signal.side, entry_price)
            self.positions[signal.market_id] = MomentumPosition(
                entry_price=entry_price,
                side=signal.side,
                stop_loss=stop_loss,
                take_profit=take_profit,
            )
            logger.debug(
                "momentum_position_tracked",
                market_id=signal.market_id,
                entry_price=str(entry_price),
                stop_loss=str(stop_loss),
                take_profit=str(take_profit),
            )
        elif signal.signal_type.is_exit:
            self.positions.pop(signal.market_id, None)

    async def shutdown(self) -> None:
        self.positions.clear()
