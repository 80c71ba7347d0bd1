"""
Strategy: Mean Reversion

Trades deviations of the YES price from its simple moving average,
betting on a return to the mean.

Logic:
- Skip markets below the liquidity floor or without enough history
- Enter when |price - SMA| / SMA exceeds the entry threshold:
  buy below the average, sell above it
- Once an entry has executed, exit when the price is back within the
  exit threshold of the SMA recorded at entry

Exactly one exit is emitted per executed entry.
"""

from dataclasses import dataclass
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

MA_AT_ENTRY = "ma_at_entry"


@dataclass
class EntryInfo:
    entry_price: Decimal
    side: OrderSide
    ma_at_entry: Decimal


@StrategyRegistry.register
class MeanReversionStrategy(BaseStrategy):
    """
    Mean reversion strategy on the first outcome of each market.

    Entries are tracked only after the engine reports them executed.
    """

    PARAMETERS = (
        ParameterDef(
            name="ma_periods",
            description="Number of periods for moving average",
            param_type=ParameterType.INTEGER,
            default=20,
            min=5,
            max=100,
        ),
        ParameterDef(
            name="entry_threshold",
            description="Deviation from MA required for entry (as decimal)",
            param_type=ParameterType.FLOAT,
            default=Decimal("0.10"),
            min=Decimal("0.01"),
            max=Decimal("0.50"),
        ),
        ParameterDef(
            name="exit_threshold",
            description="Deviation from MA for exit (as decimal)",
            param_type=ParameterType.FLOAT,
            default=Decimal("0.02"),
            min=Decimal("0.005"),
            max=Decimal("0.10"),
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
            name="min_liquidity",
            description="Minimum market liquidity",
            param_type=ParameterType.DECIMAL,
            default=Decimal("1000"),
            min=Decimal("0"),
            max=Decimal("1000000"),
        ),
    )

    def __init__(
        self,
        ma_periods: int = 20,
        entry_threshold: Decimal = Decimal("0.10"),
        exit_threshold: Decimal = Decimal("0.02"),
        position_size: Decimal = Decimal("10"),
        min_liquidity: Decimal = Decimal("1000"),
    ):
        self.ma_periods = ma_periods
        self.entry_threshold = entry_threshold
        self.exit_threshold = exit_threshold
        self.position_size = position_size
        self.min_liquidity = min_liquidity
        self.entered_markets: dict[str, EntryInfo] = {}

    @property
    def name(self) -> str:
        return "mean_reversion"

    @property
    def description(self) -> str:
        return "Trades price deviations from moving average, betting on reversion to mean"

    @property
    def tags(self) -> list[str]:
        return ["mean-reversion", "statistical"]

    @staticmethod
    def _deviation(price: Decimal, ma: Decimal) -> Decimal:
        if ma == 0:
            return Decimal("0")
        return (price - ma) / ma

    def evaluate(self, context: StrategyContext) -> list[Signal]:
        signals = []

        for market in context.active_markets():
            if market.liquidity < self.min_liquidity:
                continue

            price = market.yes_price
            if price is None:
                continue

            ma = context.sma(market.condition_id, self.ma_periods)
            if ma is None:
                continue

            token_id = market.yes_token_id
            entry = self.entered_markets.get(market.condition_id)

            if entry is not None:
                exit_deviation = self._deviation(price, entry.ma_at_entry)
                if abs(exit_deviation) >= self.exit_threshold:
                    continue

                signal = (
                    Signal.for_side(entry.side.opposite, market.condition_id, token_id, self.position_size)
                    .with_strategy(self.name)
                    .with_type(SignalType.EXIT)
                    .with_strength(SignalStrength.MEDIUM)
                    .with_price(price)
                    .with_reason(
                        f"Mean reversion exit: deviation {exit_deviation * 100:.2f}% "
                        f"(threshold {self.exit_threshold * 100:.2f}%)"
                    )
                )
                signals.append(signal)
                del self.entered_markets[market.condition_id]
                continue

            deviation = self._deviation(price, ma)
            if abs(deviation) <= self.entry_threshold:
                continue

            if deviation < 0:
                side = OrderSide.BUY
                reason = f"Mean reversion entry: price {abs(deviation) * 100:.2f}% below MA"
            else:
                side = OrderSide.SELL
                reason = f"Mean reversion entry: price {deviation * 100:.2f}% above MA"

            if abs(deviation) > self.entry_threshold * 2:
                strength = SignalStrength.STRONG
            else:
                strength = SignalStrength.MEDIUM

            signal = (
                Signal.for_side(side, market.condition_id, token_id, self.position_size)
                .with_strategy(self.name)
                .with_type(SignalType.ENTRY)
                .with_strength(strength)
                .with_price(price)
                .with_reason(reason)
                .with_indicator(MA_AT_ENTRY, float(ma))
            )
            signals.append(signal)

        return signals

    def on_signal_executed(self, signal: Signal, success: bool) -> None:
        if not success:
            return

        if signal.signal_type == SignalType.ENTRY:
            entry_price = signal.price if signal.price is not None else Decimal("0")
            recorded = signal.metadata.indicators.get(MA_AT_ENTRY)
            ma_at_entry = Decimal(str(recorded)) if recorded is not None else entry_price

            self.entered_markets[signal.market_id] = EntryInfo(
                entry_price=entry_price,
                side=signal.side,
                ma_at_entry=ma_at_entry,
            )
            logger.debug(
                "mean_reversion_entry_tracked",
                market_id=signal.market_id,
                side=signal.side.value,
                ma_at_entry=str(ma_at_entry),
            )
        elif signal.signal_type == SignalType.EXIT:
            self.entered_markets.pop(signal.market_id, None)

    async def shutdown(self) -> None:
        self.entered_markets.clear()
