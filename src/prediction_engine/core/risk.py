"""
Risk management module.

Validates strategy signals against configurable limits:
- Trading enabled / market black- and whitelists
- Position size bounds
- Total and per-market exposure
- Maximum open positions
- Price sanity (0-1)

Checks run in a fixed order and stop at the first violation. A
violation is returned as a value, never raised.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

import structlog
from pydantic import BaseModel, Field

from prediction_engine.core.context import StrategyContext
from prediction_engine.models.order import OrderSide
from prediction_engine.models.signal import Signal

logger = structlog.get_logger()


class RiskConfig(BaseModel):
    """Risk limits. A None limit is not enforced."""

    enabled: bool = True
    max_position_size: Optional[Decimal] = Decimal("100")
    min_position_size: Optional[Decimal] = Decimal("1")
    max_total_exposure: Optional[Decimal] = Decimal("1000")
    max_positions: Optional[int] = 10
    max_exposure_per_market: Optional[Decimal] = Decimal("200")
    max_daily_volume: Optional[Decimal] = None
    max_daily_trades: Optional[int] = None
    max_daily_loss: Optional[Decimal] = None
    min_balance: Optional[Decimal] = Decimal("10")
    loss_cooldown_secs: Optional[int] = None
    blacklisted_markets: list[str] = Field(default_factory=list)
    whitelisted_markets: list[str] = Field(default_factory=list)


class ViolationKind(str, Enum):
    TRADING_DISABLED = "trading_disabled"
    POSITION_SIZE_EXCEEDED = "position_size_exceeded"
    POSITION_SIZE_TOO_SMALL = "position_size_too_small"
    TOTAL_EXPOSURE_EXCEEDED = "total_exposure_exceeded"
    MAX_POSITIONS_REACHED = "max_positions_reached"
    MARKET_EXPOSURE_EXCEEDED = "market_exposure_exceeded"
    DAILY_VOLUME_EXCEEDED = "daily_volume_exceeded"
    DAILY_TRADES_EXCEEDED = "daily_trades_exceeded"
    DAILY_LOSS_EXCEEDED = "daily_loss_exceeded"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    MARKET_BLACKLISTED = "market_blacklisted"
    MARKET_NOT_WHITELISTED = "market_not_whitelisted"
    INVALID_PRICE = "invalid_price"
    COOLDOWN_ACTIVE = "cooldown_active"


@dataclass
class RiskViolation:
    """Why a signal was rejected."""

    kind: ViolationKind
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


@dataclass
class RiskCheck:
    """Result of a risk check."""

    passed: bool
    violation: Optional[RiskViolation] = None

    @property
    def reason(self) -> Optional[str]:
        return self.violation.message if self.violation else None


_PASSED = RiskCheck(passed=True)


def _reject(kind: ViolationKind, message: str, **details: Any) -> RiskCheck:
    return RiskCheck(passed=False, violation=RiskViolation(kind, message, details))


class RiskGuard:
    """
    Stateless signal validator.

    The configuration can be swapped at runtime with `update_config`;
    each check reads only the signal, the context and the current config.
    """

    def __init__(self, config: Optional[RiskConfig] = None):
        self.config = config or RiskConfig()

    def update_config(self, config: RiskConfig) -> None:
        self.config = config
        logger.info("risk_config_updated", enabled=config.enabled)

    def check_signal(self, signal: Signal, context: StrategyContext) -> RiskCheck:
        """
        Check if a signal passes all risk rules.

        Returns:
            RiskCheck; on failure `violation` names the first rule broken
        """
        if not self.config.enabled:
            return _reject(ViolationKind.TRADING_DISABLED, "Trading is disabled")

        checks = (
            self._check_market_allowed,
            self._check_position_size,
            self._check_total_exposure,
            self._check_max_positions,
            self._check_market_exposure,
            self._check_daily_limits,
            self._check_price_bounds,
        )

        for check in checks:
            result = check(signal, context)
            if not result.passed:
                logger.warning(
                    "risk_check_failed",
                    signal_id=signal.id,
                    market_id=signal.market_id,
                    kind=result.violation.kind.value,
                    reason=result.reason,
                )
                return result

        return _PASSED

    def _check_market_allowed(self, signal: Signal, context: StrategyContext) -> RiskCheck:
        market_id = signal.market_id
        if market_id in self.config.blacklisted_markets:
            return _reject(
                ViolationKind.MARKET_BLACKLISTED,
                f"Market {market_id} is blacklisted",
                market_id=market_id,
            )

        whitelist = self.config.whitelisted_markets
        if whitelist and market_id not in whitelist:
            return _reject(
                ViolationKind.MARKET_NOT_WHITELISTED,
                f"Market {market_id} is not whitelisted",
                market_id=market_id,
            )

        return _PASSED

    def _check_position_size(self, signal: Signal, context: StrategyContext) -> RiskCheck:
        max_size = self.config.max_position_size
        if max_size is not None and signal.size > max_size:
            return _reject(
                ViolationKind.POSITION_SIZE_EXCEEDED,
                f"Position size {signal.size} exceeds max {max_size}",
                requested=signal.size,
                max=max_size,
            )

        min_size = self.config.min_position_size
        if min_size is not None and signal.size < min_size:
            return _reject(
                ViolationKind.POSITION_SIZE_TOO_SMALL,
                f"Position size {signal.size} below min {min_size}",
                requested=signal.size,
                min=min_size,
            )

        return _PASSED

    def _check_total_exposure(self, signal: Signal, context: StrategyContext) -> RiskCheck:
        max_exposure = self.config.max_total_exposure
        if max_exposure is None:
            return _PASSED

        current = context.total_exposure()
        requested = signal.value

        # Only buys can breach the cap; sells reduce exposure
        if signal.side == OrderSide.BUY and current + requested > max_exposure:
            return _reject(
                ViolationKind.TOTAL_EXPOSURE_EXCEEDED,
                f"Total exposure {current} + {requested} would exceed max {max_exposure}",
                current=current,
                requested=requested,
                max=max_exposure,
            )

        return _PASSED

    def _check_max_positions(self, signal: Signal, context: StrategyContext) -> RiskCheck:
        max_positions = self.config.max_positions
        if max_positions is None or signal.side != OrderSide.BUY:
            return _PASSED

        # Adding to an existing position does not open a new one
        if context.get_position(signal.token_id) is not None:
            return _PASSED

        current = len(context.positions)
        if current >= max_positions:
            return _reject(
                ViolationKind.MAX_POSITIONS_REACHED,
                f"Max positions {max_positions} reached (current: {current})",
                current=current,
                max=max_positions,
            )

        return _PASSED

    def _check_market_exposure(self, signal: Signal, context: StrategyContext) -> RiskCheck:
        max_per_market = self.config.max_exposure_per_market
        if max_per_market is None:
            return _PASSED

        current = sum(
            (p.current_value for p in context.all_positions() if p.market_id == signal.market_id),
            Decimal("0"),
        )
        requested = signal.value

        if current + requested > max_per_market:
            return _reject(
                ViolationKind.MARKET_EXPOSURE_EXCEEDED,
                f"Market {signal.market_id} exposure {current} + {requested} "
                f"would exceed max {max_per_market}",
                market_id=signal.market_id,
                current=current,
                requested=requested,
                max=max_per_market,
            )

        return _PASSED

    def _check_daily_limits(self, signal: Signal, context: StrategyContext) -> RiskCheck:
        # TODO: track daily volume, trade count and realized loss across ticks
        # so max_daily_volume / max_daily_trades / max_daily_loss are enforced.
        return _PASSED

    def _check_price_bounds(self, signal: Signal, context: StrategyContext) -> RiskCheck:
        price = signal.price
        if price is not None and (price < 0 or price > 1):
            return _reject(
                ViolationKind.INVALID_PRICE,
                f"Invalid price: {price}",
                price=price,
            )
        return _PASSED
