"""
Strategy engine.

Owns the strategy registry and the signal pipeline:
- Registration and per-strategy lifecycle (stopped / running / paused / error)
- Evaluation of due strategies against a filtered context
- Risk filtering of emitted signals into a FIFO pending queue
- Dispatch of pending signals to an action sink as limit orders
- Delivery of fills, cancellations and market updates back to strategies

The engine never schedules itself; an external loop calls `evaluate`
and `execute_pending_signals` once per tick.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional

import structlog
from pydantic import BaseModel, Field

from prediction_engine.core.context import StrategyContext
from prediction_engine.core.risk import RiskConfig, RiskGuard
from prediction_engine.errors import ChannelError, InvalidInputError
from prediction_engine.execution.base import BaseActionSink
from prediction_engine.models.order import OrderRequest, OrderType, PlaceOrder
from prediction_engine.models.signal import Signal
from prediction_engine.strategies.base import BaseStrategy, StrategyConfig

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EngineConfig(BaseModel):
    risk_config: RiskConfig = Field(default_factory=RiskConfig)
    max_strategy_errors: int = Field(default=5, ge=1)
    max_signal_history: int = Field(default=1000, ge=1)
    evaluation_interval_ms: int = Field(default=1000, ge=1)


class StrategyStatus(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"
    ERROR = "error"


class SignalResultKind(str, Enum):
    ORDER_PLACED = "order_placed"
    FILLED = "filled"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


@dataclass
class SignalResult:
    """Outcome of an executed signal, reported by the executor."""

    kind: SignalResultKind
    order_id: Optional[str] = None
    filled_price: Optional[Decimal] = None
    reason: Optional[str] = None

    @classmethod
    def order_placed(cls, order_id: str) -> "SignalResult":
        return cls(SignalResultKind.ORDER_PLACED, order_id=order_id)

    @classmethod
    def filled(cls, order_id: str, filled_price: Decimal) -> "SignalResult":
        return cls(SignalResultKind.FILLED, order_id=order_id, filled_price=filled_price)

    @classmethod
    def rejected(cls, reason: str) -> "SignalResult":
        return cls(SignalResultKind.REJECTED, reason=reason)

    @classmethod
    def cancelled(cls) -> "SignalResult":
        return cls(SignalResultKind.CANCELLED)


@dataclass
class SignalRecord:
    """Audit entry for a dispatched signal."""

    signal: Signal
    executed: bool
    executed_at: Optional[datetime] = None
    result: Optional[SignalResult] = None


@dataclass
class StrategyHandle:
    """A registered strategy with its config, status and counters."""

    strategy: BaseStrategy
    config: StrategyConfig
    status: StrategyStatus = StrategyStatus.STOPPED
    last_evaluated: Optional[datetime] = None
    signals_generated: int = 0
    signals_executed: int = 0
    errors: int = 0
    consecutive_errors: int = 0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def is_due(self, now: datetime) -> bool:
        if self.last_evaluated is None:
            return True
        elapsed = (now - self.last_evaluated).total_seconds()
        return elapsed >= self.config.min_signal_interval_secs


class StrategyEngine:
    """
    Coordinates strategies, risk checks and order dispatch.

    Each strategy has its own lock: evaluation and hook delivery for one
    strategy never interleave, while different strategies are independent.
    """

    def __init__(self, sink: BaseActionSink, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.risk_guard = RiskGuard(self.config.risk_config)
        self._sink = sink
        self._strategies: dict[str, StrategyHandle] = {}
        self._pending: list[Signal] = []
        self._history: list[SignalRecord] = []
        self._running = False

    # ─────────────────────────────────────────────────────────────────────────
    # REGISTRY
    # ─────────────────────────────────────────────────────────────────────────

    async def register(self, strategy: BaseStrategy, config: Optional[StrategyConfig] = None) -> None:
        """
        Register and initialize a strategy. It starts STOPPED.

        Raises:
            InvalidInputError: on a duplicate name or a rejected parameter
        """
        name = strategy.name
        if name in self._strategies:
            raise InvalidInputError(f"Strategy '{name}' already registered")

        handle = StrategyHandle(strategy=strategy, config=config or StrategyConfig())
        async with handle.lock:
            await strategy.initialize(handle.config)

        # A concurrent register may have won while we were initializing
        if name in self._strategies:
            await strategy.shutdown()
            raise InvalidInputError(f"Strategy '{name}' already registered")

        self._strategies[name] = handle
        logger.info("strategy_registered", strategy=name)

    async def unregister(self, name: str) -> None:
        handle = self._strategies.pop(name, None)
        if handle is None:
            return
        async with handle.lock:
            await handle.strategy.shutdown()
        logger.info("strategy_unregistered", strategy=name)

    def _get_handle(self, name: str) -> StrategyHandle:
        handle = self._strategies.get(name)
        if handle is None:
            raise InvalidInputError(f"Strategy '{name}' not found")
        return handle

    def start_strategy(self, name: str) -> None:
        handle = self._get_handle(name)
        if handle.status == StrategyStatus.ERROR:
            raise InvalidInputError(
                f"Strategy '{name}' is in error state; update its config or re-register it"
            )
        handle.status = StrategyStatus.RUNNING
        logger.info("strategy_started", strategy=name)

    def stop_strategy(self, name: str) -> None:
        handle = self._get_handle(name)
        handle.status = StrategyStatus.STOPPED
        logger.info("strategy_stopped", strategy=name)

    def pause_strategy(self, name: str) -> None:
        handle = self._get_handle(name)
        handle.status = StrategyStatus.PAUSED
        logger.info("strategy_paused", strategy=name)

    def update_config(self, name: str, config: StrategyConfig) -> None:
        """Replace a strategy's config. An errored strategy returns to STOPPED."""
        handle = self._get_handle(name)
        handle.config = config
        if handle.status == StrategyStatus.ERROR:
            handle.status = StrategyStatus.STOPPED
            handle.consecutive_errors = 0
            logger.info("strategy_error_cleared", strategy=name)
        logger.info("strategy_config_updated", strategy=name)

    def update_risk_config(self, config: RiskConfig) -> None:
        self.config = self.config.model_copy(update={"risk_config": config})
        self.risk_guard.update_config(config)

    # ─────────────────────────────────────────────────────────────────────────
    # ENGINE LIFECYCLE
    # ─────────────────────────────────────────────────────────────────────────

    def start(self) -> None:
        self._running = True
        logger.info("engine_started", strategies=len(self._strategies))

    def stop(self) -> None:
        """Stop evaluating. Queued signals are kept."""
        self._running = False
        logger.info("engine_stopped", pending=len(self._pending))

    @property
    def is_running(self) -> bool:
        return self._running

    # ─────────────────────────────────────────────────────────────────────────
    # EVALUATION
    # ─────────────────────────────────────────────────────────────────────────

    async def evaluate(self, context: StrategyContext) -> list[Signal]:
        """
        Evaluate all running, enabled and due strategies.

        Returns:
            Signals approved by the risk guard; they are also queued
        """
        if not self._running:
            return []

        now = _utcnow()
        candidates = []

        for name, handle in list(self._strategies.items()):
            if handle.status != StrategyStatus.RUNNING or not handle.config.enabled:
                continue
            if not handle.is_due(now):
                continue

            filtered = context.filtered(handle.config.include_markets, handle.config.exclude_markets)

            try:
                async with handle.lock:
                    signals = handle.strategy.evaluate(filtered)
                tagged = [signal.with_strategy(name) for signal in signals]
            except Exception as e:
                self._record_error(name, handle, e)
                continue

            handle.last_evaluated = _utcnow()
            handle.signals_generated += len(tagged)
            handle.consecutive_errors = 0
            candidates.extend(tagged)

            logger.debug("strategy_evaluated", strategy=name, signals=len(tagged))

        approved = []
        for signal in candidates:
            check = self.risk_guard.check_signal(signal, context)
            if check.passed:
                approved.append(signal)
            else:
                logger.info(
                    "signal_rejected",
                    signal_id=signal.id,
                    strategy=signal.strategy_name,
                    kind=check.violation.kind.value,
                    reason=check.reason,
                )

        self._pending.extend(approved)
        return approved

    def _record_error(self, name: str, handle: StrategyHandle, error: Exception) -> None:
        handle.errors += 1
        handle.consecutive_errors += 1
        logger.error(
            "strategy_evaluation_error",
            strategy=name,
            error=str(error),
            consecutive_errors=handle.consecutive_errors,
        )
        if handle.consecutive_errors >= self.config.max_strategy_errors:
            handle.status = StrategyStatus.ERROR
            logger.warning(
                "strategy_disabled",
                strategy=name,
                errors=handle.consecutive_errors,
            )

    # ─────────────────────────────────────────────────────────────────────────
    # EXECUTION
    # ─────────────────────────────────────────────────────────────────────────

    async def execute_pending_signals(self) -> list[str]:
        """
        Drain the pending queue in FIFO order.

        Expired signals and signals of strategies without auto-execution
        are discarded. On any failure, cancellation included, the signals not
        yet consumed are put back at the head of the queue before the error
        propagates; the failing signal is kept unless it raised
        InvalidInputError.

        Returns:
            IDs of the dispatched signals
        """
        signals = self._pending
        self._pending = []
        executed = []
        consumed = 0
        now = _utcnow()

        try:
            for index, signal in enumerate(signals):
                consumed = index
                if signal.is_expired(now):
                    logger.debug("signal_expired", signal_id=signal.id, strategy=signal.strategy_name)
                    continue

                handle = self._strategies.get(signal.strategy_name)
                if handle is None:
                    logger.debug("signal_strategy_missing", signal_id=signal.id, strategy=signal.strategy_name)
                    continue
                if not handle.config.auto_execute:
                    logger.debug("signal_not_auto_executed", signal_id=signal.id, strategy=signal.strategy_name)
                    continue

                try:
                    await self._dispatch(signal)
                except InvalidInputError:
                    consumed = index + 1
                    raise

                consumed = index + 1
                executed.append(signal.id)
                await self._notify_executed(signal, handle)
        except BaseException:
            self._pending[:0] = signals[consumed:]
            raise

        return executed

    async def execute_signal(self, signal_id: str) -> None:
        """
        Dispatch one pending signal regardless of auto-execution.

        Raises:
            InvalidInputError: if the signal is not pending or has no price
            ChannelError: if the sink rejects the action
        """
        signal = next((s for s in self._pending if s.id == signal_id), None)
        if signal is None:
            raise InvalidInputError(f"Signal '{signal_id}' not found")

        await self._dispatch(signal)
        self._pending = [s for s in self._pending if s.id != signal_id]

        handle = self._strategies.get(signal.strategy_name)
        if handle is not None:
            await self._notify_executed(signal, handle)

    def _signal_to_order(self, signal: Signal) -> OrderRequest:
        if signal.price is None:
            raise InvalidInputError(f"Signal '{signal.id}' must have a price for a limit order")
        return OrderRequest(
            market_id=signal.market_id,
            token_id=signal.token_id,
            side=signal.side,
            price=signal.price,
            size=signal.size,
            order_type=OrderType.LIMIT,
            strategy_name=signal.strategy_name,
            signal_id=signal.id,
        )

    async def _dispatch(self, signal: Signal) -> None:
        request = self._signal_to_order(signal)

        try:
            await self._sink.send(PlaceOrder(request=request))
        except ChannelError:
            raise
        except Exception as e:
            raise ChannelError(f"Failed to dispatch signal '{signal.id}': {e}") from e

        self._record_signal(signal)
        logger.info(
            "signal_dispatched",
            signal_id=signal.id,
            strategy=signal.strategy_name,
            market_id=signal.market_id,
            side=signal.side.value,
            price=str(signal.price),
            size=str(signal.size),
        )

    async def _notify_executed(self, signal: Signal, handle: StrategyHandle) -> None:
        handle.signals_executed += 1
        await self._deliver(
            signal.strategy_name,
            handle,
            lambda s: s.on_signal_executed(signal, True),
        )

    def _record_signal(self, signal: Signal) -> None:
        self._history.append(SignalRecord(signal=signal, executed=True, executed_at=_utcnow()))
        overflow = len(self._history) - self.config.max_signal_history
        if overflow > 0:
            del self._history[:overflow]

    def record_result(self, signal_id: str, result: SignalResult) -> bool:
        """Attach a result to the newest history record of a signal."""
        for record in reversed(self._history):
            if record.signal.id == signal_id:
                record.result = result
                return True
        return False

    def clear_signal(self, signal_id: str) -> None:
        self._pending = [s for s in self._pending if s.id != signal_id]

    def clear_all_signals(self) -> None:
        self._pending = []

    # ─────────────────────────────────────────────────────────────────────────
    # FEEDBACK
    # ─────────────────────────────────────────────────────────────────────────

    async def _deliver(
        self,
        name: str,
        handle: StrategyHandle,
        hook: Callable[[BaseStrategy], None],
    ) -> None:
        async with handle.lock:
            try:
                hook(handle.strategy)
            except Exception as e:
                handle.errors += 1
                logger.error("strategy_hook_error", strategy=name, error=str(e))

    async def on_market_update(self, context: StrategyContext) -> None:
        for name, handle in list(self._strategies.items()):
            if handle.status == StrategyStatus.RUNNING:
                await self._deliver(name, handle, lambda s: s.on_market_update(context))

    async def on_order_filled(
        self,
        strategy_name: str,
        order_id: str,
        price: Decimal,
        size: Decimal,
    ) -> None:
        handle = self._strategies.get(strategy_name)
        if handle is None:
            return
        await self._deliver(strategy_name, handle, lambda s: s.on_order_filled(order_id, price, size))

    async def on_order_cancelled(self, strategy_name: str, order_id: str) -> None:
        handle = self._strategies.get(strategy_name)
        if handle is None:
            return
        await self._deliver(strategy_name, handle, lambda s: s.on_order_cancelled(order_id))

    # ─────────────────────────────────────────────────────────────────────────
    # ACCESSORS
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def pending_signals(self) -> list[Signal]:
        return list(self._pending)

    @property
    def signal_history(self) -> list[SignalRecord]:
        return list(self._history)

    @property
    def strategies(self) -> dict[str, StrategyHandle]:
        return dict(self._strategies)

    def get_strategy(self, name: str) -> Optional[StrategyHandle]:
        return self._strategies.get(name)
