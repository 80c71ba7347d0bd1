"""
Paper trading runner that drives the engine tick by tick.

This is the entry point for CLI runs; it stands in for the external
market aggregator and order executor.
"""

import asyncio
import random
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

import structlog

from prediction_engine.config import settings
from prediction_engine.core.engine import EngineConfig, StrategyEngine, StrategyStatus
from prediction_engine.errors import InvalidInputError
from prediction_engine.execution.feed import SimulatedMarketFeed
from prediction_engine.execution.paper import PaperExchange
from prediction_engine.execution.queue import QueueActionSink
from prediction_engine.observability.alerts import send_alert, send_strategy_error_alert
from prediction_engine.observability.metrics import calculate_max_drawdown
from prediction_engine.strategies.base import BaseStrategy, StrategyConfig, StrategyRegistry

logger = structlog.get_logger()


class PaperRunner:
    """
    Orchestrates a paper run.

    Each tick:
    1. Advance the simulated feed and mark positions
    2. Build the strategy context
    3. Notify strategies and evaluate them
    4. Dispatch pending signals
    5. Settle open paper orders and accept new ones
    6. Alert on strategies that entered ERROR
    """

    def __init__(
        self,
        engine_config: Optional[EngineConfig] = None,
        strategies: Optional[list[BaseStrategy]] = None,
        strategy_parameters: Optional[dict[str, dict[str, Any]]] = None,
        feed: Optional[SimulatedMarketFeed] = None,
        fill_probability: float = 0.8,
        initial_balance: Decimal = Decimal("1000"),
        interval_ms: int = 0,
        seed: Optional[int] = None,
    ):
        self.sink = QueueActionSink()
        self.engine = StrategyEngine(self.sink, engine_config or settings.engine_config())
        self.feed = feed or SimulatedMarketFeed(seed=seed)
        self.exchange = PaperExchange(
            self.engine,
            self.sink,
            fill_probability=fill_probability,
            initial_balance=initial_balance,
            rng=random.Random(seed),
        )
        self.strategies = strategies if strategies is not None else StrategyRegistry.create_all()
        self.strategy_parameters = strategy_parameters or {}
        self.interval_ms = interval_ms

        self._setup_done = False
        self._alerted: set[str] = set()
        self._equity: list[Decimal] = []

    async def setup(self) -> None:
        """Register, configure and start every strategy."""
        for strategy in self.strategies:
            config = StrategyConfig(
                auto_execute=True,
                parameters=self.strategy_parameters.get(strategy.name, {}),
            )
            await self.engine.register(strategy, config)
            self.engine.start_strategy(strategy.name)

        self.engine.start()
        self._setup_done = True

    async def run(self, ticks: int) -> dict:
        """
        Execute `ticks` evaluation cycles.

        Returns:
            Summary dict with results
        """
        run_start = datetime.now(timezone.utc)
        logger.info("paper_run_started", ticks=ticks, strategies=[s.name for s in self.strategies])

        summary: dict[str, Any] = {
            "start_time": run_start.isoformat(),
            "ticks": 0,
            "signals_approved": 0,
            "signals_executed": 0,
            "errors": [],
        }

        try:
            if not self._setup_done:
                await self.setup()

            for _ in range(ticks):
                await self._tick(summary)
                summary["ticks"] += 1
                if self.interval_ms:
                    await asyncio.sleep(self.interval_ms / 1000)

        except Exception as e:
            logger.error("paper_run_error", error=str(e))
            summary["errors"].append(str(e))
            await send_alert(f"Paper run error: {e}", level="error")

        finally:
            self.engine.stop()
            await self.sink.close()

            run_end = datetime.now(timezone.utc)
            summary.update(self._account_summary())
            summary["end_time"] = run_end.isoformat()
            summary["duration_seconds"] = (run_end - run_start).total_seconds()

            logger.info(
                "paper_run_completed",
                ticks=summary["ticks"],
                executed=summary["signals_executed"],
                fills=summary["orders_filled"],
                duration=summary["duration_seconds"],
            )

        return summary

    async def _tick(self, summary: dict) -> None:
        self.feed.tick()
        self.exchange.mark_to_market(self.feed.mark_prices())

        context = self.feed.build_context(
            self.exchange.positions(),
            self.exchange.orders(),
            self.exchange.balance,
        )

        await self.engine.on_market_update(context)
        approved = await self.engine.evaluate(context)
        summary["signals_approved"] += len(approved)

        try:
            executed = await self.engine.execute_pending_signals()
        except InvalidInputError as e:
            # The bad signal is already discarded; the rest run next tick
            logger.warning("signal_execution_failed", error=str(e))
            summary["errors"].append(str(e))
            executed = []
        summary["signals_executed"] += len(executed)

        await self.exchange.settle()
        await self.exchange.process()

        self._equity.append(self._portfolio_value())
        await self._check_strategy_errors(summary)

    async def _check_strategy_errors(self, summary: dict) -> None:
        for name, handle in self.engine.strategies.items():
            if handle.status != StrategyStatus.ERROR:
                self._alerted.discard(name)
                continue
            if name in self._alerted:
                continue
            self._alerted.add(name)
            summary["errors"].append(f"Strategy {name} disabled after {handle.consecutive_errors} errors")
            await send_strategy_error_alert(name, handle.consecutive_errors)

    def _portfolio_value(self) -> Decimal:
        holdings = sum((p.market_value for p in self.exchange.positions()), Decimal("0"))
        return self.exchange.balance + holdings

    def _account_summary(self) -> dict:
        return {
            "orders_filled": self.exchange.fills,
            "orders_cancelled": self.exchange.cancellations,
            "orders_rejected": self.exchange.rejections,
            "open_orders": len(self.exchange.open_orders()),
            "positions": len(self.exchange.positions()),
            "ending_balance": self.exchange.balance,
            "ending_value": self._portfolio_value(),
            "max_drawdown": calculate_max_drawdown(self._equity),
            "strategies": {
                name: {
                    "status": handle.status.value,
                    "generated": handle.signals_generated,
                    "executed": handle.signals_executed,
                    "errors": handle.errors,
                }
                for name, handle in self.engine.strategies.items()
            },
        }
