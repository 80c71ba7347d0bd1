"""
Paper exchange for simulated execution.

Consumes actions from a QueueActionSink and reports outcomes back to
the engine through its feedback hooks and `record_result`.
"""

import random
from decimal import Decimal
from typing import Optional
from uuid import uuid4

import structlog

from prediction_engine.core.engine import SignalResult, StrategyEngine
from prediction_engine.execution.queue import QueueActionSink
from prediction_engine.models.order import (
    CancelOrder,
    Order,
    OrderRequest,
    OrderSide,
    OrderStatus,
    PlaceOrder,
)
from prediction_engine.models.position import Position

logger = structlog.get_logger()


class PaperExchange:
    """
    Simulated exchange for paper trading.

    Features:
    - Probabilistic fills with configurable slippage
    - Cash and position accounting (no short selling)
    - Open orders retried each settle and cancelled after `max_open_ticks`
    """

    def __init__(
        self,
        engine: StrategyEngine,
        sink: QueueActionSink,
        fill_probability: float = 0.8,
        slippage: Decimal = Decimal("0.01"),
        initial_balance: Decimal = Decimal("1000"),
        max_open_ticks: int = 3,
        rng: Optional[random.Random] = None,
    ):
        self.engine = engine
        self.sink = sink
        self.fill_probability = fill_probability
        self.slippage = slippage
        self.max_open_ticks = max_open_ticks
        self._rng = rng or random.Random()

        # Simulated state
        self._balance = initial_balance
        self._orders: dict[str, Order] = {}
        self._requests: dict[str, OrderRequest] = {}
        self._open_ticks: dict[str, int] = {}
        self._positions: dict[str, Position] = {}
        self.fills = 0
        self.cancellations = 0
        self.rejections = 0

    # ─────────────────────────────────────────────────────────────────────────
    # ACTION PROCESSING
    # ─────────────────────────────────────────────────────────────────────────

    async def process(self) -> list[Order]:
        """Handle every queued action; returns the orders created."""
        created = []
        for action in self.sink.drain():
            if isinstance(action, PlaceOrder):
                created.append(await self.place_order(action.request))
            elif isinstance(action, CancelOrder):
                await self.cancel_order(action.order_id)
        return created

    async def place_order(self, request: OrderRequest) -> Order:
        """Accept an order request and attempt an immediate fill."""
        order_id = str(uuid4())
        order = Order(
            id=order_id,
            market_id=request.market_id,
            token_id=request.token_id,
            side=request.side,
            order_type=request.order_type,
            price=request.price,
            original_size=request.size,
            remaining_size=request.size,
            status=OrderStatus.OPEN,
        )
        self._orders[order_id] = order
        self._requests[order_id] = request

        rejection = self._check_funds(request)
        if rejection is not None:
            order.status = OrderStatus.FAILED
            order.remaining_size = Decimal("0")
            self.rejections += 1
            self._record(request, SignalResult.rejected(rejection))
            logger.warning("paper_order_rejected", order_id=order_id, reason=rejection)
            return order

        self._record(request, SignalResult.order_placed(order_id))
        self._open_ticks[order_id] = 0
        logger.info(
            "paper_order_open",
            order_id=order_id,
            market_id=request.market_id,
            side=request.side.value,
            size=str(request.size),
            price=str(request.price),
        )

        await self._try_fill(order)
        return order

    async def cancel_order(self, order_id: str) -> bool:
        """Cancel a paper order."""
        order = self._orders.get(order_id)
        if order is None or not order.is_active:
            return False

        order.status = OrderStatus.CANCELLED
        self._open_ticks.pop(order_id, None)
        self.cancellations += 1

        request = self._requests[order_id]
        self._record(request, SignalResult.cancelled())
        await self.engine.on_order_cancelled(request.strategy_name, order_id)
        logger.info("paper_order_cancelled", order_id=order_id)
        return True

    async def settle(self) -> None:
        """Retry fills on open orders and cancel the stale ones."""
        for order_id in list(self._open_ticks):
            order = self._orders[order_id]
            self._open_ticks[order_id] += 1
            if await self._try_fill(order):
                continue
            if self._open_ticks[order_id] >= self.max_open_ticks:
                await self.cancel_order(order_id)

    # ─────────────────────────────────────────────────────────────────────────
    # SIMULATION
    # ─────────────────────────────────────────────────────────────────────────

    def _check_funds(self, request: OrderRequest) -> Optional[str]:
        if request.side == OrderSide.BUY:
            if request.notional_value > self._balance:
                return "Insufficient balance"
            return None

        position = self._positions.get(request.token_id)
        held = position.size if position else Decimal("0")
        if request.size > held:
            return "Insufficient position"
        return None

    async def _try_fill(self, order: Order) -> bool:
        if self._rng.random() >= self.fill_probability:
            return False

        # Re-check funds; another fill may have used them
        request = self._requests[order.id]
        if self._check_funds(request) is not None:
            return False

        if order.side == OrderSide.BUY:
            fill_price = min(order.price + self.slippage, Decimal("1"))
        else:
            fill_price = max(order.price - self.slippage, Decimal("0"))

        size = order.remaining_size
        self._apply_fill(order, fill_price, size)

        order.status = OrderStatus.FILLED
        order.filled_size += size
        order.remaining_size = Decimal("0")
        self._open_ticks.pop(order.id, None)
        self.fills += 1

        self._record(request, SignalResult.filled(order.id, fill_price))
        await self.engine.on_order_filled(request.strategy_name, order.id, fill_price, size)
        logger.info(
            "paper_order_filled",
            order_id=order.id,
            market_id=order.market_id,
            side=order.side.value,
            size=str(size),
            fill_price=str(fill_price),
        )
        return True

    def _apply_fill(self, order: Order, price: Decimal, size: Decimal) -> None:
        position = self._positions.get(order.token_id)
        if position is None:
            position = Position(
                market_id=order.market_id,
                token_id=order.token_id,
                current_price=price,
            )
            self._positions[order.token_id] = position

        if order.side == OrderSide.BUY:
            total_cost = position.cost_basis + price * size
            position.size += size
            position.avg_price = total_cost / position.size
            self._balance -= price * size
        else:
            position.realized_pnl += (price - position.avg_price) * size
            position.size -= size
            self._balance += price * size
            if position.size == 0:
                del self._positions[order.token_id]

    def _record(self, request: OrderRequest, result: SignalResult) -> None:
        if request.signal_id is not None:
            self.engine.record_result(request.signal_id, result)

    def mark_to_market(self, prices: dict[str, Decimal]) -> None:
        """Update position prices from token ID -> price."""
        for token_id, position in self._positions.items():
            if token_id in prices:
                position.current_price = prices[token_id]

    # ─────────────────────────────────────────────────────────────────────────
    # ACCOUNT
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def balance(self) -> Decimal:
        return self._balance

    def positions(self) -> list[Position]:
        return list(self._positions.values())

    def orders(self) -> list[Order]:
        return list(self._orders.values())

    def open_orders(self) -> list[Order]:
        return [o for o in self._orders.values() if o.is_active]
