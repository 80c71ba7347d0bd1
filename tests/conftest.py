"""
Pytest fixtures for testing.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import pytest

from prediction_engine.core.context import PricePoint, StrategyContext
from prediction_engine.core.engine import EngineConfig, StrategyEngine
from prediction_engine.core.risk import RiskConfig, RiskGuard
from prediction_engine.execution.queue import QueueActionSink
from prediction_engine.models.market import Market, MarketStatus, Outcome
from prediction_engine.models.orderbook import OrderBookDepth, PriceLevel
from prediction_engine.models.position import Position


def D(value) -> Decimal:
    return Decimal(str(value))


@pytest.fixture
def orderbook() -> OrderBookDepth:
    """Three levels per side around 0.51."""
    return OrderBookDepth(
        market_id="MKT-1",
        token_id="MKT-1-YES",
        bids=[
            PriceLevel(price=D("0.50"), size=D(100)),
            PriceLevel(price=D("0.49"), size=D(200)),
            PriceLevel(price=D("0.48"), size=D(150)),
        ],
        asks=[
            PriceLevel(price=D("0.52"), size=D(80)),
            PriceLevel(price=D("0.53"), size=D(120)),
            PriceLevel(price=D("0.54"), size=D(100)),
        ],
    )


@pytest.fixture
def market_factory():
    """Build a binary market whose YES mid price is `price`."""

    def make(
        market_id: str = "MKT-1",
        price="0.50",
        spread="0.02",
        liquidity="5000",
        volume="2000",
        status: MarketStatus = MarketStatus.ACTIVE,
    ) -> Market:
        yes = D(price)
        half = D(spread) / 2
        no = 1 - yes
        return Market(
            id=market_id,
            question=f"Question for {market_id}?",
            status=status,
            outcomes=[
                Outcome(token_id=f"{market_id}-YES", name="Yes", bid=yes - half, ask=yes + half),
                Outcome(token_id=f"{market_id}-NO", name="No", bid=no - half, ask=no + half),
            ],
            liquidity=D(liquidity),
            volume=D(volume),
        )

    return make


@pytest.fixture
def history_factory():
    """Build a chronological price history from a list of prices."""

    def make(prices) -> list[PricePoint]:
        start = datetime.now(timezone.utc) - timedelta(minutes=len(prices))
        return [
            PricePoint(timestamp=start + timedelta(minutes=i), price=D(p))
            for i, p in enumerate(prices)
        ]

    return make


@pytest.fixture
def position_factory():
    def make(
        market_id: str = "MKT-1",
        token_id: Optional[str] = None,
        size="10",
        avg_price="0.50",
        current_price="0.50",
    ) -> Position:
        return Position(
            market_id=market_id,
            token_id=token_id or f"{market_id}-YES",
            size=D(size),
            avg_price=D(avg_price),
            current_price=D(current_price),
        )

    return make


@pytest.fixture
def context_factory(market_factory, history_factory):
    """
    Build a context from {market_id: [prices...]}.

    The last price of each history is the market's current YES price.
    """

    def make(
        histories: Optional[dict] = None,
        positions: Optional[list[Position]] = None,
        balance="1000",
        **market_kwargs,
    ) -> StrategyContext:
        histories = histories or {}
        markets = [
            market_factory(market_id=market_id, price=prices[-1], **market_kwargs)
            for market_id, prices in histories.items()
        ]
        return StrategyContext.from_state(
            markets=markets,
            positions=positions or [],
            orders=[],
            balance=D(balance),
            price_history={
                market_id: history_factory(prices) for market_id, prices in histories.items()
            },
        )

    return make


@pytest.fixture
def empty_context() -> StrategyContext:
    return StrategyContext.from_state(markets=[], positions=[], orders=[], balance=D("1000"))


@pytest.fixture
def risk_guard() -> RiskGuard:
    """Risk guard with default limits."""
    return RiskGuard(RiskConfig())


@pytest.fixture
def sink() -> QueueActionSink:
    return QueueActionSink()


@pytest.fixture
def engine(sink) -> StrategyEngine:
    """Engine with default limits writing to an in-memory queue."""
    return StrategyEngine(sink, EngineConfig())
