"""
Tests for the strategy context, snapshots and indicators.
"""

from datetime import datetime, timezone
from decimal import Decimal

from prediction_engine.core.context import MarketSnapshot, StrategyContext
from prediction_engine.models.market import MarketStatus
from prediction_engine.models.order import Order, OrderSide, OrderStatus


def D(value) -> Decimal:
    return Decimal(str(value))


class TestSnapshots:
    """Snapshot conversion from aggregator models."""

    def test_market_snapshot_from_market(self, market_factory):
        snapshot = MarketSnapshot.from_market(market_factory(price="0.60"))

        assert snapshot.condition_id == "MKT-1"
        assert snapshot.token_ids == ["MKT-1-YES", "MKT-1-NO"]
        assert snapshot.yes_price == D("0.60")
        assert snapshot.no_price == D("0.40")
        assert snapshot.yes_token_id == "MKT-1-YES"
        assert snapshot.implied_probability == D("0.60")
        assert snapshot.spread == D("0.02")
        assert snapshot.is_tradeable()

    def test_market_snapshot_without_outcomes(self):
        snapshot = MarketSnapshot(condition_id="EMPTY")
        assert snapshot.yes_price is None
        assert snapshot.no_price is None
        assert snapshot.yes_token_id == ""

    def test_closed_market_not_tradeable(self, market_factory):
        snapshot = MarketSnapshot.from_market(market_factory(status=MarketStatus.CLOSED))
        assert not snapshot.is_tradeable()

    def test_from_state_totals(self, market_factory, position_factory):
        positions = [
            position_factory("MKT-1", size="10", avg_price="0.40", current_price="0.50"),
            position_factory("MKT-2", size="20", avg_price="0.50", current_price="0.25"),
        ]
        context = StrategyContext.from_state(
            markets=[market_factory("MKT-1"), market_factory("MKT-2")],
            positions=positions,
            orders=[],
            balance=D("100"),
        )

        assert context.available_balance == D("100")
        assert context.total_exposure() == D("10.00")
        assert context.total_value == D("110.00")

        snap = context.get_position("MKT-1-YES")
        assert snap.current_value == D("5.00")
        assert snap.unrealized_pnl == D("1.00")
        assert snap.pnl_percent == D("25")
        assert snap.is_profitable()


class TestQueries:
    """Context lookups."""

    def test_active_markets(self, market_factory):
        context = StrategyContext.from_state(
            markets=[
                market_factory("OPEN"),
                market_factory("CLOSED", status=MarketStatus.CLOSED),
            ],
            positions=[],
            orders=[],
            balance=D("0"),
        )

        assert len(context.all_markets()) == 2
        assert [m.condition_id for m in context.active_markets()] == ["OPEN"]
        assert context.get_market("CLOSED").status == MarketStatus.CLOSED
        assert context.get_market("MISSING") is None

    def test_has_position_in_market(self, market_factory, position_factory):
        context = StrategyContext.from_state(
            markets=[market_factory("MKT-1")],
            positions=[
                position_factory("MKT-1"),
                position_factory("MKT-2", size="0"),
            ],
            orders=[],
            balance=D("0"),
        )

        assert context.has_position_in_market("MKT-1")
        assert not context.has_position_in_market("MKT-2")
        assert not context.has_position_in_market("MKT-3")

    def test_orders(self):
        def order(order_id, market_id, status):
            return Order(
                id=order_id,
                market_id=market_id,
                token_id=f"{market_id}-YES",
                side=OrderSide.BUY,
                price=D("0.5"),
                original_size=D("10"),
                remaining_size=D("4"),
                filled_size=D("6"),
                status=status,
            )

        context = StrategyContext.from_state(
            markets=[],
            positions=[],
            orders=[
                order("A", "MKT-1", OrderStatus.OPEN),
                order("B", "MKT-1", OrderStatus.FILLED),
                order("C", "MKT-2", OrderStatus.PARTIALLY_FILLED),
            ],
            balance=D("0"),
        )

        assert {o.order_id for o in context.open_orders()} == {"A", "C"}
        assert {o.order_id for o in context.orders_for_market("MKT-1")} == {"A", "B"}
        assert context.orders["A"].fill_percent() == D("60")

    def test_latest_price(self, context_factory):
        context = context_factory({"MKT-1": ["0.40", "0.45"]})

        assert context.latest_price("MKT-1") == D("0.45")
        assert context.latest_price("MKT-1", 1) == D("0.55")
        assert context.latest_price("MKT-1", 2) is None
        assert context.latest_price("MISSING") is None

    def test_price_history(self, context_factory):
        context = context_factory({"MKT-1": ["0.40", "0.45"]})

        history = context.get_price_history("MKT-1")
        assert [p.price for p in history] == [D("0.40"), D("0.45")]
        assert history[0].timestamp < history[1].timestamp
        assert context.get_price_history("MISSING") is None


class TestIndicators:
    """SMA, EMA and price change."""

    def test_sma(self, context_factory):
        context = context_factory({"M": [1, 2, 3, 4, 5]})

        assert context.sma("M", 5) == D(3)
        assert context.sma("M", 2) == D("4.5")
        assert context.sma("M", 6) is None
        assert context.sma("M", 0) is None
        assert context.sma("MISSING", 2) is None

    def test_ema_seeded_with_sma(self, context_factory):
        context = context_factory({"M": [1, 2, 3, 4, 5]})

        # seed = mean(1, 2, 3) = 2, multiplier = 0.5
        # 4 -> 3, 5 -> 4
        assert context.ema("M", 3) == D(4)
        assert context.ema("M", 5) == D(3)
        assert context.ema("M", 6) is None
        assert context.ema("M", -1) is None

    def test_ema_seed_uses_oldest_points(self, context_factory):
        context = context_factory({"M": [1, 1, 1, 9]})

        # seed = mean(1, 1, 1) = 1, then 9 -> 1 + (9 - 1) * 0.5 = 5
        # seeding from the newest points would give 11/3
        assert context.ema("M", 3) == D(5)

    def test_ema_constant_series(self, context_factory):
        context = context_factory({"M": ["0.5"] * 30})
        assert context.ema("M", 9) == D("0.5")

    def test_price_change(self, context_factory):
        context = context_factory({"M": ["0.50", "0.55", "0.60"]})

        assert context.price_change("M", 2) == D("0.2")
        assert context.price_change("M", 0) == D(0)
        assert context.price_change("M", 3) is None

    def test_price_change_zero_base(self, context_factory):
        context = context_factory({"M": ["0", "0.5"]})
        assert context.price_change("M", 1) is None


class TestFiltered:
    """Per-strategy market filtering."""

    def test_include_and_exclude(self, context_factory):
        context = context_factory({"A": ["0.5"], "B": ["0.5"], "C": ["0.5"]})

        included = context.filtered(include_markets=["A", "B"])
        assert set(included.markets) == {"A", "B"}

        excluded = context.filtered(exclude_markets=["A"])
        assert set(excluded.markets) == {"B", "C"}

        both = context.filtered(include_markets=["A", "B"], exclude_markets=["B"])
        assert set(both.markets) == {"A"}

    def test_empty_filters_keep_everything(self, context_factory):
        context = context_factory({"A": ["0.5"], "B": ["0.5"]})
        assert set(context.filtered([], []).markets) == {"A", "B"}

    def test_original_not_mutated(self, context_factory):
        context = context_factory({"A": ["0.5"], "B": ["0.5"]})

        filtered = context.filtered(exclude_markets=["A"])
        filtered.markets.pop("B")

        assert set(context.markets) == {"A", "B"}
        assert filtered.price_history is not context.price_history

    def test_timestamp_preserved(self, context_factory):
        context = context_factory({"A": ["0.5"]})
        assert context.filtered(["A"]).timestamp == context.timestamp
        assert context.timestamp <= datetime.now(timezone.utc)
