"""
Tests for the risk guard.
"""

from decimal import Decimal

from prediction_engine.core.risk import RiskCheck, RiskConfig, RiskGuard, ViolationKind
from prediction_engine.models.signal import Signal


def D(value) -> Decimal:
    return Decimal(str(value))


def buy(market_id="MKT-1", size="10", price="0.60", token_id=None) -> Signal:
    signal = Signal.buy(market_id, token_id or f"{market_id}-YES", D(size))
    return signal.with_price(D(price)) if price is not None else signal


def sell(market_id="MKT-1", size="10", price="0.60", token_id=None) -> Signal:
    return Signal.sell(market_id, token_id or f"{market_id}-YES", D(size)).with_price(D(price))


class TestRiskGuard:
    """Test suite for RiskGuard."""

    def test_passes_within_limits(self, risk_guard, empty_context):
        """Test that a normal signal passes."""
        check = risk_guard.check_signal(buy(), empty_context)
        assert check.passed
        assert check.violation is None
        assert check.reason is None

    def test_trading_disabled(self, empty_context):
        guard = RiskGuard(RiskConfig(enabled=False))
        check = guard.check_signal(buy(), empty_context)

        assert not check.passed
        assert check.violation.kind == ViolationKind.TRADING_DISABLED

    def test_blacklisted_market(self, empty_context):
        guard = RiskGuard(RiskConfig(blacklisted_markets=["MKT-1"]))

        check = guard.check_signal(buy("MKT-1"), empty_context)
        assert check.violation.kind == ViolationKind.MARKET_BLACKLISTED
        assert "MKT-1" in check.reason

        assert guard.check_signal(buy("MKT-2"), empty_context).passed

    def test_whitelist(self, empty_context):
        guard = RiskGuard(RiskConfig(whitelisted_markets=["MKT-1"]))

        assert guard.check_signal(buy("MKT-1"), empty_context).passed
        check = guard.check_signal(buy("MKT-2"), empty_context)
        assert check.violation.kind == ViolationKind.MARKET_NOT_WHITELISTED

    def test_position_size_bounds(self, risk_guard, empty_context):
        """Test that size limits are enforced."""
        too_big = risk_guard.check_signal(buy(size="150", price="0.10"), empty_context)
        assert too_big.violation.kind == ViolationKind.POSITION_SIZE_EXCEEDED
        assert too_big.violation.details["max"] == D("100")

        too_small = risk_guard.check_signal(buy(size="0.5"), empty_context)
        assert too_small.violation.kind == ViolationKind.POSITION_SIZE_TOO_SMALL

        assert risk_guard.check_signal(buy(size="100", price="0.10"), empty_context).passed
        assert risk_guard.check_signal(buy(size="1"), empty_context).passed

    def test_total_exposure(self, context_factory, position_factory):
        guard = RiskGuard(RiskConfig(max_exposure_per_market=None))
        # 995 held across two markets
        context = context_factory(positions=[
            position_factory("MKT-8", size="1000", current_price="0.50"),
            position_factory("MKT-9", size="990", current_price="0.50"),
        ])

        check = guard.check_signal(buy(size="10", price="0.60"), context)
        assert check.violation.kind == ViolationKind.TOTAL_EXPOSURE_EXCEEDED

        # Exactly at the cap is allowed
        assert guard.check_signal(buy(size="10", price="0.50"), context).passed

    def test_total_exposure_ignores_sells(self, context_factory, position_factory):
        guard = RiskGuard(RiskConfig(max_exposure_per_market=None))
        context = context_factory(positions=[
            position_factory("MKT-1", size="2000", current_price="0.50"),
        ])

        check = guard.check_signal(sell(size="10", price="0.60"), context)
        assert check.passed

    def test_missing_price_counts_as_one(self, risk_guard, context_factory, position_factory):
        context = context_factory(positions=[
            position_factory("MKT-1", size="380", current_price="0.50"),
        ])

        # 190 held + 20 * 1 > 200 per-market
        check = risk_guard.check_signal(buy(size="20", price=None), context)
        assert check.violation.kind == ViolationKind.MARKET_EXPOSURE_EXCEEDED

    def test_max_positions(self, context_factory, position_factory):
        guard = RiskGuard(RiskConfig(max_positions=3))
        context = context_factory(positions=[
            position_factory(f"MKT-{i}", size="10", current_price="0.50") for i in range(3)
        ])

        check = guard.check_signal(buy("MKT-NEW"), context)
        assert check.violation.kind == ViolationKind.MAX_POSITIONS_REACHED
        assert check.violation.details == {"current": 3, "max": 3}

        # Adding to an existing token or selling is fine
        assert guard.check_signal(buy("MKT-0"), context).passed
        assert guard.check_signal(sell("MKT-NEW"), context).passed

    def test_market_exposure(self, risk_guard, context_factory, position_factory):
        context = context_factory(positions=[
            position_factory("MKT-1", size="390", current_price="0.50"),
        ])

        check = risk_guard.check_signal(buy("MKT-1", size="10", price="0.60"), context)
        assert check.violation.kind == ViolationKind.MARKET_EXPOSURE_EXCEEDED
        assert check.violation.details["market_id"] == "MKT-1"

        # Both sides count toward the per-market limit
        check = risk_guard.check_signal(sell("MKT-1", size="10", price="0.60"), context)
        assert check.violation.kind == ViolationKind.MARKET_EXPOSURE_EXCEEDED

        assert risk_guard.check_signal(buy("MKT-2", size="10", price="0.60"), context).passed

    def test_no_outcome_token_counts_toward_market(self, risk_guard, context_factory, position_factory):
        context = context_factory(positions=[
            position_factory("MKT-1", token_id="MKT-1-NO", size="390", current_price="0.50"),
        ])

        check = risk_guard.check_signal(buy("MKT-1", size="10", price="0.60"), context)
        assert check.violation.kind == ViolationKind.MARKET_EXPOSURE_EXCEEDED

    def test_invalid_price(self, risk_guard, empty_context):
        check = risk_guard.check_signal(buy(size="5", price="1.5"), empty_context)
        assert check.violation.kind == ViolationKind.INVALID_PRICE

        check = risk_guard.check_signal(buy(price="-0.1"), empty_context)
        assert check.violation.kind == ViolationKind.INVALID_PRICE

        assert risk_guard.check_signal(buy(price="0"), empty_context).passed
        assert risk_guard.check_signal(buy(size="5", price="1"), empty_context).passed

    def test_first_violation_wins(self, empty_context):
        guard = RiskGuard(RiskConfig(blacklisted_markets=["MKT-1"]))

        check = guard.check_signal(buy("MKT-1", size="500", price="5"), empty_context)
        assert check.violation.kind == ViolationKind.MARKET_BLACKLISTED

    def test_unset_limits_not_enforced(self, empty_context):
        guard = RiskGuard(RiskConfig(
            max_position_size=None,
            min_position_size=None,
            max_total_exposure=None,
            max_positions=None,
            max_exposure_per_market=None,
        ))

        assert guard.check_signal(buy(size="100000", price="0.9"), empty_context).passed
        assert guard.check_signal(buy(size="0.001"), empty_context).passed

    def test_daily_limits_do_not_reject(self, empty_context):
        guard = RiskGuard(RiskConfig(
            max_daily_volume=D("1"),
            max_daily_trades=1,
            max_daily_loss=D("1"),
        ))
        assert guard.check_signal(buy(), empty_context).passed

    def test_update_config(self, risk_guard, empty_context):
        assert risk_guard.check_signal(buy(), empty_context).passed

        risk_guard.update_config(RiskConfig(enabled=False))

        assert not risk_guard.check_signal(buy(), empty_context).passed

    def test_violation_str(self, empty_context):
        check = RiskGuard(RiskConfig(enabled=False)).check_signal(buy(), empty_context)
        assert isinstance(check, RiskCheck)
        assert str(check.violation) == "Trading is disabled"

